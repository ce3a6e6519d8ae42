from fastapi import APIRouter, Depends, Query, status, BackgroundTasks
from redis.asyncio import Redis
from pymongo.database import Database
from typing import Optional

from learnhub.deps import get_db, get_redis
from learnhub.auth.dependencies import get_current_user, require_role
from learnhub.errors import LearnHubError
from learnhub.services import enrollment_service, progress_service
from learnhub.schemas.enrollment_schema import (
    EnrollIn, EnrollmentOut, EnrollmentsList, EnrollmentsPage,
    QuizAttemptIn, AttemptResultOut, CertificateOut,
)

router = APIRouter(prefix="/api/enrollments", tags=["enrollments"])

@router.post("", response_model=EnrollmentOut, status_code=status.HTTP_201_CREATED)
async def enroll(payload: EnrollIn,
                 db: Database = Depends(get_db),
                 r: Redis = Depends(get_redis),
                 user=Depends(get_current_user)):
    try:
        return await enrollment_service.enroll(db, r, student_id=user["_id"], course_id=payload.course_id)
    except LearnHubError as e:
        raise e.to_http()

@router.get("", response_model=EnrollmentsList)
async def my_enrollments(db: Database = Depends(get_db), user=Depends(get_current_user)):
    enrollments = await enrollment_service.list_my_enrollments(db, student_id=user["_id"])
    return {"count": len(enrollments), "enrollments": enrollments}

@router.get("/admin/all", response_model=EnrollmentsPage, dependencies=[Depends(require_role("admin"))])
async def all_enrollments(course: Optional[str] = None,
                          student: Optional[str] = None,
                          page: int = Query(1, ge=1),
                          limit: int = Query(10, ge=1, le=100),
                          db: Database = Depends(get_db)):
    return await enrollment_service.list_all_enrollments(db, course_id=course, student_id=student, page=page, limit=limit)

@router.get("/{enrollment_id}", response_model=EnrollmentOut)
async def get_enrollment(enrollment_id: str, db: Database = Depends(get_db), user=Depends(get_current_user)):
    try:
        return await enrollment_service.get_enrollment(db, enrollment_id=enrollment_id, user=user)
    except LearnHubError as e:
        raise e.to_http()

@router.post("/{enrollment_id}/lessons/{lesson_id}/complete", response_model=EnrollmentOut)
async def complete_lesson(enrollment_id: str,
                          lesson_id: str,
                          background: BackgroundTasks,
                          db: Database = Depends(get_db),
                          r: Redis = Depends(get_redis),
                          user=Depends(get_current_user)):
    try:
        doc = await enrollment_service.complete_lesson(db, r, enrollment_id=enrollment_id, lesson_id=lesson_id, user=user)
    except LearnHubError as e:
        raise e.to_http()
    # Warm the progress report asynchronously (post-write)
    background.add_task(progress_service.get_progress_report, db, r, student_id=user["_id"])
    return doc

@router.post("/{enrollment_id}/quizzes/{quiz_id}/attempt", response_model=AttemptResultOut)
async def submit_quiz_attempt(enrollment_id: str,
                              quiz_id: str,
                              payload: QuizAttemptIn,
                              db: Database = Depends(get_db),
                              r: Redis = Depends(get_redis),
                              user=Depends(get_current_user)):
    answers = [a.model_dump() for a in payload.answers]
    try:
        return await enrollment_service.submit_quiz_attempt(
            db, r, enrollment_id=enrollment_id, quiz_id=quiz_id, answers=answers, user=user
        )
    except LearnHubError as e:
        raise e.to_http()

@router.post("/{enrollment_id}/certificate", response_model=CertificateOut, status_code=status.HTTP_201_CREATED)
async def issue_certificate(enrollment_id: str,
                            db: Database = Depends(get_db),
                            r: Redis = Depends(get_redis),
                            user=Depends(get_current_user)):
    try:
        return await enrollment_service.issue_certificate(db, r, enrollment_id=enrollment_id, user=user)
    except LearnHubError as e:
        raise e.to_http()
