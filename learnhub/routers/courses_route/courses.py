from fastapi import APIRouter, Depends, Query, status
from redis.asyncio import Redis
from pymongo.database import Database
from typing import List, Optional

from learnhub.deps import get_db, get_redis
from learnhub.auth.dependencies import require_role
from learnhub.errors import LearnHubError
from learnhub.services import course_service
from learnhub.schemas.course_schema import (
    CourseCreate, CourseUpdate, CourseOut, CoursesPage, CourseDetailOut,
    LessonCreate, LessonUpdate, LessonOut,
    QuizCreate, QuizUpdate, QuizOut, PublicQuizOut,
)

router = APIRouter(prefix="/api/courses", tags=["courses"])

# ---------------------------
# Lessons and quizzes by id (literal prefixes first)
# ---------------------------

@router.get("/lessons/{lesson_id}", response_model=LessonOut)
async def get_lesson(lesson_id: str, db: Database = Depends(get_db)):
    try:
        return await course_service.get_lesson(db, lesson_id)
    except LearnHubError as e:
        raise e.to_http()

@router.put("/lessons/{lesson_id}", response_model=LessonOut, dependencies=[Depends(require_role("admin"))])
async def update_lesson(lesson_id: str, payload: LessonUpdate, db: Database = Depends(get_db), r: Redis = Depends(get_redis)):
    try:
        return await course_service.update_lesson(db, r, lesson_id, payload.model_dump(exclude_none=True))
    except LearnHubError as e:
        raise e.to_http()

@router.delete("/lessons/{lesson_id}", dependencies=[Depends(require_role("admin"))])
async def delete_lesson(lesson_id: str, db: Database = Depends(get_db), r: Redis = Depends(get_redis)):
    try:
        await course_service.deactivate_lesson(db, r, lesson_id)
        return {"message": "Lesson deleted successfully"}
    except LearnHubError as e:
        raise e.to_http()

@router.get("/quizzes/{quiz_id}", response_model=PublicQuizOut)
async def get_quiz(quiz_id: str, db: Database = Depends(get_db), user=Depends(require_role("student", "admin"))):
    """Quiz for taking: answer keys are never part of this view."""
    try:
        return await course_service.get_public_quiz(db, quiz_id)
    except LearnHubError as e:
        raise e.to_http()

@router.get("/quizzes/{quiz_id}/admin", response_model=QuizOut, dependencies=[Depends(require_role("admin"))])
async def get_quiz_admin(quiz_id: str, db: Database = Depends(get_db)):
    try:
        return await course_service.get_quiz_with_answers(db, quiz_id)
    except LearnHubError as e:
        raise e.to_http()

@router.put("/quizzes/{quiz_id}", response_model=QuizOut, dependencies=[Depends(require_role("admin"))])
async def update_quiz(quiz_id: str, payload: QuizUpdate, db: Database = Depends(get_db), r: Redis = Depends(get_redis)):
    try:
        return await course_service.update_quiz(db, r, quiz_id, payload.model_dump(exclude_none=True))
    except LearnHubError as e:
        raise e.to_http()

@router.delete("/quizzes/{quiz_id}", dependencies=[Depends(require_role("admin"))])
async def delete_quiz(quiz_id: str, db: Database = Depends(get_db), r: Redis = Depends(get_redis)):
    try:
        await course_service.deactivate_quiz(db, r, quiz_id)
        return {"message": "Quiz deleted successfully"}
    except LearnHubError as e:
        raise e.to_http()

# ---------------------------
# Courses
# ---------------------------

@router.get("", response_model=CoursesPage)
async def list_courses(
    search: Optional[str] = Query(None, description="Case-insensitive match on title or description"),
    instructor: Optional[str] = Query(None, description="Case-insensitive match on instructor name"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Database = Depends(get_db),
    r: Redis = Depends(get_redis),
):
    return await course_service.list_courses(db, r, search=search, instructor=instructor, page=page, limit=limit)

@router.post("", response_model=CourseOut, status_code=status.HTTP_201_CREATED)
async def create_course(payload: CourseCreate, db: Database = Depends(get_db), r: Redis = Depends(get_redis), user=Depends(require_role("admin"))):
    return await course_service.create_course(db, r, payload.model_dump(), created_by=user["_id"])

@router.get("/{course_id}", response_model=CourseDetailOut)
async def get_course(course_id: str, db: Database = Depends(get_db), r: Redis = Depends(get_redis)):
    try:
        return await course_service.get_course_detail(db, r, course_id)
    except LearnHubError as e:
        raise e.to_http()

@router.put("/{course_id}", response_model=CourseOut, dependencies=[Depends(require_role("admin"))])
async def update_course(course_id: str, payload: CourseUpdate, db: Database = Depends(get_db), r: Redis = Depends(get_redis)):
    try:
        return await course_service.update_course(db, r, course_id, payload.model_dump(exclude_none=True))
    except LearnHubError as e:
        raise e.to_http()

@router.delete("/{course_id}", dependencies=[Depends(require_role("admin"))])
async def delete_course(course_id: str, db: Database = Depends(get_db), r: Redis = Depends(get_redis)):
    """Soft delete: the course, its lessons and its quizzes are deactivated, never removed."""
    try:
        await course_service.deactivate_course(db, r, course_id)
        return {"message": "Course deleted successfully"}
    except LearnHubError as e:
        raise e.to_http()

# ---------------------------
# Course lessons / quizzes
# ---------------------------

@router.post("/{course_id}/lessons", response_model=LessonOut, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(require_role("admin"))])
async def add_lesson(course_id: str, payload: LessonCreate, db: Database = Depends(get_db), r: Redis = Depends(get_redis)):
    try:
        return await course_service.add_lesson(db, r, course_id, payload.model_dump())
    except LearnHubError as e:
        raise e.to_http()

@router.get("/{course_id}/lessons", response_model=List[LessonOut])
async def list_lessons(course_id: str, db: Database = Depends(get_db)):
    try:
        return await course_service.list_lessons(db, course_id)
    except LearnHubError as e:
        raise e.to_http()

@router.post("/{course_id}/quizzes", response_model=QuizOut, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(require_role("admin"))])
async def add_quiz(course_id: str, payload: QuizCreate, db: Database = Depends(get_db), r: Redis = Depends(get_redis)):
    try:
        return await course_service.add_quiz(db, r, course_id, payload.model_dump())
    except LearnHubError as e:
        raise e.to_http()

@router.get("/{course_id}/quizzes", response_model=List[PublicQuizOut])
async def list_quizzes(course_id: str, db: Database = Depends(get_db)):
    try:
        return await course_service.list_quizzes(db, course_id)
    except LearnHubError as e:
        raise e.to_http()
