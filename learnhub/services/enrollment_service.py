# services/enrollment_service.py
import logging
from typing import Dict, Any, List, Optional, Sequence
from redis.asyncio import Redis
from pymongo.database import Database
from fastapi.concurrency import run_in_threadpool

from learnhub.errors import CourseNotFound, EnrollmentNotFound, Forbidden
from learnhub.repos import courses as course_repo
from learnhub.repos import enrollments as repo
from learnhub.repos import lessons as lesson_repo
from learnhub.repos import quizzes as quiz_repo
from learnhub.services import enrollment_mutator as mutator
from learnhub.services.cache_service import invalidate_student_cache, invalidate_course_cache

logger = logging.getLogger(__name__)

def _is_admin(user: Dict[str, Any]) -> bool:
    return user.get("role") == "admin"

async def _load_owned(db: Database, enrollment_id: str, user: Dict[str, Any], *, allow_admin: bool) -> Dict[str, Any]:
    enrollment = await run_in_threadpool(repo.get_enrollment, db, enrollment_id)
    if not enrollment:
        raise EnrollmentNotFound()
    if enrollment["student_id"] != str(user["_id"]) and not (allow_admin and _is_admin(user)):
        logger.warning(f"User {user['_id']} denied access to enrollment {enrollment_id}")
        raise Forbidden()
    return enrollment

async def _persist(db: Database, r: Redis, enrollment: Dict[str, Any]) -> Dict[str, Any]:
    saved = await run_in_threadpool(repo.save_enrollment, db, enrollment)
    await invalidate_student_cache(r, saved["student_id"])
    return saved

# ---------------------------
# Enrollment lifecycle
# ---------------------------

async def enroll(db: Database, r: Redis, *, student_id: str, course_id: str) -> Dict[str, Any]:
    course = await run_in_threadpool(course_repo.get_course_by_id, db, course_id)
    if not course:
        raise CourseNotFound()

    doc = await run_in_threadpool(repo.insert_enrollment, db, student_id, course_id)
    await run_in_threadpool(course_repo.increment_enrollment_count, db, course_id)

    await invalidate_student_cache(r, student_id)
    await invalidate_course_cache(r, course_id)
    logger.info(f"Student {student_id} enrolled in course {course_id}")
    return doc

async def list_my_enrollments(db: Database, *, student_id: str) -> List[Dict[str, Any]]:
    enrollments = await run_in_threadpool(repo.list_student_enrollments, db, student_id)
    courses = await run_in_threadpool(course_repo.get_courses_by_ids, db, [e["course_id"] for e in enrollments])
    for e in enrollments:
        e["course"] = _course_summary(courses.get(e["course_id"]))
    return enrollments

async def list_all_enrollments(db: Database, *, course_id: Optional[str], student_id: Optional[str], page: int, limit: int) -> Dict[str, Any]:
    total, items = await run_in_threadpool(
        repo.list_enrollments, db, course_id=course_id, student_id=student_id, page=page, limit=limit
    )
    return {
        "count": len(items),
        "pagination": {"page": page, "limit": limit, "total": total, "pages": -(-total // limit)},
        "enrollments": items,
    }

async def get_enrollment(db: Database, *, enrollment_id: str, user: Dict[str, Any]) -> Dict[str, Any]:
    enrollment = await _load_owned(db, enrollment_id, user, allow_admin=True)
    course = await run_in_threadpool(course_repo.get_course_by_id, db, enrollment["course_id"], active_only=False)
    enrollment["course"] = _course_summary(course)
    return enrollment

def _course_summary(course: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not course:
        return None
    return {
        "id": course["_id"],
        "title": course.get("title"),
        "description": course.get("description"),
        "instructor_name": course.get("instructor_name"),
        "price": course.get("price"),
    }

# ---------------------------
# Mutations: validate -> derive -> persist
# ---------------------------

async def complete_lesson(db: Database, r: Redis, *, enrollment_id: str, lesson_id: str, user: Dict[str, Any]) -> Dict[str, Any]:
    enrollment = await _load_owned(db, enrollment_id, user, allow_admin=False)
    course_id = enrollment["course_id"]
    lesson = await run_in_threadpool(lesson_repo.get_lesson, db, lesson_id, course_id)
    total_lessons = await run_in_threadpool(lesson_repo.count_active_lessons, db, course_id)

    mutator.complete_lesson(enrollment, lesson, total_lessons)
    saved = await _persist(db, r, enrollment)
    logger.info(f"Enrollment {enrollment_id}: lesson {lesson_id} completed, progress {saved['progress']}%")
    return saved

async def submit_quiz_attempt(
    db: Database,
    r: Redis,
    *,
    enrollment_id: str,
    quiz_id: str,
    answers: Sequence[Dict[str, Any]],
    user: Dict[str, Any],
) -> Dict[str, Any]:
    enrollment = await _load_owned(db, enrollment_id, user, allow_admin=False)
    quiz = await run_in_threadpool(quiz_repo.get_quiz, db, quiz_id, enrollment["course_id"])

    result = mutator.submit_quiz_attempt(enrollment, quiz, answers)
    await _persist(db, r, enrollment)
    logger.info(
        f"Enrollment {enrollment_id}: quiz {quiz_id} scored {result['score']} "
        f"({'passed' if result['passed'] else 'failed'}), {result['attempts_remaining']} attempts left"
    )
    return result

async def issue_certificate(db: Database, r: Redis, *, enrollment_id: str, user: Dict[str, Any]) -> Dict[str, Any]:
    enrollment = await _load_owned(db, enrollment_id, user, allow_admin=True)
    mutator.issue_certificate(enrollment)
    saved = await _persist(db, r, enrollment)
    logger.info(f"Certificate {saved['certificate']['certificate_id']} issued for enrollment {enrollment_id}")
    return saved["certificate"]
