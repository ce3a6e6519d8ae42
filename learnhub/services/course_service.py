# services/course_service.py
import json
import hashlib
import logging
from typing import Dict, Any, List, Optional
from redis.asyncio import Redis
from pymongo.database import Database
from fastapi.concurrency import run_in_threadpool

from learnhub.config import settings
from learnhub.errors import CourseNotFound, LessonNotFound, QuizNotFound, ValidationFailure
from learnhub.repos import courses as course_repo
from learnhub.repos import lessons as lesson_repo
from learnhub.repos import quizzes as quiz_repo
from learnhub.repos import enrollments as enrollment_repo
from learnhub.services.cache_keys import course_key, courses_list_key
from learnhub.services.cache_service import get_or_load, invalidate_course_cache, invalidate_students_cache

logger = logging.getLogger(__name__)

COURSE_LIST_TTL = 60 * 2     # 2 minutes cache TTL for course lists

# Constants for cache warming
WARM_PAGES = 2
WARM_PAGE_LIMIT = 10

def _filters_key(search: Optional[str], instructor: Optional[str], page: int, limit: int) -> str:
    """Generate a unique cache key based on course list filter parameters."""
    payload = {"search": search, "instructor": instructor, "page": page, "limit": limit}
    return hashlib.sha1(json.dumps(payload, sort_keys=True).encode()).hexdigest()

async def _catalog_changed(db: Database, r: Redis, course_id: str) -> None:
    """Drop the course views and the progress views of every student enrolled in the course."""
    await invalidate_course_cache(r, course_id)
    student_ids = await run_in_threadpool(enrollment_repo.list_course_student_ids, db, course_id)
    await invalidate_students_cache(r, student_ids)

# ---------------------------
# Courses
# ---------------------------

async def create_course(db: Database, r: Redis, data: Dict[str, Any], created_by: str) -> Dict[str, Any]:
    doc = await run_in_threadpool(course_repo.insert_course, db, data, created_by)
    await invalidate_course_cache(r, doc["_id"])
    logger.info(f"Course {doc['_id']} created by {created_by}")
    return doc

async def list_courses(db: Database, r: Redis, *, search: Optional[str], instructor: Optional[str], page: int, limit: int) -> Dict[str, Any]:
    """List active courses with search and pagination, cached briefly."""
    key = courses_list_key(_filters_key(search, instructor, page, limit))

    async def load():
        total, items = await run_in_threadpool(
            course_repo.list_courses, db, search=search, instructor=instructor, page=page, limit=limit
        )
        return {
            "count": len(items),
            "pagination": {"page": page, "limit": limit, "total": total, "pages": -(-total // limit)},
            "courses": items,
        }

    return await get_or_load(r, key, COURSE_LIST_TTL, "courses_list", load)

async def get_course_detail(db: Database, r: Redis, course_id: str) -> Dict[str, Any]:
    """Active course with its lessons and quizzes (answer keys stripped)."""
    async def load():
        course = await run_in_threadpool(course_repo.get_course_by_id, db, course_id)
        if not course:
            return None
        course["lessons"] = await run_in_threadpool(lesson_repo.list_lessons, db, course_id)
        course["quizzes"] = await run_in_threadpool(quiz_repo.list_public_quizzes, db, course_id)
        return course

    doc = await get_or_load(r, course_key(course_id), settings.COURSE_CACHE_TTL, "courses", load)
    if not doc:
        raise CourseNotFound()
    return doc

async def require_active_course(db: Database, course_id: str) -> Dict[str, Any]:
    course = await run_in_threadpool(course_repo.get_course_by_id, db, course_id)
    if not course:
        raise CourseNotFound()
    return course

async def update_course(db: Database, r: Redis, course_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
    doc = await run_in_threadpool(course_repo.update_course, db, course_id, patch)
    if not doc:
        raise CourseNotFound()
    await _catalog_changed(db, r, course_id)
    return doc

async def deactivate_course(db: Database, r: Redis, course_id: str) -> None:
    if not await run_in_threadpool(course_repo.deactivate_course, db, course_id):
        raise CourseNotFound()
    await _catalog_changed(db, r, course_id)
    logger.info(f"Course {course_id} deactivated with its lessons and quizzes")

async def warm_courses_cache(db: Database, r: Redis) -> None:
    """Pre-warm the first listing pages and the most enrolled course details."""
    for page in range(1, WARM_PAGES + 1):
        await list_courses(db, r, search=None, instructor=None, page=page, limit=WARM_PAGE_LIMIT)
    course_ids = await run_in_threadpool(course_repo.list_active_course_ids, db, WARM_PAGE_LIMIT)
    for cid in course_ids:
        await get_course_detail(db, r, cid)
    logger.debug(f"Warmed {len(course_ids)} course caches")

# ---------------------------
# Lessons
# ---------------------------

async def add_lesson(db: Database, r: Redis, course_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    await require_active_course(db, course_id)
    doc = await run_in_threadpool(lesson_repo.insert_lesson, db, course_id, data)
    await _catalog_changed(db, r, course_id)
    return doc

async def list_lessons(db: Database, course_id: str) -> List[Dict[str, Any]]:
    await require_active_course(db, course_id)
    return await run_in_threadpool(lesson_repo.list_lessons, db, course_id)

async def get_lesson(db: Database, lesson_id: str) -> Dict[str, Any]:
    doc = await run_in_threadpool(lesson_repo.get_lesson, db, lesson_id)
    if not doc:
        raise LessonNotFound()
    return doc

async def update_lesson(db: Database, r: Redis, lesson_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
    doc = await run_in_threadpool(lesson_repo.update_lesson, db, lesson_id, patch)
    if not doc:
        raise LessonNotFound()
    await _catalog_changed(db, r, doc["course_id"])
    return doc

async def deactivate_lesson(db: Database, r: Redis, lesson_id: str) -> None:
    lesson = await get_lesson(db, lesson_id)
    await run_in_threadpool(lesson_repo.deactivate_lesson, db, lesson_id)
    await _catalog_changed(db, r, lesson["course_id"])

# ---------------------------
# Quizzes
# ---------------------------

def validate_questions(questions: List[Dict[str, Any]]) -> None:
    """Every question needs 2-6 options with exactly one flagged correct."""
    if not questions:
        raise ValidationFailure("Quiz must have at least one question")
    seen = set()
    for i, question in enumerate(questions, start=1):
        options = question.get("options", [])
        if not 2 <= len(options) <= 6:
            raise ValidationFailure(f"Question {i} must have between 2 and 6 options")
        if sum(1 for opt in options if opt.get("is_correct")) != 1:
            raise ValidationFailure(f"Question {i} must have exactly one correct answer")
        question_id = question.get("question_id")
        if question_id:
            if question_id in seen:
                raise ValidationFailure(f"Question {i} repeats question id {question_id}")
            seen.add(question_id)

async def add_quiz(db: Database, r: Redis, course_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    validate_questions(data.get("questions", []))
    await require_active_course(db, course_id)
    doc = await run_in_threadpool(quiz_repo.insert_quiz, db, course_id, data)
    await _catalog_changed(db, r, course_id)
    return doc

async def list_quizzes(db: Database, course_id: str) -> List[Dict[str, Any]]:
    await require_active_course(db, course_id)
    return await run_in_threadpool(quiz_repo.list_public_quizzes, db, course_id)

async def get_public_quiz(db: Database, quiz_id: str) -> Dict[str, Any]:
    doc = await run_in_threadpool(quiz_repo.get_public_quiz, db, quiz_id)
    if not doc:
        raise QuizNotFound()
    return doc

async def get_quiz_with_answers(db: Database, quiz_id: str) -> Dict[str, Any]:
    doc = await run_in_threadpool(quiz_repo.get_quiz, db, quiz_id)
    if not doc:
        raise QuizNotFound()
    return doc

async def update_quiz(db: Database, r: Redis, quiz_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
    if "questions" in patch:
        validate_questions(patch["questions"])
    doc = await run_in_threadpool(quiz_repo.update_quiz, db, quiz_id, patch)
    if not doc:
        raise QuizNotFound()
    await _catalog_changed(db, r, doc["course_id"])
    return doc

async def deactivate_quiz(db: Database, r: Redis, quiz_id: str) -> None:
    quiz = await get_quiz_with_answers(db, quiz_id)
    await run_in_threadpool(quiz_repo.deactivate_quiz, db, quiz_id)
    await _catalog_changed(db, r, quiz["course_id"])
