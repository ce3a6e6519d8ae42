# services/progress_service.py
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List
from redis.asyncio import Redis
from pymongo.database import Database
from fastapi.concurrency import run_in_threadpool

from learnhub.config import settings
from learnhub.repos import courses as course_repo
from learnhub.repos import enrollments as enrollment_repo
from learnhub.repos import lessons as lesson_repo
from learnhub.repos import quizzes as quiz_repo
from learnhub.services import progress_aggregator as aggregator
from learnhub.services.cache_keys import progress_report_key, quiz_scores_key, analytics_key
from learnhub.services.cache_service import get_or_load

def _build_catalog(db: Database, enrollments: List[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """
    Collect the catalog facts the aggregator needs for each enrollment.

    Runs in a worker thread; one round of lookups per enrolled course.
    """
    courses = course_repo.get_courses_by_ids(db, [e["course_id"] for e in enrollments])
    catalog = {}
    for e in enrollments:
        course_id = e["course_id"]
        lesson_ids = [cl["lesson_id"] for cl in e.get("completed_lessons", [])]
        quiz_ids = list({a["quiz_id"] for a in e.get("quiz_attempts", [])})
        catalog[course_id] = {
            "course": courses.get(course_id) or {"_id": course_id},
            "total_lessons": lesson_repo.count_active_lessons(db, course_id),
            "total_quizzes": quiz_repo.count_active_quizzes(db, course_id),
            "lessons": lesson_repo.get_lessons_by_ids(db, lesson_ids),
            "quizzes": quiz_repo.get_quizzes_by_ids(db, quiz_ids),
        }
    return catalog

async def _load(db: Database, student_id: str, course_id: Optional[str] = None):
    enrollments = await run_in_threadpool(enrollment_repo.list_student_enrollments, db, student_id, course_id)
    catalog = await run_in_threadpool(_build_catalog, db, enrollments)
    return enrollments, catalog

async def get_progress_report(db: Database, r: Redis, *, student_id: str, course_id: Optional[str] = None) -> Dict[str, Any]:
    async def load():
        enrollments, catalog = await _load(db, student_id, course_id)
        report = []
        for e in enrollments:
            entry = catalog[e["course_id"]]
            report.append(aggregator.compute_course_progress(
                e, entry["course"], entry["total_lessons"], entry["total_quizzes"],
                entry["lessons"], entry["quizzes"],
            ))
        return {"count": len(report), "data": report}

    key = progress_report_key(student_id, course_id)
    return await get_or_load(r, key, settings.PROGRESS_CACHE_TTL, "progress_report", load)

async def get_quiz_scores(db: Database, r: Redis, *, student_id: str, course_id: Optional[str] = None) -> Dict[str, Any]:
    async def load():
        enrollments, catalog = await _load(db, student_id, course_id)
        scores = []
        for e in enrollments:
            entry = catalog[e["course_id"]]
            scores.extend(aggregator.compute_quiz_scores(e, entry["course"], entry["quizzes"]))
        return {"count": len(scores), "data": scores}

    key = quiz_scores_key(student_id, course_id)
    return await get_or_load(r, key, settings.PROGRESS_CACHE_TTL, "quiz_scores", load)

async def get_analytics(db: Database, r: Redis, *, student_id: str) -> Dict[str, Any]:
    async def load():
        enrollments, catalog = await _load(db, student_id)
        today = datetime.now(timezone.utc).date()
        return aggregator.compute_analytics(enrollments, catalog, today)

    return await get_or_load(r, analytics_key(student_id), settings.ANALYTICS_CACHE_TTL, "analytics", load)
