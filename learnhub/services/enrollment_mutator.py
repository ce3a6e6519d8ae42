# services/enrollment_mutator.py
"""
Enrollment mutation stages.

Each operation validates its preconditions, appends to the enrollment
document in place and recomputes the derived fields. Persisting the result is
left to enrollment_service.
"""
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence

from learnhub.errors import (
    LessonNotFound, QuizNotFound, AlreadyCompleted, AttemptLimitExceeded,
    CourseNotCompleted, CertificateAlreadyIssued,
)
from learnhub.services.grading import grade, round_half_up


def _now(now: Optional[datetime]) -> datetime:
    return now or datetime.now(timezone.utc)


def _belongs_to_course(enrollment: Dict[str, Any], item: Optional[Dict[str, Any]]) -> bool:
    return bool(item) and item.get("is_active", True) and str(item.get("course_id")) == str(enrollment["course_id"])


def recompute_progress(enrollment: Dict[str, Any], total_active_lessons: int, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Derive progress from the completed-lesson list.

    Completion is latched: once is_completed is set the completion timestamp
    is never rewritten, even if lessons are added to the course later.
    """
    if total_active_lessons > 0:
        completed = len(enrollment.get("completed_lessons", []))
        enrollment["progress"] = min(100, round_half_up(completed / total_active_lessons * 100))
        if enrollment["progress"] == 100 and not enrollment.get("is_completed"):
            enrollment["is_completed"] = True
            enrollment["completed_at"] = _now(now)
    return enrollment


def complete_lesson(
    enrollment: Dict[str, Any],
    lesson: Optional[Dict[str, Any]],
    total_active_lessons: int,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    if not _belongs_to_course(enrollment, lesson):
        raise LessonNotFound()

    lesson_id = str(lesson["_id"])
    if any(str(cl["lesson_id"]) == lesson_id for cl in enrollment.get("completed_lessons", [])):
        raise AlreadyCompleted()

    enrollment.setdefault("completed_lessons", []).append({
        "lesson_id": lesson_id,
        "completed_at": _now(now),
    })
    return recompute_progress(enrollment, total_active_lessons, now)


def attempts_for(enrollment: Dict[str, Any], quiz_id: str):
    return [a for a in enrollment.get("quiz_attempts", []) if str(a["quiz_id"]) == str(quiz_id)]


def submit_quiz_attempt(
    enrollment: Dict[str, Any],
    quiz: Optional[Dict[str, Any]],
    submitted_answers: Sequence[Dict[str, Any]],
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Check the attempt limit, grade, and append the attempt record.

    Returns the attempt result payload; the enrollment is modified in place.
    """
    if not _belongs_to_course(enrollment, quiz):
        raise QuizNotFound()

    quiz_id = str(quiz["_id"])
    max_attempts = int(quiz.get("max_attempts", 3))
    prior = len(attempts_for(enrollment, quiz_id))
    if prior >= max_attempts:
        raise AttemptLimitExceeded(max_attempts)

    result = grade(quiz, submitted_answers)

    enrollment.setdefault("quiz_attempts", []).append({
        "quiz_id": quiz_id,
        "score": result["score"],
        "answers": result["processed_answers"],
        "attempted_at": _now(now),
        "passed": result["passed"],
        "correct_count": result["correct_count"],
        "total_questions": result["total_questions"],
    })

    return {
        "score": result["score"],
        "passed": result["passed"],
        "correct_count": result["correct_count"],
        "total_questions": result["total_questions"],
        "passing_score": quiz.get("passing_score", 0),
        "attempts_remaining": max_attempts - (prior + 1),
    }


def issue_certificate(enrollment: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
    if not enrollment.get("is_completed"):
        raise CourseNotCompleted()
    certificate = enrollment.get("certificate") or {}
    if certificate.get("issued"):
        raise CertificateAlreadyIssued()

    enrollment["certificate"] = {
        "issued": True,
        "issued_at": _now(now),
        "certificate_id": f"CERT-{uuid.uuid4().hex[:12].upper()}",
    }
    return enrollment
