# services/progress_aggregator.py
"""
Progress and analytics derivation.

Everything in this module is a pure function of enrollment documents plus the
catalog facts the caller looked up for them (active lesson/quiz counts,
lesson durations and titles, quiz titles and passing scores). Lookups are
plain dicts keyed by id, as returned by the repos' get_*_by_ids helpers.
"""
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Set

from learnhub.services.grading import round_half_up

LESSON_ACTIVITY_SLICE = 5
QUIZ_ACTIVITY_SLICE = 3
RECENT_ACTIVITY_LIMIT = 5


def _as_utc(ts: datetime) -> datetime:
    # PyMongo hands back naive UTC datetimes unless the client is tz_aware
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def _percent(part: int, whole: int) -> float:
    if whole <= 0:
        return 0.0
    return min(100.0, part / whole * 100)


# ---------------------------
# Per-quiz rollups
# ---------------------------

def best_scores(enrollment: Dict[str, Any]) -> Dict[str, int]:
    best: Dict[str, int] = {}
    for attempt in enrollment.get("quiz_attempts", []):
        quiz_id = str(attempt["quiz_id"])
        if quiz_id not in best or attempt["score"] > best[quiz_id]:
            best[quiz_id] = attempt["score"]
    return best


def passed_quiz_ids(enrollment: Dict[str, Any], quizzes: Optional[Dict[str, Dict[str, Any]]] = None) -> Set[str]:
    """Quizzes whose best score reaches their passing score."""
    quizzes = quizzes or {}
    passed = set()
    for quiz_id, score in best_scores(enrollment).items():
        quiz = quizzes.get(quiz_id)
        if quiz is not None:
            if score >= quiz.get("passing_score", 0):
                passed.add(quiz_id)
        elif any(a.get("passed") for a in enrollment["quiz_attempts"] if str(a["quiz_id"]) == quiz_id):
            # quiz no longer resolvable, fall back to the recorded verdicts
            passed.add(quiz_id)
    return passed


def time_spent(enrollment: Dict[str, Any], lessons: Optional[Dict[str, Dict[str, Any]]] = None) -> int:
    lessons = lessons or {}
    total = 0
    for cl in enrollment.get("completed_lessons", []):
        lesson = lessons.get(str(cl["lesson_id"])) or {}
        total += lesson.get("duration") or 0
    return total


# ---------------------------
# Activity
# ---------------------------

def _lesson_events(enrollment, lessons) -> List[Dict[str, Any]]:
    events = []
    for cl in enrollment.get("completed_lessons", []):
        lesson = lessons.get(str(cl["lesson_id"])) or {}
        events.append({
            "type": "lesson",
            "id": str(cl["lesson_id"]),
            "title": lesson.get("title"),
            "timestamp": _as_utc(cl["completed_at"]),
        })
    return events


def _quiz_events(enrollment, quizzes) -> List[Dict[str, Any]]:
    events = []
    for attempt in enrollment.get("quiz_attempts", []):
        quiz = quizzes.get(str(attempt["quiz_id"])) or {}
        passing = quiz.get("passing_score")
        events.append({
            "type": "quiz",
            "id": str(attempt["quiz_id"]),
            "title": quiz.get("title"),
            "score": attempt["score"],
            "passed": attempt["score"] >= passing if passing is not None else bool(attempt.get("passed")),
            "timestamp": _as_utc(attempt["attempted_at"]),
        })
    return events


def _latest(events: List[Dict[str, Any]], limit: int) -> List[Dict[str, Any]]:
    return sorted(events, key=lambda e: e["timestamp"], reverse=True)[:limit]


def recent_activity(
    enrollment: Dict[str, Any],
    lessons: Optional[Dict[str, Dict[str, Any]]] = None,
    quizzes: Optional[Dict[str, Dict[str, Any]]] = None,
    limit: int = RECENT_ACTIVITY_LIMIT,
) -> List[Dict[str, Any]]:
    """Newest lesson completions and quiz attempts, each source capped before the merge."""
    merged = (
        _latest(_lesson_events(enrollment, lessons or {}), LESSON_ACTIVITY_SLICE)
        + _latest(_quiz_events(enrollment, quizzes or {}), QUIZ_ACTIVITY_SLICE)
    )
    return _latest(merged, limit)


def activity_dates(enrollment: Dict[str, Any]) -> Set[date]:
    dates = {_as_utc(cl["completed_at"]).date() for cl in enrollment.get("completed_lessons", [])}
    dates.update(_as_utc(a["attempted_at"]).date() for a in enrollment.get("quiz_attempts", []))
    return dates


def learning_streak(dates: Iterable[date], today: Optional[date] = None) -> int:
    """Consecutive days with activity, counting back from today (inclusive)."""
    today = today or datetime.now(timezone.utc).date()
    present = set(dates)
    streak = 0
    while today - timedelta(days=streak) in present:
        streak += 1
    return streak


# ---------------------------
# Course progress
# ---------------------------

def compute_course_progress(
    enrollment: Dict[str, Any],
    course: Dict[str, Any],
    total_lessons: int,
    total_quizzes: int,
    lessons: Optional[Dict[str, Dict[str, Any]]] = None,
    quizzes: Optional[Dict[str, Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    completed_count = len(enrollment.get("completed_lessons", []))
    passed_count = len(passed_quiz_ids(enrollment, quizzes))

    lesson_pct = _percent(completed_count, total_lessons)
    quiz_pct = _percent(passed_count, total_quizzes)
    overall = (lesson_pct + quiz_pct) / 2 if (total_lessons > 0 or total_quizzes > 0) else 0.0

    activity = recent_activity(enrollment, lessons, quizzes)
    timestamps = [e["timestamp"] for e in _lesson_events(enrollment, {}) + _quiz_events(enrollment, {})]

    return {
        "enrollment_id": str(enrollment["_id"]),
        "course": {
            "id": str(course["_id"]),
            "title": course.get("title"),
            "description": course.get("description"),
            "instructor_name": course.get("instructor_name"),
        },
        "progress": {
            "overall": round_half_up(overall, 2),
            "lessons": round_half_up(lesson_pct, 2),
            "quizzes": round_half_up(quiz_pct, 2),
        },
        "stats": {
            "total_lessons": total_lessons,
            "completed_lessons": completed_count,
            "total_quizzes": total_quizzes,
            "passed_quizzes": passed_count,
            "time_spent": time_spent(enrollment, lessons),
            "enrolled_at": enrollment.get("enrolled_at"),
            "last_activity": max(timestamps) if timestamps else None,
            "completed_at": enrollment.get("completed_at"),
        },
        "recent_activity": activity,
    }


def compute_quiz_scores(
    enrollment: Dict[str, Any],
    course: Optional[Dict[str, Any]],
    quizzes: Optional[Dict[str, Dict[str, Any]]] = None,
) -> List[Dict[str, Any]]:
    """Attempt history per quiz, in the order quizzes were first attempted."""
    quizzes = quizzes or {}
    summaries: Dict[str, Dict[str, Any]] = {}

    for attempt in enrollment.get("quiz_attempts", []):
        quiz_id = str(attempt["quiz_id"])
        quiz = quizzes.get(quiz_id) or {}
        summary = summaries.setdefault(quiz_id, {
            "quiz_id": quiz_id,
            "quiz_title": quiz.get("title"),
            "course_title": (course or {}).get("title"),
            "passing_score": quiz.get("passing_score"),
            "max_attempts": quiz.get("max_attempts"),
            "attempts": [],
        })
        summary["attempts"].append({
            "attempt_number": len(summary["attempts"]) + 1,
            "score": attempt["score"],
            "attempted_at": attempt["attempted_at"],
            "correct_answers": attempt.get("correct_count"),
            "total_questions": attempt.get("total_questions"),
        })

    for quiz_id, summary in summaries.items():
        scores = [a["score"] for a in summary["attempts"]]
        summary["best_score"] = max(scores)
        summary["average_score"] = round_half_up(sum(scores) / len(scores), 2)
        summary["attempts_used"] = len(scores)
        summary["passed"] = quiz_id in passed_quiz_ids(enrollment, quizzes)
        max_attempts = summary["max_attempts"]
        summary["attempts_remaining"] = max(0, max_attempts - len(scores)) if max_attempts is not None else None

    return list(summaries.values())


# ---------------------------
# Cross-course analytics
# ---------------------------

def compute_analytics(
    enrollments: List[Dict[str, Any]],
    catalog: Dict[str, Dict[str, Any]],
    today: Optional[date] = None,
) -> Dict[str, Any]:
    """
    Roll every enrollment of a student up into one analytics view.

    Args:
        enrollments: enrollment documents of one student
        catalog: course_id -> {"course", "total_lessons", "total_quizzes",
                 "lessons", "quizzes"} as assembled by the progress service
        today: reference day for the streak (UTC today by default)
    """
    analytics = {
        "total_courses": len(enrollments),
        "completed_courses": sum(1 for e in enrollments if e.get("completed_at")),
        "in_progress_courses": sum(1 for e in enrollments if not e.get("completed_at")),
        "total_lessons": 0,
        "completed_lessons": 0,
        "total_quizzes": 0,
        "passed_quizzes": 0,
        "total_time_spent": 0,
        "average_quiz_score": 0.0,
        "streak_days": 0,
        "monthly_progress": {},
        "course_progress": [],
    }

    all_scores: List[int] = []
    dates: Set[date] = set()
    monthly = defaultdict(lambda: {"lessons_completed": 0, "quiz_attempts": 0})

    for enrollment in enrollments:
        entry = catalog.get(str(enrollment["course_id"])) or {}
        course = entry.get("course") or {"_id": enrollment["course_id"]}
        lessons = entry.get("lessons") or {}
        quizzes = entry.get("quizzes") or {}
        summary = compute_course_progress(
            enrollment, course,
            entry.get("total_lessons", 0), entry.get("total_quizzes", 0),
            lessons, quizzes,
        )
        stats = summary["stats"]

        analytics["total_lessons"] += stats["total_lessons"]
        analytics["completed_lessons"] += stats["completed_lessons"]
        analytics["total_quizzes"] += stats["total_quizzes"]
        analytics["passed_quizzes"] += stats["passed_quizzes"]
        analytics["total_time_spent"] += stats["time_spent"]

        all_scores.extend(a["score"] for a in enrollment.get("quiz_attempts", []))
        dates |= activity_dates(enrollment)

        for cl in enrollment.get("completed_lessons", []):
            monthly[_as_utc(cl["completed_at"]).strftime("%Y-%m")]["lessons_completed"] += 1
        for attempt in enrollment.get("quiz_attempts", []):
            monthly[_as_utc(attempt["attempted_at"]).strftime("%Y-%m")]["quiz_attempts"] += 1

        analytics["course_progress"].append({
            "course_id": summary["course"]["id"],
            "course_title": summary["course"]["title"],
            "progress": summary["progress"]["overall"],
            "time_spent": stats["time_spent"],
            "enrolled_at": enrollment.get("enrolled_at"),
            "completed_at": enrollment.get("completed_at"),
        })

    if all_scores:
        analytics["average_quiz_score"] = round_half_up(sum(all_scores) / len(all_scores), 2)
    analytics["streak_days"] = learning_streak(dates, today)
    analytics["monthly_progress"] = dict(sorted(monthly.items()))
    return analytics
