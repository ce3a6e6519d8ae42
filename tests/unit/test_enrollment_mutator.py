"""Unit tests for the enrollment mutation stages (no database)."""
from datetime import datetime, timezone

import pytest

from learnhub.errors import (
    LessonNotFound, QuizNotFound, AlreadyCompleted, AttemptLimitExceeded,
    CourseNotCompleted, CertificateAlreadyIssued, InvalidOption,
)
from learnhub.repos.enrollments import new_enrollment
from learnhub.services import enrollment_mutator as mutator

NOW = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def enrollment():
    doc = new_enrollment("student-1", "course-1", ts=NOW)
    doc["_id"] = "enrollment-1"
    return doc


def _lesson(lesson_id, course_id="course-1", is_active=True):
    return {"_id": lesson_id, "course_id": course_id, "is_active": is_active, "title": lesson_id}


def _quiz(quiz_id="quiz-1", max_attempts=3, passing_score=75):
    return {
        "_id": quiz_id,
        "course_id": "course-1",
        "is_active": True,
        "passing_score": passing_score,
        "max_attempts": max_attempts,
        "questions": [
            {"question_id": "q1", "options": [{"text": "a", "is_correct": True}, {"text": "b", "is_correct": False}]},
            {"question_id": "q2", "options": [{"text": "a", "is_correct": False}, {"text": "b", "is_correct": True}]},
        ],
    }


HALF_RIGHT = [
    {"question_id": "q1", "selected_option_index": 0},
    {"question_id": "q2", "selected_option_index": 0},
]


@pytest.mark.unit
class TestCompleteLesson:
    def test_appends_and_recomputes_progress(self, enrollment):
        mutator.complete_lesson(enrollment, _lesson("l1"), total_active_lessons=3, now=NOW)
        assert enrollment["completed_lessons"] == [{"lesson_id": "l1", "completed_at": NOW}]
        assert enrollment["progress"] == 33
        assert enrollment["is_completed"] is False
        assert enrollment["completed_at"] is None

    def test_last_lesson_latches_completion(self, enrollment):
        mutator.complete_lesson(enrollment, _lesson("l1"), total_active_lessons=1, now=NOW)
        assert enrollment["progress"] == 100
        assert enrollment["is_completed"] is True
        assert enrollment["completed_at"] == NOW

    def test_completion_timestamp_is_never_rewritten(self, enrollment):
        mutator.complete_lesson(enrollment, _lesson("l1"), total_active_lessons=1, now=NOW)
        later = datetime(2024, 4, 1, tzinfo=timezone.utc)
        mutator.complete_lesson(enrollment, _lesson("l2"), total_active_lessons=2, now=later)
        assert enrollment["completed_at"] == NOW

    def test_duplicate_completion_rejected_without_change(self, enrollment):
        mutator.complete_lesson(enrollment, _lesson("l1"), total_active_lessons=2, now=NOW)
        with pytest.raises(AlreadyCompleted):
            mutator.complete_lesson(enrollment, _lesson("l1"), total_active_lessons=2, now=NOW)
        assert len(enrollment["completed_lessons"]) == 1
        assert enrollment["progress"] == 50

    @pytest.mark.parametrize("lesson", [
        None,
        _lesson("l1", course_id="other-course"),
        _lesson("l1", is_active=False),
    ])
    def test_missing_inactive_or_foreign_lesson(self, enrollment, lesson):
        with pytest.raises(LessonNotFound):
            mutator.complete_lesson(enrollment, lesson, total_active_lessons=2, now=NOW)
        assert enrollment["completed_lessons"] == []

    def test_progress_capped_at_100(self, enrollment):
        # lessons deactivated after completion can leave completed > active
        enrollment["completed_lessons"] = [
            {"lesson_id": f"l{i}", "completed_at": NOW} for i in range(3)
        ]
        mutator.recompute_progress(enrollment, total_active_lessons=2, now=NOW)
        assert enrollment["progress"] == 100

    def test_no_active_lessons_leaves_progress_untouched(self, enrollment):
        enrollment["progress"] = 40
        mutator.recompute_progress(enrollment, total_active_lessons=0, now=NOW)
        assert enrollment["progress"] == 40
        assert enrollment["is_completed"] is False


@pytest.mark.unit
class TestSubmitQuizAttempt:
    def test_records_attempt(self, enrollment):
        result = mutator.submit_quiz_attempt(enrollment, _quiz(), HALF_RIGHT, now=NOW)
        assert result == {
            "score": 50,
            "passed": False,
            "correct_count": 1,
            "total_questions": 2,
            "passing_score": 75,
            "attempts_remaining": 2,
        }
        attempt = enrollment["quiz_attempts"][0]
        assert attempt["quiz_id"] == "quiz-1"
        assert attempt["attempted_at"] == NOW
        assert [a["is_correct"] for a in attempt["answers"]] == [True, False]

    def test_attempt_limit(self, enrollment):
        quiz = _quiz(max_attempts=2)
        mutator.submit_quiz_attempt(enrollment, quiz, HALF_RIGHT, now=NOW)
        last = mutator.submit_quiz_attempt(enrollment, quiz, HALF_RIGHT, now=NOW)
        assert last["attempts_remaining"] == 0
        with pytest.raises(AttemptLimitExceeded) as exc:
            mutator.submit_quiz_attempt(enrollment, quiz, HALF_RIGHT, now=NOW)
        assert exc.value.message == "Maximum attempts (2) reached for this quiz"
        assert len(enrollment["quiz_attempts"]) == 2

    def test_limit_is_per_quiz(self, enrollment):
        mutator.submit_quiz_attempt(enrollment, _quiz("quiz-1", max_attempts=1), HALF_RIGHT, now=NOW)
        result = mutator.submit_quiz_attempt(enrollment, _quiz("quiz-2", max_attempts=1), HALF_RIGHT, now=NOW)
        assert result["attempts_remaining"] == 0

    def test_grading_failure_records_nothing(self, enrollment):
        bad = [{"question_id": "q1", "selected_option_index": 5}]
        with pytest.raises(InvalidOption):
            mutator.submit_quiz_attempt(enrollment, _quiz(), bad, now=NOW)
        assert enrollment["quiz_attempts"] == []

    def test_quiz_from_another_course(self, enrollment):
        quiz = {**_quiz(), "course_id": "course-2"}
        with pytest.raises(QuizNotFound):
            mutator.submit_quiz_attempt(enrollment, quiz, HALF_RIGHT, now=NOW)


@pytest.mark.unit
class TestIssueCertificate:
    def test_requires_completion(self, enrollment):
        with pytest.raises(CourseNotCompleted):
            mutator.issue_certificate(enrollment, now=NOW)

    def test_issues_once(self, enrollment):
        mutator.complete_lesson(enrollment, _lesson("l1"), total_active_lessons=1, now=NOW)
        mutator.issue_certificate(enrollment, now=NOW)
        certificate = enrollment["certificate"]
        assert certificate["issued"] is True
        assert certificate["issued_at"] == NOW
        assert certificate["certificate_id"].startswith("CERT-")
        assert len(certificate["certificate_id"]) == len("CERT-") + 12
        with pytest.raises(CertificateAlreadyIssued):
            mutator.issue_certificate(enrollment, now=NOW)
