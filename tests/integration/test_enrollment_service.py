"""
Service-level integration tests: enrollment workflow against mongomock and
fakeredis, including caching and optimistic concurrency.
"""
import pytest

from learnhub.errors import (
    AlreadyEnrolled, AlreadyCompleted, AttemptLimitExceeded, ConcurrentModification,
    CourseNotFound, Forbidden, EnrollmentNotFound, CourseNotCompleted,
)
from learnhub.repos import enrollments as enrollment_repo
from learnhub.repos import lessons as lesson_repo
from learnhub.services import course_service, enrollment_service, progress_service
from learnhub.services.cache_keys import progress_report_key
from learnhub.services.memory_cache import memory_cache


def _half_right(quiz):
    first, second = quiz["questions"]
    right = next(i for i, o in enumerate(first["options"]) if o["is_correct"])
    wrong = next(i for i, o in enumerate(second["options"]) if not o["is_correct"])
    return [
        {"question_id": first["question_id"], "selected_option_index": right},
        {"question_id": second["question_id"], "selected_option_index": wrong},
    ]


@pytest.mark.integration
@pytest.mark.asyncio
class TestEnroll:
    async def test_enroll_creates_fresh_enrollment(self, mongo_db, redis, make_course, make_user):
        course = make_course()
        student = make_user()
        doc = await enrollment_service.enroll(mongo_db, redis, student_id=student["_id"], course_id=course["_id"])
        assert doc["progress"] == 0
        assert doc["completed_lessons"] == [] and doc["quiz_attempts"] == []
        assert doc["is_completed"] is False
        assert mongo_db.courses.find_one({"title": course["title"]})["enrollment_count"] == 1

    async def test_duplicate_enrollment_conflicts(self, mongo_db, redis, make_course, make_user):
        course = make_course()
        student = make_user()
        await enrollment_service.enroll(mongo_db, redis, student_id=student["_id"], course_id=course["_id"])
        with pytest.raises(AlreadyEnrolled):
            await enrollment_service.enroll(mongo_db, redis, student_id=student["_id"], course_id=course["_id"])
        assert mongo_db.enrollments.count_documents({}) == 1

    async def test_inactive_course_cannot_be_joined(self, mongo_db, redis, make_course, make_user):
        course = make_course()
        await course_service.deactivate_course(mongo_db, redis, course["_id"])
        with pytest.raises(CourseNotFound):
            await enrollment_service.enroll(mongo_db, redis, student_id=make_user()["_id"], course_id=course["_id"])


@pytest.mark.integration
@pytest.mark.asyncio
class TestWorkflow:
    async def test_end_to_end(self, mongo_db, redis, make_course, make_quiz, make_user):
        course = make_course(lessons=1)
        student = make_user()
        enrollment = await enrollment_service.enroll(mongo_db, redis, student_id=student["_id"], course_id=course["_id"])

        saved = await enrollment_service.complete_lesson(
            mongo_db, redis, enrollment_id=enrollment["_id"], lesson_id=course["lessons"][0]["_id"], user=student
        )
        assert saved["progress"] == 100
        assert saved["is_completed"] is True

        quiz = make_quiz(course["_id"], passing_score=75, max_attempts=3)
        result = await enrollment_service.submit_quiz_attempt(
            mongo_db, redis, enrollment_id=enrollment["_id"], quiz_id=quiz["_id"], answers=_half_right(quiz), user=student
        )
        assert result["score"] == 50
        assert result["passed"] is False
        assert result["attempts_remaining"] == 2

        certificate = await enrollment_service.issue_certificate(
            mongo_db, redis, enrollment_id=enrollment["_id"], user=student
        )
        assert certificate["issued"] is True

    async def test_completing_a_lesson_twice(self, mongo_db, redis, make_course, make_user):
        course = make_course(lessons=2)
        student = make_user()
        enrollment = await enrollment_service.enroll(mongo_db, redis, student_id=student["_id"], course_id=course["_id"])
        lesson_id = course["lessons"][0]["_id"]
        await enrollment_service.complete_lesson(mongo_db, redis, enrollment_id=enrollment["_id"], lesson_id=lesson_id, user=student)
        with pytest.raises(AlreadyCompleted):
            await enrollment_service.complete_lesson(mongo_db, redis, enrollment_id=enrollment["_id"], lesson_id=lesson_id, user=student)
        stored = enrollment_repo.get_enrollment(mongo_db, enrollment["_id"])
        assert len(stored["completed_lessons"]) == 1
        assert stored["progress"] == 50

    async def test_attempt_limit_enforced(self, mongo_db, redis, make_course, make_quiz, make_user):
        course = make_course()
        student = make_user()
        quiz = make_quiz(course["_id"], max_attempts=2)
        enrollment = await enrollment_service.enroll(mongo_db, redis, student_id=student["_id"], course_id=course["_id"])
        for _ in range(2):
            await enrollment_service.submit_quiz_attempt(
                mongo_db, redis, enrollment_id=enrollment["_id"], quiz_id=quiz["_id"], answers=_half_right(quiz), user=student
            )
        with pytest.raises(AttemptLimitExceeded):
            await enrollment_service.submit_quiz_attempt(
                mongo_db, redis, enrollment_id=enrollment["_id"], quiz_id=quiz["_id"], answers=_half_right(quiz), user=student
            )
        assert len(enrollment_repo.get_enrollment(mongo_db, enrollment["_id"])["quiz_attempts"]) == 2

    async def test_other_student_is_forbidden(self, mongo_db, redis, make_course, make_user):
        course = make_course(lessons=1)
        owner, intruder, admin = make_user(), make_user(), make_user(role="admin")
        enrollment = await enrollment_service.enroll(mongo_db, redis, student_id=owner["_id"], course_id=course["_id"])
        with pytest.raises(Forbidden):
            await enrollment_service.complete_lesson(
                mongo_db, redis, enrollment_id=enrollment["_id"], lesson_id=course["lessons"][0]["_id"], user=intruder
            )
        with pytest.raises(Forbidden):
            await enrollment_service.get_enrollment(mongo_db, enrollment_id=enrollment["_id"], user=intruder)
        seen = await enrollment_service.get_enrollment(mongo_db, enrollment_id=enrollment["_id"], user=admin)
        assert seen["course"]["title"] == course["title"]

    async def test_unknown_enrollment(self, mongo_db, redis, make_user):
        with pytest.raises(EnrollmentNotFound):
            await enrollment_service.get_enrollment(mongo_db, enrollment_id="not-an-id", user=make_user())

    async def test_certificate_requires_completion(self, mongo_db, redis, make_course, make_user):
        course = make_course(lessons=2)
        student = make_user()
        enrollment = await enrollment_service.enroll(mongo_db, redis, student_id=student["_id"], course_id=course["_id"])
        with pytest.raises(CourseNotCompleted):
            await enrollment_service.issue_certificate(mongo_db, redis, enrollment_id=enrollment["_id"], user=student)


@pytest.mark.integration
class TestOptimisticConcurrency:
    def test_stale_save_is_rejected(self, mongo_db, make_course, make_user):
        course = make_course()
        enrollment = enrollment_repo.insert_enrollment(mongo_db, make_user()["_id"], course["_id"])
        first = enrollment_repo.get_enrollment(mongo_db, enrollment["_id"])
        second = enrollment_repo.get_enrollment(mongo_db, enrollment["_id"])

        first["progress"] = 10
        enrollment_repo.save_enrollment(mongo_db, first)
        assert first["version"] == 1

        second["progress"] = 20
        with pytest.raises(ConcurrentModification):
            enrollment_repo.save_enrollment(mongo_db, second)
        assert enrollment_repo.get_enrollment(mongo_db, enrollment["_id"])["progress"] == 10


@pytest.mark.integration
@pytest.mark.asyncio
class TestProgressCaching:
    async def test_report_is_cached_and_invalidated_on_mutation(self, mongo_db, redis, make_course, make_user):
        course = make_course(lessons=2)
        student = make_user()
        enrollment = await enrollment_service.enroll(mongo_db, redis, student_id=student["_id"], course_id=course["_id"])

        report = await progress_service.get_progress_report(mongo_db, redis, student_id=student["_id"])
        assert report["data"][0]["progress"]["lessons"] == 0
        assert await redis.get(progress_report_key(student["_id"])) is not None

        await enrollment_service.complete_lesson(
            mongo_db, redis, enrollment_id=enrollment["_id"], lesson_id=course["lessons"][0]["_id"], user=student
        )
        assert await redis.get(progress_report_key(student["_id"])) is None
        assert await memory_cache.get(progress_report_key(student["_id"])) is None

        report = await progress_service.get_progress_report(mongo_db, redis, student_id=student["_id"])
        assert report["data"][0]["progress"]["lessons"] == 50.0
        assert report["data"][0]["stats"]["time_spent"] == 10

    async def test_catalog_change_refreshes_enrolled_reports(self, mongo_db, redis, make_course, make_user):
        course = make_course(lessons=1)
        student, bystander = make_user(), make_user()
        enrollment = await enrollment_service.enroll(mongo_db, redis, student_id=student["_id"], course_id=course["_id"])
        await enrollment_service.complete_lesson(
            mongo_db, redis, enrollment_id=enrollment["_id"], lesson_id=course["lessons"][0]["_id"], user=student
        )
        report = await progress_service.get_progress_report(mongo_db, redis, student_id=student["_id"])
        assert report["data"][0]["progress"]["lessons"] == 100.0
        await progress_service.get_progress_report(mongo_db, redis, student_id=bystander["_id"])

        await course_service.add_lesson(mongo_db, redis, course["_id"], {
            "title": "Extra", "video_url": "https://videos.example.com/extra", "duration": 5,
        })

        report = await progress_service.get_progress_report(mongo_db, redis, student_id=student["_id"])
        assert report["data"][0]["stats"]["total_lessons"] == 2
        assert report["data"][0]["progress"]["lessons"] == 50.0
        # students outside the course keep their cached views
        assert await redis.get(progress_report_key(bystander["_id"])) is not None

    async def test_deactivated_lesson_leaves_denominator(self, mongo_db, redis, make_course, make_user):
        course = make_course(lessons=4)
        student = make_user()
        await enrollment_service.enroll(mongo_db, redis, student_id=student["_id"], course_id=course["_id"])
        lesson_repo.deactivate_lesson(mongo_db, course["lessons"][3]["_id"])
        report = await progress_service.get_progress_report(mongo_db, redis, student_id=student["_id"], course_id=course["_id"])
        assert report["data"][0]["stats"]["total_lessons"] == 3

    async def test_analytics(self, mongo_db, redis, make_course, make_quiz, make_user):
        course = make_course(lessons=1)
        student = make_user()
        quiz = make_quiz(course["_id"])
        enrollment = await enrollment_service.enroll(mongo_db, redis, student_id=student["_id"], course_id=course["_id"])
        await enrollment_service.complete_lesson(
            mongo_db, redis, enrollment_id=enrollment["_id"], lesson_id=course["lessons"][0]["_id"], user=student
        )
        await enrollment_service.submit_quiz_attempt(
            mongo_db, redis, enrollment_id=enrollment["_id"], quiz_id=quiz["_id"], answers=_half_right(quiz), user=student
        )
        analytics = await progress_service.get_analytics(mongo_db, redis, student_id=student["_id"])
        assert analytics["total_courses"] == 1
        assert analytics["completed_courses"] == 1
        assert analytics["average_quiz_score"] == 50.0
        assert analytics["streak_days"] == 1
