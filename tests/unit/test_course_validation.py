"""Unit tests for quiz authoring rules and request schemas."""
import pytest
from pydantic import ValidationError

from learnhub.errors import ValidationFailure
from learnhub.schemas.course_schema import QuizCreate, LessonCreate
from learnhub.schemas.enrollment_schema import QuizAttemptIn
from learnhub.services.course_service import validate_questions


def _question(correct=(1,), options=3):
    return {"text": "Pick one", "options": [{"text": f"opt {i}", "is_correct": i in correct} for i in range(options)]}


@pytest.mark.unit
class TestValidateQuestions:
    def test_valid_questions_pass(self):
        validate_questions([_question(), _question(correct=(0,), options=2)])

    def test_no_questions(self):
        with pytest.raises(ValidationFailure, match="at least one question"):
            validate_questions([])

    def test_no_correct_option(self):
        with pytest.raises(ValidationFailure, match="Question 2 must have exactly one correct answer"):
            validate_questions([_question(), _question(correct=())])

    def test_two_correct_options(self):
        with pytest.raises(ValidationFailure, match="Question 1 must have exactly one correct answer"):
            validate_questions([_question(correct=(0, 1))])

    @pytest.mark.parametrize("count", [1, 7])
    def test_option_count_bounds(self, count):
        with pytest.raises(ValidationFailure, match="between 2 and 6 options"):
            validate_questions([_question(correct=(0,), options=count)])

    def test_repeated_question_id(self):
        with pytest.raises(ValidationFailure, match="Question 2 repeats question id q1"):
            validate_questions([{**_question(), "question_id": "q1"}, {**_question(), "question_id": "q1"}])


@pytest.mark.unit
class TestSchemas:
    def test_quiz_defaults_and_camel_case_input(self):
        quiz = QuizCreate.model_validate({
            "title": "Checkpoint",
            "questions": [{"text": "What?", "options": [{"text": "a", "isCorrect": True}, {"text": "b"}]}],
        })
        assert quiz.time_limit == 30
        assert quiz.passing_score == 70
        assert quiz.max_attempts == 3
        assert quiz.questions[0].options[0].is_correct is True

    def test_quiz_passing_score_range(self):
        with pytest.raises(ValidationError):
            QuizCreate.model_validate({
                "title": "Checkpoint",
                "passingScore": 120,
                "questions": [{"text": "What?", "options": [{"text": "a", "isCorrect": True}, {"text": "b"}]}],
            })

    def test_question_id_is_optional_on_input(self):
        quiz = QuizCreate.model_validate({
            "title": "Checkpoint",
            "questions": [
                {"questionId": "q-keep", "text": "What?", "options": [{"text": "a", "isCorrect": True}, {"text": "b"}]},
                {"text": "Which?", "options": [{"text": "a", "isCorrect": True}, {"text": "b"}]},
            ],
        })
        assert [q.question_id for q in quiz.questions] == ["q-keep", None]

    def test_lesson_video_url_must_be_http(self):
        with pytest.raises(ValidationError):
            LessonCreate.model_validate({"title": "Intro", "videoUrl": "ftp://files.example.com/a.mp4"})
        lesson = LessonCreate.model_validate({"title": "Intro", "videoUrl": "https://videos.example.com/intro"})
        assert lesson.resource_links == []

    def test_attempt_accepts_option_index_aliases(self):
        payload = QuizAttemptIn.model_validate({"answers": [
            {"questionId": "q1", "selectedOptionIndex": 2},
            {"questionId": "q2", "selectedOption": 0},
        ]})
        assert [a.selected_option_index for a in payload.answers] == [2, 0]
        assert payload.answers[0].model_dump() == {"question_id": "q1", "selected_option_index": 2}

    def test_attempt_requires_answers(self):
        with pytest.raises(ValidationError):
            QuizAttemptIn.model_validate({"answers": []})
