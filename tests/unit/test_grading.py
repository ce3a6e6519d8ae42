"""Unit tests for the attempt grader (pure functions, no storage)."""
import pytest

from learnhub.errors import ValidationFailure, UnknownQuestion, InvalidOption, DuplicateAnswer
from learnhub.services.grading import grade, round_half_up


def _quiz(passing_score=70):
    return {
        "_id": "quiz-1",
        "passing_score": passing_score,
        "questions": [
            {"question_id": "q1", "options": [{"text": "a", "is_correct": False}, {"text": "b", "is_correct": True}]},
            {"question_id": "q2", "options": [{"text": "a", "is_correct": True}, {"text": "b", "is_correct": False}]},
            {"question_id": "q3", "options": [
                {"text": "a", "is_correct": False}, {"text": "b", "is_correct": False}, {"text": "c", "is_correct": True},
            ]},
        ],
    }


@pytest.mark.unit
class TestRoundHalfUp:
    def test_half_rounds_up(self):
        assert round_half_up(0.5) == 1
        assert round_half_up(2.5) == 3
        assert round_half_up(66.665, 2) == 66.67

    def test_integer_result_when_no_digits(self):
        assert isinstance(round_half_up(66.6667), int)
        assert round_half_up(66.6667) == 67

    def test_two_digits(self):
        assert round_half_up(200 / 3, 2) == 66.67
        assert round_half_up(68.33333, 2) == 68.33


@pytest.mark.unit
class TestGrade:
    def test_all_correct(self):
        result = grade(_quiz(), [
            {"question_id": "q1", "selected_option_index": 1},
            {"question_id": "q2", "selected_option_index": 0},
            {"question_id": "q3", "selected_option_index": 2},
        ])
        assert result["score"] == 100
        assert result["passed"] is True
        assert result["correct_count"] == 3
        assert result["total_questions"] == 3
        assert all(a["is_correct"] for a in result["processed_answers"])

    def test_score_rounds_half_up(self):
        result = grade(_quiz(), [
            {"question_id": "q1", "selected_option_index": 1},
            {"question_id": "q2", "selected_option_index": 0},
            {"question_id": "q3", "selected_option_index": 0},
        ])
        # 2 of 3 = 66.67 -> 67
        assert result["score"] == 67
        assert result["passed"] is False

    def test_unanswered_questions_count_against_score(self):
        result = grade(_quiz(), [{"question_id": "q1", "selected_option_index": 1}])
        assert result["score"] == 33
        assert result["correct_count"] == 1
        assert result["total_questions"] == 3
        assert len(result["processed_answers"]) == 1

    def test_pass_threshold_is_inclusive(self):
        result = grade(_quiz(passing_score=67), [
            {"question_id": "q1", "selected_option_index": 1},
            {"question_id": "q2", "selected_option_index": 0},
        ])
        assert result["score"] == 67
        assert result["passed"] is True

    def test_processed_answers_keep_submission_order(self):
        result = grade(_quiz(), [
            {"question_id": "q3", "selected_option_index": 1},
            {"question_id": "q1", "selected_option_index": 1},
        ])
        assert [a["question_id"] for a in result["processed_answers"]] == ["q3", "q1"]
        assert [a["is_correct"] for a in result["processed_answers"]] == [False, True]

    def test_numeric_string_index_is_accepted(self):
        result = grade(_quiz(), [{"question_id": "q1", "selected_option_index": "1"}])
        assert result["processed_answers"][0]["selected_option_index"] == 1
        assert result["processed_answers"][0]["is_correct"] is True


@pytest.mark.unit
class TestGradeRejections:
    def test_empty_submission(self):
        with pytest.raises(ValidationFailure, match="Answers array is required"):
            grade(_quiz(), [])

    def test_unknown_question(self):
        with pytest.raises(UnknownQuestion) as exc:
            grade(_quiz(), [{"question_id": "nope", "selected_option_index": 0}])
        assert exc.value.message == "Question nope not found in quiz"
        assert exc.value.status_code == 400

    @pytest.mark.parametrize("index", [-1, 3, 1.5, True, "abc", None])
    def test_invalid_option_index(self, index):
        with pytest.raises(InvalidOption) as exc:
            grade(_quiz(), [{"question_id": "q3", "selected_option_index": index}])
        assert exc.value.message == "Invalid option selected for question q3"

    def test_repeated_question_rejected(self):
        with pytest.raises(DuplicateAnswer) as exc:
            grade(_quiz(), [{"question_id": "q1", "selected_option_index": 1}] * 4)
        assert exc.value.message == "Duplicate answer for question q1"
        assert exc.value.status_code == 400

    def test_rejection_is_all_or_nothing(self):
        quiz = _quiz()
        with pytest.raises(InvalidOption):
            grade(quiz, [
                {"question_id": "q1", "selected_option_index": 1},
                {"question_id": "q2", "selected_option_index": 7},
            ])
