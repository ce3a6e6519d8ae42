# services/grading.py
"""
Attempt grading.

Pure functions only: a quiz document (with answer keys) and the submitted
answers go in, a grade comes out. Nothing here touches storage.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Sequence

from learnhub.errors import ValidationFailure, UnknownQuestion, InvalidOption, DuplicateAnswer


def round_half_up(value: float, digits: int = 0) -> float:
    # builtin round() is banker's rounding, scores round .5 up
    quantum = Decimal(1).scaleb(-digits)
    rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    return int(rounded) if digits == 0 else float(rounded)


def _option_index(raw: Any) -> Optional[int]:
    """Coerce a submitted option index; None when it is not integral."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(raw) if raw.is_integer() else None
    if isinstance(raw, str):
        text = raw.strip()
        if text.lstrip("-").isdigit():
            return int(text)
    return None


def _questions_by_id(quiz: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    return {str(q["question_id"]): q for q in quiz.get("questions", [])}


def grade(quiz: Dict[str, Any], submitted_answers: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Grade a submission against the quiz answer keys.

    Args:
        quiz: quiz document including options' is_correct flags
        submitted_answers: [{"question_id", "selected_option_index"}, ...]

    Returns:
        {"score", "passed", "processed_answers", "correct_count", "total_questions"}

    Raises:
        ValidationFailure: empty submission
        UnknownQuestion: question id not part of the quiz
        DuplicateAnswer: question answered more than once
        InvalidOption: option index missing, non-integral or out of range
    """
    if not submitted_answers:
        raise ValidationFailure("Answers array is required")

    questions = _questions_by_id(quiz)
    processed: List[Dict[str, Any]] = []
    seen = set()
    correct = 0

    for answer in submitted_answers:
        question_id = str(answer.get("question_id"))
        question = questions.get(question_id)
        if question is None:
            raise UnknownQuestion(question_id)
        if question_id in seen:
            raise DuplicateAnswer(question_id)
        seen.add(question_id)

        options = question.get("options", [])
        index = _option_index(answer.get("selected_option_index"))
        if index is None or not 0 <= index < len(options):
            raise InvalidOption(question_id)

        is_correct = bool(options[index].get("is_correct", False))
        if is_correct:
            correct += 1
        processed.append({
            "question_id": question_id,
            "selected_option_index": index,
            "is_correct": is_correct,
        })

    # the denominator is every question of the quiz, answered or not
    total = len(quiz.get("questions", []))
    score = round_half_up(correct / total * 100) if total else 0
    return {
        "score": score,
        "passed": score >= quiz.get("passing_score", 0),
        "processed_answers": processed,
        "correct_count": correct,
        "total_questions": total,
    }
