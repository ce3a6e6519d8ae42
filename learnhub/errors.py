# errors.py
"""
Domain error taxonomy.

Every expected failure of the engine is a LearnHubError carrying the HTTP
status the routers answer with. InternalFailure is the only class whose
message never reaches the client.
"""
from fastapi import HTTPException


class LearnHubError(Exception):
    status_code = 500
    default_message = "An unexpected error occurred"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_http(self) -> HTTPException:
        return HTTPException(status_code=self.status_code, detail=self.message)


class ValidationFailure(LearnHubError):
    status_code = 400
    default_message = "Validation failed"


class UnknownQuestion(ValidationFailure):
    def __init__(self, question_id: str):
        self.question_id = question_id
        super().__init__(f"Question {question_id} not found in quiz")


class InvalidOption(ValidationFailure):
    def __init__(self, question_id: str):
        self.question_id = question_id
        super().__init__(f"Invalid option selected for question {question_id}")


class DuplicateAnswer(ValidationFailure):
    def __init__(self, question_id: str):
        self.question_id = question_id
        super().__init__(f"Duplicate answer for question {question_id}")


class NotFound(LearnHubError):
    status_code = 404
    default_message = "Resource not found"


class CourseNotFound(NotFound):
    default_message = "Course not found"


class LessonNotFound(NotFound):
    default_message = "Lesson not found"


class QuizNotFound(NotFound):
    default_message = "Quiz not found"


class EnrollmentNotFound(NotFound):
    default_message = "Enrollment not found"


class Forbidden(LearnHubError):
    status_code = 403
    default_message = "Not authorized to access this enrollment"


class Conflict(LearnHubError):
    status_code = 409
    default_message = "Conflict"


class AlreadyEnrolled(Conflict):
    default_message = "You are already enrolled in this course"


class AlreadyCompleted(Conflict):
    default_message = "Lesson already marked as completed"


class ConcurrentModification(Conflict):
    default_message = "Enrollment was modified by another request, please retry"


class CourseNotCompleted(Conflict):
    default_message = "Course must be completed before a certificate is issued"


class CertificateAlreadyIssued(Conflict):
    default_message = "Certificate already issued for this enrollment"


class LimitExceeded(LearnHubError):
    status_code = 400
    default_message = "Limit exceeded"


class AttemptLimitExceeded(LimitExceeded):
    def __init__(self, max_attempts: int):
        self.max_attempts = max_attempts
        super().__init__(f"Maximum attempts ({max_attempts}) reached for this quiz")


class InternalFailure(LearnHubError):
    status_code = 500
