from pydantic import Field, AliasChoices, conlist
from typing import Any, List, Optional
from datetime import datetime

from learnhub.schemas.common import CamelModel, Pagination, ID

class EnrollIn(CamelModel):
    course_id: ID

class AnswerIn(CamelModel):
    question_id: ID
    # checked by the grader, which reports non-numeric input as an invalid option
    selected_option_index: Any = Field(
        ...,
        validation_alias=AliasChoices("selectedOptionIndex", "selectedOption", "selected_option_index"),
    )

class QuizAttemptIn(CamelModel):
    answers: conlist(AnswerIn, min_length=1)

class AnswerRecordOut(CamelModel):
    question_id: str
    selected_option_index: int
    is_correct: bool

class CompletedLessonOut(CamelModel):
    lesson_id: str
    completed_at: datetime

class QuizAttemptRecordOut(CamelModel):
    quiz_id: str
    score: int
    answers: List[AnswerRecordOut] = []
    attempted_at: datetime
    passed: bool
    correct_count: Optional[int] = None
    total_questions: Optional[int] = None

class CertificateOut(CamelModel):
    issued: bool = False
    issued_at: Optional[datetime] = None
    certificate_id: Optional[str] = None

class EnrollmentCourseOut(CamelModel):
    id: str
    title: Optional[str] = None
    description: Optional[str] = None
    instructor_name: Optional[str] = None
    price: Optional[float] = None

class EnrollmentOut(CamelModel):
    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    student_id: str
    course_id: str
    course: Optional[EnrollmentCourseOut] = None
    enrolled_at: datetime
    progress: int = 0
    completed_lessons: List[CompletedLessonOut] = []
    quiz_attempts: List[QuizAttemptRecordOut] = []
    is_completed: bool = False
    completed_at: Optional[datetime] = None
    certificate: CertificateOut = CertificateOut()

class EnrollmentsList(CamelModel):
    count: int
    enrollments: List[EnrollmentOut]

class EnrollmentsPage(EnrollmentsList):
    pagination: Pagination

class AttemptResultOut(CamelModel):
    score: int
    passed: bool
    correct_count: int
    total_questions: int
    passing_score: float
    attempts_remaining: int
