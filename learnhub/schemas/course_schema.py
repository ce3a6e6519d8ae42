from pydantic import Field, AliasChoices, constr, conlist
from typing import List, Optional
from datetime import datetime

from learnhub.schemas.common import CamelModel, Pagination

URL_PATTERN = r"^https?://[\w\-.]+\.[a-zA-Z]{2,}(:\d+)?(/\S*)?$"

# ---------------------------
# Courses
# ---------------------------

class CourseCreate(CamelModel):
    title: constr(strip_whitespace=True, min_length=1, max_length=100)
    description: constr(min_length=1, max_length=1000)
    instructor_name: constr(strip_whitespace=True, min_length=1, max_length=100)
    price: float = Field(..., ge=0)

class CourseUpdate(CamelModel):
    title: Optional[constr(strip_whitespace=True, min_length=1, max_length=100)] = None
    description: Optional[constr(min_length=1, max_length=1000)] = None
    instructor_name: Optional[constr(strip_whitespace=True, min_length=1, max_length=100)] = None
    price: Optional[float] = Field(default=None, ge=0)

class CourseOut(CamelModel):
    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    title: str
    description: str
    instructor_name: str
    price: float
    enrollment_count: int = 0
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class CourseListItem(CamelModel):
    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    title: str
    description: str
    instructor_name: str
    price: float
    enrollment_count: int = 0
    created_at: Optional[datetime] = None

class CoursesPage(CamelModel):
    count: int
    pagination: Pagination
    courses: List[CourseListItem]

# ---------------------------
# Lessons
# ---------------------------

class ResourceLink(CamelModel):
    title: constr(strip_whitespace=True, min_length=1, max_length=100)
    url: constr(strip_whitespace=True, min_length=1)

class LessonCreate(CamelModel):
    title: constr(strip_whitespace=True, min_length=1, max_length=100)
    video_url: constr(strip_whitespace=True, pattern=URL_PATTERN)
    resource_links: List[ResourceLink] = []
    order: Optional[int] = Field(default=None, ge=0)
    duration: Optional[int] = Field(default=None, ge=0, description="minutes")

class LessonUpdate(CamelModel):
    title: Optional[constr(strip_whitespace=True, min_length=1, max_length=100)] = None
    video_url: Optional[constr(strip_whitespace=True, pattern=URL_PATTERN)] = None
    resource_links: Optional[List[ResourceLink]] = None
    order: Optional[int] = Field(default=None, ge=0)
    duration: Optional[int] = Field(default=None, ge=0)

class LessonOut(CamelModel):
    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    course_id: str
    title: str
    video_url: str
    resource_links: List[ResourceLink] = []
    order: int = 0
    duration: Optional[int] = None
    is_active: bool = True

# ---------------------------
# Quizzes
# ---------------------------

class OptionIn(CamelModel):
    text: constr(strip_whitespace=True, min_length=1, max_length=200)
    is_correct: bool = False

class QuestionIn(CamelModel):
    # existing ids are kept on update so stored attempts still line up
    question_id: Optional[constr(strip_whitespace=True, min_length=1, max_length=64)] = None
    text: constr(strip_whitespace=True, min_length=3, max_length=500)
    options: conlist(OptionIn, min_length=2, max_length=6)
    order: Optional[int] = None

class QuizCreate(CamelModel):
    title: constr(strip_whitespace=True, min_length=3, max_length=100)
    description: Optional[constr(max_length=500)] = None
    questions: conlist(QuestionIn, min_length=1)
    time_limit: int = Field(default=30, ge=1, description="minutes")
    passing_score: float = Field(default=70, ge=0, le=100)
    max_attempts: int = Field(default=3, ge=1)
    order: Optional[int] = Field(default=None, ge=0)

class QuizUpdate(CamelModel):
    title: Optional[constr(strip_whitespace=True, min_length=3, max_length=100)] = None
    description: Optional[constr(max_length=500)] = None
    questions: Optional[conlist(QuestionIn, min_length=1)] = None
    time_limit: Optional[int] = Field(default=None, ge=1)
    passing_score: Optional[float] = Field(default=None, ge=0, le=100)
    max_attempts: Optional[int] = Field(default=None, ge=1)
    order: Optional[int] = Field(default=None, ge=0)

class PublicOptionOut(CamelModel):
    text: str

class OptionOut(PublicOptionOut):
    is_correct: bool

class PublicQuestionOut(CamelModel):
    question_id: str
    text: str
    options: List[PublicOptionOut]
    order: int = 0

class QuestionOut(PublicQuestionOut):
    options: List[OptionOut]

class PublicQuizOut(CamelModel):
    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    course_id: str
    title: str
    description: Optional[str] = None
    questions: List[PublicQuestionOut]
    time_limit: int
    passing_score: float
    max_attempts: int
    order: int = 0

class QuizOut(PublicQuizOut):
    questions: List[QuestionOut]
    is_active: bool = True

class CourseDetailOut(CourseOut):
    lessons: List[LessonOut] = []
    quizzes: List[PublicQuizOut] = []
