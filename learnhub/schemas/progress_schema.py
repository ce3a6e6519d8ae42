from typing import Dict, List, Optional
from datetime import datetime

from learnhub.schemas.common import CamelModel

class ReportCourse(CamelModel):
    id: str
    title: Optional[str] = None
    description: Optional[str] = None
    instructor_name: Optional[str] = None

class ProgressPercentages(CamelModel):
    overall: float = 0.0
    lessons: float = 0.0
    quizzes: float = 0.0

class ProgressStats(CamelModel):
    total_lessons: int = 0
    completed_lessons: int = 0
    total_quizzes: int = 0
    passed_quizzes: int = 0
    time_spent: int = 0
    enrolled_at: Optional[datetime] = None
    last_activity: Optional[datetime] = None
    completed_at: Optional[datetime] = None

class ActivityItem(CamelModel):
    type: str
    id: str
    title: Optional[str] = None
    score: Optional[int] = None
    passed: Optional[bool] = None
    timestamp: datetime

class CourseProgressOut(CamelModel):
    enrollment_id: str
    course: ReportCourse
    progress: ProgressPercentages
    stats: ProgressStats
    recent_activity: List[ActivityItem] = []

class ProgressReportOut(CamelModel):
    count: int
    data: List[CourseProgressOut]

class AttemptSummary(CamelModel):
    attempt_number: int
    score: int
    attempted_at: datetime
    correct_answers: Optional[int] = None
    total_questions: Optional[int] = None

class QuizScoreOut(CamelModel):
    quiz_id: str
    quiz_title: Optional[str] = None
    course_title: Optional[str] = None
    passing_score: Optional[float] = None
    max_attempts: Optional[int] = None
    attempts: List[AttemptSummary]
    best_score: int
    average_score: float
    passed: bool
    attempts_used: int
    attempts_remaining: Optional[int] = None

class QuizScoresOut(CamelModel):
    count: int
    data: List[QuizScoreOut]

class MonthlyActivity(CamelModel):
    lessons_completed: int = 0
    quiz_attempts: int = 0

class CourseProgressItem(CamelModel):
    course_id: str
    course_title: Optional[str] = None
    progress: float = 0.0
    time_spent: int = 0
    enrolled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

class AnalyticsOut(CamelModel):
    total_courses: int = 0
    completed_courses: int = 0
    in_progress_courses: int = 0
    total_lessons: int = 0
    completed_lessons: int = 0
    total_quizzes: int = 0
    passed_quizzes: int = 0
    total_time_spent: int = 0
    average_quiz_score: float = 0.0
    streak_days: int = 0
    monthly_progress: Dict[str, MonthlyActivity] = {}
    course_progress: List[CourseProgressItem] = []
