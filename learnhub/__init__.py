"""LearnHub: course catalog, enrollments, quizzes and progress tracking API."""

__version__ = "1.0.0"
