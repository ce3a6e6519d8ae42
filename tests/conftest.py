"""
Pytest configuration and shared fixtures for the test suite.

Settings are read at import time, so the environment is filled in before any
learnhub module is imported. MongoDB is replaced by mongomock and Redis by
fakeredis; no external service is needed.
"""
import os

os.environ.setdefault("MONGO_URI", "mongodb://localhost:27017/learnhub_test")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")
os.environ.setdefault("JWT_SECRET", "test-secret-key-that-is-long-enough-1234")
os.environ.setdefault("ENVIRONMENT", "test")

import asyncio

import fakeredis
import mongomock
import pytest
from bson import ObjectId

from learnhub.repos import courses as course_repo
from learnhub.repos import enrollments as enrollment_repo
from learnhub.repos import lessons as lesson_repo
from learnhub.repos import quizzes as quiz_repo
from learnhub.repos import users as user_repo
from learnhub.services.memory_cache import memory_cache


@pytest.fixture(autouse=True)
def clear_memory_cache():
    """The L1 cache is a process-wide singleton; start every test empty."""
    asyncio.run(memory_cache.clear())
    yield
    asyncio.run(memory_cache.clear())


# ----- Storage -----
@pytest.fixture
def mongo_db():
    """In-memory MongoDB database with the production indexes."""
    db = mongomock.MongoClient().learnhub_test
    for ensure_indexes in (
        user_repo.ensure_indexes,
        course_repo.ensure_indexes,
        lesson_repo.ensure_indexes,
        quiz_repo.ensure_indexes,
        enrollment_repo.ensure_indexes,
    ):
        ensure_indexes(db)
    return db


@pytest.fixture
def redis_server():
    return fakeredis.FakeServer()


@pytest.fixture
def redis(redis_server):
    return fakeredis.FakeAsyncRedis(server=redis_server, decode_responses=True)


# ----- Catalog factories -----
def question(text, options, correct_index):
    return {
        "text": text,
        "options": [{"text": o, "is_correct": i == correct_index} for i, o in enumerate(options)],
    }


@pytest.fixture
def make_user(mongo_db):
    def _make(role="student", email=None):
        user_id = ObjectId()
        mongo_db.users.insert_one({
            "_id": user_id,
            "email": email or f"{user_id}@example.com",
            "name": "Test User",
            "role": role,
        })
        return {"_id": str(user_id), "role": role}
    return _make


@pytest.fixture
def make_course(mongo_db):
    def _make(title="Python Basics", lessons=0, admin_id="admin-1"):
        course = course_repo.insert_course(mongo_db, {
            "title": title,
            "description": "Learn the fundamentals",
            "instructor_name": "Ada Lovelace",
            "price": 49.0,
        }, created_by=admin_id)
        course["lessons"] = [
            lesson_repo.insert_lesson(mongo_db, course["_id"], {
                "title": f"Lesson {i + 1}",
                "video_url": f"https://videos.example.com/{i + 1}",
                "duration": 10,
                "order": i + 1,
            })
            for i in range(lessons)
        ]
        return course
    return _make


@pytest.fixture
def make_quiz(mongo_db):
    def _make(course_id, *, passing_score=75, max_attempts=3, questions=None):
        questions = questions or [
            question("What is 2 + 2?", ["3", "4", "5"], 1),
            question("Which keyword defines a function?", ["def", "fun", "lambda"], 0),
        ]
        return quiz_repo.insert_quiz(mongo_db, course_id, {
            "title": "Checkpoint",
            "questions": questions,
            "time_limit": 30,
            "passing_score": passing_score,
            "max_attempts": max_attempts,
        })
    return _make


