# repos/enrollments.py
from typing import Dict, Any, Optional, List, Tuple
from datetime import datetime, timezone
from pymongo.database import Database
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import DuplicateKeyError

from learnhub.errors import AlreadyEnrolled, ConcurrentModification
from learnhub.repos.helper import to_object_id, stringify_id

def ensure_indexes(db: Database) -> None:
    db.enrollments.create_index([("student_id", ASCENDING), ("course_id", ASCENDING)], unique=True, name="student_course_unique")
    db.enrollments.create_index([("student_id", ASCENDING), ("enrolled_at", DESCENDING)], name="student_recent")
    db.enrollments.create_index([("course_id", ASCENDING)], name="by_course")

def new_enrollment(student_id: str, course_id: str, ts: Optional[datetime] = None) -> Dict[str, Any]:
    return {
        "student_id": student_id,
        "course_id": course_id,
        "enrolled_at": ts or datetime.now(timezone.utc),
        "progress": 0,
        "completed_lessons": [],
        "quiz_attempts": [],
        "is_completed": False,
        "completed_at": None,
        "certificate": {"issued": False, "issued_at": None, "certificate_id": None},
        "version": 0,
    }

def insert_enrollment(db: Database, student_id: str, course_id: str) -> Dict[str, Any]:
    doc = new_enrollment(student_id, course_id)
    try:
        result = db.enrollments.insert_one(doc)
    except DuplicateKeyError:
        # the unique index is the only guard against double enrollment
        raise AlreadyEnrolled()
    doc["_id"] = str(result.inserted_id)
    return doc

def get_enrollment(db: Database, enrollment_id: str) -> Optional[Dict[str, Any]]:
    oid = to_object_id(enrollment_id)
    if oid is None:
        return None
    return stringify_id(db.enrollments.find_one({"_id": oid}))

def list_student_enrollments(db: Database, student_id: str, course_id: Optional[str] = None) -> List[Dict[str, Any]]:
    query: Dict[str, Any] = {"student_id": student_id}
    if course_id:
        query["course_id"] = course_id
    cursor = db.enrollments.find(query).sort("enrolled_at", DESCENDING)
    return [stringify_id(doc) for doc in cursor]

def list_enrollments(
    db: Database,
    *,
    course_id: Optional[str],
    student_id: Optional[str],
    page: int,
    limit: int,
) -> Tuple[int, List[Dict[str, Any]]]:
    query: Dict[str, Any] = {}
    if course_id:
        query["course_id"] = course_id
    if student_id:
        query["student_id"] = student_id
    total = db.enrollments.count_documents(query)
    cursor = db.enrollments.find(query).sort("enrolled_at", DESCENDING).skip((page - 1) * limit).limit(limit)
    return total, [stringify_id(doc) for doc in cursor]

def save_enrollment(db: Database, enrollment: Dict[str, Any]) -> Dict[str, Any]:
    """
    Replace the stored enrollment if nobody else saved it since it was read.

    The document carries a version counter; a stale version means a
    concurrent mutation won and this one is rejected with
    ConcurrentModification instead of silently overwriting its appends.
    """
    oid = to_object_id(enrollment["_id"])
    expected = int(enrollment.get("version") or 0)
    if expected == 0:
        version_match: Dict[str, Any] = {"$or": [{"version": 0}, {"version": {"$exists": False}}]}
    else:
        version_match = {"version": expected}

    body = {k: v for k, v in enrollment.items() if k != "_id"}
    body["version"] = expected + 1
    res = db.enrollments.replace_one({"_id": oid, **version_match}, body)
    if res.matched_count == 0:
        raise ConcurrentModification()

    enrollment["version"] = expected + 1
    return enrollment

def list_course_student_ids(db: Database, course_id: str) -> List[str]:
    return [str(s) for s in db.enrollments.distinct("student_id", {"course_id": course_id})]
