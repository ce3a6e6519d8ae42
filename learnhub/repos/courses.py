import re
from pymongo.database import Database
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from typing import Dict, Any, List, Optional, Tuple
from datetime import datetime, timezone

from learnhub.repos.helper import to_object_id, stringify_id

# ---------------------------
# Indexes
# ---------------------------

def ensure_indexes(db: Database) -> None:
    db.courses.create_index([("is_active", ASCENDING), ("created_at", DESCENDING)], name="active_recent")
    db.courses.create_index([("instructor_name", ASCENDING)], name="by_instructor")

# ---------------------------
# CRUD
# ---------------------------

def insert_course(db: Database, data: Dict[str, Any], created_by: str) -> Dict[str, Any]:
    now = datetime.now(timezone.utc)
    doc = {
        **data,
        "created_by": str(created_by),
        "is_active": True,
        "enrollment_count": 0,
        "created_at": now,
        "updated_at": now,
    }
    result = db.courses.insert_one(doc)
    doc["_id"] = str(result.inserted_id)
    return doc

def get_course_by_id(db: Database, course_id: str, *, active_only: bool = True) -> Optional[Dict[str, Any]]:
    oid = to_object_id(course_id)
    if oid is None:
        return None
    query: Dict[str, Any] = {"_id": oid}
    if active_only:
        query["is_active"] = True
    return stringify_id(db.courses.find_one(query))

def get_courses_by_ids(db: Database, course_ids: List[str]) -> Dict[str, Dict[str, Any]]:
    oids = [oid for oid in (to_object_id(c) for c in course_ids) if oid is not None]
    out = {}
    for doc in db.courses.find({"_id": {"$in": oids}}):
        doc = stringify_id(doc)
        out[doc["_id"]] = doc
    return out

def update_course(db: Database, course_id: str, patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    oid = to_object_id(course_id)
    if oid is None:
        return None
    patch = {**patch, "updated_at": datetime.now(timezone.utc)}
    doc = db.courses.find_one_and_update(
        {"_id": oid, "is_active": True},
        {"$set": patch},
        return_document=ReturnDocument.AFTER,
    )
    return stringify_id(doc)

def deactivate_course(db: Database, course_id: str) -> bool:
    """Soft delete a course and cascade the flag to its lessons and quizzes."""
    oid = to_object_id(course_id)
    if oid is None:
        return False
    now = datetime.now(timezone.utc)
    res = db.courses.update_one(
        {"_id": oid, "is_active": True},
        {"$set": {"is_active": False, "updated_at": now}}
    )
    if res.matched_count == 0:
        return False
    db.lessons.update_many({"course_id": course_id}, {"$set": {"is_active": False, "updated_at": now}})
    db.quizzes.update_many({"course_id": course_id}, {"$set": {"is_active": False, "updated_at": now}})
    return True

def increment_enrollment_count(db: Database, course_id: str, by: int = 1) -> None:
    oid = to_object_id(course_id)
    if oid is not None:
        db.courses.update_one({"_id": oid}, {"$inc": {"enrollment_count": by}})

# ---------------------------
# Listing
# ---------------------------

LIST_PROJECTION = {
    "title": 1, "description": 1, "instructor_name": 1, "price": 1,
    "enrollment_count": 1, "created_at": 1,
}

def _build_match(search: Optional[str], instructor: Optional[str]) -> Dict[str, Any]:
    match: Dict[str, Any] = {"is_active": True}
    if search:
        pattern = re.escape(search)
        match["$or"] = [
            {"title": {"$regex": pattern, "$options": "i"}},
            {"description": {"$regex": pattern, "$options": "i"}},
        ]
    if instructor:
        match["instructor_name"] = {"$regex": re.escape(instructor), "$options": "i"}
    return match

def list_courses(
    db: Database,
    *,
    search: Optional[str],
    instructor: Optional[str],
    page: int,
    limit: int,
) -> Tuple[int, List[Dict[str, Any]]]:
    match = _build_match(search, instructor)
    total = db.courses.count_documents(match)
    cursor = (
        db.courses.find(match, LIST_PROJECTION)
        .sort("created_at", DESCENDING)
        .skip((page - 1) * limit)
        .limit(limit)
    )
    return total, [stringify_id(doc) for doc in cursor]

def list_active_course_ids(db: Database, limit: int = 50) -> List[str]:
    cursor = db.courses.find({"is_active": True}, {"_id": 1}).sort("enrollment_count", DESCENDING).limit(limit)
    return [str(doc["_id"]) for doc in cursor]
