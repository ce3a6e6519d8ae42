# repos/lessons.py
from pymongo.database import Database
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from typing import Dict, Any, List, Optional
from datetime import datetime, timezone

from learnhub.repos.helper import to_object_id, stringify_id

def ensure_indexes(db: Database) -> None:
    db.lessons.create_index([("course_id", ASCENDING), ("order", ASCENDING)], name="course_order")

def _next_order(db: Database, course_id: str) -> int:
    last = db.lessons.find_one({"course_id": course_id}, {"order": 1}, sort=[("order", DESCENDING)])
    return int(last.get("order", 0)) + 1 if last else 1

def insert_lesson(db: Database, course_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    now = datetime.now(timezone.utc)
    doc = {
        **data,
        "course_id": course_id,
        "order": data["order"] if data.get("order") is not None else _next_order(db, course_id),
        "is_active": True,
        "created_at": now,
        "updated_at": now,
    }
    result = db.lessons.insert_one(doc)
    doc["_id"] = str(result.inserted_id)
    return doc

def get_lesson(db: Database, lesson_id: str, course_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """Active lesson by id, optionally constrained to a course."""
    oid = to_object_id(lesson_id)
    if oid is None:
        return None
    query: Dict[str, Any] = {"_id": oid, "is_active": True}
    if course_id is not None:
        query["course_id"] = course_id
    return stringify_id(db.lessons.find_one(query))

def list_lessons(db: Database, course_id: str) -> List[Dict[str, Any]]:
    cursor = db.lessons.find({"course_id": course_id, "is_active": True}).sort("order", ASCENDING)
    return [stringify_id(doc) for doc in cursor]

def get_lessons_by_ids(db: Database, lesson_ids: List[str]) -> Dict[str, Dict[str, Any]]:
    # completed lessons keep counting towards time spent after deactivation
    oids = [oid for oid in (to_object_id(l) for l in lesson_ids) if oid is not None]
    if not oids:
        return {}
    cursor = db.lessons.find({"_id": {"$in": oids}}, {"title": 1, "duration": 1, "order": 1, "course_id": 1})
    return {str(doc["_id"]): stringify_id(doc) for doc in cursor}

def count_active_lessons(db: Database, course_id: str) -> int:
    return db.lessons.count_documents({"course_id": course_id, "is_active": True})

def update_lesson(db: Database, lesson_id: str, patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    oid = to_object_id(lesson_id)
    if oid is None:
        return None
    patch = {**patch, "updated_at": datetime.now(timezone.utc)}
    doc = db.lessons.find_one_and_update(
        {"_id": oid, "is_active": True},
        {"$set": patch},
        return_document=ReturnDocument.AFTER,
    )
    return stringify_id(doc)

def deactivate_lesson(db: Database, lesson_id: str) -> bool:
    oid = to_object_id(lesson_id)
    if oid is None:
        return False
    res = db.lessons.update_one(
        {"_id": oid, "is_active": True},
        {"$set": {"is_active": False, "updated_at": datetime.now(timezone.utc)}}
    )
    return res.matched_count > 0
