# repos/quizzes.py
import uuid
from pymongo.database import Database
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from typing import Dict, Any, List, Optional
from datetime import datetime, timezone

from learnhub.repos.helper import to_object_id, stringify_id

def ensure_indexes(db: Database) -> None:
    db.quizzes.create_index([("course_id", ASCENDING), ("order", ASCENDING)], name="course_order")

def _assign_question_ids(questions: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    out = []
    for i, q in enumerate(questions):
        out.append({
            **q,
            "question_id": q.get("question_id") or str(uuid.uuid4()),
            "order": q["order"] if q.get("order") is not None else i,
        })
    return out

def _strip_answer_keys(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not doc:
        return doc
    for q in doc.get("questions", []):
        q["options"] = [{k: v for k, v in opt.items() if k != "is_correct"} for opt in q.get("options", [])]
    return doc

def _next_order(db: Database, course_id: str) -> int:
    last = db.quizzes.find_one({"course_id": course_id}, {"order": 1}, sort=[("order", DESCENDING)])
    return int(last.get("order", 0)) + 1 if last else 1

def insert_quiz(db: Database, course_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    now = datetime.now(timezone.utc)
    doc = {
        **data,
        "questions": _assign_question_ids(data.get("questions", [])),
        "course_id": course_id,
        "order": data["order"] if data.get("order") is not None else _next_order(db, course_id),
        "is_active": True,
        "created_at": now,
        "updated_at": now,
    }
    result = db.quizzes.insert_one(doc)
    doc["_id"] = str(result.inserted_id)
    return doc

def get_quiz(db: Database, quiz_id: str, course_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """Active quiz including answer keys. Grading and admin reads only."""
    oid = to_object_id(quiz_id)
    if oid is None:
        return None
    query: Dict[str, Any] = {"_id": oid, "is_active": True}
    if course_id is not None:
        query["course_id"] = course_id
    return stringify_id(db.quizzes.find_one(query))

def get_public_quiz(db: Database, quiz_id: str) -> Optional[Dict[str, Any]]:
    return _strip_answer_keys(get_quiz(db, quiz_id))

def list_public_quizzes(db: Database, course_id: str) -> List[Dict[str, Any]]:
    cursor = db.quizzes.find({"course_id": course_id, "is_active": True}).sort("order", ASCENDING)
    return [_strip_answer_keys(stringify_id(doc)) for doc in cursor]

def get_quizzes_by_ids(db: Database, quiz_ids: List[str]) -> Dict[str, Dict[str, Any]]:
    oids = [oid for oid in (to_object_id(q) for q in quiz_ids) if oid is not None]
    if not oids:
        return {}
    cursor = db.quizzes.find(
        {"_id": {"$in": oids}},
        {"title": 1, "passing_score": 1, "max_attempts": 1, "course_id": 1}
    )
    return {str(doc["_id"]): stringify_id(doc) for doc in cursor}

def count_active_quizzes(db: Database, course_id: str) -> int:
    return db.quizzes.count_documents({"course_id": course_id, "is_active": True})

def update_quiz(db: Database, quiz_id: str, patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    oid = to_object_id(quiz_id)
    if oid is None:
        return None
    patch = dict(patch)
    if "questions" in patch:
        patch["questions"] = _assign_question_ids(patch["questions"])
    patch["updated_at"] = datetime.now(timezone.utc)
    doc = db.quizzes.find_one_and_update(
        {"_id": oid, "is_active": True},
        {"$set": patch},
        return_document=ReturnDocument.AFTER,
    )
    return stringify_id(doc)

def deactivate_quiz(db: Database, quiz_id: str) -> bool:
    oid = to_object_id(quiz_id)
    if oid is None:
        return False
    res = db.quizzes.update_one(
        {"_id": oid, "is_active": True},
        {"$set": {"is_active": False, "updated_at": datetime.now(timezone.utc)}}
    )
    return res.matched_count > 0
