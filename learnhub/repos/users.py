# repos/users.py
from pymongo.database import Database
from typing import Optional

from learnhub.repos.helper import to_object_id

ROLES = ("student", "admin")

def get_user_by_id(db: Database, user_id: str) -> Optional[dict]:
    oid = to_object_id(user_id)
    if oid is None:
        return None
    return db.users.find_one({"_id": oid})

def ensure_indexes(db: Database):
    db.users.create_index("email", unique=True)
