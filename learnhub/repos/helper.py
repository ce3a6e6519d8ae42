# repos/helper.py
import json
from datetime import datetime, date
from typing import Any, Dict, Optional
from bson import ObjectId
from bson.errors import InvalidId


class JSONEncoder(json.JSONEncoder):
    """json encoder for documents coming out of MongoDB (ObjectId, datetimes)."""

    def default(self, o: Any) -> Any:
        if isinstance(o, ObjectId):
            return str(o)
        if isinstance(o, (datetime, date)):
            return o.isoformat()
        return super().default(o)


def to_object_id(id_str: str) -> Optional[ObjectId]:
    # malformed ids behave like unknown ids
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        return None


def stringify_id(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not doc:
        return None
    doc["_id"] = str(doc["_id"])
    return doc
