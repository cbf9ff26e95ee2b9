"""
MongoDB Service helpers shared by the resource services.

- serialize_doc: ObjectId -> str, "_id" -> "id", credentials stripped
- to_object_id: parse a path/body id or fail with NotFoundError
- utcnow: naive UTC timestamps (what pymongo hands back by default)
- Page: skip/limit pagination with the list-response shape
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId

from campus_portal.core.errors import NotFoundError

# Never leaves the service layer
PRIVATE_FIELDS = ("password",)


# ============================================================
# HELPER: Convert ObjectId to string for JSON serialization
# ============================================================

def _serialize_value(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return serialize_doc(value)
    if isinstance(value, list):
        return [_serialize_value(item) for item in value]
    return value


def serialize_doc(doc: Optional[dict]) -> Optional[dict]:
    """Convert MongoDB document to JSON-serializable dict."""
    if doc is None:
        return None
    out = {}
    for key, value in doc.items():
        if key in PRIVATE_FIELDS:
            continue
        if key == "_id":
            out["id"] = str(value)
            continue
        out[key] = _serialize_value(value)
    return out


def serialize_docs(docs) -> list:
    """Convert list of MongoDB documents to JSON-serializable list."""
    return [serialize_doc(doc) for doc in docs]


def to_object_id(value: Any, label: str = "Resource") -> ObjectId:
    """Parse an id coming from a path or body. Malformed ids are reported as missing."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise NotFoundError(f"{label} not found")


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass
class Page:
    """Pagination window for list endpoints."""
    page: int = 1
    limit: int = 10

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    def describe(self, total: int) -> dict:
        pages = math.ceil(total / self.limit) if self.limit else 0
        return {
            "current": self.page,
            "pages": pages,
            "total": total,
            "limit": self.limit,
            "has_next": self.page < pages,
            "has_prev": self.page > 1,
        }
