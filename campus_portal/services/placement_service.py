"""
Placement Service - CRUD and verification for placement records.

Every write recomputes process.total_rounds from the rounds list, and the
verification fields (is_verified, verified_by, verified_at) are written
only by verify().
"""

import logging
import re
from typing import List, Optional, Tuple

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database

from campus_portal.core.auth import Identity
from campus_portal.core.errors import NotFoundError, ValidationError
from campus_portal.db.mongodb import COLLECTIONS
from campus_portal.schemas.schemas import PlacementCreate, PlacementUpdate, UserRole
from campus_portal.services.mongo_service import (
    Page, serialize_doc, serialize_docs, to_object_id, utcnow
)

logger = logging.getLogger(__name__)

STUDENT_SUMMARY = {"first_name": 1, "last_name": 1, "email": 1, "student_id": 1, "department": 1, "year": 1}

# Fields a PUT may touch; notes is the only one that can be cleared with null
NULLABLE_FIELDS = ("notes",)


class PlacementService:
    """Handles placement record storage."""

    def __init__(self, db: Database):
        self.collection: Collection = db[COLLECTIONS["placements"]]
        self.users: Collection = db[COLLECTIONS["users"]]

    # ------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------

    def student_ids_for(self, department: Optional[str] = None, year: Optional[int] = None) -> Optional[List[ObjectId]]:
        """Student ids matching department/year, or None when neither filter is set."""
        if not department and year is None:
            return None
        query = {"role": UserRole.student.value}
        if department:
            query["department"] = department
        if year is not None:
            query["year"] = year
        return [doc["_id"] for doc in self.users.find(query, {"_id": 1})]

    def build_filter(self, status: Optional[str] = None, industry: Optional[str] = None,
                     company: Optional[str] = None, department: Optional[str] = None,
                     year: Optional[int] = None, is_verified: Optional[bool] = None,
                     min_ctc: Optional[float] = None, max_ctc: Optional[float] = None) -> dict:
        query = {}
        if status:
            query["status"] = status
        if industry:
            query["company.industry"] = industry
        if company:
            query["company.name"] = {"$regex": re.escape(company.strip()), "$options": "i"}
        if is_verified is not None:
            query["is_verified"] = is_verified
        if min_ctc is not None or max_ctc is not None:
            ctc = {}
            if min_ctc is not None:
                ctc["$gte"] = min_ctc
            if max_ctc is not None:
                ctc["$lte"] = max_ctc
            query["package.ctc"] = ctc

        student_ids = self.student_ids_for(department, year)
        if student_ids is not None:
            query["student"] = {"$in": student_ids}
        return query

    def _attach_students(self, docs: list) -> list:
        """Replace each student ObjectId with a short profile."""
        ids = list({doc["student"] for doc in docs if isinstance(doc.get("student"), ObjectId)})
        profiles = {u["_id"]: u for u in self.users.find({"_id": {"$in": ids}}, STUDENT_SUMMARY)} if ids else {}
        out = []
        for doc in docs:
            item = serialize_doc(doc)
            profile = profiles.get(doc.get("student"))
            if profile:
                item["student"] = serialize_doc(profile)
            out.append(item)
        return out

    def list(self, query: dict, page: Page, sort_by: str = "created_at",
             descending: bool = True) -> Tuple[list, dict]:
        total = self.collection.count_documents(query)
        cursor = (
            self.collection.find(query)
            .sort(sort_by, -1 if descending else 1)
            .skip(page.skip)
            .limit(page.limit)
        )
        return self._attach_students(list(cursor)), page.describe(total)

    def get_doc(self, placement_id) -> dict:
        doc = self.collection.find_one({"_id": to_object_id(placement_id, "Placement record")})
        if not doc:
            raise NotFoundError("Placement record not found")
        return doc

    def get(self, placement_id) -> dict:
        return self._attach_students([self.get_doc(placement_id)])[0]

    def for_student(self, student_id) -> list:
        oid = to_object_id(student_id, "Student")
        cursor = self.collection.find({"student": oid}).sort("created_at", -1)
        return serialize_docs(cursor)

    # ------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------

    def create(self, payload: PlacementCreate, identity: Identity) -> dict:
        """File a record for payload.student, defaulting to the caller."""
        owner_id = to_object_id(payload.student or identity.id, "Student")
        owner = self.users.find_one({"_id": owner_id}, {"role": 1})
        if not owner:
            raise NotFoundError("Student not found")
        if owner["role"] != UserRole.student.value:
            raise ValidationError(
                "Placement records can only belong to students",
                errors=[{"field": "student", "message": "Referenced identity is not a student"}],
            )

        now = utcnow()
        doc = payload.model_dump(exclude={"student"})
        doc["student"] = owner_id
        doc["process"]["total_rounds"] = len(doc["process"]["rounds"])
        doc.update({
            "is_verified": False,
            "verified_by": None,
            "verified_at": None,
            "created_at": now,
            "updated_at": now,
        })

        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        logger.info(f"Placement Record Created by {identity.email} for student {owner_id}")
        return serialize_doc(doc)

    def update(self, placement_id, payload: PlacementUpdate, identity: Identity) -> dict:
        current = self.get_doc(placement_id)
        fields = {
            key: value
            for key, value in payload.model_dump(exclude_unset=True).items()
            if value is not None or key in NULLABLE_FIELDS
        }

        rounds = fields["process"]["rounds"] if "process" in fields else current.get("process", {}).get("rounds", [])
        if "process" in fields:
            fields["process"]["total_rounds"] = len(rounds)
        else:
            fields["process.total_rounds"] = len(rounds)
        fields["updated_at"] = utcnow()

        doc = self.collection.find_one_and_update(
            {"_id": current["_id"]},
            {"$set": fields},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            raise NotFoundError("Placement record not found")
        logger.info(f"Placement Record Updated by {identity.email}: {current['_id']}")
        return serialize_doc(doc)

    def delete(self, placement_id, identity: Identity) -> None:
        result = self.collection.delete_one({"_id": to_object_id(placement_id, "Placement record")})
        if result.deleted_count == 0:
            raise NotFoundError("Placement record not found")
        logger.info(f"Placement Record Deleted by {identity.email}: {placement_id}")

    def verify(self, placement_id, identity: Identity) -> dict:
        """Mark a record verified. Re-verifying overwrites verifier and time."""
        doc = self.collection.find_one_and_update(
            {"_id": to_object_id(placement_id, "Placement record")},
            {"$set": {
                "is_verified": True,
                "verified_by": identity.object_id,
                "verified_at": utcnow(),
                "updated_at": utcnow(),
            }},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            raise NotFoundError("Placement record not found")
        logger.info(f"Placement Record Verified by {identity.email}: {doc['_id']}")
        return serialize_doc(doc)
