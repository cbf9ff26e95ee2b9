"""
Training Service - training programs, enrollments, progress and feedback.

Seat accounting lives entirely in this module: capacity.current_enrolled is
the number of enrollment entries whose status is Enrolled, Completed or
On Hold. Each transition that touches a seat is a single conditional
update_one, so the counter and the enrollment list move together and
concurrent requests cannot overshoot max_students.
"""

import logging
import uuid
from datetime import datetime
from typing import Optional, Tuple

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database

from campus_portal.core.auth import Identity
from campus_portal.core.errors import (
    AuthorizationError, ConflictError, NotFoundError, ResourceInUseError, ValidationError
)
from campus_portal.db.mongodb import COLLECTIONS
from campus_portal.schemas.schemas import (
    ACTIVE_ENROLLMENT_STATUSES, EnrollmentStatus, FeedbackCreate, TrainingCreate,
    TrainingStatus, TrainingUpdate
)
from campus_portal.services.mongo_service import (
    Page, serialize_doc, to_object_id, utcnow
)

logger = logging.getLogger(__name__)

# Optimistic retries when a concurrent write changes the document under us
MAX_ATTEMPTS = 3

FEATURED_STATUSES = (TrainingStatus.published.value, TrainingStatus.enrollment_open.value)


def window_is_open(enrollment: Optional[dict], now: datetime) -> bool:
    """Open iff now is inside [start_date, end_date]; without both bounds the stored flag stands."""
    enrollment = enrollment or {}
    start, end = enrollment.get("start_date"), enrollment.get("end_date")
    if start is not None and end is not None:
        return start <= now <= end
    return bool(enrollment.get("is_open", False))


def new_certificate_id(now: datetime) -> str:
    return f"CERT-{now:%Y%m%d}-{uuid.uuid4().hex[:12].upper()}"


def serialize_training(doc: dict) -> dict:
    """Serialize with the derived enrollment_percentage and average_rating."""
    item = serialize_doc(doc)
    capacity = doc.get("capacity", {})
    max_students = capacity.get("max_students") or 0
    current = capacity.get("current_enrolled", 0)
    item["enrollment_percentage"] = round(current / max_students * 100) if max_students else 0

    ratings = [f["rating"] for f in doc.get("feedback", [])]
    item["average_rating"] = round(sum(ratings) / len(ratings), 1) if ratings else 0
    return item


def _find_entry(entries: list, student: ObjectId) -> Tuple[int, Optional[dict]]:
    for index, entry in enumerate(entries):
        if entry.get("student") == student:
            return index, entry
    return -1, None


class TrainingService:
    """Handles training program storage and the enrollment lifecycle."""

    def __init__(self, db: Database):
        self.collection: Collection = db[COLLECTIONS["trainings"]]

    # ------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------

    def get_doc(self, training_id) -> dict:
        doc = self.collection.find_one({"_id": to_object_id(training_id, "Training program")})
        if not doc:
            raise NotFoundError("Training program not found")
        return doc

    def get(self, training_id) -> dict:
        return serialize_training(self.get_doc(training_id))

    def list(self, page: Page, category: Optional[str] = None, level: Optional[str] = None,
             type: Optional[str] = None, status: Optional[str] = None,
             is_featured: Optional[bool] = None) -> Tuple[list, dict]:
        query = {}
        if category:
            query["category"] = category
        if level:
            query["level"] = level
        if type:
            query["type"] = type
        if status:
            query["status"] = status
        if is_featured is not None:
            query["is_featured"] = is_featured

        total = self.collection.count_documents(query)
        cursor = (
            self.collection.find(query)
            .sort("schedule.start_date", 1)
            .skip(page.skip)
            .limit(page.limit)
        )
        return [serialize_training(doc) for doc in cursor], page.describe(total)

    def featured(self, limit: int = 6) -> list:
        cursor = (
            self.collection.find({"is_featured": True, "status": {"$in": list(FEATURED_STATUSES)}})
            .sort("schedule.start_date", 1)
            .limit(limit)
        )
        return [serialize_training(doc) for doc in cursor]

    # ------------------------------------------------------------
    # Program CRUD
    # ------------------------------------------------------------

    def create(self, payload: TrainingCreate, identity: Identity) -> dict:
        now = utcnow()
        doc = payload.model_dump()
        doc["capacity"]["current_enrolled"] = 0
        doc["enrollment"]["is_open"] = window_is_open(doc["enrollment"], now)
        doc.update({
            "enrollments": [],
            "feedback": [],
            "created_by": identity.object_id,
            "created_at": now,
            "updated_at": now,
        })
        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        logger.info(f"Training Program Created by {identity.email}: {payload.title}")
        return serialize_training(doc)

    def update(self, training_id, payload: TrainingUpdate, identity: Identity) -> dict:
        current = self.get_doc(training_id)
        now = utcnow()
        fields = {
            key: value
            for key, value in payload.model_dump(exclude_unset=True).items()
            if value is not None
        }
        query = {"_id": current["_id"]}

        # current_enrolled is never taken from the client
        capacity = fields.pop("capacity", None)
        if capacity is not None:
            enrolled = current["capacity"].get("current_enrolled", 0)
            if capacity["max_students"] < enrolled:
                raise ValidationError(
                    "Capacity cannot be lower than the number of enrolled students",
                    errors=[{"field": "capacity.max_students",
                             "message": f"Must be at least {enrolled}"}],
                )
            fields["capacity.max_students"] = capacity["max_students"]
            fields["capacity.waitlist"] = capacity["waitlist"]
            query["capacity.current_enrolled"] = {"$lte": capacity["max_students"]}

        enrollment = fields.pop("enrollment", None) or current.get("enrollment", {})
        fields["enrollment"] = {
            "start_date": enrollment.get("start_date"),
            "end_date": enrollment.get("end_date"),
            "is_open": window_is_open(enrollment, now),
        }
        fields["updated_at"] = now

        doc = self.collection.find_one_and_update(
            query, {"$set": fields}, return_document=ReturnDocument.AFTER
        )
        if not doc:
            raise ConflictError("Training program changed while updating, please retry")
        logger.info(f"Training Program Updated by {identity.email}: {current['_id']}")
        return serialize_training(doc)

    def delete(self, training_id, identity: Identity) -> None:
        oid = to_object_id(training_id, "Training program")
        result = self.collection.delete_one({"_id": oid, "enrollments": {"$size": 0}})
        if result.deleted_count == 0:
            if self.collection.find_one({"_id": oid}, {"_id": 1}):
                raise ResourceInUseError("Cannot delete training program with enrolled students")
            raise NotFoundError("Training program not found")
        logger.info(f"Training Program Deleted by {identity.email}: {oid}")

    # ------------------------------------------------------------
    # Enrollment lifecycle
    # ------------------------------------------------------------

    def enroll(self, training_id, student: ObjectId) -> dict:
        """
        Append an enrollment entry and take a seat in one write.

        The filter pins max_students, requires a free seat and the absence of
        an entry for this student; when it matches nothing the document is
        re-read to report which precondition failed.
        """
        oid = to_object_id(training_id, "Training program")

        for _ in range(MAX_ATTEMPTS):
            training = self.get_doc(oid)
            now = utcnow()
            if not window_is_open(training.get("enrollment"), now):
                raise ConflictError("Enrollment is not open for this training program")

            _, existing = _find_entry(training.get("enrollments", []), student)
            if existing is not None:
                raise ConflictError("Student is already enrolled in this training program")

            max_students = training["capacity"]["max_students"]
            if training["capacity"].get("current_enrolled", 0) >= max_students:
                raise ConflictError("Training program is at full capacity")

            entry = {
                "student": student,
                "enrollment_date": now,
                "status": EnrollmentStatus.enrolled.value,
                "progress": 0,
                "certificate": {"issued": False, "issued_date": None, "certificate_id": None},
            }
            result = self.collection.update_one(
                {
                    "_id": oid,
                    "capacity.max_students": max_students,
                    "capacity.current_enrolled": {"$lt": max_students},
                    "enrollments.student": {"$ne": student},
                },
                {
                    "$push": {"enrollments": entry},
                    "$inc": {"capacity.current_enrolled": 1},
                    "$set": {"updated_at": now},
                },
            )
            if result.matched_count == 1:
                logger.info(f"Student {student} enrolled in training {oid}")
                return serialize_doc(entry)

        raise ConflictError("Training program changed while enrolling, please retry")

    def record_progress(self, training_id, student: ObjectId, progress: int,
                        status: Optional[str] = None) -> dict:
        """
        Set progress (and optionally status) on a student's enrollment.

        The requested status is applied first; progress 100 on an Enrolled
        entry then completes it. Any entry that ends up Completed at 100
        gets a certificate in the same write if it has none yet.
        Moving between Dropped and an active status gives back or takes a seat.
        """
        oid = to_object_id(training_id, "Training program")

        for _ in range(MAX_ATTEMPTS):
            training = self.get_doc(oid)
            index, entry = _find_entry(training.get("enrollments", []), student)
            if entry is None:
                raise AuthorizationError("Student is not enrolled in this training program")

            now = utcnow()
            old_status = entry["status"]
            new_status = status or old_status
            certificate = dict(entry.get("certificate") or {"issued": False, "issued_date": None, "certificate_id": None})

            if progress == 100 and new_status == EnrollmentStatus.enrolled.value:
                new_status = EnrollmentStatus.completed.value
            if progress == 100 and new_status == EnrollmentStatus.completed.value and not certificate.get("issued"):
                certificate = {
                    "issued": True,
                    "issued_date": now,
                    "certificate_id": new_certificate_id(now),
                }

            seat_delta = int(new_status in ACTIVE_ENROLLMENT_STATUSES) - int(old_status in ACTIVE_ENROLLMENT_STATUSES)
            max_students = training["capacity"]["max_students"]

            query = {
                "_id": oid,
                f"enrollments.{index}.student": student,
                f"enrollments.{index}.status": old_status,
            }
            if seat_delta > 0:
                if training["capacity"].get("current_enrolled", 0) >= max_students:
                    raise ConflictError("Training program is at full capacity")
                query["capacity.max_students"] = max_students
                query["capacity.current_enrolled"] = {"$lt": max_students}

            update = {"$set": {
                f"enrollments.{index}.progress": progress,
                f"enrollments.{index}.status": new_status,
                f"enrollments.{index}.certificate": certificate,
                "updated_at": now,
            }}
            if seat_delta:
                update["$inc"] = {"capacity.current_enrolled": seat_delta}

            result = self.collection.update_one(query, update)
            if result.matched_count == 1:
                entry.update({"progress": progress, "status": new_status, "certificate": certificate})
                logger.info(f"Progress for student {student} in training {oid}: {progress}% ({new_status})")
                return serialize_doc(entry)

        raise ConflictError("Enrollment changed while updating, please retry")

    def submit_feedback(self, training_id, student: ObjectId, payload: FeedbackCreate) -> dict:
        """Append the student's one feedback entry."""
        training = self.get_doc(training_id)
        _, entry = _find_entry(training.get("enrollments", []), student)
        if entry is None:
            raise AuthorizationError("You must be enrolled to provide feedback")

        feedback = {
            "student": student,
            "rating": payload.rating,
            "comment": payload.comment,
            "date": utcnow(),
        }
        result = self.collection.update_one(
            {"_id": training["_id"], "enrollments.student": student, "feedback.student": {"$ne": student}},
            {"$push": {"feedback": feedback}},
        )
        if result.matched_count == 0:
            raise ConflictError("You have already provided feedback for this training")
        logger.info(f"Feedback submitted for training {training['_id']} by {student}")
        return serialize_doc(feedback)
