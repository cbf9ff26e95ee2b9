"""
User Service - the Identity Store.

Owns the users collection: registration, credential checks, profile
updates and the admin-only status/role toggles.
"""

import logging
import re
from typing import Optional, Tuple

from pymongo import ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from campus_portal.core.errors import (
    AuthorizationError, ConflictError, InvalidCredential, NotFoundError, ValidationError
)
from campus_portal.core.security import hash_password, verify_password
from campus_portal.db.mongodb import COLLECTIONS
from campus_portal.schemas.schemas import (
    PasswordChange, Preferences, UserRole, UserUpdate, RegistrationBase
)
from campus_portal.services.mongo_service import (
    Page, serialize_doc, serialize_docs, to_object_id, utcnow
)

logger = logging.getLogger(__name__)

PRIVILEGED_ROLES = (UserRole.admin.value, UserRole.placement_officer.value)
NO_PASSWORD = {"password": 0}


class UserService:
    """Handles user document storage and the account lifecycle."""

    def __init__(self, db: Database, bcrypt_rounds: Optional[int] = None):
        self.collection: Collection = db[COLLECTIONS["users"]]
        self.bcrypt_rounds = bcrypt_rounds

    # ------------------------------------------------------------
    # Registration & credentials
    # ------------------------------------------------------------

    def register(self, payload: RegistrationBase, allow_privileged: bool = False) -> dict:
        """
        Create a new identity.

        Email and student_id are checked up front for a readable message; the
        unique indexes catch the concurrent case.
        """
        if payload.role in PRIVILEGED_ROLES and not allow_privileged:
            raise AuthorizationError(f"Self-registration as {payload.role} is not allowed")

        if self.collection.find_one({"email": payload.email}, {"_id": 1}):
            raise ConflictError("User with this email already exists")

        student_id = getattr(payload, "student_id", None)
        if student_id and self.collection.find_one({"student_id": student_id}, {"_id": 1}):
            raise ConflictError("User with this student ID already exists")

        now = utcnow()
        doc = payload.model_dump(exclude={"password"}, exclude_none=True)
        doc.update({
            "password": hash_password(payload.password, self.bcrypt_rounds),
            "is_active": True,
            "is_verified": False,
            "last_login": None,
            "preferences": Preferences().model_dump(),
            "created_at": now,
            "updated_at": now,
        })

        try:
            result = self.collection.insert_one(doc)
        except DuplicateKeyError:
            raise ConflictError("User with this email or student ID already exists")

        doc["_id"] = result.inserted_id
        logger.info(f"User registered: {payload.email} ({payload.role})")
        return serialize_doc(doc)

    def authenticate_credentials(self, email: str, password: str) -> dict:
        """Check email/password and stamp last_login."""
        user = self.collection.find_one({"email": email.lower()})
        if not user or not verify_password(password, user["password"]):
            logger.warning(f"Failed login attempt for {email.lower()}")
            raise InvalidCredential("Invalid email or password")

        if not user.get("is_active", True):
            raise AuthorizationError("Account is deactivated. Please contact administrator.")

        now = utcnow()
        self.collection.update_one({"_id": user["_id"]}, {"$set": {"last_login": now}})
        user["last_login"] = now
        return serialize_doc(user)

    def change_password(self, user_id: str, payload: PasswordChange) -> None:
        oid = to_object_id(user_id, "User")
        user = self.collection.find_one({"_id": oid}, {"password": 1})
        if not user:
            raise NotFoundError("User not found")
        if not verify_password(payload.current_password, user["password"]):
            raise ValidationError(
                "Current password is incorrect",
                errors=[{"field": "current_password", "message": "Current password is incorrect"}],
            )
        self.collection.update_one(
            {"_id": oid},
            {"$set": {
                "password": hash_password(payload.new_password, self.bcrypt_rounds),
                "updated_at": utcnow(),
            }},
        )

    # ------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------

    def get_doc(self, user_id) -> dict:
        doc = self.collection.find_one({"_id": to_object_id(user_id, "User")}, NO_PASSWORD)
        if not doc:
            raise NotFoundError("User not found")
        return doc

    def get(self, user_id) -> dict:
        return serialize_doc(self.get_doc(user_id))

    def find_student(self, student_id: str) -> Optional[dict]:
        """Look up a student identity by its institutional student_id."""
        return self.collection.find_one(
            {"student_id": student_id, "role": UserRole.student.value}, NO_PASSWORD
        )

    def build_filter(self, role: Optional[str] = None, department: Optional[str] = None,
                     year: Optional[int] = None, is_active: Optional[bool] = None,
                     search: Optional[str] = None) -> dict:
        query = {}
        if role:
            query["role"] = role
        if department:
            query["department"] = department
        if year is not None:
            query["year"] = year
        if is_active is not None:
            query["is_active"] = is_active
        if search:
            pattern = {"$regex": re.escape(search.strip()), "$options": "i"}
            query["$or"] = [
                {"first_name": pattern},
                {"last_name": pattern},
                {"email": pattern},
                {"student_id": pattern},
            ]
        return query

    def list(self, query: dict, page: Page) -> Tuple[list, dict]:
        total = self.collection.count_documents(query)
        cursor = (
            self.collection.find(query, NO_PASSWORD)
            .sort("created_at", -1)
            .skip(page.skip)
            .limit(page.limit)
        )
        return serialize_docs(cursor), page.describe(total)

    def list_students(self, page: Page, department: Optional[str] = None,
                      year: Optional[int] = None) -> Tuple[list, dict]:
        query = {"role": UserRole.student.value, "is_active": True}
        if department:
            query["department"] = department
        if year is not None:
            query["year"] = year

        total = self.collection.count_documents(query)
        cursor = (
            self.collection.find(query, NO_PASSWORD)
            .sort([("last_name", 1), ("first_name", 1)])
            .skip(page.skip)
            .limit(page.limit)
        )
        return serialize_docs(cursor), page.describe(total)

    # ------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------

    def _set(self, oid, fields: dict) -> dict:
        fields["updated_at"] = utcnow()
        doc = self.collection.find_one_and_update(
            {"_id": oid},
            {"$set": fields},
            projection=NO_PASSWORD,
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            raise NotFoundError("User not found")
        return serialize_doc(doc)

    def update_profile(self, user_id: str, payload: UserUpdate) -> dict:
        current = self.get_doc(user_id)
        fields = {
            key: value
            for key, value in payload.model_dump(exclude_unset=True).items()
            if value is not None
        }

        errors = []
        if "year" in fields and current["role"] != UserRole.student.value:
            errors.append({"field": "year", "message": "Only students have a year of study"})
        if "department" in fields and current["role"] in PRIVILEGED_ROLES:
            errors.append({"field": "department", "message": "Department applies to students and faculty only"})
        if errors:
            raise ValidationError("Validation failed", errors=errors)

        if not fields:
            return serialize_doc(current)
        return self._set(current["_id"], fields)

    def set_status(self, user_id: str, is_active: bool) -> dict:
        return self._set(to_object_id(user_id, "User"), {"is_active": is_active})

    def set_role(self, user_id: str, role: str) -> dict:
        """Change a role; the target must already carry that role's required fields."""
        current = self.get_doc(user_id)
        missing = []
        if role == UserRole.student.value:
            missing = [f for f in ("student_id", "department", "year") if current.get(f) is None]
        elif role == UserRole.faculty.value and current.get("department") is None:
            missing = ["department"]
        if missing:
            raise ValidationError(
                f"Cannot assign role {role}: missing required fields",
                errors=[{"field": f, "message": f"{f} is required for role {role}"} for f in missing],
            )
        return self._set(current["_id"], {"role": role})

    def delete(self, user_id: str) -> None:
        result = self.collection.delete_one({"_id": to_object_id(user_id, "User")})
        if result.deleted_count == 0:
            raise NotFoundError("User not found")
