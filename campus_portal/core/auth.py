"""
Authentication Gate - resolves the bearer token to an Identity.

Provides:
- Identity: the authenticated caller as seen by policies and services
- get_current_identity: FastAPI dependency for protected routes
"""

import logging
from dataclasses import dataclass
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pymongo.database import Database

from campus_portal.core.errors import (
    AuthorizationError, InvalidCredential, MissingCredential, UnknownIdentity
)
from campus_portal.core.security import decode_token
from campus_portal.db.mongodb import COLLECTIONS, get_database
from campus_portal.schemas.schemas import UserRole

logger = logging.getLogger(__name__)

# Bearer token extractor. Missing tokens are reported by get_current_identity
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class Identity:
    id: str
    email: str
    role: str
    first_name: str = ""
    last_name: str = ""
    student_id: Optional[str] = None
    department: Optional[str] = None
    year: Optional[int] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin.value

    @property
    def object_id(self) -> ObjectId:
        return ObjectId(self.id)

    @classmethod
    def from_doc(cls, doc: dict) -> "Identity":
        return cls(
            id=str(doc["_id"]),
            email=doc["email"],
            role=doc["role"],
            first_name=doc.get("first_name", ""),
            last_name=doc.get("last_name", ""),
            student_id=doc.get("student_id"),
            department=doc.get("department"),
            year=doc.get("year"),
        )


def authenticate(token: str, db: Database, settings) -> Identity:
    """Resolve a raw token to an active Identity or raise."""
    payload = decode_token(token, settings)
    if not payload or not payload.get("sub"):
        raise InvalidCredential()

    try:
        user_id = ObjectId(payload["sub"])
    except (InvalidId, TypeError):
        raise InvalidCredential()

    user = db[COLLECTIONS["users"]].find_one({"_id": user_id}, {"password": 0})
    if not user:
        raise UnknownIdentity()

    if not user.get("is_active", True):
        raise AuthorizationError("Account deactivated")

    return Identity.from_doc(user)


def get_current_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Database = Depends(get_database),
) -> Identity:
    """
    FastAPI dependency - Get current authenticated identity.

    Usage:
        @router.get("/protected")
        def route(identity: Identity = Depends(get_current_identity)):
            return identity
    """
    if credentials is None or not credentials.credentials:
        raise MissingCredential()

    identity = authenticate(credentials.credentials, db, request.app.state.settings)
    request.state.identity = identity
    logger.debug(f"Authenticated {identity.email} ({identity.role}) for {request.url.path}")
    return identity
