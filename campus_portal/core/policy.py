"""
Authorization Policy Engine.

A predicate looks at a PolicyContext and answers Allow or Deny(reason).
Routes declare an ordered chain with authorize(...); the first Deny is
raised and nothing after it is evaluated. Role checks go before
ownership checks in every chain.

Admins pass every role and ownership predicate. forbid_self is the one
predicate admins cannot pass: nobody deletes, re-roles or deactivates
their own account.

Usage:
    @router.delete("/{id}")
    def delete_user(
        id: str,
        identity: Identity = Depends(authorize(
            require_role(UserRole.admin),
            forbid_self(path_param("id"), "You cannot delete your own account"),
        )),
    ): ...
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Type, Union

from fastapi import Depends, Request
from pydantic import BaseModel
from pymongo.database import Database

from campus_portal.core.auth import Identity, get_current_identity
from campus_portal.core.errors import AuthorizationError, ForbiddenSelfAction, NotFoundError
from campus_portal.db.mongodb import COLLECTIONS, get_database
from campus_portal.schemas.schemas import UserRole
from campus_portal.services.mongo_service import to_object_id


@dataclass(frozen=True)
class Allow:
    pass


@dataclass(frozen=True)
class Deny:
    reason: str
    error: Type[AuthorizationError] = AuthorizationError


Decision = Union[Allow, Deny]
ALLOW = Allow()


@dataclass
class PolicyContext:
    identity: Identity
    db: Database
    path_params: Dict[str, Any] = field(default_factory=dict)
    body: Optional[BaseModel] = None


Predicate = Callable[[PolicyContext], Decision]
OwnerAccessor = Callable[[PolicyContext], Optional[str]]


def _role_value(role) -> str:
    return role.value if isinstance(role, UserRole) else str(role)


# ============================================================
# PREDICATES
# ============================================================

def require_role(*roles) -> Predicate:
    allowed = {_role_value(r) for r in roles}

    def check(ctx: PolicyContext) -> Decision:
        if ctx.identity.is_admin or ctx.identity.role in allowed:
            return ALLOW
        return Deny(f"Access denied. Required role: {', '.join(sorted(allowed))}")

    return check


def require_privileged_role(role, admin_also_allowed: bool = True) -> Predicate:
    """Single-role check, optionally letting admins through."""
    wanted = _role_value(role)

    def check(ctx: PolicyContext) -> Decision:
        if ctx.identity.role == wanted:
            return ALLOW
        if admin_also_allowed and ctx.identity.is_admin:
            return ALLOW
        return Deny(f"Access denied. {wanted.replace('_', ' ').title()} privileges required")

    return check


def require_self_or_admin(owner_of: OwnerAccessor,
                          reason: str = "Access denied. You can only access your own resources.") -> Predicate:
    def check(ctx: PolicyContext) -> Decision:
        if ctx.identity.is_admin:
            return ALLOW
        owner = owner_of(ctx)
        if owner is not None and str(owner) == ctx.identity.id:
            return ALLOW
        return Deny(reason)

    return check


def forbid_self(target_of: OwnerAccessor,
                reason: str = "This action cannot be performed on your own account") -> Predicate:
    def check(ctx: PolicyContext) -> Decision:
        target = target_of(ctx)
        if target is not None and str(target) == ctx.identity.id:
            return Deny(reason, ForbiddenSelfAction)
        return ALLOW

    return check


def any_of(*predicates: Predicate) -> Predicate:
    """Allow when any predicate allows; otherwise report the first denial."""
    def check(ctx: PolicyContext) -> Decision:
        first_denial = None
        for predicate in predicates:
            decision = predicate(ctx)
            if isinstance(decision, Allow):
                return decision
            first_denial = first_denial or decision
        return first_denial or Deny("Access denied")

    return check


# ============================================================
# OWNER ACCESSORS
# ============================================================

def path_param(name: str) -> OwnerAccessor:
    return lambda ctx: ctx.path_params.get(name)


def placement_owner(param: str = "id") -> OwnerAccessor:
    """The identity a placement record belongs to (its "student")."""
    def owner(ctx: PolicyContext) -> Optional[str]:
        placement_id = to_object_id(ctx.path_params.get(param), "Placement record")
        doc = ctx.db[COLLECTIONS["placements"]].find_one({"_id": placement_id}, {"student": 1})
        if not doc:
            raise NotFoundError("Placement record not found")
        return str(doc["student"])

    return owner


def training_creator(param: str = "id") -> OwnerAccessor:
    """The identity that created a training program."""
    def owner(ctx: PolicyContext) -> Optional[str]:
        training_id = to_object_id(ctx.path_params.get(param), "Training program")
        doc = ctx.db[COLLECTIONS["trainings"]].find_one({"_id": training_id}, {"created_by": 1})
        if not doc:
            raise NotFoundError("Training program not found")
        created_by = doc.get("created_by")
        return str(created_by) if created_by is not None else None

    return owner


# ============================================================
# ENFORCEMENT
# ============================================================

def enforce(ctx: PolicyContext, *predicates: Predicate) -> None:
    """Evaluate predicates in order; the first Deny is raised."""
    for predicate in predicates:
        decision = predicate(ctx)
        if isinstance(decision, Deny):
            raise decision.error(decision.reason)


def authorize(*predicates: Predicate):
    """FastAPI dependency factory: authenticate, then run the chain."""
    def dependency(
        request: Request,
        identity: Identity = Depends(get_current_identity),
        db: Database = Depends(get_database),
    ) -> Identity:
        enforce(PolicyContext(identity, db, dict(request.path_params)), *predicates)
        return identity

    return dependency
