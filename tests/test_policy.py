"""
Tests for the authorization predicates and their evaluation order.
"""

import pytest
from bson import ObjectId

from campus_portal.core.auth import Identity
from campus_portal.core.errors import AuthorizationError, ForbiddenSelfAction, NotFoundError
from campus_portal.core.policy import (
    ALLOW, Allow, Deny, PolicyContext, any_of, enforce, forbid_self, path_param, placement_owner,
    require_privileged_role, require_role, require_self_or_admin
)
from campus_portal.schemas.schemas import UserRole


def identity(role: str, id: str = None) -> Identity:
    return Identity(id=id or str(ObjectId()), email=f"{role}@college.edu", role=role)


def ctx(who: Identity, **path) -> PolicyContext:
    return PolicyContext(who, db=None, path_params=path)


class TestRequireRole:

    def test_matching_role_allowed(self):
        check = require_role(UserRole.faculty)
        assert check(ctx(identity("faculty"))) == ALLOW

    def test_admin_always_passes(self):
        check = require_role(UserRole.placement_officer)
        assert isinstance(check(ctx(identity("admin"))), Allow)

    def test_other_role_denied(self):
        decision = require_role(UserRole.faculty, UserRole.placement_officer)(ctx(identity("student")))
        assert isinstance(decision, Deny)
        assert "faculty" in decision.reason
        assert decision.error is AuthorizationError

    def test_privileged_role_can_exclude_admin(self):
        check = require_privileged_role(UserRole.placement_officer, admin_also_allowed=False)
        assert isinstance(check(ctx(identity("admin"))), Deny)
        assert isinstance(check(ctx(identity("placement_officer"))), Allow)


class TestOwnership:

    def test_owner_allowed(self):
        me = identity("student")
        check = require_self_or_admin(path_param("id"))
        assert isinstance(check(ctx(me, id=me.id)), Allow)

    def test_other_owner_denied(self):
        check = require_self_or_admin(path_param("id"), "Not yours")
        decision = check(ctx(identity("student"), id=str(ObjectId())))
        assert decision == Deny("Not yours")

    def test_admin_bypasses_ownership(self):
        check = require_self_or_admin(path_param("id"))
        assert isinstance(check(ctx(identity("admin"), id=str(ObjectId()))), Allow)

    def test_missing_owner_denied(self):
        check = require_self_or_admin(lambda c: None)
        assert isinstance(check(ctx(identity("student"))), Deny)


class TestForbidSelf:

    def test_admin_cannot_target_self(self):
        admin = identity("admin")
        decision = forbid_self(path_param("id"), "You cannot delete your own account")(ctx(admin, id=admin.id))
        assert isinstance(decision, Deny)
        assert decision.error is ForbiddenSelfAction

    def test_other_target_allowed(self):
        check = forbid_self(path_param("id"))
        assert isinstance(check(ctx(identity("admin"), id=str(ObjectId()))), Allow)


class TestCombinators:

    def test_any_of_allows_when_one_allows(self):
        check = any_of(require_role(UserRole.faculty), require_role(UserRole.student))
        assert isinstance(check(ctx(identity("student"))), Allow)

    def test_any_of_reports_first_denial(self):
        check = any_of(
            lambda c: Deny("first"),
            lambda c: Deny("second"),
        )
        assert check(ctx(identity("student"))).reason == "first"

    def test_enforce_raises_first_denial_and_stops(self):
        calls = []

        def tracking(c):
            calls.append("later")
            return ALLOW

        with pytest.raises(AuthorizationError) as exc_info:
            enforce(ctx(identity("student")), lambda c: Deny("role check"), tracking)

        assert exc_info.value.detail == "role check"
        assert exc_info.value.status_code == 403
        assert calls == []

    def test_enforce_uses_deny_error_type(self):
        me = identity("admin")
        with pytest.raises(ForbiddenSelfAction):
            enforce(ctx(me, id=me.id), require_role(UserRole.admin), forbid_self(path_param("id")))


def test_placement_owner_missing_record_is_not_found(db):
    accessor = placement_owner()
    context = PolicyContext(identity("student"), db, {"id": str(ObjectId())})
    with pytest.raises(NotFoundError):
        accessor(context)


def test_placement_owner_malformed_id_is_not_found(db):
    context = PolicyContext(identity("student"), db, {"id": "not-an-id"})
    with pytest.raises(NotFoundError):
        placement_owner()(context)
