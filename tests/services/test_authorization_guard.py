"""
Tests for AuthorizationGuard -- membership-backed authorization.

Covers:
- Allow for each role holding the capability
- NotFound for non-members and unknown organizations (indistinguishable)
- Forbidden for members lacking the capability
- Corrupt role data fails closed as an internal error
- Decisions read the current membership row (no caching)
"""

from uuid import uuid4

import pytest

from expense_kernel.domain.roles import ANY_MEMBER, Capability, Role, requires
from expense_kernel.exceptions import (
    ForbiddenError,
    MembershipNotFoundError,
    NotFoundError,
    UnrecognizedRoleError,
)

CAN_APPROVE = requires(Capability.APPROVE_TRANSACTIONS)
CAN_UPDATE_ORGANIZATION = requires(Capability.UPDATE_ORGANIZATION)


class TestAllow:

    def test_returns_membership(self, guard, org):
        membership = guard.require_authorization(org.reviewer.id, org.organization_id, CAN_APPROVE)
        assert membership.user_id == org.reviewer.id
        assert membership.role == Role.REVIEWER.value

    @pytest.mark.parametrize("attr", ["owner", "admin", "reviewer", "member"])
    def test_any_member_predicate(self, guard, org, attr):
        user = getattr(org, attr)
        guard.require_authorization(user.id, org.organization_id, ANY_MEMBER)


class TestNotFound:

    def test_non_member(self, guard, org):
        with pytest.raises(MembershipNotFoundError) as exc_info:
            guard.require_authorization(org.outsider.id, org.organization_id, ANY_MEMBER)
        assert exc_info.value.message == "Organization not found"

    def test_unknown_organization_looks_the_same(self, guard, org):
        with pytest.raises(NotFoundError) as missing_org:
            guard.require_authorization(org.owner.id, uuid4(), ANY_MEMBER)
        with pytest.raises(NotFoundError) as not_member:
            guard.require_authorization(org.outsider.id, org.organization_id, ANY_MEMBER)
        assert missing_org.value.field_errors() == not_member.value.field_errors()
        assert missing_org.value.code == not_member.value.code == "NOT_FOUND"

    def test_not_found_takes_precedence_over_forbidden(self, guard, org):
        # A non-member asking for a capability nobody below Owner holds.
        with pytest.raises(NotFoundError):
            guard.require_authorization(org.outsider.id, org.organization_id, CAN_UPDATE_ORGANIZATION)


class TestForbidden:

    def test_member_cannot_approve(self, guard, org):
        with pytest.raises(ForbiddenError):
            guard.require_authorization(org.member.id, org.organization_id, CAN_APPROVE)

    def test_administrator_cannot_update_organization(self, guard, org):
        with pytest.raises(ForbiddenError) as exc_info:
            guard.require_authorization(org.admin.id, org.organization_id, CAN_UPDATE_ORGANIZATION)
        assert exc_info.value.code == "FORBIDDEN"

    def test_denial_is_logged(self, guard, org, captured_logs):
        with pytest.raises(ForbiddenError):
            guard.require_authorization(org.member.id, org.organization_id, CAN_APPROVE)
        denial = [r for r in captured_logs() if r["message"] == "authorization_denied"]
        assert len(denial) == 1
        assert denial[0]["role"] == "Member"
        assert denial[0]["predicate"] == "requires_approve_transactions"


class TestCorruptRole:

    def test_unrecognized_role_is_internal_error(self, guard, org, add_member):
        user = add_member(org.organization, role="Superuser")
        with pytest.raises(UnrecognizedRoleError):
            guard.require_authorization(user.id, org.organization_id, ANY_MEMBER)

    def test_unrecognized_role_logged_at_error(self, guard, org, add_member, captured_logs):
        user = add_member(org.organization, role="owner")
        with pytest.raises(UnrecognizedRoleError):
            guard.require_authorization(user.id, org.organization_id, ANY_MEMBER)
        errors = [r for r in captured_logs() if r["message"] == "unrecognized_membership_role"]
        assert errors and errors[0]["level"] == "ERROR"


class TestNoCaching:

    def test_role_change_takes_effect_immediately(self, guard, org, session):
        guard.require_authorization(org.reviewer.id, org.organization_id, CAN_APPROVE)

        membership = guard.get_membership(org.reviewer.id, org.organization_id)
        membership.role = Role.MEMBER.value
        session.flush()

        with pytest.raises(ForbiddenError):
            guard.require_authorization(org.reviewer.id, org.organization_id, CAN_APPROVE)
