"""
AuthorizationGuard -- per-request membership and role check.

Responsibility:
    Given a user, an organization, and a capability predicate, load the
    persisted membership, resolve its role through the role policy, and
    allow or deny.  Used for the acting user on every operation and a
    second time with the designated reviewer as subject when a
    transaction is created.

Architecture position:
    Kernel > Services.  Read-only: issues a single SELECT and never writes.

Invariants enforced:
    - No membership -> NotFound.  An organization that does not exist and
      one the user does not belong to are indistinguishable to the caller.
    - Unknown role string -> InternalError (fail closed), logged at ERROR.
    - Predicate false -> Forbidden.

Failure modes:
    - MembershipNotFoundError, UnrecognizedRoleError, ForbiddenError.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select

from expense_kernel.domain.roles import (
    RolePolicyEntry,
    RolePredicate,
    capabilities_for,
)
from expense_kernel.exceptions import (
    ForbiddenError,
    MembershipNotFoundError,
    UnrecognizedRoleError,
)
from expense_kernel.logging_config import get_logger
from expense_kernel.models.organization import Membership
from expense_kernel.services.base import BaseService

logger = get_logger("services.authorization")


class AuthorizationGuard(BaseService):
    """
    Membership-backed authorization.

    Guarantees:
        - Reads the membership row on every call; nothing is cached.
        - Safe to call any number of times within one request.
    """

    def get_membership(self, user_id: UUID, organization_id: UUID) -> Membership | None:
        return self.session.execute(
            select(Membership).where(
                Membership.organization_id == organization_id,
                Membership.user_id == user_id,
            )
        ).scalar_one_or_none()

    def resolve_policy(self, membership: Membership) -> RolePolicyEntry:
        try:
            return capabilities_for(membership.role)
        except UnrecognizedRoleError:
            logger.error(
                "unrecognized_membership_role",
                extra={
                    "user_id": str(membership.user_id),
                    "organization_id": str(membership.organization_id),
                    "role": membership.role,
                },
            )
            raise

    def require_authorization(
        self,
        user_id: UUID,
        organization_id: UUID,
        predicate: RolePredicate,
    ) -> Membership:
        """
        Return the user's membership if its role satisfies ``predicate``.

        Raises:
            MembershipNotFoundError: no membership for (organization, user).
            UnrecognizedRoleError: the stored role is not a known role.
            ForbiddenError: the role does not satisfy ``predicate``.
        """
        membership = self.get_membership(user_id, organization_id)
        if membership is None:
            logger.info(
                "authorization_not_found",
                extra={
                    "user_id": str(user_id),
                    "organization_id": str(organization_id),
                },
            )
            raise MembershipNotFoundError(str(user_id), str(organization_id))

        entry = self.resolve_policy(membership)

        if not predicate(entry):
            logger.info(
                "authorization_denied",
                extra={
                    "user_id": str(user_id),
                    "organization_id": str(organization_id),
                    "role": entry.role.value,
                    "predicate": getattr(predicate, "__name__", repr(predicate)),
                },
            )
            raise ForbiddenError(str(user_id), str(organization_id))

        return membership
