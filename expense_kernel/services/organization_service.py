"""
OrganizationService -- tenant setup, membership, and wallet administration.

Responsibility:
    Creates organizations with their founding Owner, manages the membership
    roster, lets members leave, renames organizations, and creates, renames,
    and deletes wallets.  Each change is authorized through the guard and
    recorded in the organization's audit log in the same savepoint.

Architecture position:
    Kernel > Services.  Composes AuthorizationGuard, WalletLedger, and
    AuditorService.

Invariants enforced:
    - An organization is created together with exactly one Owner membership.
    - A user never edits their own membership through the roster.
    - Owners cannot leave.  Together with the two rules above (and the fact
      that only Owners may edit the roster) an organization always keeps at
      least one Owner.
    - At most one membership per (organization, user).

Failure modes:
    - ValidationError, NotFoundError, ForbiddenError, OwnerCannotLeaveError.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from expense_kernel.domain.clock import Clock
from expense_kernel.domain.roles import ANY_MEMBER, Capability, Role, parse_role, requires
from expense_kernel.domain.validation import (
    ORGANIZATION_NAME_MAX_LENGTH,
    check_name,
    validate_wallet_input,
)
from expense_kernel.exceptions import (
    OwnerCannotLeaveError,
    UnrecognizedRoleError,
    UserNotFoundError,
    ValidationError,
)
from expense_kernel.logging_config import get_logger
from expense_kernel.models.audit_record import AuditAction, AuditObjectType
from expense_kernel.models.organization import Membership, Organization
from expense_kernel.models.user import User
from expense_kernel.models.wallet import Wallet
from expense_kernel.services.auditor_service import AuditorService
from expense_kernel.services.authorization_guard import AuthorizationGuard
from expense_kernel.services.base import BaseService
from expense_kernel.services.wallet_ledger import WalletLedger

logger = get_logger("services.organization")

CAN_UPDATE_ORGANIZATION = requires(Capability.UPDATE_ORGANIZATION)
CAN_CREATE_WALLETS = requires(Capability.CREATE_WALLETS)
CAN_UPDATE_WALLETS = requires(Capability.UPDATE_WALLETS)
CAN_DELETE_WALLETS = requires(Capability.DELETE_WALLETS)


class OrganizationService(BaseService):
    """
    Organization, membership, and wallet administration.

    Non-goals:
        - Does NOT call ``session.commit()``.
        - Does NOT look up users by anything but username.
    """

    def __init__(
        self,
        session: Session,
        guard: AuthorizationGuard,
        ledger: WalletLedger,
        auditor: AuditorService,
        clock: Clock | None = None,
    ):
        super().__init__(session, clock)
        self._guard = guard
        self._ledger = ledger
        self._auditor = auditor

    # ------------------------------------------------------------------
    # Organizations
    # ------------------------------------------------------------------

    def create_organization(self, creator_id: UUID, name: str) -> Organization:
        """Create an organization whose only member is ``creator_id`` as Owner."""
        error = check_name(name, ORGANIZATION_NAME_MAX_LENGTH)
        if error:
            raise ValidationError({"name": error})
        name = name.strip()
        organization_id = uuid4()

        def effect() -> Organization:
            now = self.clock.now()
            organization = Organization(id=organization_id, name=name, created_at=now)
            self.session.add(organization)
            self.session.flush()
            self.session.add(
                Membership(
                    organization_id=organization_id,
                    user_id=creator_id,
                    role=Role.OWNER.value,
                    created_at=now,
                )
            )
            self.session.flush()
            return organization

        organization = self._auditor.record_with_effect(
            creator_id,
            organization_id,
            AuditObjectType.ORGANIZATION,
            organization_id,
            AuditAction.CREATE,
            f"Created organization {name}",
            effect,
        )
        logger.info(
            "organization_created",
            extra={"organization_id": str(organization_id), "owner_id": str(creator_id)},
        )
        return organization

    def rename_organization(
        self, actor_id: UUID, organization_id: UUID, name: str,
    ) -> Organization:
        self._guard.require_authorization(actor_id, organization_id, CAN_UPDATE_ORGANIZATION)
        error = check_name(name, ORGANIZATION_NAME_MAX_LENGTH)
        if error:
            raise ValidationError({"name": error})
        name = name.strip()

        organization = self.session.get(Organization, organization_id)
        old_name = organization.name

        def effect() -> Organization:
            organization.name = name
            self.session.flush()
            return organization

        return self._auditor.record_with_effect(
            actor_id,
            organization_id,
            AuditObjectType.ORGANIZATION,
            organization_id,
            AuditAction.UPDATE,
            f"Organization was renamed from {old_name} to {name}",
            effect,
        )

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def _find_user(self, username: str) -> User:
        user = self.session.execute(
            select(User).where(User.username == username)
        ).scalar_one_or_none()
        if user is None:
            raise UserNotFoundError(username)
        return user

    def set_member(
        self,
        actor_id: UUID,
        organization_id: UUID,
        username: str,
        role: Role | str,
    ) -> Membership:
        """
        Add ``username`` to the organization with ``role``, or change the
        role of an existing member.
        """
        self._guard.require_authorization(actor_id, organization_id, CAN_UPDATE_ORGANIZATION)
        try:
            role = parse_role(role)
        except UnrecognizedRoleError:
            raise ValidationError({"role": f"Unknown role {role!r}"}) from None

        user = self._find_user(username)
        if user.id == actor_id:
            raise ValidationError({"username": "Username cannot be your own"})

        return self._upsert_membership(actor_id, organization_id, user, role)

    def replace_members(
        self,
        actor_id: UUID,
        organization_id: UUID,
        members: Sequence[tuple[str, Role | str]],
    ) -> list[Membership]:
        """
        Make the roster, apart from the acting user, exactly ``members``.

        Members not listed are removed, listed users are added or have
        their role changed.  The first call also marks the organization
        as set up.  The whole change is one savepoint: either every
        membership change and its audit record is kept or none is.

        Raises:
            ValidationError: keyed ``members.<index>.username`` or
                ``members.<index>.role``, all entries checked at once.
            UserNotFoundError: a listed username does not exist.
        """
        self._guard.require_authorization(actor_id, organization_id, CAN_UPDATE_ORGANIZATION)
        actor = self.session.get(User, actor_id)

        errors: dict[str, str] = {}
        wanted: dict[str, Role] = {}
        for index, (username, role) in enumerate(members):
            prefix = f"members.{index}"
            if not username:
                errors[f"{prefix}.username"] = "Username is required"
            elif actor is not None and username == actor.username:
                errors[f"{prefix}.username"] = "Username cannot be your own"
            elif username in wanted:
                errors[f"{prefix}.username"] = "Username is listed more than once"
            try:
                parsed = parse_role(role)
            except UnrecognizedRoleError:
                errors[f"{prefix}.role"] = f"Unknown role {role!r}"
                continue
            if f"{prefix}.username" not in errors:
                wanted[username] = parsed
        if errors:
            raise ValidationError(errors)

        users = {username: self._find_user(username) for username in wanted}
        current = self.session.scalars(
            select(Membership).where(
                Membership.organization_id == organization_id,
                Membership.user_id != actor_id,
            )
        ).all()

        result: list[Membership] = []
        with self.session.begin_nested():
            for membership in current:
                username = membership.user.username
                if username not in wanted:
                    self._delete_membership(
                        actor_id, membership, f"Removed {username} from the organization",
                    )
            for username, role in wanted.items():
                result.append(
                    self._upsert_membership(actor_id, organization_id, users[username], role)
                )
            organization = self.session.get(Organization, organization_id)
            if not organization.completed_setup:
                organization.completed_setup = True
                self.session.flush()
                logger.info(
                    "organization_setup_completed",
                    extra={"organization_id": str(organization_id)},
                )

        logger.info(
            "membership_roster_replaced",
            extra={"organization_id": str(organization_id), "member_count": len(result)},
        )
        return result

    def _upsert_membership(
        self,
        actor_id: UUID,
        organization_id: UUID,
        user: User,
        role: Role,
    ) -> Membership:
        membership = self._guard.get_membership(user.id, organization_id)
        username = user.username

        if membership is None:
            message = f"Added {username} as {role.value}"
        elif membership.role == role.value:
            return membership
        else:
            message = f"Changed role of {username} from {membership.role} to {role.value}"

        def effect() -> Membership:
            nonlocal membership
            if membership is None:
                membership = Membership(
                    organization_id=organization_id,
                    user_id=user.id,
                    role=role.value,
                    created_at=self.clock.now(),
                )
                self.session.add(membership)
            else:
                membership.role = role.value
            self.session.flush()
            return membership

        return self._auditor.record_with_effect(
            actor_id,
            organization_id,
            AuditObjectType.ORGANIZATION,
            organization_id,
            AuditAction.UPDATE,
            message,
            effect,
        )

    def remove_member(self, actor_id: UUID, organization_id: UUID, username: str) -> None:
        self._guard.require_authorization(actor_id, organization_id, CAN_UPDATE_ORGANIZATION)
        user = self._find_user(username)
        if user.id == actor_id:
            raise ValidationError({"username": "Username cannot be your own"})

        membership = self._guard.get_membership(user.id, organization_id)
        if membership is None:
            raise UserNotFoundError(username)

        self._delete_membership(
            actor_id, membership, f"Removed {username} from the organization",
        )

    def leave_organization(self, user_id: UUID, organization_id: UUID) -> None:
        membership = self._guard.require_authorization(user_id, organization_id, ANY_MEMBER)
        if parse_role(membership.role) is Role.OWNER:
            raise OwnerCannotLeaveError(str(user_id), str(organization_id))

        self._delete_membership(
            user_id, membership, f"{membership.user.username} left the organization",
        )

    def _delete_membership(self, actor_id: UUID, membership: Membership, message: str) -> None:
        organization_id = membership.organization_id

        def effect() -> None:
            self.session.delete(membership)
            self.session.flush()

        self._auditor.record_with_effect(
            actor_id,
            organization_id,
            AuditObjectType.ORGANIZATION,
            organization_id,
            AuditAction.UPDATE,
            message,
            effect,
        )
        logger.info(
            "membership_removed",
            extra={
                "organization_id": str(organization_id),
                "user_id": str(membership.user_id),
            },
        )

    # ------------------------------------------------------------------
    # Wallets
    # ------------------------------------------------------------------

    def create_wallet(
        self,
        actor_id: UUID,
        organization_id: UUID,
        name: str,
        opening_balance: Decimal | str | int,
    ) -> Wallet:
        self._guard.require_authorization(actor_id, organization_id, CAN_CREATE_WALLETS)
        name, balance = validate_wallet_input(name=name, balance=opening_balance)
        return self._ledger.create_wallet(actor_id, organization_id, name, balance)

    def rename_wallet(self, actor_id: UUID, wallet_id: UUID, name: str) -> Wallet:
        wallet = self._ledger.get_wallet(wallet_id)
        self._guard.require_authorization(actor_id, wallet.organization_id, CAN_UPDATE_WALLETS)
        error = check_name(name)
        if error:
            raise ValidationError({"name": error})
        return self._ledger.rename_wallet(actor_id, wallet, name.strip())

    def delete_wallet(self, actor_id: UUID, wallet_id: UUID) -> None:
        wallet = self._ledger.get_wallet(wallet_id)
        self._guard.require_authorization(actor_id, wallet.organization_id, CAN_DELETE_WALLETS)
        wallet = self._ledger.lock_wallet(wallet_id)
        self._ledger.delete_wallet(actor_id, wallet)
