"""
Module: expense_kernel.models.organization
Responsibility: ORM persistence for organizations (tenants) and their
    membership roster.

Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - At most one membership per (organization, user):
      UNIQUE(organization_id, user_id).
    - role is stored as a plain string, not a constrained enum, so that a
      corrupted value stays representable and is rejected by the role
      policy at read time (fail closed) rather than silently dropped.

Failure modes:
    - IntegrityError on a duplicate membership insert.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from expense_kernel.db.base import EntityBase, UUIDString
from expense_kernel.models.user import User


class Organization(EntityBase):
    __tablename__ = "organizations"

    name: Mapped[str] = mapped_column(String(64), nullable=False)
    # Set by the first roster save; until then the organization is being set up.
    completed_setup: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<Organization {self.id} {self.name!r}>"


class Membership(EntityBase):
    """
    A user's role in one organization.

    Contract:
        The authorization guard reads this row on every request; nothing
        about a user's permissions is cached between requests.
    """

    __tablename__ = "memberships"

    __table_args__ = (
        UniqueConstraint(
            "organization_id", "user_id", name="uq_memberships_org_user",
        ),
        Index("ix_memberships_user", "user_id"),
    )

    organization_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("users.id"),
        nullable=False,
    )
    role: Mapped[str] = mapped_column(String(32), nullable=False)
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    user: Mapped[User] = relationship(User)

    def __repr__(self) -> str:
        return (
            f"<Membership org={self.organization_id} "
            f"user={self.user_id} role={self.role}>"
        )
