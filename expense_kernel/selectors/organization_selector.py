"""
Module: expense_kernel.selectors.organization_selector
Responsibility: Read access to wallets and membership rosters.
Architecture position: Kernel > Selectors.
"""

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from expense_kernel.models.organization import Membership, Organization
from expense_kernel.models.user import User
from expense_kernel.models.wallet import Wallet
from expense_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class WalletDTO:
    id: UUID
    organization_id: UUID
    name: str
    balance: Decimal
    transaction_count: int


@dataclass(frozen=True)
class MemberDTO:
    user_id: UUID
    username: str
    role: str


@dataclass(frozen=True)
class OrganizationDTO:
    id: UUID
    name: str
    role: str
    completed_setup: bool


class OrganizationSelector(BaseSelector):

    def get_wallet(self, wallet_id: UUID) -> WalletDTO | None:
        wallet = self.session.get(Wallet, wallet_id)
        return _wallet_dto(wallet) if wallet is not None else None

    def list_wallets(self, organization_id: UUID) -> list[WalletDTO]:
        query = (
            select(Wallet)
            .where(Wallet.organization_id == organization_id)
            .order_by(Wallet.name, Wallet.id)
        )
        return [_wallet_dto(w) for w in self.session.scalars(query)]

    def list_members(self, organization_id: UUID) -> list[MemberDTO]:
        rows = self.session.execute(
            select(Membership.user_id, User.username, Membership.role)
            .join(User, User.id == Membership.user_id)
            .where(Membership.organization_id == organization_id)
            .order_by(User.username)
        )
        return [MemberDTO(user_id=r[0], username=r[1], role=r[2]) for r in rows]

    def organizations_for_user(self, user_id: UUID) -> list[OrganizationDTO]:
        rows = self.session.execute(
            select(
                Organization.id,
                Organization.name,
                Membership.role,
                Organization.completed_setup,
            )
            .join(Membership, Membership.organization_id == Organization.id)
            .where(Membership.user_id == user_id)
            .order_by(Organization.name)
        )
        return [
            OrganizationDTO(id=r[0], name=r[1], role=r[2], completed_setup=r[3])
            for r in rows
        ]


def _wallet_dto(wallet: Wallet) -> WalletDTO:
    return WalletDTO(
        id=wallet.id,
        organization_id=wallet.organization_id,
        name=wallet.name,
        balance=wallet.balance,
        transaction_count=wallet.transaction_count,
    )
