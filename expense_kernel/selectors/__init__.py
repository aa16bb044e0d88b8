"""Read-only selectors for the expense kernel."""

from expense_kernel.selectors.audit_selector import AuditRecordDTO, AuditSelector
from expense_kernel.selectors.organization_selector import (
    MemberDTO,
    OrganizationDTO,
    OrganizationSelector,
    WalletDTO,
)
from expense_kernel.selectors.transaction_selector import TransactionSelector
from expense_kernel.selectors.user_selector import UserDTO, UserSelector

__all__ = [
    "AuditRecordDTO",
    "AuditSelector",
    "MemberDTO",
    "OrganizationDTO",
    "OrganizationSelector",
    "TransactionSelector",
    "UserDTO",
    "UserSelector",
    "WalletDTO",
]
