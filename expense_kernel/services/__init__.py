"""Kernel services.  Each flushes within the caller's transaction."""

from expense_kernel.services.auditor_service import AuditorService
from expense_kernel.services.authorization_guard import AuthorizationGuard
from expense_kernel.services.organization_service import OrganizationService
from expense_kernel.services.sequence_service import SequenceService
from expense_kernel.services.transaction_workflow import TransactionWorkflow
from expense_kernel.services.wallet_ledger import WalletLedger

__all__ = [
    "AuditorService",
    "AuthorizationGuard",
    "OrganizationService",
    "SequenceService",
    "TransactionWorkflow",
    "WalletLedger",
]
