"""
expense_services.container -- per-session DI container for kernel services.

Responsibility:
    Creates every kernel service exactly once for a session and wires them
    together.  No kernel service constructs another service except the
    auditor's own SequenceService.

Architecture position:
    Services.  The only place where kernel services are composed.

Invariants enforced:
    - Single-instance lifecycle: one AuditorService (and so one
      SequenceService) per session, shared by every service that audits.
    - All services share the same Session and Clock instances.

Usage:
    container = ServiceContainer(session, clock=clock)
    container.workflow.create_transaction(...)
    container.audit_log.list_for_organization(organization_id)
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from expense_config import WorkflowConfig
from expense_kernel.domain.clock import Clock, SystemClock
from expense_kernel.selectors import (
    AuditSelector,
    OrganizationSelector,
    TransactionSelector,
    UserSelector,
)
from expense_kernel.services import (
    AuditorService,
    AuthorizationGuard,
    OrganizationService,
    TransactionWorkflow,
    WalletLedger,
)


class ServiceContainer:
    """Kernel services and selectors bound to one session.

    Non-goals:
        - Does NOT manage transaction boundaries (the gateway does).
        - Does NOT own the Session lifecycle.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        workflow_config: WorkflowConfig | None = None,
    ):
        self.session = session
        self.clock = clock or SystemClock()
        workflow_config = workflow_config or WorkflowConfig()

        self.auditor = AuditorService(session, self.clock)
        self.guard = AuthorizationGuard(session, self.clock)
        self.ledger = WalletLedger(session, self.auditor, self.clock)
        self.workflow = TransactionWorkflow(
            session,
            self.guard,
            self.ledger,
            self.auditor,
            self.clock,
            enforce_named_reviewer=workflow_config.enforce_named_reviewer,
        )
        self.organizations = OrganizationService(
            session,
            self.guard,
            self.ledger,
            self.auditor,
            self.clock,
        )

        self.audit_log = AuditSelector(session)
        self.transactions = TransactionSelector(session)
        self.directory = OrganizationSelector(session)
        self.users = UserSelector(session)
