"""
expense_services -- runtime wiring and the request-facing gateway.

Sits above ``expense_kernel`` and ``expense_config``.  Owns transaction
boundaries (commit/rollback) and the conversion of typed kernel errors
into structured results.
"""

from expense_services.container import ServiceContainer
from expense_services.gateway import ActionResult, ActionStatus, ExpenseGateway

__all__ = [
    "ActionResult",
    "ActionStatus",
    "ExpenseGateway",
    "ServiceContainer",
]
