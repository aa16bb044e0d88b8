"""
Role policy (``expense_kernel.domain.roles``).

Responsibility
--------------
Maps each organization role to the fixed set of capabilities it grants,
and builds the capability predicates the authorization guard evaluates.

Architecture position
---------------------
**Kernel domain layer** -- pure, ZERO I/O.  Imports only
``expense_kernel.exceptions``.

Invariants enforced
-------------------
* The table is total over ``Role`` and frozen at import time; it is
  exposed only through a read-only mapping.
* An unrecognized role string is an ``UnrecognizedRoleError`` (an
  internal error), never a silent denial or grant.

Role table
----------
============== ======= ========== ========== ========== ========== ========== ==========
Role           approve create-txn create-wal update-wal delete-wal update-org read-audit
============== ======= ========== ========== ========== ========== ========== ==========
Owner          yes     yes        yes        yes        yes        yes        yes
Administrator  yes     yes        yes        yes        yes        no         yes
Reviewer       yes     yes        no         no         no         no         yes
Member         no      yes        no         no         no         no         no
============== ======= ========== ========== ========== ========== ========== ==========
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType

from expense_kernel.exceptions import UnrecognizedRoleError


class Role(str, Enum):
    OWNER = "Owner"
    ADMINISTRATOR = "Administrator"
    REVIEWER = "Reviewer"
    MEMBER = "Member"


class Capability(str, Enum):
    APPROVE_TRANSACTIONS = "approve-transactions"
    CREATE_TRANSACTIONS = "create-transactions"
    CREATE_WALLETS = "create-wallets"
    UPDATE_WALLETS = "update-wallets"
    DELETE_WALLETS = "delete-wallets"
    UPDATE_ORGANIZATION = "update-organization"
    READ_AUDIT_LOG = "read-audit-log"


@dataclass(frozen=True)
class RolePolicyEntry:
    """Capabilities granted by one role."""

    role: Role
    description: str
    approve_transactions: bool
    create_transactions: bool
    create_wallets: bool
    update_wallets: bool
    delete_wallets: bool
    update_organization: bool
    read_audit_log: bool

    def allows(self, capability: Capability) -> bool:
        return getattr(self, capability.value.replace("-", "_"))

    @property
    def capabilities(self) -> frozenset[Capability]:
        return frozenset(c for c in Capability if self.allows(c))


_ENTRIES = (
    RolePolicyEntry(
        role=Role.OWNER,
        description="Full access, including organization settings and membership.",
        approve_transactions=True,
        create_transactions=True,
        create_wallets=True,
        update_wallets=True,
        delete_wallets=True,
        update_organization=True,
        read_audit_log=True,
    ),
    RolePolicyEntry(
        role=Role.ADMINISTRATOR,
        description="Manages wallets and reviews transactions.",
        approve_transactions=True,
        create_transactions=True,
        create_wallets=True,
        update_wallets=True,
        delete_wallets=True,
        update_organization=False,
        read_audit_log=True,
    ),
    RolePolicyEntry(
        role=Role.REVIEWER,
        description="Approves or rejects transactions.",
        approve_transactions=True,
        create_transactions=True,
        create_wallets=False,
        update_wallets=False,
        delete_wallets=False,
        update_organization=False,
        read_audit_log=True,
    ),
    RolePolicyEntry(
        role=Role.MEMBER,
        description="Records transactions for review.",
        approve_transactions=False,
        create_transactions=True,
        create_wallets=False,
        update_wallets=False,
        delete_wallets=False,
        update_organization=False,
        read_audit_log=False,
    ),
)

ROLE_POLICY: Mapping[Role, RolePolicyEntry] = MappingProxyType(
    {entry.role: entry for entry in _ENTRIES}
)


def parse_role(value: str | Role) -> Role:
    """Resolve a persisted role string, failing closed on unknown values."""
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        raise UnrecognizedRoleError(str(value)) from None


def capabilities_for(role: str | Role) -> RolePolicyEntry:
    """Return the policy entry for ``role``.

    Raises:
        UnrecognizedRoleError: ``role`` is not one of the four known roles.
    """
    return ROLE_POLICY[parse_role(role)]


RolePredicate = Callable[[RolePolicyEntry], bool]


def requires(*capabilities: Capability) -> RolePredicate:
    """Predicate accepting roles that hold every listed capability."""

    def predicate(entry: RolePolicyEntry) -> bool:
        return all(entry.allows(c) for c in capabilities)

    predicate.__name__ = "requires_" + "_and_".join(
        c.value.replace("-", "_") for c in capabilities
    )
    return predicate


def ANY_MEMBER(entry: RolePolicyEntry) -> bool:
    """Predicate accepting every recognized role."""
    return True
