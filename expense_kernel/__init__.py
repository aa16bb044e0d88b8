"""
Expense Kernel

The authorization-gated core of a multi-tenant expense tracker:
- Role policy evaluated per request
- Pending -> approved/rejected transaction workflow
- Wallet balances mutated only under row locks
- Append-only, hash-chained audit log
"""

__version__ = "0.1.0"
