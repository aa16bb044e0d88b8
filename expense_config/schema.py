"""
ExpenseConfig schema.

Frozen dataclasses for the runtime configuration of the expense ledger.
The loader parses YAML into these types; nothing else constructs them
from raw files.

  ExpenseConfig  = root artifact (identity + the three sections below)
  DatabaseConfig = engine URL and pool settings
  LoggingConfig  = structured logging level
  WorkflowConfig = transaction workflow policies
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class DatabaseConfig:
    """Engine settings forwarded to ``init_engine_from_url``."""

    url: str
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    sqlite_busy_timeout: float = 30.0
    install_triggers: bool = True

    def engine_options(self) -> dict[str, object]:
        return {
            "pool_size": self.pool_size,
            "max_overflow": self.max_overflow,
            "pool_timeout": self.pool_timeout,
            "sqlite_busy_timeout": self.sqlite_busy_timeout,
        }


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class WorkflowConfig:
    """Transaction workflow policies."""

    # When true, only the reviewer named on a transaction may resolve it.
    # Otherwise any member holding approve-transactions may.
    enforce_named_reviewer: bool = False


@dataclass(frozen=True)
class ExpenseConfig:
    """Root configuration artifact."""

    config_id: str
    version: int
    database: DatabaseConfig
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    workflow: WorkflowConfig = field(default_factory=WorkflowConfig)
    checksum: str = ""
