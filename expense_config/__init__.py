"""
expense_config -- single public entrypoint for runtime configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration
    files or environment variables directly.

Architecture position:
    Configuration.  Sits above ``expense_kernel`` and below
    ``expense_services``.  The kernel MUST NEVER import from
    ``expense_config``; ``expense_services.runtime`` passes plain values
    (URLs, flags, levels) down into kernel constructors.

Invariants enforced:
    - Single entrypoint: all runtime config flows through
      ``get_active_config()``.
    - Deterministic identity: the same effective values always produce
      the same checksum.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``KeyError`` -- a required key is missing.
    - ``ValueError`` -- a value has the wrong type or is out of range.

Audit relevance:
    Every successful ``get_active_config()`` call emits an
    ``expense_config_loaded`` log entry with the config id, version, and
    checksum, tying runtime behaviour to the exact configuration in force.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from expense_config.loader import compute_checksum, load_config
from expense_config.schema import (
    DatabaseConfig,
    ExpenseConfig,
    LoggingConfig,
    WorkflowConfig,
)

_logger = logging.getLogger("expense_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults" / "default.yaml"

CONFIG_PATH_ENV = "EXPENSE_CONFIG"
DATABASE_URL_ENV = "DATABASE_URL"


def get_active_config(path: Path | str | None = None) -> ExpenseConfig:
    """The ONLY public configuration entrypoint.

    Resolution order for the file: ``path`` argument, then the
    ``EXPENSE_CONFIG`` environment variable, then the packaged default.
    ``DATABASE_URL``, when set, overrides ``database.url``.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
        KeyError: If a required key is missing.
        ValueError: If a value is malformed.
    """
    if path is None:
        path = os.environ.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH
    config = load_config(Path(path), database_url=os.environ.get(DATABASE_URL_ENV))

    _logger.info(
        "expense_config_loaded",
        extra={
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "enforce_named_reviewer": config.workflow.enforce_named_reviewer,
        },
    )
    return config


__all__ = [
    "CONFIG_PATH_ENV",
    "DATABASE_URL_ENV",
    "DEFAULT_CONFIG_PATH",
    "DatabaseConfig",
    "ExpenseConfig",
    "LoggingConfig",
    "WorkflowConfig",
    "compute_checksum",
    "get_active_config",
]
