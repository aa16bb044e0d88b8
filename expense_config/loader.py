"""
Configuration Loader (``expense_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the frozen
``expense_config.schema`` dataclasses.  This is internal tooling: runtime
code obtains configuration through ``expense_config.get_active_config()``.

Architecture position
---------------------
**Config layer**.  No dependency on the kernel or services.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; required keys never get silent defaults.
* Every parsed object is a frozen dataclass from ``schema.py``.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Wrongly typed values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from expense_config.schema import (
    DatabaseConfig,
    ExpenseConfig,
    LoggingConfig,
    WorkflowConfig,
)

_VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def _parse_bool(data: dict[str, Any], key: str, default: bool) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise ValueError(f"{key} must be true or false, got {value!r}")
    return value


def _parse_int(data: dict[str, Any], key: str, default: int) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer, got {value!r}")
    return value


def parse_database(data: dict[str, Any], url_override: str | None = None) -> DatabaseConfig:
    url = url_override or data["url"]
    if not isinstance(url, str) or not url:
        raise ValueError(f"database.url must be a non-empty string, got {url!r}")

    busy_timeout = data.get("sqlite_busy_timeout", 30.0)
    if isinstance(busy_timeout, bool) or not isinstance(busy_timeout, (int, float)):
        raise ValueError(f"sqlite_busy_timeout must be a number, got {busy_timeout!r}")

    return DatabaseConfig(
        url=url,
        echo=_parse_bool(data, "echo", False),
        pool_size=_parse_int(data, "pool_size", 20),
        max_overflow=_parse_int(data, "max_overflow", 10),
        pool_timeout=_parse_int(data, "pool_timeout", 30),
        sqlite_busy_timeout=float(busy_timeout),
        install_triggers=_parse_bool(data, "install_triggers", True),
    )


def parse_logging(data: dict[str, Any]) -> LoggingConfig:
    level = str(data.get("level", "INFO")).upper()
    if level not in _VALID_LOG_LEVELS:
        raise ValueError(f"logging.level must be one of {sorted(_VALID_LOG_LEVELS)}, got {level!r}")
    return LoggingConfig(level=level)


def parse_workflow(data: dict[str, Any]) -> WorkflowConfig:
    return WorkflowConfig(
        enforce_named_reviewer=_parse_bool(data, "enforce_named_reviewer", False),
    )


def parse_config(data: dict[str, Any], database_url: str | None = None) -> ExpenseConfig:
    """
    Parse a full ``ExpenseConfig`` from a dict.

    ``database_url``, when given, replaces ``database.url`` before parsing.
    The checksum is computed over the effective values.
    """
    database = parse_database(data.get("database") or {}, url_override=database_url)
    logging_section = parse_logging(data.get("logging") or {})
    workflow = parse_workflow(data.get("workflow") or {})

    effective = {
        "config_id": data["config_id"],
        "version": data["version"],
        "database": {**(data.get("database") or {}), "url": database.url},
        "logging": {"level": logging_section.level},
        "workflow": {"enforce_named_reviewer": workflow.enforce_named_reviewer},
    }

    return ExpenseConfig(
        config_id=str(data["config_id"]),
        version=_parse_int(data, "version", 0),
        database=database,
        logging=logging_section,
        workflow=workflow,
        checksum=compute_checksum(effective),
    )


def load_config(path: Path, database_url: str | None = None) -> ExpenseConfig:
    return parse_config(load_yaml_file(path), database_url=database_url)


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
