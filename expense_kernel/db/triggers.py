"""
Module: expense_kernel.db.triggers
Responsibility: Loading, installing, and verifying database immutability
    triggers (Layer 2 of 2).  This is the database-level complement to the
    ORM-level listeners in db/immutability.py.
Architecture position: Kernel > DB.  May import from db/ only (pathlib for
    SQL file loading, sqlalchemy for execution).  MUST NOT import from
    models/, services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - AuditRecord rows: no UPDATE, no DELETE.
    - Transaction rows: no UPDATE once state is approved or rejected.

SQL layout:
    db/sql/<dialect>/NN_name.sql, one directory per supported dialect
    (postgresql, sqlite).  Statements inside a file are separated by a line
    containing only ``--;;`` so that trigger bodies may contain semicolons.

Failure modes:
    - Database error (IntegrityError on both dialects) on any trigger
      violation.
    - FileNotFoundError if the dialect has no SQL directory.
"""

from pathlib import Path

from sqlalchemy import bindparam, text
from sqlalchemy.engine import Engine

from expense_kernel.logging_config import get_logger

logger = get_logger("db.triggers")

SQL_DIR = Path(__file__).parent / "sql"

STATEMENT_SEPARATOR = "--;;"

TRIGGER_FILES = [
    "01_audit_records.sql",
    "02_transactions.sql",
]

DROP_FILE = "99_drop_all.sql"

ALL_TRIGGER_NAMES = [
    "trg_audit_record_immutability_update",
    "trg_audit_record_immutability_delete",
    "trg_transaction_resolved_immutability",
]


def _load_sql_file(dialect: str, filename: str) -> str:
    return (SQL_DIR / dialect / filename).read_text(encoding="utf-8")


def _split_statements(sql_content: str) -> list[str]:
    statements = []
    for chunk in sql_content.split(STATEMENT_SEPARATOR):
        if chunk.strip():
            statements.append(chunk.strip())
    return statements


def _execute_file(engine: Engine, filename: str) -> None:
    dialect = engine.dialect.name
    statements = _split_statements(_load_sql_file(dialect, filename))
    with engine.begin() as conn:
        for statement in statements:
            conn.execute(text(statement))


# =============================================================================
# Public API
# =============================================================================


def install_immutability_triggers(engine: Engine) -> None:
    """
    Install database-level immutability triggers for the engine's dialect.

    Preconditions: Tables must exist (call after create_all()).
    Postconditions: Every trigger in ALL_TRIGGER_NAMES is installed.
        Installation is idempotent.
    """
    for filename in TRIGGER_FILES:
        _execute_file(engine, filename)
    logger.info(
        "immutability_triggers_installed",
        extra={"dialect": engine.dialect.name, "files": TRIGGER_FILES},
    )


def uninstall_immutability_triggers(engine: Engine) -> None:
    """
    Remove database-level immutability triggers.

    Only for teardown and for migrations that must rewrite history;
    re-install immediately afterwards.
    """
    _execute_file(engine, DROP_FILE)
    logger.warning(
        "immutability_triggers_uninstalled",
        extra={"dialect": engine.dialect.name},
    )


def get_installed_triggers(engine: Engine) -> list[str]:
    """List the immutability triggers currently present in the database."""
    if engine.dialect.name == "postgresql":
        sql = "SELECT tgname FROM pg_trigger WHERE tgname IN :names ORDER BY tgname"
    else:
        sql = (
            "SELECT name FROM sqlite_master "
            "WHERE type = 'trigger' AND name IN :names ORDER BY name"
        )
    query = text(sql).bindparams(
        bindparam("names", value=list(ALL_TRIGGER_NAMES), expanding=True)
    )

    with engine.connect() as conn:
        return [row[0] for row in conn.execute(query)]


def triggers_installed(engine: Engine) -> bool:
    return len(get_installed_triggers(engine)) == len(ALL_TRIGGER_NAMES)


def get_missing_triggers(engine: Engine) -> list[str]:
    installed = set(get_installed_triggers(engine))
    return sorted(set(ALL_TRIGGER_NAMES) - installed)
