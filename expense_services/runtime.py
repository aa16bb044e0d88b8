"""
expense_services.runtime -- process start-up.

``bootstrap`` performs, in order: logging configuration, engine
initialization, table creation (with database immutability triggers when
configured), and ORM immutability listener registration.  Calling it twice
replaces the engine.
"""

from __future__ import annotations

from sqlalchemy.engine import Engine

from expense_config import ExpenseConfig, get_active_config
from expense_kernel.db.engine import (
    create_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from expense_kernel.db.immutability import register_immutability_listeners
from expense_kernel.domain.clock import Clock
from expense_kernel.logging_config import configure_logging, get_logger
from expense_services.gateway import ExpenseGateway

logger = get_logger("services.runtime")


def bootstrap(config: ExpenseConfig | None = None) -> Engine:
    """Initialize logging, the engine, the schema, and immutability guards."""
    config = config or get_active_config()

    configure_logging(level=config.logging.level)

    reset_engine()
    engine = init_engine_from_url(
        config.database.url,
        echo=config.database.echo,
        **config.database.engine_options(),
    )
    create_tables(engine, install_triggers=config.database.install_triggers)
    register_immutability_listeners()

    logger.info(
        "runtime_bootstrapped",
        extra={
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "dialect": engine.dialect.name,
        },
    )
    return engine


def build_gateway(
    config: ExpenseConfig | None = None,
    clock: Clock | None = None,
) -> ExpenseGateway:
    """Bootstrap the runtime and return a gateway over its session factory."""
    config = config or get_active_config()
    bootstrap(config)
    return ExpenseGateway(
        get_session_factory(),
        clock=clock,
        workflow_config=config.workflow,
    )
