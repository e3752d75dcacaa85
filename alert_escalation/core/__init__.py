"""Core infrastructure components."""

from alert_escalation.core.config import Settings, get_settings
from alert_escalation.core.database import (
    Base,
    close_db,
    get_db,
    get_engine,
    get_session,
    get_session_factory,
    init_db,
)
from alert_escalation.core.logging import (
    get_correlation_id,
    get_logger,
    set_correlation_id,
    setup_logging,
)

__all__ = [
    "Base",
    "Settings",
    "close_db",
    "get_correlation_id",
    "get_db",
    "get_engine",
    "get_logger",
    "get_session",
    "get_session_factory",
    "get_settings",
    "init_db",
    "set_correlation_id",
    "setup_logging",
]
