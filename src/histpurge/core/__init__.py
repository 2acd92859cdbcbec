"""Core infrastructure: Configuration, Logging, Database and Control gateways."""

from histpurge.core.config import (
    ControlSettings,
    DatabaseSettings,
    HistPurgeSettings,
    LoggingSettings,
    PurgeSettings,
    apply_overrides,
    load_settings,
)
from histpurge.core.control import (
    CctrlClient,
    ClusterControlClient,
    parse_policy_mode,
    parse_replicator_state,
)
from histpurge.core.database import HistoryDB, HistorySession
from histpurge.core.logging import (
    configure_logging,
    get_logger,
)
from histpurge.core.schema import HistoryTables, build_tables

__all__ = [
    "CctrlClient",
    "ClusterControlClient",
    "ControlSettings",
    "DatabaseSettings",
    "HistPurgeSettings",
    "HistoryDB",
    "HistorySession",
    "HistoryTables",
    "LoggingSettings",
    "PurgeSettings",
    "apply_overrides",
    "build_tables",
    "configure_logging",
    "get_logger",
    "load_settings",
    "parse_policy_mode",
    "parse_replicator_state",
]
