"""Purge engine: IsolationController, PurgeEngine, PurgeSession."""

from histpurge.engine.isolation import IsolationController, IsolationHandle
from histpurge.engine.purge import HistoryGateway, PurgeEngine
from histpurge.engine.session import PurgeSession
from histpurge.engine.shutdown import ShutdownFlag, shutdown_handler_context

__all__ = [
    "HistoryGateway",
    "IsolationController",
    "IsolationHandle",
    "PurgeEngine",
    "PurgeSession",
    "ShutdownFlag",
    "shutdown_handler_context",
]
