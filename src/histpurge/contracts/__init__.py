"""Shared contracts for cross-boundary data types.

All dataclasses, enums, and errors that cross subsystem boundaries
are defined here.

Import pattern:
    from histpurge.contracts import NodeState, PurgeWatermark, QueryError
"""

from histpurge.contracts.enums import (
    PolicyMode,
    PurgeOutcome,
    ReplicatorState,
    SessionState,
)
from histpurge.contracts.errors import (
    ControlError,
    HistPurgeError,
    QueryError,
    SessionInterrupted,
)
from histpurge.contracts.results import (
    EXIT_FAILURE,
    EXIT_SIGNAL_BASE,
    EXIT_SUCCESS,
    BatchResult,
    NodeState,
    PurgeSessionResult,
    PurgeWatermark,
)

__all__ = [
    "EXIT_FAILURE",
    "EXIT_SIGNAL_BASE",
    "EXIT_SUCCESS",
    "BatchResult",
    "ControlError",
    "HistPurgeError",
    "NodeState",
    "PolicyMode",
    "PurgeOutcome",
    "PurgeSessionResult",
    "PurgeWatermark",
    "QueryError",
    "ReplicatorState",
    "SessionInterrupted",
    "SessionState",
]
