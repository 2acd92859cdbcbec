"""All status codes, modes, and states used across subsystem boundaries.

Cluster-facing values (PolicyMode, ReplicatorState) are stored lowercase,
matching how the coordinator CLI accepts them in commands. Parsed values the
coordinator reports outside these enums are carried as plain strings.
"""

from enum import Enum


class PolicyMode(str, Enum):
    """Cluster-wide automation mode reported by the coordinator.

    Uses (str, Enum) so members compare equal to parsed coordinator output.
    """

    AUTOMATIC = "automatic"
    MANUAL = "manual"
    MAINTENANCE = "maintenance"


class ReplicatorState(str, Enum):
    """Run-state of a node's replicator.

    Only the states this tool transitions between are listed. The coordinator
    may report others (e.g. "synchronizing") and those are kept as strings.
    """

    ONLINE = "online"
    OFFLINE = "offline"


class PurgeOutcome(str, Enum):
    """Final outcome of a purge session.

    Values:
        NO_ROWS: First delete found nothing to remove
        COMPLETED: Qualifying set exhausted after at least one deleted row
        FAILED: Fatal error or interruption before the purge finished
        ESTIMATED: Estimate-only run, no data mutated
    """

    NO_ROWS = "no_rows"
    COMPLETED = "completed"
    FAILED = "failed"
    ESTIMATED = "estimated"

    @property
    def is_success(self) -> bool:
        """Whether this outcome maps to a zero exit status."""
        return self is not PurgeOutcome.FAILED


class SessionState(str, Enum):
    """Purge session state machine.

    START -> (ISOLATING) -> PURGING -> (RESTORING) -> DONE
    ABORTED is reachable from any state.
    """

    START = "start"
    ISOLATING = "isolating"
    PURGING = "purging"
    RESTORING = "restoring"
    DONE = "done"
    ABORTED = "aborted"
