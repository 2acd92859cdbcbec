"""Values produced and consumed across the purge session.

These types answer: "What state is the node in?" and "What did the purge do?"
"""

from dataclasses import dataclass, field
from datetime import datetime

from histpurge.contracts.enums import PurgeOutcome, SessionState

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_SIGNAL_BASE = 128


@dataclass(frozen=True)
class PurgeWatermark:
    """Boundary below which history rows are safe to delete.

    A row qualifies only if BOTH hold:
    - processed_tstamp <= expire_cutoff
    - seqno < min_committed_seqno

    The seqno guard keeps history still needed to resume replication,
    however old it is on the wall clock.
    """

    min_committed_seqno: int
    expire_cutoff: datetime

    def covers(self, seqno: int, processed_tstamp: datetime) -> bool:
        """Whether a row with these values qualifies for deletion."""
        return processed_tstamp <= self.expire_cutoff and seqno < self.min_committed_seqno


@dataclass(frozen=True)
class NodeState:
    """Policy mode and replicator run-state captured before isolation.

    Either field is None when the snapshot was interrupted before it could
    be read. Only captured fields are restored.
    """

    policy_mode: str | None = None
    replicator_state: str | None = None

    @property
    def is_empty(self) -> bool:
        """True when nothing was captured."""
        return self.policy_mode is None and self.replicator_state is None


@dataclass(frozen=True)
class BatchResult:
    """Outcome of one bounded delete statement."""

    batch_number: int
    rows_deleted: int


@dataclass
class PurgeSessionResult:
    """Accumulated result of a purge session.

    Built up by PurgeEngine and finalized by PurgeSession. The final value
    is logged and determines the process exit status.
    """

    total_rows_deleted: int = 0
    outcome: PurgeOutcome = PurgeOutcome.FAILED
    batches: list[BatchResult] = field(default_factory=list)
    final_state: SessionState = SessionState.START
    watermark: PurgeWatermark | None = None
    estimated_rows: int | None = None
    interrupted_by: int | None = None
    error: str | None = None

    def record_batch(self, rows_deleted: int) -> BatchResult:
        """Append a batch and add its rows to the running total."""
        batch = BatchResult(batch_number=len(self.batches) + 1, rows_deleted=rows_deleted)
        self.batches.append(batch)
        self.total_rows_deleted += rows_deleted
        return batch

    @property
    def exit_code(self) -> int:
        """Process exit status for this result.

        Signal-driven aborts use the shell convention 128 + signum.
        """
        if self.outcome.is_success:
            return EXIT_SUCCESS
        if self.interrupted_by is not None:
            return EXIT_SIGNAL_BASE + self.interrupted_by
        return EXIT_FAILURE
