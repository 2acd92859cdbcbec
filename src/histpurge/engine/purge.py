"""Purge engine for expired replication history.

Computes the purge watermark and removes qualifying rows in bounded
batches. Each batch is one DELETE, so the storage engine's lock usage is
bounded by batch_size and an interruption never leaves a partial batch.
"""

from datetime import datetime, timedelta
from time import perf_counter
from typing import Protocol

from histpurge.contracts import (
    PurgeOutcome,
    PurgeSessionResult,
    PurgeWatermark,
    QueryError,
)
from histpurge.core.logging import get_logger
from histpurge.engine.shutdown import ShutdownFlag

logger = get_logger(__name__)


class HistoryGateway(Protocol):
    """Protocol for the database session used by PurgeEngine.

    Implemented by HistorySession; tests substitute an in-memory double.
    """

    replication_logging_disabled: bool

    def disable_replication_logging(self) -> None: ...

    def min_committed_seqno(self) -> int | None: ...

    def current_time(self) -> datetime | None: ...

    def count_expired(self, watermark: PurgeWatermark) -> int: ...

    def delete_expired(self, watermark: PurgeWatermark, limit: int) -> int: ...


class PurgeEngine:
    """Runs the watermark computation and the batch-delete loop.

    The optional shutdown flag is polled before every DELETE. A set
    flag stops the loop with SessionInterrupted; rows already deleted
    stay deleted.
    """

    def __init__(
        self,
        history: HistoryGateway,
        *,
        shutdown: ShutdownFlag | None = None,
    ) -> None:
        """Initialize PurgeEngine.

        Args:
            history: Database session for the purge
            shutdown: Set when a termination signal arrives
        """
        self._history = history
        self._shutdown = shutdown

    def compute_watermark(self, retention_days: int) -> PurgeWatermark:
        """Compute the boundary below which rows may be deleted.

        Args:
            retention_days: Rows processed longer ago than this are eligible

        Raises:
            QueryError: If either query fails or returns no value. With
                no committed seqno there is no safe watermark.
        """
        if retention_days < 0:
            raise ValueError(f"retention_days must be >= 0, got {retention_days}")

        min_seqno = self._history.min_committed_seqno()
        if min_seqno is None:
            raise QueryError("No committed seqno in replication progress table, no safe watermark")

        now = self._history.current_time()
        if now is None:
            raise QueryError("Database returned no current time")

        watermark = PurgeWatermark(
            min_committed_seqno=min_seqno,
            expire_cutoff=now - timedelta(days=retention_days),
        )
        logger.info(
            "Computed purge watermark",
            min_committed_seqno=watermark.min_committed_seqno,
            expire_cutoff=watermark.expire_cutoff.isoformat(),
            retention_days=retention_days,
        )
        return watermark

    def estimate(self, watermark: PurgeWatermark) -> int:
        """Count rows the purge would delete. Never mutates data.

        May force a full table scan; skip it on production runs.
        """
        start = perf_counter()
        count = self._history.count_expired(watermark)
        logger.info(
            "Estimated eligible rows",
            rows=count,
            duration_seconds=round(perf_counter() - start, 3),
        )
        return count

    def purge_batches(
        self,
        watermark: PurgeWatermark,
        batch_size: int,
        result: PurgeSessionResult | None = None,
    ) -> PurgeSessionResult:
        """Delete qualifying rows in batches of at most batch_size.

        Loop termination, checked in this order after each DELETE:
        1. Nothing deleted overall: NO_ROWS.
        2. This batch deleted exactly batch_size: more may remain, continue.
        3. Otherwise the qualifying set is exhausted: COMPLETED.

        With an exact multiple of batch_size rows the final iteration
        deletes 0 rows before completion is recognized.

        Args:
            watermark: Boundary computed for this session
            batch_size: Maximum rows per DELETE
            result: Accumulator to update in place, so a caller still
                sees partial totals if this raises

        Raises:
            QueryError: On any failed DELETE
            SessionInterrupted: If shutdown is requested between batches
        """
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        if result is None:
            result = PurgeSessionResult()
        result.watermark = watermark

        self._history.disable_replication_logging()
        if not self._history.replication_logging_disabled:
            raise QueryError("Replication logging could not be disabled, refusing to purge")

        start = perf_counter()
        while True:
            if self._shutdown is not None:
                self._shutdown.raise_if_set("purge")

            rows = self._history.delete_expired(watermark, batch_size)
            batch = result.record_batch(rows)
            logger.info(
                "Purged batch",
                batch=batch.batch_number,
                rows=rows,
                total=result.total_rows_deleted,
                elapsed_seconds=round(perf_counter() - start, 3),
            )

            if result.total_rows_deleted == 0:
                result.outcome = PurgeOutcome.NO_ROWS
                logger.info("No rows eligible for purge")
                break
            if rows == batch_size:
                continue
            result.outcome = PurgeOutcome.COMPLETED
            break

        if result.outcome is PurgeOutcome.COMPLETED:
            logger.info(
                "Purge completed",
                total=result.total_rows_deleted,
                batches=len(result.batches),
                duration_seconds=round(perf_counter() - start, 3),
            )
        return result

