"""Purge session: full lifecycle of one purge run.

Coordinates:
- Session start announcement
- History database session (binary logging off for the whole session)
- Node isolation (optional)
- Watermark computation and batch purge (or estimate only)
- Guaranteed, single restoration of node state
- Translation of the outcome into an exit status

State machine:
    START -> (ISOLATING) -> PURGING -> (RESTORING) -> DONE
    ABORTED is reachable from any state.
"""

from contextlib import AbstractContextManager, nullcontext
from typing import Protocol

from histpurge.contracts import (
    HistPurgeError,
    PurgeOutcome,
    PurgeSessionResult,
    SessionInterrupted,
    SessionState,
)
from histpurge.core.config import PurgeSettings
from histpurge.core.logging import get_logger
from histpurge.engine.isolation import IsolationController, IsolationHandle
from histpurge.engine.purge import HistoryGateway, PurgeEngine
from histpurge.engine.shutdown import ShutdownFlag, shutdown_handler_context

logger = get_logger(__name__)


class HistorySource(Protocol):
    """Anything that can open a history gateway session (HistoryDB)."""

    def session(self) -> AbstractContextManager[HistoryGateway]: ...


class PurgeSession:
    """Orchestrates one purge session.

    This is the single point that catches fatal errors, restores node
    isolation, and decides the exit status. Components below it only
    raise.

    Example:
        session = PurgeSession(db, settings.purge, isolation=controller, node="db1")
        result = session.run()
        raise SystemExit(result.exit_code)
    """

    def __init__(
        self,
        database: HistorySource,
        settings: PurgeSettings,
        *,
        node: str,
        isolation: IsolationController | None = None,
        shutdown: ShutdownFlag | None = None,
        install_signal_handlers: bool = True,
    ) -> None:
        """Initialize session.

        Args:
            database: Opens the history database session
            settings: Retention, batching, and mode toggles
            node: Cluster node being purged (for the audit log)
            isolation: Required when settings.isolate is True
            shutdown: Pre-created shutdown flag (tests set it directly)
            install_signal_handlers: Register SIGHUP/SIGINT/SIGTERM/SIGPIPE
                handlers for the duration of run()
        """
        if settings.isolate and not settings.estimate_only and isolation is None:
            raise ValueError("isolate=True requires an IsolationController")
        self._database = database
        self._settings = settings
        self._node = node
        self._isolation = isolation
        self._shutdown = shutdown or ShutdownFlag()
        self._install_signal_handlers = install_signal_handlers
        self._state = SessionState.START

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def shutdown(self) -> ShutdownFlag:
        return self._shutdown

    def _transition(self, state: SessionState, result: PurgeSessionResult) -> None:
        logger.info("Session state", previous=self._state.value, state=state.value, node=self._node)
        self._state = state
        result.final_state = state

    def _signal_context(self) -> AbstractContextManager[ShutdownFlag]:
        if self._install_signal_handlers:
            return shutdown_handler_context(self._shutdown)
        return nullcontext(self._shutdown)

    def run(self) -> PurgeSessionResult:
        """Run the session to completion. Never raises for session errors.

        Returns:
            Final result; result.exit_code is the process exit status
        """
        settings = self._settings
        result = PurgeSessionResult()
        isolate = settings.isolate and not settings.estimate_only
        handle: IsolationHandle | None = None

        logger.info(
            "Purge session starting",
            node=self._node,
            retention_days=settings.retention_days,
            batch_size=settings.batch_size,
            isolate=isolate,
            estimate_only=settings.estimate_only,
        )

        with self._signal_context():
            try:
                self._shutdown.raise_if_set("start")
                with self._database.session() as history:
                    if isolate:
                        assert self._isolation is not None  # Checked in __init__
                        handle = self._isolation.lease()
                        self._transition(SessionState.ISOLATING, result)
                        handle.acquire()
                        self._shutdown.raise_if_set("isolation")

                    self._transition(SessionState.PURGING, result)
                    self._purge(history, result)

            except SessionInterrupted as e:
                result.outcome = PurgeOutcome.FAILED
                result.interrupted_by = e.signum
                result.error = str(e)
                logger.warning("Cleaning up after signal", signal=e.signum, during=e.where, node=self._node)
            except HistPurgeError as e:
                result.outcome = PurgeOutcome.FAILED
                result.error = str(e)
                logger.error(
                    "Purge session failed, cleaning up",
                    error=str(e),
                    error_type=type(e).__name__,
                    state=self._state.value,
                )
            except Exception as e:
                result.outcome = PurgeOutcome.FAILED
                result.error = str(e)
                logger.exception("Unexpected error, cleaning up", error=str(e), state=self._state.value)
            finally:
                if handle is not None:
                    self._transition(SessionState.RESTORING, result)
                    handle.release()

            if self._shutdown.is_set() and result.outcome.is_success:
                logger.warning(
                    "Signal received after purge finished, outcome unchanged",
                    signal=self._shutdown.signum,
                )

        final = SessionState.DONE if result.outcome.is_success else SessionState.ABORTED
        self._transition(final, result)
        logger.info(
            "Purge session finished",
            node=self._node,
            outcome=result.outcome.value,
            total_rows_deleted=result.total_rows_deleted,
            batches=len(result.batches),
            exit_code=result.exit_code,
        )
        return result

    def _purge(self, history: HistoryGateway, result: PurgeSessionResult) -> None:
        settings = self._settings
        engine = PurgeEngine(history, shutdown=self._shutdown)

        watermark = engine.compute_watermark(settings.retention_days)
        result.watermark = watermark
        self._shutdown.raise_if_set("watermark")

        if settings.estimate_only:
            result.estimated_rows = engine.estimate(watermark)
            result.outcome = PurgeOutcome.ESTIMATED
            return

        if settings.count_before_purge:
            result.estimated_rows = engine.estimate(watermark)
            self._shutdown.raise_if_set("estimate")

        engine.purge_batches(watermark, settings.batch_size, result)

