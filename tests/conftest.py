"""Shared test fixtures and helpers.

Provides in-memory doubles for the two gateways:
- FakeHistory: history database session (also acts as its own HistorySource)
- FakeControl: cluster coordinator

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/
"""

import os
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime

import pytest
from hypothesis import Phase, Verbosity, settings

from histpurge.contracts import ControlError, PurgeWatermark, QueryError

# =============================================================================
# Hypothesis Configuration
# =============================================================================

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


NOW = datetime(2026, 10, 18, 12, 0, 0)


class FakeHistory:
    """In-memory history gateway.

    Rows are (seqno, processed_tstamp) pairs. delete_expired() removes
    the first `limit` qualifying rows, like a bounded DELETE would.
    For large scenarios, `qualifying` replaces the row list with a plain
    counter of rows that all match the watermark.

    Asserts that replication logging is disabled before any delete.
    """

    def __init__(
        self,
        rows: list[tuple[int, datetime]] | None = None,
        *,
        progress_seqnos: list[int] | None = None,
        now: datetime | None = NOW,
        qualifying: int | None = None,
    ) -> None:
        self.rows = list(rows or [])
        self.qualifying = qualifying
        self.progress_seqnos = [1000] if progress_seqnos is None else list(progress_seqnos)
        self.now = now
        self.replication_logging_disabled = False
        self.calls: list[str] = []
        self.deletes: list[int] = []
        self.logging_flag_at_delete: list[bool] = []
        self.sessions_opened = 0
        self.on_delete: Callable[[int], None] | None = None
        self.fail_on_delete: int | None = None

    @classmethod
    def with_expired(cls, count: int, *, min_seqno: int = 10**9, **kwargs: object) -> "FakeHistory":
        """History holding `count` rows that all qualify for purge."""
        return cls(
            progress_seqnos=[min_seqno],
            qualifying=count,
            **kwargs,  # type: ignore[arg-type]
        )

    @contextmanager
    def session(self) -> Iterator["FakeHistory"]:
        self.sessions_opened += 1
        yield self

    def disable_replication_logging(self) -> None:
        self.calls.append("disable_replication_logging")
        self.replication_logging_disabled = True

    def min_committed_seqno(self) -> int | None:
        self.calls.append("min_committed_seqno")
        return min(self.progress_seqnos) if self.progress_seqnos else None

    def current_time(self) -> datetime | None:
        self.calls.append("current_time")
        return self.now

    def count_expired(self, watermark: PurgeWatermark) -> int:
        self.calls.append("count_expired")
        if self.qualifying is not None:
            return self.qualifying
        return sum(1 for seqno, ts in self.rows if watermark.covers(seqno, ts))

    def delete_expired(self, watermark: PurgeWatermark, limit: int) -> int:
        self.calls.append("delete_expired")
        assert self.replication_logging_disabled, "DELETE issued with replication logging enabled"
        self.logging_flag_at_delete.append(self.replication_logging_disabled)
        batch_number = len(self.deletes) + 1
        if self.fail_on_delete == batch_number:
            raise QueryError("Lock wait timeout exceeded", statement="DELETE FROM history")

        if self.qualifying is not None:
            deleted = min(limit, self.qualifying)
            self.qualifying -= deleted
        else:
            kept: list[tuple[int, datetime]] = []
            deleted = 0
            for seqno, ts in self.rows:
                if deleted < limit and watermark.covers(seqno, ts):
                    deleted += 1
                else:
                    kept.append((seqno, ts))
            self.rows = kept
        self.deletes.append(deleted)

        if self.on_delete is not None:
            self.on_delete(batch_number)
        return deleted


class FakeControl:
    """In-memory cluster coordinator.

    Records every command in the coordinator CLI's syntax so tests can
    count reads ("ls") and set-commands separately.
    """

    def __init__(
        self,
        *,
        policy: str = "automatic",
        states: dict[str, str] | None = None,
        fail_commands: set[str] | None = None,
    ) -> None:
        self.policy = policy
        self.states = dict(states or {"db1": "online"})
        self.fail_commands = set(fail_commands or ())
        self.commands: list[str] = []

    @property
    def set_commands(self) -> list[str]:
        return [c for c in self.commands if c != "ls"]

    def _record(self, command: str) -> None:
        self.commands.append(command)
        if command in self.fail_commands:
            raise ControlError("Control command failed", command=command, returncode=1)

    def get_policy_mode(self) -> str:
        self._record("ls")
        return self.policy

    def get_replicator_state(self, node: str) -> str:
        self._record("ls")
        return self.states[node]

    def set_policy_mode(self, mode: str) -> None:
        self._record(f"set policy {mode.lower()}")
        self.policy = mode.lower()

    def set_replicator_state(self, node: str, state: str) -> None:
        self._record(f"replicator {node} {state.lower()}")
        self.states[node] = state.lower()


@pytest.fixture(scope="session")
def make_history() -> type[FakeHistory]:
    """Factory for FakeHistory (session scoped so Hypothesis can use it)."""
    return FakeHistory


@pytest.fixture(scope="session")
def make_control() -> type[FakeControl]:
    """Factory for FakeControl."""
    return FakeControl


@pytest.fixture
def restore_logging() -> Iterator[None]:
    """Put root logging and structlog back after configure_logging() runs."""
    import logging

    import structlog

    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    yield
    for handler in root.handlers:
        if handler not in saved_handlers:
            handler.close()
    root.handlers = saved_handlers
    root.setLevel(saved_level)
    structlog.reset_defaults()
