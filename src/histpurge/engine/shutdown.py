"""Signal-driven shutdown for purge sessions.

Handlers never touch cluster or database state, and never log. They
only record the request; the session polls it between steps and runs the
single cleanup path. This keeps restoration out of signal context and
makes it happen exactly once.
"""

import signal
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from types import FrameType

from histpurge.contracts import SessionInterrupted

# Hangup, interrupt, terminate, broken pipe (where the platform has them)
SHUTDOWN_SIGNALS: tuple[str, ...] = ("SIGHUP", "SIGINT", "SIGTERM", "SIGPIPE")


class ShutdownFlag:
    """Records the first termination request.

    Later signals do not replace the first signal number.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._signum: int | None = None

    @property
    def signum(self) -> int | None:
        return self._signum

    def is_set(self) -> bool:
        return self._event.is_set()

    def request(self, signum: int) -> None:
        """Mark shutdown requested by signal `signum`."""
        if self._event.is_set():
            return
        self._signum = signum
        self._event.set()

    def raise_if_set(self, where: str) -> None:
        """Raise SessionInterrupted if shutdown was requested."""
        if self._event.is_set():
            raise SessionInterrupted(self._signum or 0, where=where)


def _available_signals() -> list[signal.Signals]:
    return [getattr(signal, name) for name in SHUTDOWN_SIGNALS if hasattr(signal, name)]


@contextmanager
def shutdown_handler_context(flag: ShutdownFlag) -> Iterator[ShutdownFlag]:
    """Install handlers for termination signals that set `flag`.

    When called from a non-main thread, signal registration is skipped
    (signal.signal() raises ValueError outside the main thread). The flag
    still works; it just won't be triggered by OS signals.

    Restores the original handlers in the finally block.
    """
    if threading.current_thread() is not threading.main_thread():
        yield flag
        return

    def _handler(signum: int, frame: FrameType | None) -> None:
        flag.request(signum)

    originals = {}
    for sig in _available_signals():
        originals[sig] = signal.getsignal(sig)
        signal.signal(sig, _handler)
    try:
        yield flag
    finally:
        for sig, original in originals.items():
            signal.signal(sig, original)
