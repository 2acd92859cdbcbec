"""Error taxonomy for purge sessions.

All of these unwind to PurgeSession.run(), which is the single point that
restores node isolation and maps the error to an exit status.
"""

from __future__ import annotations


class HistPurgeError(Exception):
    """Base class for errors raised by histpurge components."""


class QueryError(HistPurgeError):
    """A database statement failed or returned an unexpected shape.

    Always fatal to the session and never retried automatically.

    Attributes:
        statement: SQL text of the failing statement, when known
    """

    def __init__(self, message: str, *, statement: str | None = None) -> None:
        self.statement = statement
        if statement:
            message = f"{message} [statement: {statement}]"
        super().__init__(message)


class ControlError(HistPurgeError):
    """A cluster-control command failed.

    Fatal during isolation acquire. Logged only during release.

    Attributes:
        command: Raw command sent to the coordinator
        returncode: Process exit status, None if the command never ran
        output: Captured coordinator output, for diagnostics
    """

    def __init__(
        self,
        message: str,
        *,
        command: str | None = None,
        returncode: int | None = None,
        output: str | None = None,
    ) -> None:
        self.command = command
        self.returncode = returncode
        self.output = output
        if command is not None:
            message = f"{message} (command: {command!r}, status: {returncode})"
        super().__init__(message)


class SessionInterrupted(HistPurgeError):
    """Raised when a termination signal was received.

    This is NOT a failure by itself. It is a control flow signal that stops
    further work and routes to the restore-and-exit path.
    """

    def __init__(self, signum: int, *, where: str = "") -> None:
        self.signum = signum
        self.where = where
        detail = f" during {where}" if where else ""
        super().__init__(f"Interrupted by signal {signum}{detail}")
