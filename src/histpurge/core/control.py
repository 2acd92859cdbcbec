"""Cluster control gateway.

ClusterControlClient is the typed capability the isolation controller
depends on. CctrlClient is the one adapter that talks to the coordinator
CLI; all parsing of its free-text output is confined to the two parse_*
functions below so format drift breaks in exactly one place.
"""

import re
import subprocess
from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from histpurge.contracts import ControlError
from histpurge.core.logging import get_logger

logger = get_logger(__name__)

# COORDINATOR[db1:AUTOMATIC:ONLINE]
_COORDINATOR_PATTERN = re.compile(r"COORDINATOR\[[^:\]]+:([A-Za-z_-]+):[^\]]*\]")
# |db1(master:ONLINE, progress=123, THL latency=0.5)
_DATASOURCE_PATTERN = re.compile(r"^\|([\w.@-]+)\(")
# |  REPLICATOR(role=master, state=ONLINE)
_REPLICATOR_PATTERN = re.compile(r"^\|\s+REPLICATOR\([^)]*\bstate=([A-Za-z_-]+)")


@runtime_checkable
class ClusterControlClient(Protocol):
    """Protocol for cluster coordinator access.

    Values are lowercase strings so they compare equal to PolicyMode and
    ReplicatorState members. Every method raises ControlError on failure.
    """

    def get_policy_mode(self) -> str:
        """Return the coordinator's current policy mode."""
        ...

    def get_replicator_state(self, node: str) -> str:
        """Return the replicator run-state reported for a node."""
        ...

    def set_policy_mode(self, mode: str) -> None:
        """Switch the cluster policy mode."""
        ...

    def set_replicator_state(self, node: str, state: str) -> None:
        """Switch a node's replicator run-state."""
        ...


def parse_policy_mode(output: str) -> str | None:
    """Extract the policy mode from `ls` output.

    Returns:
        Lowercase policy mode, or None if no COORDINATOR line was found
    """
    match = _COORDINATOR_PATTERN.search(output)
    return match.group(1).lower() if match else None


def parse_replicator_state(output: str, node: str) -> str | None:
    """Extract a node's replicator state from `ls` output.

    Scans datasource blocks in order; the REPLICATOR line belongs to the
    most recent datasource header above it.

    Returns:
        Lowercase replicator state, or None if the node or its
        REPLICATOR line is missing
    """
    current: str | None = None
    for line in output.splitlines():
        header = _DATASOURCE_PATTERN.match(line)
        if header:
            current = header.group(1)
            continue
        if current != node:
            continue
        replicator = _REPLICATOR_PATTERN.match(line)
        if replicator:
            return replicator.group(1).lower()
    return None


class CctrlClient:
    """Runs coordinator commands through the cctrl CLI.

    Each command is written to the CLI's stdin in a fresh process, so
    no coordinator session state carries over between calls.

    Example:
        client = CctrlClient(["cctrl", "-expert"], timeout=120)
        if client.get_policy_mode() != "manual":
            client.set_policy_mode("manual")
    """

    def __init__(self, command: Sequence[str] = ("cctrl", "-expert"), *, timeout: float = 120.0) -> None:
        """Initialize client.

        Args:
            command: argv that starts the coordinator CLI
            timeout: Seconds to wait for one command
        """
        self._argv = list(command)
        self._timeout = timeout

    def run(self, command: str) -> str:
        """Run one control command and return its output.

        Raises:
            ControlError: If the CLI is missing, times out, or exits non-zero
        """
        logger.debug("Control command", command=command)
        try:
            completed = subprocess.run(
                self._argv,
                input=f"{command}\n",
                capture_output=True,
                text=True,
                timeout=self._timeout,
                check=False,
                # Terminal SIGINT/SIGHUP reach only this process, not the CLI
                start_new_session=True,
            )
        except FileNotFoundError as e:
            raise ControlError(f"Control CLI not found: {self._argv[0]}", command=command) from e
        except subprocess.TimeoutExpired as e:
            raise ControlError(
                f"Control command timed out after {self._timeout}s", command=command
            ) from e

        if completed.returncode != 0:
            raise ControlError(
                "Control command failed",
                command=command,
                returncode=completed.returncode,
                output=(completed.stdout or "") + (completed.stderr or ""),
            )
        return completed.stdout

    def get_policy_mode(self) -> str:
        output = self.run("ls")
        mode = parse_policy_mode(output)
        if mode is None:
            raise ControlError("No policy mode in coordinator output", command="ls", returncode=0, output=output)
        return mode

    def get_replicator_state(self, node: str) -> str:
        output = self.run("ls")
        state = parse_replicator_state(output, node)
        if state is None:
            raise ControlError(
                f"No replicator state for node '{node}' in coordinator output",
                command="ls",
                returncode=0,
                output=output,
            )
        return state

    def set_policy_mode(self, mode: str) -> None:
        self.run(f"set policy {mode.lower()}")

    def set_replicator_state(self, node: str, state: str) -> None:
        self.run(f"replicator {node} {state.lower()}")
