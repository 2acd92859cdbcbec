"""Node isolation around the purge.

Isolation takes the node out of automatic policy control and stops its
replicator while history is deleted. The state captured beforehand is the
only target release() restores to.

Usage:
    controller = IsolationController(control, node="db1")
    handle = controller.lease()
    try:
        handle.acquire()
        ...  # critical section
    finally:
        handle.release()
"""

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from enum import Enum

from histpurge.contracts import ControlError, NodeState, PolicyMode, ReplicatorState
from histpurge.core.control import ClusterControlClient
from histpurge.core.logging import get_logger

logger = get_logger(__name__)


def _plain(value: str | Enum) -> str:
    return value.value if isinstance(value, Enum) else value


class IsolationHandle:
    """Release handle owning the saved NodeState for one session.

    The saved state is filled in field by field during acquire(), so a
    failure halfway still leaves whatever was read available to release().
    release() runs its transitions at most once.
    """

    def __init__(self, control: ClusterControlClient, node: str) -> None:
        self._control = control
        self._node = node
        self._saved = NodeState()
        self._acquired = False
        self._released = False

    @property
    def node(self) -> str:
        return self._node

    @property
    def saved_state(self) -> NodeState:
        """State captured before isolation (possibly partial)."""
        return self._saved

    @property
    def acquired(self) -> bool:
        return self._acquired

    @property
    def released(self) -> bool:
        return self._released

    def acquire(self) -> NodeState:
        """Snapshot the node, then set policy MANUAL and replicator OFFLINE.

        Returns:
            The saved NodeState

        Raises:
            ControlError: If reading state or a transition command fails.
                The caller must not purge, but must still call release().
        """
        if self._acquired:
            return self._saved
        if self._released:
            raise RuntimeError("Isolation handle already released")

        policy = self._control.get_policy_mode()
        self._saved = NodeState(policy_mode=policy)
        replicator = self._control.get_replicator_state(self._node)
        self._saved = NodeState(policy_mode=policy, replicator_state=replicator)
        logger.info(
            "Saved node state",
            node=self._node,
            policy_mode=policy,
            replicator_state=replicator,
        )

        self._transition(
            "policy mode",
            current=policy,
            target=PolicyMode.MANUAL,
            apply=self._control.set_policy_mode,
        )
        self._transition(
            "replicator state",
            current=replicator,
            target=ReplicatorState.OFFLINE,
            apply=lambda state: self._control.set_replicator_state(self._node, state),
        )
        self._acquired = True
        logger.info("Node isolated", node=self._node)
        return self._saved

    def release(self) -> bool:
        """Restore the saved replicator state, then the saved policy mode.

        Safe to call any number of times and on a handle that never
        acquired. Never raises: failures are logged because the process
        must still be able to exit. The node may then need manual repair.

        Returns:
            True if every captured field is confirmed restored
        """
        if self._released:
            logger.debug("Isolation already released", node=self._node)
            return True
        self._released = True

        if self._saved.is_empty:
            logger.debug("No saved node state, nothing to restore", node=self._node)
            return True

        ok = True
        if self._saved.replicator_state is not None:
            ok &= self._restore(
                "replicator state",
                read=lambda: self._control.get_replicator_state(self._node),
                target=self._saved.replicator_state,
                apply=lambda state: self._control.set_replicator_state(self._node, state),
            )
        if self._saved.policy_mode is not None:
            ok &= self._restore(
                "policy mode",
                read=self._control.get_policy_mode,
                target=self._saved.policy_mode,
                apply=self._control.set_policy_mode,
            )

        if ok:
            logger.info(
                "Node state restored",
                node=self._node,
                policy_mode=self._saved.policy_mode,
                replicator_state=self._saved.replicator_state,
            )
        else:
            logger.error(
                "Node state NOT fully restored, manual correction required",
                node=self._node,
                policy_mode=self._saved.policy_mode,
                replicator_state=self._saved.replicator_state,
            )
        return ok

    def _transition(
        self,
        what: str,
        *,
        current: str,
        target: str,
        apply: Callable[[str], None],
    ) -> bool:
        """Apply target unless already there. Returns True if a command ran."""
        if current == target:
            logger.info(f"{what.capitalize()} already {_plain(target)}", node=self._node)
            return False
        logger.info(f"Setting {what}", node=self._node, current=current, target=_plain(target))
        apply(target)
        return True

    def _restore(
        self,
        what: str,
        *,
        read: Callable[[], str],
        target: str,
        apply: Callable[[str], None],
    ) -> bool:
        try:
            current = read()
            self._transition(what, current=current, target=target, apply=apply)
        except ControlError as e:
            logger.error(f"Failed to restore {what}", node=self._node, target=target, error=str(e))
            return False
        except Exception as e:
            # release() never raises
            logger.exception(f"Unexpected error restoring {what}", node=self._node, error=str(e))
            return False
        return True


class IsolationController:
    """Snapshots and restores node policy mode and replicator state.

    Has no database access. Owns NodeState exclusively for the session.
    """

    def __init__(self, control: ClusterControlClient, node: str) -> None:
        self._control = control
        self._node = node

    @property
    def node(self) -> str:
        return self._node

    def lease(self) -> IsolationHandle:
        """Create the release handle for one isolation cycle."""
        return IsolationHandle(self._control, self._node)

    def snapshot(self) -> NodeState:
        """Read the node's current state without changing it."""
        return NodeState(
            policy_mode=self._control.get_policy_mode(),
            replicator_state=self._control.get_replicator_state(self._node),
        )

    @contextmanager
    def isolated(self) -> Iterator[NodeState]:
        """Isolate the node for the duration of the block.

        Release runs exactly once however the block exits, including
        when acquire itself fails partway.
        """
        handle = self.lease()
        try:
            yield handle.acquire()
        finally:
            handle.release()
