"""Liveness polling for monitored containers."""

from __future__ import annotations

import logging
import threading

from cpu_monitor.core.constants import DEFAULT_POLL_INTERVAL_SECONDS
from cpu_monitor.monitoring.base import StateSnapshotter

logger = logging.getLogger(__name__)


class LivenessPoller:
    """Periodically snapshots a container's run state.

    The poller has two states, running and terminated. It terminates the
    first time a snapshot reports a status other than ``running`` or the
    snapshot call raises; a failed snapshot counts as "not running".
    """

    def __init__(
        self,
        snapshot_state: StateSnapshotter,
        interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self._snapshot_state = snapshot_state
        self.interval_seconds = interval_seconds

    def check(self, container_id: str) -> str | None:
        """Take one snapshot.

        Returns:
            None while the container is running, otherwise the reason the
            container is considered gone.
        """
        try:
            state = self._snapshot_state(container_id)
        except Exception as e:
            logger.warning(f"State snapshot failed for {container_id[:12]}: {e}")
            return f"state snapshot failed: {e}"

        if not state.is_running:
            return f"container status is {state.status!r}"
        return None

    def run(self, container_id: str, cancelled: threading.Event) -> str | None:
        """Poll until the container stops or ``cancelled`` is set.

        Blocks the calling thread. The first snapshot is taken one interval
        after the call.

        Returns:
            The termination reason, or None if polling was cancelled.
        """
        while not cancelled.wait(self.interval_seconds):
            reason = self.check(container_id)
            if reason is not None:
                return reason
        return None
