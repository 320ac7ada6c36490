"""ContainerMonitor - registry of per-container CPU monitoring sessions.

For every monitored container the registry runs two background threads:

- an ingest thread that reads the container's stats stream and appends
  samples to the session,
- a poll thread that checks once per interval whether the container is
  still running.

Either thread may end the session. Teardown goes through one idempotent path,
so the second request for the same session is a no-op.

The registry lock only guards the container id -> session map. It is never
held while a stream is opened or a snapshot is taken, so sessions for
different containers do not contend.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from cpu_monitor.core.constants import DEFAULT_POLL_INTERVAL_SECONDS, THREAD_JOIN_TIMEOUT_SECONDS
from cpu_monitor.monitoring.base import (
    AlreadyMonitoringError,
    StateSnapshotter,
    StatsStream,
    StreamOpener,
)
from cpu_monitor.monitoring.ingestor import StatsIngestor
from cpu_monitor.monitoring.poller import LivenessPoller
from cpu_monitor.monitoring.session import MonitoringSession

logger = logging.getLogger(__name__)


class ContainerMonitor:
    """Creates, looks up and tears down container monitoring sessions.

    Example:
        ```python
        monitor = ContainerMonitor(poll_interval_seconds=1.0)
        monitor.start(container_id, runtime.open_stats_stream, runtime.snapshot_state)
        # ... later, from any thread ...
        average = monitor.average_usage(container_id)  # None once the container stops
        ```
    """

    def __init__(
        self,
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the registry.

        Args:
            poll_interval_seconds: Liveness poll period for every session
            clock: Monotonic clock used to timestamp samples
        """
        if poll_interval_seconds <= 0:
            raise ValueError(f"poll_interval_seconds must be positive, got {poll_interval_seconds}")
        self._poll_interval_seconds = poll_interval_seconds
        self._ingestor = StatsIngestor(clock=clock)
        self._sessions: dict[str, MonitoringSession] = {}
        self._lock = threading.Lock()

    def start(
        self,
        container_id: str,
        open_stream: StreamOpener,
        snapshot_state: StateSnapshotter,
    ) -> None:
        """Start monitoring a container.

        Args:
            container_id: Docker container ID (the registry key)
            open_stream: Opens the container's live stats stream
            snapshot_state: Returns the container's current run state

        Raises:
            AlreadyMonitoringError: A live session for the container exists
            Exception: Whatever ``open_stream`` raises; no session is kept
        """
        session = MonitoringSession(container_id)
        with self._lock:
            if container_id in self._sessions:
                raise AlreadyMonitoringError(container_id)
            self._sessions[container_id] = session

        try:
            stream = open_stream(container_id)
        except Exception:
            self._discard(session)
            raise

        if not session.attach_stream(stream):
            logger.info(f"Monitoring of {container_id[:12]} was stopped while starting")
            return

        poller = LivenessPoller(snapshot_state, self._poll_interval_seconds)
        session.spawn(self._ingest_loop, "cpu-ingest", session, stream)
        session.spawn(self._poll_loop, "cpu-poll", session, poller)
        logger.info(f"Started CPU monitoring for {container_id[:12]}")

    def is_monitoring(self, container_id: str) -> bool:
        with self._lock:
            return container_id in self._sessions

    def average_usage(self, container_id: str) -> float | None:
        """Time-weighted average CPU usage since monitoring began.

        Returns:
            The average, or None if the container is not being monitored
        """
        session = self._get(container_id)
        if session is None:
            return None
        return session.average_usage()

    def sample_count(self, container_id: str) -> int | None:
        session = self._get(container_id)
        if session is None:
            return None
        return session.sample_count

    def monitored_containers(self) -> list[str]:
        with self._lock:
            return list(self._sessions)

    def teardown(self, container_id: str) -> None:
        """Remove a session and release its resources.

        Safe to call any number of times, including for containers that were
        never monitored.
        """
        self._pop_and_close(container_id, "teardown requested")

    def stop(self, container_id: str) -> bool:
        """Explicitly stop monitoring a container.

        Returns:
            True if a session was removed, False if none existed
        """
        session = self._pop_and_close(container_id, "stopped by request")
        if session is None:
            return False

        session.join(timeout=THREAD_JOIN_TIMEOUT_SECONDS)
        return True

    def shutdown(self) -> None:
        """Tear down every session (used when the service exits)."""
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()

        for session in sessions:
            self._close(session, "monitor shutting down")
        for session in sessions:
            session.join(timeout=THREAD_JOIN_TIMEOUT_SECONDS)

        if sessions:
            logger.info(f"Stopped {len(sessions)} monitoring session(s)")

    def _get(self, container_id: str) -> MonitoringSession | None:
        with self._lock:
            return self._sessions.get(container_id)

    def _pop_and_close(self, container_id: str, reason: str) -> MonitoringSession | None:
        with self._lock:
            session = self._sessions.pop(container_id, None)

        if session is None:
            logger.debug(f"No session to tear down for {container_id[:12]}")
            return None

        self._close(session, reason)
        return session

    def _discard(self, session: MonitoringSession) -> bool:
        """Remove ``session`` from the map only if it is still the registered one.

        A worker thread of an old session must never remove a newer session
        that reuses the same container id.
        """
        with self._lock:
            if self._sessions.get(session.container_id) is session:
                del self._sessions[session.container_id]
                return True
        return False

    def _end_session(self, session: MonitoringSession, reason: str) -> None:
        self._discard(session)
        self._close(session, reason)

    def _close(self, session: MonitoringSession, reason: str) -> None:
        if session.close():
            logger.info(f"Cleaning up {session.container_id[:12]}: {reason}")

    def _ingest_loop(self, session: MonitoringSession, stream: StatsStream) -> None:
        """Ingest thread body: consume the stream, end the session when it stops."""
        try:
            count = self._ingestor.consume(session, stream)
        except Exception as e:
            if session.closed:
                logger.debug(f"Stats stream for {session.container_id[:12]} ended after close: {e}")
                return
            logger.warning(f"Error in stats stream for {session.container_id[:12]}: {e}")
            self._end_session(session, "stats stream error")
            return

        logger.debug(f"Stats stream for {session.container_id[:12]} ended after {count} samples")
        self._end_session(session, "stats stream ended")

    def _poll_loop(self, session: MonitoringSession, poller: LivenessPoller) -> None:
        """Poll thread body: end the session once the container is gone."""
        reason = poller.run(session.container_id, session.poll_cancelled)
        if reason is not None:
            self._end_session(session, reason)
