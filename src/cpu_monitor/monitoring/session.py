"""Per-container monitoring session."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from cpu_monitor.monitoring.averaging import time_weighted_average
from cpu_monitor.monitoring.base import Sample, StatsStream

logger = logging.getLogger(__name__)


class MonitoringSession:
    """Live monitoring state for one container.

    Owns the container's sample list, its stats stream and the cancellation
    event of its liveness poll. ``close()`` releases both handles exactly once,
    whichever thread calls it first.
    """

    def __init__(self, container_id: str) -> None:
        self.container_id = container_id
        self._samples: list[Sample] = []
        self._samples_lock = threading.Lock()
        self._stream: StatsStream | None = None
        self._poll_cancelled = threading.Event()
        self._close_lock = threading.Lock()
        self._closed = False
        self._threads: list[threading.Thread] = []

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def poll_cancelled(self) -> threading.Event:
        """Event the liveness poller waits on; set when the session closes."""
        return self._poll_cancelled

    @property
    def sample_count(self) -> int:
        with self._samples_lock:
            return len(self._samples)

    def append(self, sample: Sample) -> None:
        with self._samples_lock:
            self._samples.append(sample)

    def samples(self) -> list[Sample]:
        """Copy of the samples collected so far, in arrival order."""
        with self._samples_lock:
            return list(self._samples)

    def average_usage(self) -> float:
        """Time-weighted average over the samples present at call time."""
        return time_weighted_average(self.samples())

    def attach_stream(self, stream: StatsStream) -> bool:
        """Hand the opened stats stream to the session.

        If the session was closed while the stream was being opened, the
        stream is released immediately.

        Returns:
            False if the session is already closed
        """
        with self._close_lock:
            if not self._closed:
                self._stream = stream
                return True

        stream.close()
        return False

    def spawn(self, target: Callable[..., object], name: str, *args: object) -> threading.Thread:
        """Start a daemon worker thread bound to this session."""
        thread = threading.Thread(
            target=target,
            args=args,
            name=f"{name}-{self.container_id[:12]}",
            daemon=True,
        )
        self._threads.append(thread)
        thread.start()
        return thread

    def close(self) -> bool:
        """Release the stream and cancel the poll.

        Returns:
            True for the call that actually closed the session, False for
            every later call
        """
        with self._close_lock:
            if self._closed:
                return False
            self._closed = True
            stream, self._stream = self._stream, None

        self._poll_cancelled.set()
        if stream is not None:
            try:
                stream.close()
            except Exception as e:
                logger.warning(f"Error closing stats stream for {self.container_id[:12]}: {e}")
        return True

    def join(self, timeout: float | None = None) -> None:
        """Wait for the session's worker threads, skipping the calling thread."""
        current = threading.current_thread()
        for thread in self._threads:
            if thread is not current:
                thread.join(timeout=timeout)
