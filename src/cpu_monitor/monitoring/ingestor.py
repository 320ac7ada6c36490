"""StatsIngestor - turns Docker stats events into CPU samples.

Each event carries the container's cumulative CPU time and the host's
cumulative system CPU time, for the current read and for the read before it.
The percentage is derived from the two deltas the same way ``docker stats``
does it:

    (cpu_delta / system_delta) * online_cpus * 100

Events that cannot yield a percentage are dropped without ending the stream.
That covers the first event of every stream (no previous system reading yet),
zero system deltas, and malformed payloads.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Mapping
from typing import TYPE_CHECKING

from pydantic import ValidationError

from cpu_monitor.core.schemas import StatsEvent
from cpu_monitor.monitoring.base import RawStatsEvent, Sample

if TYPE_CHECKING:
    from cpu_monitor.monitoring.session import MonitoringSession

logger = logging.getLogger(__name__)


def parse_stats_event(raw: RawStatsEvent) -> StatsEvent | None:
    """Parse one raw payload, returning None if it is malformed."""
    try:
        if isinstance(raw, (bytes, bytearray, str)):
            return StatsEvent.model_validate_json(raw)
        if isinstance(raw, Mapping):
            return StatsEvent.model_validate(dict(raw))
    except ValidationError as e:
        logger.debug(f"Dropping malformed stats event: {e.error_count()} validation error(s)")
        return None

    logger.debug(f"Dropping stats event of unsupported type {type(raw).__name__}")
    return None


def calculate_cpu_percent(event: StatsEvent) -> float | None:
    """Calculate CPU percentage from two consecutive cumulative readings.

    Returns:
        The percentage (not clamped, can exceed 100 on multi-core hosts), or
        None when the event carries no usable interval.
    """
    current = event.cpu_stats
    previous = event.precpu_stats

    if not current.system_cpu_usage or not previous.system_cpu_usage:
        return None

    system_delta = current.system_cpu_usage - previous.system_cpu_usage
    if system_delta <= 0:
        return None

    cpu_delta = current.cpu_usage.total_usage - previous.cpu_usage.total_usage
    if cpu_delta < 0:
        # Counter went backwards (container restarted under the same stream)
        return None

    return (cpu_delta / system_delta) * current.core_count * 100.0


class StatsIngestor:
    """Converts a container's stats stream into samples on its session.

    Example:
        ```python
        ingestor = StatsIngestor()
        ingestor.consume(session, stream)  # blocks until the stream ends
        print(session.average_usage())
        ```
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        """Initialize the ingestor.

        Args:
            clock: Monotonic clock used to timestamp samples on receipt
        """
        self._clock = clock

    def derive_sample(self, raw: RawStatsEvent) -> Sample | None:
        """Derive one sample from a raw event, or None if the event is dropped."""
        event = parse_stats_event(raw)
        if event is None:
            return None

        cpu_percent = calculate_cpu_percent(event)
        if cpu_percent is None:
            return None

        return Sample(time=self._clock(), cpu_usage_percentage=cpu_percent)

    def consume(self, session: MonitoringSession, events: Iterable[RawStatsEvent]) -> int:
        """Append a sample to ``session`` for every usable event.

        Returns once the stream is exhausted or the session has been closed.
        Errors raised by the stream itself propagate to the caller.

        Returns:
            Number of samples appended
        """
        appended = 0
        for raw in events:
            if session.closed:
                break

            sample = self.derive_sample(raw)
            if sample is not None:
                session.append(sample)
                appended += 1

        return appended
