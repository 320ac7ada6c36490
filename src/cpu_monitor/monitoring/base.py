"""Shared types for the monitoring engine.

The engine never talks to a container runtime directly. It is handed two
capabilities per session: one that opens a live stats event stream and one
that snapshots the container's run state. Both are plain callables so the
Docker adapter, tests and any other runtime can supply them.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from cpu_monitor.core.schemas import ContainerState

# A raw stats payload: JSON text/bytes as read off the wire, or an already
# decoded mapping.
RawStatsEvent = bytes | bytearray | str | Mapping[str, Any]


class StatsStream(Protocol):
    """A live, unbounded stream of raw stats events for one container."""

    def __iter__(self) -> Iterator[RawStatsEvent]: ...

    def close(self) -> None:
        """Release the stream. Must be safe to call from any thread."""
        ...


StreamOpener = Callable[[str], StatsStream]
StateSnapshotter = Callable[[str], ContainerState]


@dataclass(frozen=True)
class Sample:
    """One CPU-usage observation.

    ``time`` is a monotonic timestamp (seconds) taken when the sample was
    derived, not the daemon's ``read`` field.
    """

    time: float
    cpu_usage_percentage: float


class AlreadyMonitoringError(Exception):
    """Raised by ``start`` when a live session already exists for a container."""

    def __init__(self, container_id: str) -> None:
        self.container_id = container_id
        super().__init__(f"Container {container_id} is already being monitored")
