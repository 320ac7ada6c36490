"""Container CPU Monitor - Core package."""

from __future__ import annotations

from cpu_monitor.core.schemas import ContainerState, MonitorConfig, StatsEvent
from cpu_monitor.monitoring.base import AlreadyMonitoringError, Sample
from cpu_monitor.monitoring.registry import ContainerMonitor

__version__ = "0.1.0"

__all__ = [
    "AlreadyMonitoringError",
    "ContainerMonitor",
    "ContainerState",
    "MonitorConfig",
    "Sample",
    "StatsEvent",
    "__version__",
]
