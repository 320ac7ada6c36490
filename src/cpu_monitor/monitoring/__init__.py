"""Monitoring module - CPU usage monitoring for Docker containers.

Components:
- ContainerMonitor: session registry (start / average / teardown)
- StatsIngestor: Docker stats events -> CPU samples
- LivenessPoller: periodic run-state checks that end sessions
- time_weighted_average: left Riemann sum over samples
"""

from __future__ import annotations

from cpu_monitor.monitoring.averaging import time_weighted_average
from cpu_monitor.monitoring.base import (
    AlreadyMonitoringError,
    RawStatsEvent,
    Sample,
    StateSnapshotter,
    StatsStream,
    StreamOpener,
)
from cpu_monitor.monitoring.ingestor import StatsIngestor, calculate_cpu_percent, parse_stats_event
from cpu_monitor.monitoring.poller import LivenessPoller
from cpu_monitor.monitoring.registry import ContainerMonitor
from cpu_monitor.monitoring.session import MonitoringSession

__all__ = [
    "AlreadyMonitoringError",
    "ContainerMonitor",
    "LivenessPoller",
    "MonitoringSession",
    "RawStatsEvent",
    "Sample",
    "StateSnapshotter",
    "StatsIngestor",
    "StatsStream",
    "StreamOpener",
    "calculate_cpu_percent",
    "parse_stats_event",
    "time_weighted_average",
]
