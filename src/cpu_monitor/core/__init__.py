"""Core module - configuration and schemas."""

from __future__ import annotations

from cpu_monitor.core.config import load_config
from cpu_monitor.core.constants import (
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_PORT,
    RUNNING_STATUS,
    THREAD_JOIN_TIMEOUT_SECONDS,
)
from cpu_monitor.core.schemas import (
    ContainerState,
    CpuStats,
    CpuUsage,
    MonitorConfig,
    StatsEvent,
)

__all__ = [
    "ContainerState",
    "CpuStats",
    "CpuUsage",
    "DEFAULT_POLL_INTERVAL_SECONDS",
    "DEFAULT_PORT",
    "load_config",
    "MonitorConfig",
    "RUNNING_STATUS",
    "StatsEvent",
    "THREAD_JOIN_TIMEOUT_SECONDS",
]
