"""Pydantic schemas for the CPU monitor.

This module defines the data contracts shared across the monitor: the subset
of the Docker stats payload the ingestor reads, container state snapshots,
and the service configuration.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from cpu_monitor.core.constants import DEFAULT_POLL_INTERVAL_SECONDS, DEFAULT_PORT, RUNNING_STATUS


class CpuUsage(BaseModel):
    """Cumulative CPU time consumed by the container, in nanoseconds."""

    total_usage: int = Field(ge=0)
    percpu_usage: list[int] | None = Field(default=None, description="Per-core usage (cgroups v1)")


class CpuStats(BaseModel):
    """One cumulative CPU snapshot (``cpu_stats`` or ``precpu_stats``).

    ``system_cpu_usage`` is absent on the ``precpu_stats`` of the first event
    in a stream, because the daemon has no earlier reading yet.
    """

    cpu_usage: CpuUsage
    system_cpu_usage: int | None = Field(default=None, ge=0)
    online_cpus: int | None = Field(default=None, ge=0)

    @property
    def core_count(self) -> int:
        """Online cores, falling back to the per-core list length, then 1."""
        if self.online_cpus:
            return self.online_cpus
        return len(self.cpu_usage.percpu_usage or []) or 1


class StatsEvent(BaseModel):
    """One event from the Docker streaming stats endpoint.

    Only the CPU fields are modelled; memory, network and block I/O sections
    of the payload are ignored.
    """

    cpu_stats: CpuStats
    precpu_stats: CpuStats


class ContainerState(BaseModel):
    """Point-in-time run state of a container."""

    status: str = Field(..., min_length=1, description="Docker State.Status, e.g. 'running'")

    @property
    def is_running(self) -> bool:
        return self.status == RUNNING_STATUS


class MonitorConfig(BaseModel):
    """Top-level service configuration.

    Loaded from YAML/JSON files; CLI options override individual fields.
    """

    poll_interval_seconds: float = Field(
        default=DEFAULT_POLL_INTERVAL_SECONDS,
        gt=0,
        le=60,
        description="Liveness poll period",
    )
    docker_base_url: str | None = Field(
        default=None, description="Docker daemon URL. None = use DOCKER_HOST / local socket"
    )
    docker_timeout_seconds: int = Field(default=60, ge=1, description="Docker API timeout")
    host: str = Field(default="0.0.0.0", description="HTTP bind address")
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535, description="HTTP port")
    log_level: str = Field(default="INFO")
    json_logs: bool = Field(default=False)

    model_config = {"extra": "forbid"}

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and check the log level name."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level
