"""Runtime module - container runtime adapters."""

from __future__ import annotations

from cpu_monitor.runtime.docker_runtime import DockerRuntime, DockerStatsStream, build_label_filters

__all__ = ["DockerRuntime", "DockerStatsStream", "build_label_filters"]
