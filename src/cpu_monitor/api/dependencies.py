"""Dependency providers for API routes.

The monitor and runtime are created once per application in ``create_app``
and kept on ``app.state``; routes reach them through these providers so tests
can swap them out.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from cpu_monitor.core.schemas import MonitorConfig
from cpu_monitor.monitoring.registry import ContainerMonitor
from cpu_monitor.runtime.docker_runtime import DockerRuntime


def get_monitor(request: Request) -> ContainerMonitor:
    return request.app.state.monitor


def get_runtime(request: Request) -> DockerRuntime:
    return request.app.state.runtime


def get_config(request: Request) -> MonitorConfig:
    return request.app.state.config


MonitorDep = Annotated[ContainerMonitor, Depends(get_monitor)]
RuntimeDep = Annotated[DockerRuntime, Depends(get_runtime)]
ConfigDep = Annotated[MonitorConfig, Depends(get_config)]
