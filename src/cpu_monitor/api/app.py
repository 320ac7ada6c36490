"""FastAPI application factory for the CPU monitor service."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from cpu_monitor import __version__
from cpu_monitor.api.error_handlers import register_error_handlers
from cpu_monitor.api.routes import router
from cpu_monitor.core.config import load_config
from cpu_monitor.core.schemas import MonitorConfig
from cpu_monitor.monitoring.registry import ContainerMonitor
from cpu_monitor.runtime.docker_runtime import DockerRuntime

logger = logging.getLogger(__name__)


def create_app(
    config: MonitorConfig | None = None,
    monitor: ContainerMonitor | None = None,
    runtime: DockerRuntime | None = None,
) -> FastAPI:
    """Create a configured FastAPI application.

    Args:
        config: Service configuration (defaults if omitted)
        monitor: Session registry to serve; a new one is created if omitted
        runtime: Container runtime adapter; connects to Docker if omitted

    Returns:
        The application. All monitoring sessions are torn down on shutdown.
    """
    config = config or load_config()
    monitor = monitor or ContainerMonitor(poll_interval_seconds=config.poll_interval_seconds)
    runtime = runtime or DockerRuntime.from_config(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(f"CPU monitor API ready (poll interval {config.poll_interval_seconds}s)")
        yield
        monitor.shutdown()

    app = FastAPI(
        title="Container CPU Monitor",
        description="Time-weighted average CPU usage for running Docker containers.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.monitor = monitor
    app.state.runtime = runtime

    register_error_handlers(app)
    app.include_router(router)

    return app
