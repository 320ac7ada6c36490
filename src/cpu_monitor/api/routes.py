"""HTTP routes for starting CPU monitoring and reading averages."""

from __future__ import annotations

import logging

from docker.errors import DockerException, NotFound
from fastapi import APIRouter, Response, status

from cpu_monitor.api.dependencies import MonitorDep, RuntimeDep
from cpu_monitor.api.error_handlers import APIError
from cpu_monitor.api.schemas import (
    AverageResponse,
    ErrorResponse,
    HealthResponse,
    MonitoredContainersResponse,
    MonitorRequest,
    MonitorStartedResponse,
)
from cpu_monitor.monitoring.base import AlreadyMonitoringError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthResponse, tags=["health"])
def health(monitor: MonitorDep, runtime: RuntimeDep) -> HealthResponse:
    docker_reachable = runtime.ping()
    return HealthResponse(
        status="ok" if docker_reachable else "degraded",
        docker_reachable=docker_reachable,
        active_sessions=len(monitor.monitored_containers()),
    )


@router.post(
    "/monitor",
    response_model=MonitorStartedResponse,
    status_code=status.HTTP_201_CREATED,
    responses={code: {"model": ErrorResponse} for code in (400, 404, 409, 502)},
    tags=["monitor"],
)
def start_monitoring(
    body: MonitorRequest, monitor: MonitorDep, runtime: RuntimeDep
) -> MonitorStartedResponse:
    """Start monitoring the single running container matching ``labels``."""
    try:
        containers = runtime.find_containers(body.labels)
    except DockerException as e:
        raise APIError(
            status_code=status.HTTP_502_BAD_GATEWAY,
            error_code="DOCKER_UNAVAILABLE",
            message=f"Could not list containers: {e}",
        ) from e

    if not containers:
        raise APIError(
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="CONTAINER_NOT_FOUND",
            message="No running container matches the provided labels",
            details={"labels": body.labels},
        )
    if len(containers) > 1:
        raise APIError(
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="AMBIGUOUS_LABELS",
            message="Found more than one container matching provided labels",
            details={"container_ids": [c.id for c in containers]},
        )

    container_id = containers[0].id
    try:
        monitor.start(container_id, runtime.open_stats_stream, runtime.snapshot_state)
    except AlreadyMonitoringError as e:
        raise APIError(
            status_code=status.HTTP_409_CONFLICT,
            error_code="ALREADY_MONITORING",
            message=str(e),
            details={"container_id": container_id},
        ) from e
    except NotFound as e:
        raise APIError(
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="CONTAINER_NOT_FOUND",
            message=f"Container {container_id} disappeared before monitoring started",
        ) from e
    except DockerException as e:
        raise APIError(
            status_code=status.HTTP_502_BAD_GATEWAY,
            error_code="DOCKER_UNAVAILABLE",
            message=f"Could not open stats stream: {e}",
        ) from e

    logger.info(f"Monitoring {container_id[:12]}")
    return MonitorStartedResponse(container_id=container_id)


@router.get("/monitor", response_model=MonitoredContainersResponse, tags=["monitor"])
def list_monitored(monitor: MonitorDep) -> MonitoredContainersResponse:
    return MonitoredContainersResponse(container_ids=monitor.monitored_containers())


@router.get(
    "/monitor/{container_id}",
    response_model=AverageResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["monitor"],
)
def get_average(container_id: str, monitor: MonitorDep) -> AverageResponse:
    """Time-weighted average CPU usage since monitoring began."""
    average = monitor.average_usage(container_id)
    sample_count = monitor.sample_count(container_id)
    if average is None or sample_count is None:
        raise APIError(
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="NOT_MONITORED",
            message=f"Container {container_id} is not being monitored",
        )
    return AverageResponse(container_id=container_id, average=average, sample_count=sample_count)


@router.delete(
    "/monitor/{container_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["monitor"]
)
def stop_monitoring(container_id: str, monitor: MonitorDep) -> Response:
    if not monitor.stop(container_id):
        raise APIError(
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="NOT_MONITORED",
            message=f"Container {container_id} is not being monitored",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
