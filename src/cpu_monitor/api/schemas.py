"""Request and response models for the HTTP API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator


class MonitorRequest(BaseModel):
    """Body of ``POST /monitor``: labels identifying exactly one container."""

    labels: dict[str, str | None] = Field(
        ..., description="Label filter. A null value matches on the key alone"
    )

    @field_validator("labels")
    @classmethod
    def validate_labels(cls, v: dict[str, str | None]) -> dict[str, str | None]:
        if not v:
            raise ValueError("labels object must contain labels")
        return v


class MonitorStartedResponse(BaseModel):
    container_id: str


class AverageResponse(BaseModel):
    container_id: str
    average: float = Field(..., description="Time-weighted average CPU usage (percent)")
    sample_count: int = Field(ge=0)


class MonitoredContainersResponse(BaseModel):
    container_ids: list[str] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: str
    docker_reachable: bool
    active_sessions: int = Field(ge=0)


class ErrorResponse(BaseModel):
    error_code: str
    message: str
    details: Any | None = None
