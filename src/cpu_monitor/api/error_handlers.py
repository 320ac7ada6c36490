"""Consistent error payloads and exception handlers for the HTTP API.

Every error response has the same shape: ``error_code``, ``message`` and
``details``. Request validation failures are reported as 400, matching the
service's historical contract, rather than FastAPI's default 422.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Domain error type with structured API details."""

    def __init__(
        self,
        *,
        status_code: int,
        error_code: str,
        message: str,
        details: Any | None = None,
    ) -> None:
        self.status_code = status_code
        self.error_code = error_code
        self.message = message
        self.details = details
        super().__init__(message)


def _error_body(*, error_code: str, message: str, details: Any | None = None) -> dict[str, Any]:
    return {"error_code": error_code, "message": message, "details": details}


def register_error_handlers(app: FastAPI) -> None:
    """Attach the API's exception handlers to ``app``."""

    @app.exception_handler(APIError)
    async def handle_api_error(request: Request, exc: APIError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(
                error_code=exc.error_code, message=exc.message, details=exc.details
            ),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        message = "Invalid request"
        if errors:
            message = str(errors[0].get("msg", message))
        return JSONResponse(
            status_code=400,
            content=_error_body(
                error_code="INVALID_REQUEST",
                message=message,
                details=[
                    {"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")}
                    for e in errors
                ],
            ),
        )

    @app.exception_handler(HTTPException)
    async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(error_code=f"HTTP_{exc.status_code}", message=str(exc.detail)),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=500,
            content=_error_body(error_code="INTERNAL_ERROR", message="Internal server error"),
        )
