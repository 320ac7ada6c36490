"""API module - HTTP interface to the monitoring engine."""

from __future__ import annotations

from cpu_monitor.api.app import create_app
from cpu_monitor.api.error_handlers import APIError

__all__ = ["APIError", "create_app"]
