"""Shared constants for the CPU monitor.

Centralized constants to avoid duplication and ensure consistency across modules.
"""

from __future__ import annotations

# Liveness poll period in seconds (one poll per second by default).
DEFAULT_POLL_INTERVAL_SECONDS = 1.0

# Docker reports this status for a container whose process is alive.
# Every other status (exited, paused, restarting, dead, ...) ends monitoring.
RUNNING_STATUS = "running"

# Port the HTTP API listens on unless configured otherwise.
DEFAULT_PORT = 3000

# How long stop()/shutdown() waits for a session's background threads.
THREAD_JOIN_TIMEOUT_SECONDS = 2.0
