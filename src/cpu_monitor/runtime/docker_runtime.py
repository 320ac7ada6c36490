"""Docker runtime adapter for the monitoring engine.

Supplies the two capabilities the engine consumes (a live stats stream and a
run-state snapshot) plus the label-based container lookup used by the HTTP
API, all through the docker SDK.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator, Mapping
from typing import TYPE_CHECKING

import docker
from docker.errors import DockerException
from docker.types import CancellableStream

from cpu_monitor.core.schemas import ContainerState, MonitorConfig

if TYPE_CHECKING:
    from docker.models.containers import Container

logger = logging.getLogger(__name__)


def build_label_filters(labels: Mapping[str, str | None]) -> list[str]:
    """Translate a label mapping into Docker ``label`` filter expressions.

    A None value matches on the presence of the key alone.

    Example:
        ``{"app": "web", "canary": None}`` -> ``["app=web", "canary"]``
    """
    return [key if value is None else f"{key}={value}" for key, value in labels.items()]


class DockerStatsStream:
    """Raw events from Docker's streaming stats endpoint.

    The daemon writes one JSON document per line. Payloads are yielded
    undecoded so that one bad document is dropped by the ingestor instead of
    breaking the SDK's JSON decoder and ending the stream.

    ``close()`` may be called from any thread. It runs ``cancel`` (which must
    unblock a pending read) and, if iteration never started, releases the
    chunk source directly. Otherwise the reading thread releases the source
    once its read returns.
    """

    def __init__(
        self,
        chunks: Iterator[bytes | str],
        container_id: str = "",
        cancel: Callable[[], None] | None = None,
    ) -> None:
        self._chunks = chunks
        self._container_id = container_id
        self._cancel = cancel
        self._lock = threading.Lock()
        self._closed = threading.Event()
        self._iterating = False
        self._released = False

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def __iter__(self) -> Iterator[bytes]:
        with self._lock:
            if self._released:
                return
            self._iterating = True

        buffer = b""
        try:
            for chunk in self._chunks:
                if self._closed.is_set():
                    break
                if isinstance(chunk, str):
                    chunk = chunk.encode("utf-8")

                buffer += chunk
                *lines, buffer = buffer.split(b"\n")
                for line in lines:
                    if line.strip():
                        yield line

            if buffer.strip() and not self._closed.is_set():
                yield buffer
        except Exception:
            # A cancelled read surfaces as a connection error
            if not self._closed.is_set():
                raise
        finally:
            with self._lock:
                self._released = True
            self._release_source()

    def close(self) -> None:
        with self._lock:
            if self._closed.is_set():
                return
            self._closed.set()
            cancel = None if self._released else self._cancel
            release_now = not self._iterating and not self._released
            if release_now:
                self._released = True

        if cancel is not None:
            cancel()
        if release_now:
            self._release_source()

    def _release_source(self) -> None:
        close_chunks = getattr(self._chunks, "close", None)
        if close_chunks is not None:
            close_chunks()
        logger.debug(f"Released stats stream for {self._container_id[:12] or '?'}")


class DockerRuntime:
    """Container runtime operations backed by a ``docker.DockerClient``.

    Example:
        ```python
        runtime = DockerRuntime.from_config(config)
        [container] = runtime.find_containers({"app": "web"})
        monitor.start(container.id, runtime.open_stats_stream, runtime.snapshot_state)
        ```
    """

    def __init__(self, client: docker.DockerClient) -> None:
        self._client = client

    @classmethod
    def from_config(cls, config: MonitorConfig) -> DockerRuntime:
        """Connect to the daemon named in the config, or the environment default."""
        if config.docker_base_url:
            client = docker.DockerClient(
                base_url=config.docker_base_url, timeout=config.docker_timeout_seconds
            )
        else:
            client = docker.from_env(timeout=config.docker_timeout_seconds)
        return cls(client)

    def ping(self) -> bool:
        """Check if the Docker daemon is reachable."""
        try:
            return bool(self._client.ping())
        except DockerException as e:
            logger.debug(f"Docker ping failed: {e}")
            return False

    def find_containers(self, labels: Mapping[str, str | None]) -> list[Container]:
        """List running containers carrying every given label."""
        filters = {"label": build_label_filters(labels)}
        containers = self._client.containers.list(filters=filters)
        logger.debug(f"Label filter {filters['label']} matched {len(containers)} container(s)")
        return containers

    def open_stats_stream(self, container_id: str) -> DockerStatsStream:
        """Open the container's live stats stream.

        Built the way ``APIClient.events`` builds its stream: the response is
        kept so that closing the stream shuts down the socket and ends a read
        that is still waiting on the daemon.

        Raises:
            docker.errors.NotFound: If the container does not exist
        """
        container = self._client.containers.get(container_id)
        api = self._client.api
        response = api._get(
            api._url("/containers/{0}/stats", container.id),
            params={"stream": True},
            stream=True,
            timeout=None,
        )
        api._raise_for_status(response)

        chunks = api._stream_helper(response, decode=False)
        cancellable = CancellableStream(chunks, response)
        return DockerStatsStream(chunks, container_id=container.id, cancel=cancellable.close)

    def snapshot_state(self, container_id: str) -> ContainerState:
        """Fetch the container's current ``State.Status``.

        Raises:
            docker.errors.NotFound: If the container has been removed
        """
        container = self._client.containers.get(container_id)
        return ContainerState(status=container.status)

    def close(self) -> None:
        self._client.close()
