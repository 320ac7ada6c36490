"""Tests for the Docker runtime adapter."""

import threading
from unittest.mock import MagicMock

import pytest
from docker.errors import APIError, NotFound

from cpu_monitor.core.schemas import MonitorConfig
from cpu_monitor.runtime.docker_runtime import DockerRuntime, DockerStatsStream, build_label_filters
from tests.fakes import wait_until


class TestBuildLabelFilters:
    """Tests for build_label_filters."""

    def test_key_value_and_key_only(self):
        assert build_label_filters({"app": "web", "canary": None}) == ["app=web", "canary"]

    def test_empty_string_value_is_kept(self):
        assert build_label_filters({"tier": ""}) == ["tier="]


class TestDockerStatsStream:
    """Tests for DockerStatsStream framing and release."""

    def test_one_document_per_line(self):
        stream = DockerStatsStream(iter([b'{"a": 1}\n', b'{"b": 2}\n']))
        assert list(stream) == [b'{"a": 1}', b'{"b": 2}']

    def test_documents_split_across_chunks(self):
        stream = DockerStatsStream(iter([b'{"a":', b' 1}\n{"b"', b": 2}\n"]))
        assert list(stream) == [b'{"a": 1}', b'{"b": 2}']

    def test_str_chunks_and_unterminated_tail(self):
        stream = DockerStatsStream(iter(['{"a": 1}\n\n', '{"b": 2}']))
        assert list(stream) == [b'{"a": 1}', b'{"b": 2}']

    def test_close_stops_iteration_and_releases_source(self):
        released = []

        def chunks():
            try:
                yield b'{"a": 1}\n'
                yield b'{"b": 2}\n'
                yield b'{"c": 3}\n'
            finally:
                released.append(True)

        stream = DockerStatsStream(chunks(), container_id="abc")
        received = []
        for raw in stream:
            received.append(raw)
            stream.close()

        assert received == [b'{"a": 1}']
        assert stream.closed
        assert released == [True]

    def test_close_before_iteration_releases_source(self):
        released = []

        def chunks():
            try:
                yield b'{"a": 1}\n'
            finally:
                released.append(True)

        source = chunks()
        next(source, None)
        stream = DockerStatsStream(source, container_id="abc")

        stream.close()
        stream.close()

        assert stream.closed
        assert released == [True]
        assert list(stream) == []

    def test_close_releases_source_that_was_never_started(self):
        source = MagicMock()
        stream = DockerStatsStream(source, container_id="abc")

        stream.close()

        source.close.assert_called_once_with()
        assert list(stream) == []
        source.close.assert_called_once_with()

    def test_close_cancels_blocked_read(self):
        gate = threading.Event()
        released = []

        def chunks():
            try:
                yield b'{"a": 1}\n'
                gate.wait(timeout=5.0)
                # Socket shutdown surfaces as a connection error in the reader
                raise ConnectionResetError("socket shut down")
            finally:
                released.append(True)

        stream = DockerStatsStream(chunks(), container_id="abc", cancel=gate.set)
        received = []
        reader = threading.Thread(target=lambda: received.extend(stream))
        reader.start()
        assert wait_until(lambda: received == [b'{"a": 1}'])

        stream.close()
        reader.join(timeout=2.0)

        assert not reader.is_alive()
        assert released == [True]

    def test_close_after_stream_finished_skips_cancel(self):
        cancel = MagicMock()
        stream = DockerStatsStream(iter([b'{"a": 1}\n']), container_id="abc", cancel=cancel)
        assert list(stream) == [b'{"a": 1}']

        stream.close()
        stream.close()

        cancel.assert_not_called()

    def test_read_error_propagates_while_open(self):
        def chunks():
            yield b'{"a": 1}\n'
            raise ConnectionResetError("daemon went away")

        stream = DockerStatsStream(chunks(), container_id="abc")

        with pytest.raises(ConnectionResetError):
            list(stream)


class TestDockerRuntime:
    """Tests for DockerRuntime with a mocked docker client."""

    def test_find_containers_uses_label_filters(self):
        client = MagicMock()
        client.containers.list.return_value = [MagicMock(id="abc")]
        runtime = DockerRuntime(client)

        containers = runtime.find_containers({"app": "web", "canary": None})

        client.containers.list.assert_called_once_with(filters={"label": ["app=web", "canary"]})
        assert [c.id for c in containers] == ["abc"]

    def test_open_stats_stream_keeps_raw_streaming_response(self):
        client = MagicMock()
        client.containers.get.return_value = MagicMock(id="abc123")
        client.api._url.return_value = "http+docker://localhost/containers/abc123/stats"
        client.api._stream_helper.return_value = iter([b'{"x": 1}\n'])
        runtime = DockerRuntime(client)

        stream = runtime.open_stats_stream("abc")

        client.api._url.assert_called_once_with("/containers/{0}/stats", "abc123")
        client.api._get.assert_called_once_with(
            "http+docker://localhost/containers/abc123/stats",
            params={"stream": True},
            stream=True,
            timeout=None,
        )
        response = client.api._get.return_value
        client.api._raise_for_status.assert_called_once_with(response)
        client.api._stream_helper.assert_called_once_with(response, decode=False)
        assert list(stream) == [b'{"x": 1}']

    def test_closing_stats_stream_shuts_down_response(self, monkeypatch):
        cancellable = MagicMock()
        monkeypatch.setattr("cpu_monitor.runtime.docker_runtime.CancellableStream", cancellable)
        client = MagicMock()
        client.containers.get.return_value = MagicMock(id="abc123")
        runtime = DockerRuntime(client)

        stream = runtime.open_stats_stream("abc")
        stream.close()

        response = client.api._get.return_value
        cancellable.assert_called_once_with(client.api._stream_helper.return_value, response)
        cancellable.return_value.close.assert_called_once_with()

    def test_open_stats_stream_missing_container(self):
        client = MagicMock()
        client.containers.get.side_effect = NotFound("No such container")
        runtime = DockerRuntime(client)

        with pytest.raises(NotFound):
            runtime.open_stats_stream("missing")

    def test_snapshot_state_reports_status(self):
        client = MagicMock()
        client.containers.get.return_value = MagicMock(status="exited")
        runtime = DockerRuntime(client)

        state = runtime.snapshot_state("abc")

        assert state.status == "exited"
        assert not state.is_running

    def test_ping(self):
        client = MagicMock()
        client.ping.return_value = True
        assert DockerRuntime(client).ping() is True

        client.ping.side_effect = APIError("daemon unavailable")
        assert DockerRuntime(client).ping() is False

    def test_from_config_with_base_url(self, monkeypatch):
        created = {}

        def fake_client(**kwargs):
            created.update(kwargs)
            return MagicMock()

        monkeypatch.setattr("cpu_monitor.runtime.docker_runtime.docker.DockerClient", fake_client)
        DockerRuntime.from_config(
            MonitorConfig(docker_base_url="tcp://127.0.0.1:2375", docker_timeout_seconds=5)
        )

        assert created == {"base_url": "tcp://127.0.0.1:2375", "timeout": 5}

    def test_from_config_uses_environment_by_default(self, monkeypatch):
        from_env = MagicMock()
        monkeypatch.setattr("cpu_monitor.runtime.docker_runtime.docker.from_env", from_env)

        DockerRuntime.from_config(MonitorConfig())

        from_env.assert_called_once_with(timeout=60)
