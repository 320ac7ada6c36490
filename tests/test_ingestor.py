"""Tests for StatsIngestor and CPU percentage derivation."""

import json

import pytest

from cpu_monitor.core.schemas import StatsEvent
from cpu_monitor.monitoring.ingestor import StatsIngestor, calculate_cpu_percent, parse_stats_event
from cpu_monitor.monitoring.session import MonitoringSession
from tests.fakes import StepClock, make_stats_event, percent_event


class TestCalculateCpuPercent:
    """Tests for calculate_cpu_percent."""

    def test_percentage_from_deltas(self):
        event = StatsEvent.model_validate(
            make_stats_event(
                total_usage=1_000_000_000,
                prev_total_usage=900_000_000,
                system_usage=10_000_000_000,
                prev_system_usage=9_000_000_000,
                online_cpus=2,
            )
        )
        # (100M / 1000M) * 2 cores * 100
        assert calculate_cpu_percent(event) == pytest.approx(20.0)

    def test_first_event_without_previous_system_usage_is_dropped(self):
        event = StatsEvent.model_validate(
            make_stats_event(
                total_usage=1_000, prev_total_usage=0, system_usage=5_000, prev_system_usage=None
            )
        )
        assert calculate_cpu_percent(event) is None

    def test_zero_system_usage_is_dropped(self):
        event = StatsEvent.model_validate(
            make_stats_event(
                total_usage=1_000, prev_total_usage=0, system_usage=5_000, prev_system_usage=0
            )
        )
        assert calculate_cpu_percent(event) is None

    def test_zero_system_delta_is_dropped(self):
        event = StatsEvent.model_validate(
            make_stats_event(
                total_usage=2_000,
                prev_total_usage=1_000,
                system_usage=5_000,
                prev_system_usage=5_000,
            )
        )
        assert calculate_cpu_percent(event) is None

    def test_multi_core_usage_exceeds_100(self):
        event = StatsEvent.model_validate(
            make_stats_event(
                total_usage=1_800,
                prev_total_usage=0,
                system_usage=2_000,
                prev_system_usage=1_000,
                online_cpus=4,
            )
        )
        assert calculate_cpu_percent(event) == pytest.approx(720.0)

    def test_missing_online_cpus_falls_back_to_percpu_length(self):
        payload = make_stats_event(
            total_usage=200, prev_total_usage=100, system_usage=2_000, prev_system_usage=1_000,
            online_cpus=None,
        )
        payload["cpu_stats"]["cpu_usage"]["percpu_usage"] = [100, 100, 0, 0]
        event = StatsEvent.model_validate(payload)
        assert calculate_cpu_percent(event) == pytest.approx(40.0)

    def test_missing_core_information_counts_one_core(self):
        event = StatsEvent.model_validate(
            make_stats_event(
                total_usage=200, prev_total_usage=100, system_usage=2_000, prev_system_usage=1_000,
                online_cpus=None,
            )
        )
        assert calculate_cpu_percent(event) == pytest.approx(10.0)


class TestParseStatsEvent:
    """Tests for parse_stats_event."""

    def test_parses_bytes(self):
        event = parse_stats_event(percent_event(25.0))
        assert event is not None
        assert event.cpu_stats.online_cpus == 1

    def test_parses_str_and_mapping(self):
        payload = make_stats_event(10, 0, 200, 100)
        assert parse_stats_event(json.dumps(payload)) is not None
        assert parse_stats_event(payload) is not None

    @pytest.mark.parametrize(
        "raw",
        [
            b"not json at all",
            b"",
            b'{"cpu_stats": {}}',
            b'{"cpu_stats": {"cpu_usage": {"total_usage": "many"}}, "precpu_stats": {}}',
            {"precpu_stats": None},
            42,
        ],
    )
    def test_malformed_payloads_are_dropped(self, raw):
        assert parse_stats_event(raw) is None


class TestStatsIngestor:
    """Tests for StatsIngestor."""

    def test_derive_sample_timestamps_on_receipt(self):
        ingestor = StatsIngestor(clock=StepClock([123.5]))
        sample = ingestor.derive_sample(percent_event(40.0))

        assert sample is not None
        assert sample.time == 123.5
        assert sample.cpu_usage_percentage == pytest.approx(40.0)

    def test_derive_sample_drops_first_event(self):
        ingestor = StatsIngestor()
        first = make_stats_event(
            total_usage=100, prev_total_usage=0, system_usage=1_000, prev_system_usage=None
        )
        assert ingestor.derive_sample(first) is None

    def test_consume_appends_in_arrival_order(self):
        ingestor = StatsIngestor(clock=StepClock([0.0, 1.0, 2.0]))
        session = MonitoringSession("abc123")

        count = ingestor.consume(
            session, [percent_event(10.0), percent_event(20.0), percent_event(30.0)]
        )

        assert count == 3
        percentages = [s.cpu_usage_percentage for s in session.samples()]
        assert percentages == pytest.approx([10.0, 20.0, 30.0])
        assert [s.time for s in session.samples()] == [0.0, 1.0, 2.0]

    def test_malformed_event_does_not_change_result(self):
        """A malformed event between two valid ones is ignored entirely."""
        clean = MonitoringSession("clean")
        noisy = MonitoringSession("noisy")

        StatsIngestor(clock=StepClock([0.0, 1000.0])).consume(
            clean, [percent_event(10.0), percent_event(50.0)]
        )
        StatsIngestor(clock=StepClock([0.0, 1000.0])).consume(
            noisy, [percent_event(10.0), b"{garbage", percent_event(50.0)]
        )

        assert noisy.samples() == clean.samples()
        assert noisy.average_usage() == pytest.approx(clean.average_usage())
        assert noisy.average_usage() == pytest.approx(10.0)

    def test_zero_system_delta_events_are_excluded(self):
        session = MonitoringSession("abc123")
        stalled = make_stats_event(
            total_usage=200, prev_total_usage=100, system_usage=1_000, prev_system_usage=1_000
        )

        count = StatsIngestor().consume(session, [stalled, percent_event(5.0)])

        assert count == 1
        assert session.sample_count == 1

    def test_consume_stops_once_session_closed(self):
        session = MonitoringSession("abc123")
        ingestor = StatsIngestor()

        def events():
            yield percent_event(10.0)
            session.close()
            yield percent_event(20.0)
            yield percent_event(30.0)

        assert ingestor.consume(session, events()) == 1
        assert session.sample_count == 1
