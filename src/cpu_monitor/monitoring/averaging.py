"""Time-weighted averaging of CPU samples."""

from __future__ import annotations

from collections.abc import Sequence

from cpu_monitor.monitoring.base import Sample


def time_weighted_average(samples: Sequence[Sample]) -> float:
    """Average CPU usage weighted by how long each value was in effect.

    Each sample's percentage is held constant until the next sample arrives
    (left Riemann sum), so the last sample contributes no weight:

        sum(p[i] * (t[i+1] - t[i])) / sum(t[i+1] - t[i])

    Args:
        samples: Samples in arrival order

    Returns:
        0.0 for no samples, the lone percentage for one sample, otherwise the
        weighted mean. If every interval has zero length the plain mean of the
        percentages is returned.
    """
    if not samples:
        return 0.0
    if len(samples) == 1:
        return samples[0].cpu_usage_percentage

    weighted_sum = 0.0
    total_duration = 0.0
    for current, following in zip(samples, samples[1:]):
        duration = following.time - current.time
        weighted_sum += current.cpu_usage_percentage * duration
        total_duration += duration

    if total_duration == 0:
        return sum(s.cpu_usage_percentage for s in samples) / len(samples)

    return weighted_sum / total_duration
