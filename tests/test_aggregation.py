from pathlib import Path
import sys

import numpy as np
import pytest

# Ensure package importable when tests run directly
sys.path.append(str(Path(__file__).resolve().parents[1]))

from videoscore.aggregation import RunningStats, aggregate, format_percentile
from videoscore.errors import EmptySeries


def test_ten_frame_series():
    values = [i * 10.0 for i in range(10)]
    stats = aggregate(values)

    assert stats.count == 10
    assert stats.mean == pytest.approx(45.0)
    assert stats.min == 0.0
    assert stats.max == 90.0
    assert stats.median == pytest.approx(45.0)
    assert stats.percentile(50) == pytest.approx(45.0)
    # Linear interpolation between ranks 0 and 1, and 8 and 9
    assert stats.percentile(5) == pytest.approx(4.5)
    assert stats.percentile(95) == pytest.approx(85.5)
    assert stats.std_dev == pytest.approx(np.std(values, ddof=1))


def test_aggregate_is_idempotent_and_order_free():
    values = [71.2, 3.5, 88.0, 42.42, 42.42, 15.0]
    first = aggregate(values, percentiles=(1, 25, 99))
    second = aggregate(list(values), percentiles=(1, 25, 99))
    shuffled = aggregate(list(reversed(values)), percentiles=(1, 25, 99))

    assert first == second
    assert shuffled.percentiles == first.percentiles
    assert shuffled.median == first.median
    assert shuffled.mean == pytest.approx(first.mean)


def test_negative_scores_are_valid():
    stats = aggregate([-12.5, -3.0, 4.0])
    assert stats.min == -12.5
    assert stats.max == 4.0
    assert stats.mean == pytest.approx(-11.5 / 3)
    assert stats.percentile(50) == pytest.approx(-3.0)


def test_single_value():
    stats = aggregate([77.7])
    assert stats.count == 1
    assert stats.std_dev == 0.0
    assert stats.percentile(5) == stats.percentile(95) == pytest.approx(77.7)


def test_empty_series_raises():
    with pytest.raises(EmptySeries):
        aggregate([])


@pytest.mark.parametrize("p", [-1, 100.5])
def test_percentile_out_of_range(p):
    with pytest.raises(ValueError):
        aggregate([1.0, 2.0], percentiles=(p,))


def test_extreme_percentiles_are_min_and_max():
    stats = aggregate([5.0, 1.0, 9.0], percentiles=(0, 100))
    assert stats.percentile(0) == 1.0
    assert stats.percentile(100) == 9.0


def test_to_dict_labels_percentiles():
    stats = aggregate([1.0, 2.0, 3.0], percentiles=(5, 99.9))
    payload = stats.to_dict()
    assert set(payload["percentiles"]) == {"p5", "p99.9"}
    assert payload["count"] == 3
    assert format_percentile(50.0) == "p50"


def test_running_stats_match_batch():
    values = [12.0, 80.5, 33.3, 61.0, 47.25, 0.0]
    running = RunningStats()
    for v in values:
        running.update(v)

    batch = aggregate(values)
    assert running.count == batch.count
    assert running.mean == pytest.approx(batch.mean)
    assert running.min == batch.min
    assert running.max == batch.max
    assert running.std_dev == pytest.approx(batch.std_dev)


def test_running_stats_empty():
    payload = RunningStats().to_dict()
    assert payload["count"] == 0
    assert payload["mean"] is None
    assert payload["std_dev"] == 0.0
