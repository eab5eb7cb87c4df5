"""
Score Aggregation Module
========================

Summary statistics over the ordered per-frame score series.

Only arithmetic mean, min/max, spread and percentiles are reported.
Harmonic and geometric means are not offered: scores can be zero or
negative, where both are undefined.
"""

import math
import numpy as np
from typing import Dict, Iterable, Sequence
from dataclasses import dataclass, field
import logging

from .errors import EmptySeries

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AggregateStats:
    """Final summary of a run (immutable)"""
    count: int
    mean: float
    min: float
    max: float
    median: float
    std_dev: float
    percentiles: Dict[float, float] = field(default_factory=dict)

    def percentile(self, p: float) -> float:
        return self.percentiles[float(p)]

    def to_dict(self) -> Dict:
        return {
            "count": self.count,
            "mean": self.mean,
            "min": self.min,
            "max": self.max,
            "median": self.median,
            "std_dev": self.std_dev,
            "percentiles": {format_percentile(p): v for p, v in self.percentiles.items()},
        }


def format_percentile(p: float) -> str:
    """p5, p50, p99.9 ..."""
    return f"p{p:g}"


def aggregate(values: Sequence[float], percentiles: Iterable[float] = (5, 50, 95)) -> AggregateStats:
    """
    Compute summary statistics of an ordered score series.

    Percentiles sort the values and interpolate linearly between adjacent
    ranks for non-integral positions.

    Args:
        values: Per-frame scores (any order; usually frame order)
        percentiles: Requested percentiles in [0, 100]

    Returns:
        AggregateStats

    Raises:
        EmptySeries: no values
        ValueError: percentile outside [0, 100]
    """
    data = np.asarray(list(values), dtype=np.float64)
    if data.size == 0:
        raise EmptySeries("Cannot aggregate an empty score series (no frames were scored)")

    requested = [float(p) for p in percentiles]
    for p in requested:
        if not 0.0 <= p <= 100.0:
            raise ValueError(f"Percentile out of range [0, 100]: {p}")

    ordered = np.sort(data, kind="stable")
    pct_values = {}
    if requested:
        computed = np.percentile(ordered, requested, method="linear")
        pct_values = {p: float(v) for p, v in zip(requested, np.atleast_1d(computed))}

    std_dev = float(np.std(data, ddof=1)) if data.size > 1 else 0.0

    return AggregateStats(
        count=int(data.size),
        mean=float(np.mean(data)),
        min=float(ordered[0]),
        max=float(ordered[-1]),
        median=float(np.median(ordered)),
        std_dev=std_dev,
        percentiles=pct_values,
    )


class RunningStats:
    """
    Incremental count / mean / min / max (Welford).

    Fed from the ordered series for live output while the run is in
    progress; the final report always comes from `aggregate`.
    """

    def __init__(self):
        self.count = 0
        self.mean = 0.0
        self._m2 = 0.0
        self.min = math.inf
        self.max = -math.inf

    def update(self, value: float):
        self.count += 1
        delta = value - self.mean
        self.mean += delta / self.count
        self._m2 += delta * (value - self.mean)
        self.min = min(self.min, value)
        self.max = max(self.max, value)

    @property
    def std_dev(self) -> float:
        if self.count < 2:
            return 0.0
        return math.sqrt(self._m2 / (self.count - 1))

    def to_dict(self) -> Dict:
        return {
            "count": self.count,
            "mean": self.mean if self.count else None,
            "min": self.min if self.count else None,
            "max": self.max if self.count else None,
            "std_dev": self.std_dev,
        }
