"""
Progress Tracking Module
========================

Throughput and ETA estimation from evaluation completion events.

Features:
- Order-insensitive: only counts completions, never looks at content
- Rolling frame rate over a trailing time window (not a cumulative
  average), so speed changes show up quickly
- Rate-limited, coalesced listener updates that never block evaluation
- tqdm-based terminal display
"""

import sys
import time
import threading
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Optional, Tuple
import logging

from tqdm import tqdm

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressState:
    """Point-in-time view of run progress"""
    completed: int
    total: Optional[int]
    rolling_rate: float       # frames per second over the trailing window
    started_at: float         # clock value at tracker creation
    now: float

    @property
    def elapsed(self) -> float:
        return max(0.0, self.now - self.started_at)

    @property
    def fraction(self) -> Optional[float]:
        if not self.total:
            return None
        return min(1.0, self.completed / self.total)

    @property
    def eta_seconds(self) -> Optional[float]:
        """Remaining time estimate; None when total or rate is unknown"""
        if self.total is None or self.rolling_rate <= 0:
            return None
        return max(0, self.total - self.completed) / self.rolling_rate


ProgressListener = Callable[[ProgressState], None]


class ProgressTracker:
    """
    Mutex-guarded single owner of progress state.

    `record` may be called from any thread; listener notifications are
    best-effort: a notification already running or one inside the update
    interval is skipped rather than waited for.
    """

    def __init__(self, total: Optional[int] = None,
                 window_sec: float = 5.0,
                 update_interval: float = 0.1,
                 on_update: Optional[ProgressListener] = None,
                 clock: Callable[[], float] = time.monotonic):
        if window_sec <= 0:
            raise ValueError("window_sec must be positive")
        self.total = total
        self.window_sec = window_sec
        self.update_interval = update_interval
        self.on_update = on_update
        self._clock = clock

        self._lock = threading.Lock()
        self._publish_lock = threading.Lock()
        self._events: Deque[Tuple[float, int]] = deque()
        self._window_count = 0
        self.completed = 0
        self.started_at = clock()
        self._last_published: Optional[float] = None

    def record(self, count: int = 1):
        """Register `count` finished evaluations."""
        now = self._clock()
        with self._lock:
            self.completed += count
            self._events.append((now, count))
            self._window_count += count
            self._prune(now)
        self._maybe_publish(now)

    def _prune(self, now: float):
        horizon = now - self.window_sec
        while self._events and self._events[0][0] < horizon:
            _, count = self._events.popleft()
            self._window_count -= count

    def snapshot(self) -> ProgressState:
        now = self._clock()
        with self._lock:
            self._prune(now)
            span = min(self.window_sec, now - self.started_at)
            rate = self._window_count / span if span > 0 else 0.0
            return ProgressState(
                completed=self.completed,
                total=self.total,
                rolling_rate=rate,
                started_at=self.started_at,
                now=now,
            )

    def _maybe_publish(self, now: float, force: bool = False):
        if self.on_update is None:
            return
        if not self._publish_lock.acquire(blocking=False):
            return
        try:
            if (not force and self._last_published is not None
                    and now - self._last_published < self.update_interval):
                return
            self._last_published = now
            try:
                self.on_update(self.snapshot())
            except Exception as e:
                logger.warning(f"Progress listener failed: {e}")
        finally:
            self._publish_lock.release()

    def finish(self) -> ProgressState:
        """Publish the final state regardless of the update interval."""
        self._maybe_publish(self._clock(), force=True)
        return self.snapshot()


# =============================================================================
# TERMINAL DISPLAY
# =============================================================================

def format_rate(rate: float) -> str:
    if rate <= 0:
        return "0 fps"
    if rate < 1.0:
        return f"{1.0 / rate:.2f} s/fr"
    return f"{rate:.2f} fps"


def format_eta(seconds: Optional[float]) -> str:
    if seconds is None:
        return "unknown"
    return tqdm.format_interval(seconds)


class TqdmProgressDisplay:
    """
    Progress listener drawing a tqdm bar on stderr.

    Hidden when stderr is not a terminal. Without a known total the bar
    just counts frames. When given running statistics (anything with
    `count` and `mean`) the current mean score is shown next to the rate.
    """

    def __init__(self, total: Optional[int] = None, desc: str = "Scoring",
                 disable: Optional[bool] = None, running=None):
        self.running = running
        if disable is None:
            disable = not sys.stderr.isatty()
        self.bar = tqdm(
            total=total,
            desc=desc,
            unit="fr",
            file=sys.stderr,
            dynamic_ncols=True,
            disable=disable,
        )

    def __call__(self, state: ProgressState):
        if self.bar.disable:
            return
        self.bar.n = state.completed
        postfix = format_rate(state.rolling_rate)
        if state.total is not None:
            postfix += f", eta {format_eta(state.eta_seconds)}"
        if self.running is not None and self.running.count:
            postfix += f", mean {self.running.mean:.2f}"
        self.bar.set_postfix_str(postfix, refresh=False)
        self.bar.refresh()

    def close(self):
        self.bar.close()
