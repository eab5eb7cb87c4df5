"""
Bounded Job Scheduler
=====================

Runs metric evaluations for frame pairs on a fixed-size thread pool.

Features:
- At most `worker_count` evaluations in flight (decoded frames are large)
- Backpressure: the pair source is only advanced when a slot frees up
- Admission window: pair k is only submitted once every pair below
  k - worker_count has completed, so out-of-order results waiting for a
  slow frame never exceed worker_count
- Failures travel back through the result channel, never as exceptions
  raised across the worker boundary
- Cancellation on first failure: stop submitting, drain, then raise
"""

import threading
from concurrent.futures import ThreadPoolExecutor, wait, FIRST_COMPLETED
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Iterator, Optional
import logging

from .errors import MetricError, PipelineError
from .frames import FramePair, ScoreSample

logger = logging.getLogger(__name__)

MetricFunction = Callable[..., float]


@dataclass
class EvaluationOutcome:
    """Result channel entry for one evaluation"""
    index: int
    value: Optional[float] = None
    error: Optional[BaseException] = None
    skipped: bool = False


class BoundedScheduler:
    """
    Dispatch frame pairs to a bounded pool of metric evaluators.

    Usage:
        scheduler = BoundedScheduler(metric, worker_count=4)
        for sample in scheduler.run(pairs):
            ...  # completion order, not index order
    """

    def __init__(self, metric: MetricFunction, worker_count: int = 1):
        """
        Initialize scheduler.

        Args:
            metric: Callable scoring (reference, distorted) -> float.
                Must be safe to call from several threads at once.
            worker_count: Maximum concurrent evaluations (>= 1)
        """
        if worker_count < 1:
            raise ValueError(f"worker_count must be >= 1, got {worker_count}")
        self.metric = metric
        self.worker_count = worker_count

        self.cancelled = threading.Event()
        self._lock = threading.Lock()
        self._in_flight = 0
        self.peak_in_flight = 0
        self.submitted = 0
        self.completed = 0

        # Lowest index not yet completed, plus completions beyond it
        self._front = 0
        self._completed_ahead = set()

    @property
    def in_flight(self) -> int:
        with self._lock:
            return self._in_flight

    def _evaluate(self, pair: FramePair) -> EvaluationOutcome:
        """Worker body. Never raises: failures are returned as outcomes."""
        if self.cancelled.is_set():
            return EvaluationOutcome(index=pair.index, skipped=True)
        try:
            value = float(self.metric(pair.reference, pair.distorted))
        except Exception as e:
            return EvaluationOutcome(index=pair.index, error=e)
        return EvaluationOutcome(index=pair.index, value=value)

    def _dispatched(self):
        with self._lock:
            self._in_flight += 1
            self.submitted += 1
            self.peak_in_flight = max(self.peak_in_flight, self._in_flight)

    def _finished(self, index: int):
        with self._lock:
            self._in_flight -= 1
            self.completed += 1
            self._completed_ahead.add(index)
            while self._front in self._completed_ahead:
                self._completed_ahead.discard(self._front)
                self._front += 1

    def _can_admit(self) -> bool:
        with self._lock:
            return self.submitted < self._front + self.worker_count

    def run(self, pairs: Iterable[FramePair]) -> Iterator[ScoreSample]:
        """
        Evaluate every pair and yield samples as evaluations complete.

        Args:
            pairs: Frame pair sequence; advanced lazily on this thread

        Yields:
            ScoreSample per completed evaluation, in completion order

        Raises:
            The first failure observed: MetricError for evaluator failures,
            or whatever PipelineError the pair source raised.
        """
        pair_iter = iter(pairs)
        pending: Dict = {}
        failure: Optional[BaseException] = None
        exhausted = False

        logger.debug(f"Scheduler starting with {self.worker_count} worker(s)")

        with ThreadPoolExecutor(max_workers=self.worker_count,
                                thread_name_prefix="videoscore-eval") as executor:
            try:
                while True:
                    # Fill free slots; the source is never read ahead of them
                    while (not exhausted and not self.cancelled.is_set()
                           and len(pending) < self.worker_count
                           and self._can_admit()):
                        try:
                            pair = next(pair_iter)
                        except StopIteration:
                            exhausted = True
                            break
                        except PipelineError as e:
                            failure = e
                            self._cancel(f"frame source failed: {e}")
                            break

                        future = executor.submit(self._evaluate, pair)
                        self._dispatched()
                        pending[future] = pair.index
                        # Drop the local reference so finished frames can be freed
                        del pair

                    if not pending:
                        break

                    done, _ = wait(pending, return_when=FIRST_COMPLETED)
                    for future in sorted(done, key=pending.get):
                        pending_index = pending.pop(future)
                        outcome = future.result()
                        self._finished(pending_index)

                        if outcome.skipped:
                            continue
                        if outcome.error is not None:
                            if failure is None:
                                failure = MetricError(outcome.index, str(outcome.error))
                                failure.__cause__ = outcome.error
                                self._cancel(f"metric failed at frame index {outcome.index}")
                            else:
                                logger.debug(f"Ignoring later failure at frame index "
                                             f"{outcome.index}: {outcome.error}")
                            continue
                        if failure is None:
                            yield ScoreSample(outcome.index, outcome.value)
            finally:
                # Consumer stopped early or an error is propagating
                if pending:
                    self.cancelled.set()

        if failure is not None:
            raise failure

        logger.debug(f"Scheduler finished: {self.completed} evaluations, "
                     f"peak in flight {self.peak_in_flight}")

    def _cancel(self, reason: str):
        if not self.cancelled.is_set():
            logger.warning(f"Cancelling pipeline: {reason}; draining in-flight work")
            self.cancelled.set()
