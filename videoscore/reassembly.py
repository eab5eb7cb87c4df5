"""
Result Reassembly Module
========================

Reordering buffer restoring strict frame order from out-of-order
completions.

Samples ahead of the next expected index are parked in a sparse
index -> sample map. Since at most `worker_count` evaluations are in
flight, the map never holds more than that many entries.
"""

import threading
from typing import Dict, Iterable, Iterator, List, Optional
import logging

from .errors import InvariantViolation
from .frames import ScoreSample

logger = logging.getLogger(__name__)


class ResultReassembler:
    """
    Re-serialize score samples into increasing, gap-free index order.

    Usage:
        reassembler = ResultReassembler(capacity=worker_count)
        for sample in reassembler.reorder(scheduler.run(pairs)):
            ...  # index 0, 1, 2, ...
    """

    def __init__(self, capacity: Optional[int] = None):
        """
        Args:
            capacity: Maximum number of parked samples (None = unchecked)
        """
        self.capacity = capacity
        self.next_expected = 0
        self._pending: Dict[int, ScoreSample] = {}
        self._lock = threading.Lock()
        self.peak_pending = 0

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def push(self, sample: ScoreSample) -> List[ScoreSample]:
        """
        Accept one completed sample.

        Returns:
            Samples now ready for emission, in index order (possibly empty)

        Raises:
            InvariantViolation: stale or duplicate index, or capacity exceeded
        """
        with self._lock:
            index = sample.index
            if index < self.next_expected:
                raise InvariantViolation(
                    f"Sample for frame index {index} arrived after index "
                    f"{self.next_expected - 1} was already emitted"
                )
            if index in self._pending:
                raise InvariantViolation(f"Duplicate sample for frame index {index}")

            if index > self.next_expected:
                if self.capacity is not None and len(self._pending) >= self.capacity:
                    raise InvariantViolation(
                        f"Reorder buffer full ({self.capacity} samples) while "
                        f"waiting for frame index {self.next_expected}"
                    )
                self._pending[index] = sample
                self.peak_pending = max(self.peak_pending, len(self._pending))
                return []

            ready = [sample]
            self.next_expected += 1
            while self.next_expected in self._pending:
                ready.append(self._pending.pop(self.next_expected))
                self.next_expected += 1
            return ready

    def finish(self):
        """
        Check nothing is left behind once all completions were pushed.

        Raises:
            InvariantViolation: a gap prevented parked samples from emitting
        """
        with self._lock:
            if self._pending:
                missing = self.next_expected
                raise InvariantViolation(
                    f"Frame index {missing} never completed; "
                    f"{len(self._pending)} later sample(s) left unemitted"
                )

    def reorder(self, completions: Iterable[ScoreSample]) -> Iterator[ScoreSample]:
        """Yield samples from `completions` in strict index order."""
        for sample in completions:
            for ready in self.push(sample):
                yield ready
        self.finish()
        logger.debug(f"Reassembled {self.next_expected} samples "
                     f"(peak reorder buffer {self.peak_pending})")
