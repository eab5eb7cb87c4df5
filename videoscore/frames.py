"""
Frame Pairing Module
====================

Pairs frames from two independently decoded streams.

Features:
- Lazy, single-pass pairing of reference and distorted frames
- Identical frame skipping on both sides (stride)
- Stream length and frame size validation
- Decode failures tagged with the pair index they occurred at
"""

import numpy as np
from typing import Iterable, Iterator, Optional, Tuple
from dataclasses import dataclass
import logging

from .errors import DecodeError, DimensionMismatch, StreamLengthMismatch

logger = logging.getLogger(__name__)


@dataclass
class FramePair:
    """One reference frame matched with its distorted counterpart"""
    index: int               # Position in the strided sequence
    reference: np.ndarray
    distorted: np.ndarray
    frame: int = 0           # Source frame number (index * stride)


@dataclass(frozen=True)
class ScoreSample:
    """Metric score for a single frame pair"""
    index: int
    value: float

    def to_dict(self):
        return {"index": self.index, "value": self.value}


def frame_size(frame) -> Tuple[int, int]:
    """Return (width, height) of a decoded frame."""
    shape = np.shape(frame)
    if len(shape) < 2:
        raise ValueError(f"Frame must have at least 2 dimensions, got shape {shape}")
    return int(shape[1]), int(shape[0])


class FramePairSource:
    """
    Pull matched frame pairs from two frame producers.

    Each step advances both producers by `stride` frames, discarding the
    skipped frames on both sides so the streams stay aligned. The first
    step reads frame 0, so two streams of length L yield ceil(L / stride)
    pairs.

    Usage:
        source = FramePairSource(ref_reader, dist_reader, stride=2)
        for pair in source:
            ...
    """

    def __init__(self, reference: Iterable, distorted: Iterable, stride: int = 1):
        if stride < 1:
            raise ValueError(f"stride must be >= 1, got {stride}")
        self._reference = iter(reference)
        self._distorted = iter(distorted)
        self.stride = stride

        # Frames delivered by each producer so far
        self.reference_frames = 0
        self.distorted_frames = 0
        self.pairs_produced = 0
        self._started = False

    def __iter__(self) -> Iterator[FramePair]:
        if self._started:
            raise RuntimeError("FramePairSource is single-pass and cannot be restarted")
        self._started = True
        return self._generate()

    def _generate(self) -> Iterator[FramePair]:
        index = 0
        while True:
            skip = 0 if index == 0 else self.stride - 1
            frames = self._advance(index, skip)
            if frames is None:
                logger.debug(f"Both streams exhausted after {self.reference_frames} frames "
                             f"({self.pairs_produced} pairs)")
                return

            reference, distorted = frames
            ref_size = frame_size(reference)
            dist_size = frame_size(distorted)
            if ref_size != dist_size:
                raise DimensionMismatch(index, ref_size, dist_size)

            self.pairs_produced += 1
            yield FramePair(
                index=index,
                reference=reference,
                distorted=distorted,
                frame=self.reference_frames - 1,
            )
            index += 1

    def _advance(self, index: int, skip: int) -> Optional[Tuple[np.ndarray, np.ndarray]]:
        """
        Read skip + 1 frames from each producer.

        Returns:
            The last (reference, distorted) frames read, or None when both
            producers ran out at the same frame.
        """
        reference = distorted = None
        for _ in range(skip + 1):
            position = self.reference_frames
            reference = self._read(self._reference, "reference", index, position)
            distorted = self._read(self._distorted, "distorted", index, position)

            if reference is not None:
                self.reference_frames += 1
            if distorted is not None:
                self.distorted_frames += 1

            if reference is None and distorted is None:
                return None
            if reference is None or distorted is None:
                raise StreamLengthMismatch(self.reference_frames, self.distorted_frames)

        return reference, distorted

    @staticmethod
    def _read(producer: Iterator, stream: str, index: int, position: int):
        try:
            return next(producer)
        except StopIteration:
            return None
        except DecodeError as e:
            raise e.with_position(index, stream, position) from e
        except Exception as e:
            raise DecodeError(index=index, stream=stream, frame=position, reason=str(e)) from e
