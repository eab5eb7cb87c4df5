"""
Pipeline Errors
===============

Fatal error taxonomy for a video comparison run.

Every error carries enough context (frame index, sizes, stream lengths)
to diagnose a failure without re-running. None of them are retried.
"""

from typing import Optional, Tuple


class PipelineError(Exception):
    """Base class for all fatal pipeline errors"""

    @property
    def kind(self) -> str:
        return type(self).__name__


class DecodeError(PipelineError):
    """A frame producer failed to decode a frame."""

    def __init__(self, index: Optional[int] = None, stream: Optional[str] = None,
                 frame: Optional[int] = None, reason: str = ""):
        self.index = index
        self.stream = stream
        self.frame = frame
        self.reason = reason
        where = f"frame index {index}" if index is not None else "unknown frame"
        if stream:
            where = f"{stream} {where}"
        if frame is not None and frame != index:
            where += f" (source frame {frame})"
        message = f"Failed to decode {where}"
        if reason:
            message += f": {reason}"
        super().__init__(message)

    def with_position(self, index: int, stream: str, frame: int) -> "DecodeError":
        """Return a copy tagged with the pair position it occurred at."""
        return DecodeError(index=index, stream=stream, frame=frame, reason=self.reason)


class DimensionMismatch(PipelineError):
    """Paired frames differ in width or height."""

    def __init__(self, index: int, reference_size: Tuple[int, int],
                 distorted_size: Tuple[int, int]):
        self.index = index
        self.reference_size = reference_size
        self.distorted_size = distorted_size
        super().__init__(
            f"Frame index {index}: reference is "
            f"{reference_size[0]}x{reference_size[1]} but distorted is "
            f"{distorted_size[0]}x{distorted_size[1]}"
        )


class StreamLengthMismatch(PipelineError):
    """One stream ran out of frames before the other."""

    def __init__(self, reference_frames: int, distorted_frames: int):
        self.reference_frames = reference_frames
        self.distorted_frames = distorted_frames
        shorter = "distorted" if distorted_frames < reference_frames else "reference"
        super().__init__(
            f"Stream length mismatch: {shorter} stream ended first "
            f"(reference delivered {reference_frames} frames, "
            f"distorted delivered {distorted_frames})"
        )


class MetricError(PipelineError):
    """The metric function failed for a frame pair."""

    def __init__(self, index: int, reason: str = ""):
        self.index = index
        self.reason = reason
        message = f"Metric evaluation failed at frame index {index}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class EmptySeries(PipelineError):
    """No score samples were produced."""

    def __init__(self, message: str = "No frames were scored"):
        super().__init__(message)


class InvariantViolation(PipelineError):
    """Internal ordering invariant broken (indicates a scheduler bug)."""
