import math
from pathlib import Path
import sys

import numpy as np
import pytest

# Ensure package importable when tests run directly
sys.path.append(str(Path(__file__).resolve().parents[1]))

from videoscore.errors import DecodeError, DimensionMismatch, StreamLengthMismatch
from videoscore.frames import FramePairSource, frame_size


def frames(n, height=4, width=6, fail_at=None, exc=RuntimeError("corrupt packet")):
    """Frame producer whose pixels hold the source frame number."""
    for i in range(n):
        if fail_at is not None and i == fail_at:
            raise exc
        yield np.full((height, width, 3), i, dtype=np.int32)


@pytest.mark.parametrize("length", [0, 1, 2, 7, 9, 10, 12])
@pytest.mark.parametrize("stride", [1, 2, 3, 5])
def test_pair_count_is_ceil_of_length_over_stride(length, stride):
    source = FramePairSource(frames(length), frames(length), stride=stride)
    pairs = list(source)
    assert len(pairs) == math.ceil(length / stride)
    assert [p.index for p in pairs] == list(range(len(pairs)))


def test_stride_two_on_nine_frames():
    pairs = list(FramePairSource(frames(9), frames(9), stride=2))

    assert [p.index for p in pairs] == [0, 1, 2, 3, 4]
    assert [p.frame for p in pairs] == [0, 2, 4, 6, 8]
    assert [int(p.reference[0, 0, 0]) for p in pairs] == [0, 2, 4, 6, 8]
    assert [int(p.distorted[0, 0, 0]) for p in pairs] == [0, 2, 4, 6, 8]


def test_reference_longer_raises_after_nine_pairs():
    source = FramePairSource(frames(10), frames(9))
    produced = []
    with pytest.raises(StreamLengthMismatch) as excinfo:
        for pair in source:
            produced.append(pair.index)

    assert produced == list(range(9))
    assert excinfo.value.reference_frames == 10
    assert excinfo.value.distorted_frames == 9
    assert "distorted stream ended first" in str(excinfo.value)


def test_distorted_longer_raises():
    with pytest.raises(StreamLengthMismatch) as excinfo:
        list(FramePairSource(frames(3), frames(5)))
    assert excinfo.value.reference_frames == 3
    assert excinfo.value.distorted_frames == 4


def test_mismatch_inside_skipped_frames_is_detected():
    # Pairs 0,2,4,6,8 exist on both sides; the mismatch is at skipped frame 9
    source = FramePairSource(frames(10), frames(9), stride=2)
    produced = []
    with pytest.raises(StreamLengthMismatch):
        for pair in source:
            produced.append(pair.frame)
    assert produced == [0, 2, 4, 6, 8]


def test_dimension_mismatch_reports_sizes():
    with pytest.raises(DimensionMismatch) as excinfo:
        list(FramePairSource(frames(3, 4, 6), frames(3, 4, 8)))
    err = excinfo.value
    assert err.index == 0
    assert err.reference_size == (6, 4)
    assert err.distorted_size == (8, 4)


def test_decode_failure_tagged_with_index():
    source = FramePairSource(frames(10), frames(10, fail_at=5))
    produced = []
    with pytest.raises(DecodeError) as excinfo:
        for pair in source:
            produced.append(pair.index)

    assert produced == [0, 1, 2, 3, 4]
    err = excinfo.value
    assert err.index == 5
    assert err.stream == "distorted"
    assert err.kind == "DecodeError"
    assert isinstance(err.__cause__, RuntimeError)
    assert "frame index 5" in str(err)


def test_decode_failure_with_stride_keeps_source_frame():
    source = FramePairSource(frames(10, fail_at=5), frames(10), stride=2)
    with pytest.raises(DecodeError) as excinfo:
        list(source)
    # Frame 5 is skipped while building pair 3 (frame 6)
    assert excinfo.value.index == 3
    assert excinfo.value.frame == 5
    assert excinfo.value.stream == "reference"


def test_producer_decode_error_keeps_reason():
    failing = frames(4, fail_at=2, exc=DecodeError(reason="bad slice header"))
    with pytest.raises(DecodeError) as excinfo:
        list(FramePairSource(failing, frames(4)))
    assert excinfo.value.index == 2
    assert excinfo.value.reason == "bad slice header"


def test_source_is_single_pass():
    source = FramePairSource(frames(2), frames(2))
    list(source)
    with pytest.raises(RuntimeError):
        iter(source)


def test_invalid_stride_rejected():
    with pytest.raises(ValueError):
        FramePairSource(frames(1), frames(1), stride=0)


def test_frame_size_is_width_height():
    assert frame_size(np.zeros((480, 640, 3))) == (640, 480)
    assert frame_size(np.zeros((2, 3))) == (3, 2)
    with pytest.raises(ValueError):
        frame_size(np.zeros(5))
