"""
Video Decoding Module
=====================

Frame producers for the comparison pipeline.

A frame producer is any iterator of decoded frames (H x W x C numpy
arrays). Exhaustion is signalled with StopIteration; any exception
raised while reading is treated as a decode failure by the pipeline.

Features:
- OpenCV (cv2.VideoCapture) reader
- ffmpeg raw-pipe reader with explicit matrix, range, transfer and primaries
- ffprobe helpers for resolution and frame count
"""

import os
import subprocess
import tempfile
import numpy as np
import cv2
from typing import Dict, Iterator, List, Optional, Tuple
import logging

from .colors import (
    DEFAULT_TRANSFER,
    ffmpeg_matrix_name,
    ffmpeg_primaries_name,
    ffmpeg_transfer_name,
    guess_color_primaries,
    guess_matrix_coefficients,
)

logger = logging.getLogger(__name__)


# =============================================================================
# PROBING
# =============================================================================

def probe_video(filepath: str) -> Tuple[int, int]:
    """Get video width and height via ffprobe."""
    cmd = [
        "ffprobe", "-v", "error", "-select_streams", "v:0",
        "-show_entries", "stream=width,height",
        "-of", "csv=p=0", filepath
    ]
    result = subprocess.check_output(cmd, text=True).strip()
    w, h = result.split(",")[:2]
    return int(w), int(h)


def count_frames(filepath: str) -> Optional[int]:
    """
    Count video frames via ffprobe.

    Reads every packet, so it is exact but not instant. Returns None when
    ffprobe is missing or the count cannot be parsed; the progress display
    then falls back to a plain counter.
    """
    cmd = [
        "ffprobe", "-v", "error",
        "-select_streams", "v:0",
        "-count_packets",
        "-show_entries", "stream=nb_read_packets",
        "-of", "csv=p=0",
        filepath
    ]
    try:
        result = subprocess.run(cmd, capture_output=True, text=True)
    except OSError as e:
        logger.warning(f"ffprobe unavailable, frame count unknown: {e}")
        return None
    if result.returncode != 0:
        logger.warning(f"ffprobe failed for {filepath}: {result.stderr.strip()}")
        return None
    try:
        return int(result.stdout.strip().split(",")[0])
    except ValueError:
        return None


# =============================================================================
# READERS
# =============================================================================

class OpenCVFrameReader:
    """
    Decode frames with OpenCV.

    Usage:
        with OpenCVFrameReader("ref.mkv") as reader:
            for frame in reader:
                ...
    """

    def __init__(self, filepath: str):
        if not os.path.exists(filepath):
            raise FileNotFoundError(f"Video not found: {filepath}")
        self.filepath = filepath
        self.cap = cv2.VideoCapture(filepath)
        if not self.cap.isOpened():
            raise RuntimeError(f"Failed to open video: {filepath}")

        self.width = int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        self.height = int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        count = int(self.cap.get(cv2.CAP_PROP_FRAME_COUNT))
        self.frame_count: Optional[int] = count if count > 0 else None
        self.frames_read = 0

        logger.debug(f"Opened {filepath} with OpenCV: {self.width}x{self.height}, "
                     f"{self.frame_count or 'unknown'} frames")

    def __iter__(self) -> Iterator[np.ndarray]:
        return self

    def __next__(self) -> np.ndarray:
        if self.cap is None:
            raise StopIteration
        ret, frame = self.cap.read()
        if not ret:
            raise StopIteration
        self.frames_read += 1
        return frame

    def close(self):
        if self.cap is not None:
            self.cap.release()
            self.cap = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class FFmpegFrameReader:
    """
    Decode frames by piping raw BGR24 out of an ffmpeg process.

    Unlike OpenCV this makes the colour description explicit. The matrix
    coefficients and range are handed to ffmpeg's scaler, and the transfer
    characteristics and primaries are set on the decoded frames. Missing
    values fall back to a guess: the matrix from the resolution, the
    primaries from the matrix and resolution, the transfer to BT.1886.

    ffmpeg's stderr goes to a temporary file rather than a pipe so a
    noisy decode can never stall the stdout reads.
    """

    STDERR_TAIL_BYTES = 8192

    def __init__(self, filepath: str, matrix: Optional[str] = None,
                 full_range: bool = False, transfer: Optional[str] = None,
                 primaries: Optional[str] = None):
        if not os.path.exists(filepath):
            raise FileNotFoundError(f"Video not found: {filepath}")
        self.filepath = filepath
        self.width, self.height = probe_video(filepath)
        self.frame_count = count_frames(filepath)

        if matrix is None or matrix == "unspecified":
            matrix = guess_matrix_coefficients(self.width, self.height)
        if transfer is None or transfer == "unspecified":
            transfer = DEFAULT_TRANSFER
        if primaries is None or primaries == "unspecified":
            primaries = guess_color_primaries(matrix, self.width, self.height)
        self.matrix = matrix
        self.transfer = transfer
        self.primaries = primaries
        self.full_range = full_range
        self.frame_bytes = self.width * self.height * 3
        self.frames_read = 0

        logger.debug(f"Opened {filepath} with ffmpeg: {self.width}x{self.height}, "
                     f"matrix={self.matrix}, transfer={self.transfer}, "
                     f"primaries={self.primaries}, "
                     f"range={'full' if full_range else 'limited'}")

        self._stderr = tempfile.TemporaryFile()
        try:
            self.process = subprocess.Popen(
                self.decode_command(),
                stdout=subprocess.PIPE,
                stderr=self._stderr,
            )
        except OSError:
            self._stderr.close()
            raise

    def video_filter(self) -> str:
        """setparams (transfer, primaries) followed by the YUV -> RGB scaler."""
        params = []
        trc = ffmpeg_transfer_name(self.transfer)
        if trc is not None:
            params.append(f"color_trc={trc}")
        prim = ffmpeg_primaries_name(self.primaries)
        if prim is not None:
            params.append(f"color_primaries={prim}")

        in_range = "full" if self.full_range else "limited"
        scale = f"scale=in_color_matrix={ffmpeg_matrix_name(self.matrix)}:in_range={in_range}"
        if not params:
            return scale
        return f"setparams={':'.join(params)},{scale}"

    def color_description(self) -> Dict:
        return {
            "matrix": self.matrix,
            "transfer": self.transfer,
            "primaries": self.primaries,
            "full_range": self.full_range,
        }

    def decode_command(self) -> List[str]:
        """Build ffmpeg decode command that outputs raw bgr24 to pipe."""
        return [
            "ffmpeg", "-hide_banner", "-loglevel", "error",
            "-i", self.filepath,
            "-vf", self.video_filter(),
            "-f", "rawvideo", "-pix_fmt", "bgr24",
            "pipe:1"
        ]

    def stderr_tail(self) -> str:
        """Last few KB ffmpeg wrote to stderr."""
        if self._stderr is None:
            return ""
        self._stderr.flush()
        size = self._stderr.seek(0, os.SEEK_END)
        self._stderr.seek(max(0, size - self.STDERR_TAIL_BYTES))
        return self._stderr.read().decode(errors="replace").strip()

    def __iter__(self) -> Iterator[np.ndarray]:
        return self

    def __next__(self) -> np.ndarray:
        if self.process is None:
            raise StopIteration
        data = self.process.stdout.read(self.frame_bytes)
        if len(data) < self.frame_bytes:
            returncode = self.process.wait()
            if data or returncode != 0:
                raise RuntimeError(
                    f"ffmpeg failed after {self.frames_read} frames of {self.filepath} "
                    f"(exit {returncode}, {len(data)}/{self.frame_bytes} bytes): "
                    f"{self.stderr_tail()}"
                )
            raise StopIteration
        self.frames_read += 1
        return np.frombuffer(data, dtype=np.uint8).reshape(self.height, self.width, 3)

    def close(self):
        if self.process is not None:
            if self.process.poll() is None:
                self.process.kill()
            self.process.stdout.close()
            self.process.wait()
            self.process = None
        if self._stderr is not None:
            self._stderr.close()
            self._stderr = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


def open_reader(filepath: str, decoder: str = "opencv",
                matrix: Optional[str] = None, full_range: bool = False,
                transfer: Optional[str] = None, primaries: Optional[str] = None):
    """
    Open a frame producer for a video file.

    Args:
        filepath: Video path
        decoder: "opencv" or "ffmpeg"
        matrix: YUV matrix (ffmpeg decoder only)
        full_range: Input uses full-range YUV (ffmpeg decoder only)
        transfer: Transfer characteristics (ffmpeg decoder only)
        primaries: Colour primaries (ffmpeg decoder only)
    """
    if decoder == "opencv":
        if matrix is not None or full_range or transfer is not None or primaries is not None:
            logger.warning("Colour overrides are only honoured by the ffmpeg decoder")
        return OpenCVFrameReader(filepath)
    if decoder == "ffmpeg":
        return FFmpegFrameReader(filepath, matrix=matrix, full_range=full_range,
                                 transfer=transfer, primaries=primaries)
    raise ValueError(f"Unknown decoder: {decoder}")
