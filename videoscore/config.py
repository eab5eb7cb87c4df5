"""
Pipeline Configuration Module
=============================

Frozen graph parameters and runtime pipeline settings.

Runtime settings are validated on construction so that a bad worker
count or stride fails before any frame is decoded.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple
import hashlib
import json
import logging
from datetime import datetime

logger = logging.getLogger(__name__)

# ============================================================================
# FROZEN GRAPH PARAMETERS
# ============================================================================

@dataclass(frozen=True)
class GraphConfig:
    """
    Frozen score graph configuration.

    Matches the layout of the per-frame graph produced by the
    reference ssimulacra2 tooling.
    """
    # Output size in pixels
    WIDTH: int = 1500
    HEIGHT: int = 1000
    DPI: int = 100

    # Score axis
    Y_MIN: float = 0.0
    Y_MAX: float = 100.0

    # Labels
    TITLE: str = "SSIMULACRA2"
    X_LABEL: str = "Frame"
    Y_LABEL: str = "Score"

    # Colours
    BACKGROUND: str = "black"
    FOREGROUND: str = "white"
    AREA_COLOR: str = "cyan"
    AREA_ALPHA: float = 0.5
    GRID_ALPHA: float = 0.3

    # File naming: <prefix>-<unix timestamp>.png
    FILENAME_PREFIX: str = "ssimulacra2-video"

    # Version tracking
    CONFIG_VERSION: str = "1.0.0"


DEFAULT_PERCENTILES: Tuple[float, ...] = (5.0, 50.0, 95.0)


@dataclass
class StreamColorConfig:
    """Colour description for one input stream (used by the ffmpeg decoder)"""
    matrix: Optional[str] = None      # None = guess from resolution
    full_range: bool = False
    transfer: Optional[str] = None    # None = BT.1886
    primaries: Optional[str] = None   # None = guess from matrix and resolution

    def reader_options(self) -> Dict:
        """Keyword arguments for decoding.open_reader"""
        return {
            "matrix": self.matrix,
            "full_range": self.full_range,
            "transfer": self.transfer,
            "primaries": self.primaries,
        }


@dataclass
class PipelineConfig:
    """
    Main pipeline configuration.

    Combines the frozen graph config with runtime settings.
    """
    graph_config: GraphConfig = field(default_factory=GraphConfig)

    # Runtime settings (can be modified)
    worker_count: int = 1                 # Concurrent metric evaluations
    stride: int = 1                       # Evaluate every Nth frame
    percentiles: Tuple[float, ...] = DEFAULT_PERCENTILES
    metric: str = "psnr"                  # Name in metrics.METRICS
    decoder: str = "opencv"               # "opencv" | "ffmpeg"

    # Progress display
    progress_window_sec: float = 5.0      # Trailing window for rolling fps
    progress_interval_sec: float = 0.1    # Minimum time between redraws

    # Output
    verbose: bool = False                 # Per-frame scores
    graph: bool = False                   # Write score graph
    output_dir: str = "."

    source_color: StreamColorConfig = field(default_factory=StreamColorConfig)
    distorted_color: StreamColorConfig = field(default_factory=StreamColorConfig)

    def __post_init__(self):
        self.percentiles = tuple(float(p) for p in self.percentiles)
        self.validate()
        self._created_at = datetime.now().isoformat()

    def validate(self):
        """Reject settings the pipeline cannot honour."""
        if self.worker_count < 1:
            raise ValueError(f"worker_count must be >= 1, got {self.worker_count}")
        if self.stride < 1:
            raise ValueError(f"stride must be >= 1, got {self.stride}")
        for p in self.percentiles:
            if not 0.0 <= p <= 100.0:
                raise ValueError(f"Percentile out of range [0, 100]: {p}")
        if self.progress_window_sec <= 0:
            raise ValueError("progress_window_sec must be positive")
        if self.decoder not in ("opencv", "ffmpeg"):
            raise ValueError(f"Unknown decoder: {self.decoder}")

    @property
    def config_hash(self) -> str:
        """Deterministic hash of the settings that affect scores"""
        config_dict = {
            "stride": self.stride,
            "metric": self.metric,
            "decoder": self.decoder,
            "source_color": self.source_color.__dict__,
            "distorted_color": self.distorted_color.__dict__,
        }
        config_str = json.dumps(config_dict, sort_keys=True)
        return hashlib.sha256(config_str.encode()).hexdigest()[:16]

    def to_dict(self) -> Dict:
        """Export configuration as dictionary"""
        return {
            "graph": {k: v for k, v in self.graph_config.__dict__.items()},
            "runtime": {
                "worker_count": self.worker_count,
                "stride": self.stride,
                "percentiles": list(self.percentiles),
                "metric": self.metric,
                "decoder": self.decoder,
                "progress_window_sec": self.progress_window_sec,
                "progress_interval_sec": self.progress_interval_sec,
                "verbose": self.verbose,
                "graph": self.graph,
                "output_dir": self.output_dir,
            },
            "color": {
                "source": dict(self.source_color.__dict__),
                "distorted": dict(self.distorted_color.__dict__),
            },
            "meta": {
                "config_hash": self.config_hash,
                "created_at": self._created_at,
                "version": self.graph_config.CONFIG_VERSION,
            },
        }

    def save(self, path: str):
        """Save configuration to JSON file"""
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.debug(f"Saved config to {path}")

    @classmethod
    def load(cls, path: str) -> "PipelineConfig":
        """Load configuration from JSON file"""
        with open(path, "r") as f:
            data = json.load(f)

        runtime = data.get("runtime", {})
        color = data.get("color", {})
        return cls(
            worker_count=runtime.get("worker_count", 1),
            stride=runtime.get("stride", 1),
            percentiles=tuple(runtime.get("percentiles", DEFAULT_PERCENTILES)),
            metric=runtime.get("metric", "psnr"),
            decoder=runtime.get("decoder", "opencv"),
            progress_window_sec=runtime.get("progress_window_sec", 5.0),
            progress_interval_sec=runtime.get("progress_interval_sec", 0.1),
            verbose=runtime.get("verbose", False),
            graph=runtime.get("graph", False),
            output_dir=runtime.get("output_dir", "."),
            source_color=StreamColorConfig(**color.get("source", {})),
            distorted_color=StreamColorConfig(**color.get("distorted", {})),
        )


# ============================================================================
# DEFAULT CONFIGURATION INSTANCE
# ============================================================================

DEFAULT_CONFIG = PipelineConfig()
