"""
Reporting and Visualization Module
==================================

Report payload assembly and rendering.

Features:
- Pure report assembly (summary statistics + ordered score series)
- Text summary in the classic "Video Score for N frames" layout
- CSV series export and JSON summary
- Per-frame score graph
"""

import json
import time
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from pathlib import Path
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence
import logging

from .aggregation import AggregateStats
from .config import GraphConfig
from .errors import InvariantViolation
from .frames import ScoreSample

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VideoReport:
    """Externally consumed result of a comparison run"""
    stats: AggregateStats
    series: List[ScoreSample]
    metadata: Dict = field(default_factory=dict)

    @property
    def values(self) -> List[float]:
        return [s.value for s in self.series]

    @property
    def stride(self) -> int:
        return int(self.metadata.get("stride", 1))

    def to_dict(self) -> Dict:
        return {
            "summary": self.stats.to_dict(),
            "series": [s.to_dict() for s in self.series],
            "metadata": dict(self.metadata),
        }

    def to_dataframe(self) -> pd.DataFrame:
        """Ordered series as a DataFrame (index, source frame, score)."""
        return pd.DataFrame({
            "index": [s.index for s in self.series],
            "frame": [s.index * self.stride for s in self.series],
            "score": self.values,
        })


def assemble_report(stats: AggregateStats, series: Sequence[ScoreSample],
                    metadata: Optional[Dict] = None) -> VideoReport:
    """
    Package final statistics and the ordered series.

    Raises:
        InvariantViolation: the series is not gap-free from index 0 or does
            not match the statistics
    """
    series = list(series)
    for position, sample in enumerate(series):
        if sample.index != position:
            raise InvariantViolation(
                f"Report series out of order: position {position} holds index {sample.index}"
            )
    if len(series) != stats.count:
        raise InvariantViolation(
            f"Report series has {len(series)} samples but statistics cover {stats.count}"
        )
    return VideoReport(stats=stats, series=series, metadata=dict(metadata or {}))


def ordinal(p: float) -> str:
    """5 -> '5th', 1 -> '1st', 22 -> '22nd', 99.9 -> '99.9th'"""
    if p != int(p):
        return f"{p:g}th"
    n = int(p)
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


class QualityReporter:
    """
    Render a VideoReport to text, CSV, JSON and a score graph.
    """

    def __init__(self, report: VideoReport, output_dir: str = ".",
                 graph_config: GraphConfig = None):
        """
        Initialize reporter.

        Args:
            report: Finished comparison report
            output_dir: Output directory for written files
            graph_config: Graph layout (uses defaults if None)
        """
        self.report = report
        self.output_dir = Path(output_dir)
        self.graph_config = graph_config or GraphConfig()

    # =========================================================================
    # TEXT
    # =========================================================================

    def format_summary(self) -> str:
        stats = self.report.stats
        lines = [
            f"Video Score for {stats.count} frames",
            f"Mean: {stats.mean:.8f}",
            f"Median: {stats.median:.8f}",
            f"Std Dev: {stats.std_dev:.8f}",
            f"Min: {stats.min:.8f}",
            f"Max: {stats.max:.8f}",
        ]
        for p in sorted(stats.percentiles):
            lines.append(f"{ordinal(p)} Percentile: {stats.percentiles[p]:.8f}")
        return "\n".join(lines)

    def format_series(self) -> str:
        return "\n".join(f"Frame {s.index}: {s.value:.8f}" for s in self.report.series)

    # =========================================================================
    # FILES
    # =========================================================================

    def save_series_csv(self, filename: str = "scores.csv") -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / filename
        self.report.to_dataframe().to_csv(path, index=False)
        logger.info(f"Saved CSV: {path}")
        return path

    def save_summary_json(self, filename: str = "summary.json") -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / filename
        payload = {
            "summary": self.report.stats.to_dict(),
            "metadata": self.report.metadata,
        }
        with open(path, "w") as f:
            json.dump(payload, f, indent=2, default=str)
        logger.info(f"Saved summary: {path}")
        return path

    def plot_score_graph(self, path: Optional[Path] = None) -> Path:
        """
        Area graph of score vs frame.

        Written as <prefix>-<unix timestamp>.png unless a path is given.
        """
        cfg = self.graph_config
        if path is None:
            path = self.output_dir / f"{cfg.FILENAME_PREFIX}-{int(time.time())}.png"
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        values = self.report.values
        frames = list(range(len(values)))

        rc = {
            "figure.facecolor": cfg.BACKGROUND,
            "axes.facecolor": cfg.BACKGROUND,
            "axes.edgecolor": cfg.FOREGROUND,
            "axes.labelcolor": cfg.FOREGROUND,
            "text.color": cfg.FOREGROUND,
            "xtick.color": cfg.FOREGROUND,
            "ytick.color": cfg.FOREGROUND,
            "grid.color": cfg.FOREGROUND,
        }
        with sns.axes_style("dark", rc=rc):
            fig, ax = plt.subplots(figsize=(cfg.WIDTH / cfg.DPI, cfg.HEIGHT / cfg.DPI),
                                   dpi=cfg.DPI)
            ax.fill_between(frames, values, cfg.Y_MIN, color=cfg.AREA_COLOR,
                            alpha=cfg.AREA_ALPHA, linewidth=0)
            ax.plot(frames, values, color=cfg.AREA_COLOR, linewidth=1)

            ax.set_xlim(0, max(len(values) - 1, 1))
            ax.set_ylim(cfg.Y_MIN, cfg.Y_MAX)
            ax.grid(True, axis="y", alpha=cfg.GRID_ALPHA)
            ax.grid(False, axis="x")
            ax.set_title(cfg.TITLE, fontsize=32)
            ax.set_xlabel(cfg.X_LABEL, fontsize=18)
            ax.set_ylabel(cfg.Y_LABEL, fontsize=18)
            ax.tick_params(labelsize=16)

            fig.tight_layout()
            fig.savefig(path, dpi=cfg.DPI, facecolor=cfg.BACKGROUND)
            plt.close(fig)

        logger.info(f"Saved graph: {path}")
        return path

    # =========================================================================
    # REPORT GENERATION
    # =========================================================================

    def generate_full_report(self, graph: bool = False) -> Dict[str, Path]:
        """
        Write CSV, JSON and (optionally) the graph.

        Returns:
            Mapping of artifact name to written path
        """
        written = {
            "csv": self.save_series_csv(),
            "json": self.save_summary_json(),
        }
        if graph:
            written["graph"] = self.plot_score_graph()
        return written
