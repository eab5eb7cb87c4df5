"""
Pipeline Orchestrator
=====================

Frame-parallel comparison of a reference and a distorted video.

Data flow:
    FramePairSource -> BoundedScheduler -> ResultReassembler
        -> RunningStats / ordered series -> aggregate -> VideoReport
    completion events -> ProgressTracker (independent of ordering)

Any fatal error cancels the run; no partial report is produced.
"""

import math
import time
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional
import logging

from .aggregation import RunningStats, aggregate
from .config import PipelineConfig, DEFAULT_CONFIG
from .decoding import open_reader
from .frames import FramePairSource, ScoreSample
from .metrics import get_metric
from .progress import ProgressTracker, TqdmProgressDisplay
from .reassembly import ResultReassembler
from .reporting import VideoReport, assemble_report
from .scheduler import BoundedScheduler, MetricFunction

logger = logging.getLogger(__name__)

SampleCallback = Callable[[ScoreSample], None]


class VideoComparison:
    """
    Score a distorted stream against its reference, frame by frame.

    Usage:
        comparison = VideoComparison(config)
        report = comparison.run(reference_frames, distorted_frames)
    """

    def __init__(self, config: PipelineConfig = None,
                 metric: Optional[MetricFunction] = None,
                 on_sample: Optional[SampleCallback] = None):
        """
        Initialize comparison.

        Args:
            config: PipelineConfig instance
            metric: Thread-safe score(reference, distorted) callable
                (None = look up config.metric)
            on_sample: Called for every sample in frame order
        """
        self.config = config or DEFAULT_CONFIG
        self.metric = metric or get_metric(self.config.metric)
        self.metric_name = getattr(self.metric, "__name__", self.config.metric)
        self.on_sample = on_sample

        self.running = RunningStats()
        self._run_metadata: Dict = {}

    def run(self, reference: Iterable, distorted: Iterable,
            total_frames: Optional[int] = None,
            metadata: Optional[Dict] = None,
            show_progress: bool = True) -> VideoReport:
        """
        Run the comparison to completion.

        Args:
            reference: Reference frame producer
            distorted: Distorted frame producer
            total_frames: Reference frame count if known (progress/ETA only)
            metadata: Extra entries for the report metadata
            show_progress: Draw a progress bar on stderr

        Returns:
            VideoReport

        Raises:
            PipelineError: first fatal error of the run
        """
        config = self.config
        start_time = time.time()
        total = math.ceil(total_frames / config.stride) if total_frames else None

        self._run_metadata = {
            "metric": self.metric_name,
            "worker_count": config.worker_count,
            "stride": config.stride,
            "percentiles": list(config.percentiles),
            "config_hash": config.config_hash,
            "start_time": datetime.now().isoformat(),
        }
        self._run_metadata.update(metadata or {})

        logger.info(f"Starting comparison (metric={self.metric_name}, "
                    f"workers={config.worker_count}, stride={config.stride})")
        if total is not None:
            logger.info(f"Expecting {total} frame pairs")

        source = FramePairSource(reference, distorted, stride=config.stride)
        scheduler = BoundedScheduler(self.metric, config.worker_count)
        reassembler = ResultReassembler(capacity=config.worker_count)

        self.running = RunningStats()
        display = TqdmProgressDisplay(total=total, running=self.running) if show_progress else None
        tracker = ProgressTracker(
            total=total,
            window_sec=config.progress_window_sec,
            update_interval=config.progress_interval_sec,
            on_update=display,
        )

        series: List[ScoreSample] = []

        def completions():
            for sample in scheduler.run(source):
                tracker.record()
                yield sample

        completed = completions()
        try:
            for sample in reassembler.reorder(completed):
                series.append(sample)
                self.running.update(sample.value)
                logger.debug(f"Frame {sample.index}: {sample.value:.8f} "
                             f"(running mean {self.running.mean:.4f})")
                if self.on_sample is not None:
                    self.on_sample(sample)
        except Exception as e:
            logger.error(f"Comparison aborted after {len(series)} ordered samples: {e}")
            raise
        finally:
            completed.close()
            final_state = tracker.finish()
            if display is not None:
                display.close()

        stats = aggregate([s.value for s in series], config.percentiles)

        elapsed = time.time() - start_time
        self._run_metadata.update({
            "end_time": datetime.now().isoformat(),
            "elapsed_sec": elapsed,
            "frames_decoded": source.reference_frames,
            "pairs": source.pairs_produced,
            "peak_in_flight": scheduler.peak_in_flight,
            "peak_reorder_buffer": reassembler.peak_pending,
            "final_rate_fps": final_state.rolling_rate,
            "running": self.running.to_dict(),
        })

        logger.info(f"Comparison complete: {stats.count} frames in {elapsed:.1f}s "
                    f"(mean {stats.mean:.4f})")

        return assemble_report(stats, series, self._run_metadata)


def compare_videos(source: str, distorted: str,
                   config: PipelineConfig = None,
                   metric: Optional[MetricFunction] = None,
                   on_sample: Optional[SampleCallback] = None,
                   show_progress: bool = True) -> VideoReport:
    """
    Convenience function to compare two video files.

    Args:
        source: Reference video path
        distorted: Distorted video path
        config: PipelineConfig (decoder, colour and runtime settings)
        metric: Metric callable overriding config.metric
        on_sample: Per-frame callback in frame order
        show_progress: Draw a progress bar on stderr

    Returns:
        VideoReport
    """
    config = config or DEFAULT_CONFIG

    logger.info(f"Source: {source}")
    logger.info(f"Distorted: {distorted}")

    with open_reader(source, config.decoder,
                     **config.source_color.reader_options()) as ref_reader, \
         open_reader(distorted, config.decoder,
                     **config.distorted_color.reader_options()) as dist_reader:

        metadata = {"source": source, "distorted": distorted, "decoder": config.decoder}
        if hasattr(ref_reader, "color_description"):
            metadata["source_color"] = ref_reader.color_description()
            metadata["distorted_color"] = dist_reader.color_description()

        comparison = VideoComparison(config, metric=metric, on_sample=on_sample)
        return comparison.run(
            ref_reader,
            dist_reader,
            total_frames=ref_reader.frame_count,
            metadata=metadata,
            show_progress=show_progress,
        )
