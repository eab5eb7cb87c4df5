"""
videoscore - Video Comparison Runner
====================================

Score a distorted video against its reference frame by frame and print
the summary.

Usage:
    python score_videos.py ref.mkv enc.mkv                 # Run with defaults
    python score_videos.py ref.mkv enc.mkv -f 4            # 4 frame threads
    python score_videos.py ref.mkv enc.mkv -s 5 --graph    # Every 5th frame, write graph
    python score_videos.py ref.mkv enc.mkv --decoder ffmpeg --src-matrix 709

Version: 0.3.4
"""

import argparse
import logging
import sys
from pathlib import Path
from datetime import datetime

from videoscore.colors import parse_matrix, parse_primaries, parse_transfer
from videoscore.config import PipelineConfig, StreamColorConfig, DEFAULT_PERCENTILES
from videoscore.errors import PipelineError
from videoscore.metrics import METRICS
from videoscore.orchestrator import compare_videos
from videoscore.reporting import QualityReporter


def setup_logging(output_dir: str, verbose: bool = False):
    """Configure logging for the pipeline."""
    log_dir = Path(output_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"videoscore_{timestamp}.log"

    level = logging.DEBUG if verbose else logging.INFO

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(logging.INFO if verbose else logging.WARNING)

    logging.basicConfig(
        level=level,
        format='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            stream_handler
        ]
    )

    # Reduce noise from third-party libraries
    logging.getLogger('matplotlib').setLevel(logging.WARNING)
    logging.getLogger('PIL').setLevel(logging.WARNING)

    return str(log_file)


def parse_percentiles(text: str):
    try:
        return tuple(float(p) for p in text.split(",") if p.strip())
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid percentile list: {text}") from None


def _color_arg(parser):
    def parse(text: str) -> str:
        try:
            return parser(text)
        except ValueError as e:
            raise argparse.ArgumentTypeError(str(e)) from None
    return parse


matrix_arg = _color_arg(parse_matrix)
transfer_arg = _color_arg(parse_transfer)
primaries_arg = _color_arg(parse_primaries)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Compare two videos frame by frame. "
                    "Resolutions and frame counts must be identical.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Score every frame with a single worker
  python score_videos.py source.mkv distorted.mkv

  # Use 4 frame threads (memory grows linearly with this)
  python score_videos.py source.mkv distorted.mkv --frame-threads 4

  # Score every 10th frame and write a graph
  python score_videos.py source.mkv distorted.mkv --stride 10 --graph
        """
    )

    parser.add_argument('source', help='Original unmodified video')
    parser.add_argument('distorted', help='Distorted video')

    parser.add_argument(
        '--frame-threads', '-f',
        type=int,
        default=None,
        help='Worker threads for calculating scores (default: 1). '
             'Memory usage increases linearly with the number of workers.'
    )
    parser.add_argument(
        '--stride', '-s',
        type=int,
        default=None,
        help='Score every Nth frame (default: 1)'
    )
    parser.add_argument(
        '--graph', '-g',
        action='store_true',
        help='Write a frame-by-frame graph of scores'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Print the score of every frame before the summary'
    )
    parser.add_argument(
        '--metric',
        choices=sorted(METRICS),
        default=None,
        help='Per-frame metric (default: psnr)'
    )
    parser.add_argument(
        '--decoder',
        choices=['opencv', 'ffmpeg'],
        default=None,
        help='Frame decoder (default: opencv)'
    )
    parser.add_argument(
        '--percentiles',
        type=parse_percentiles,
        default=None,
        help='Comma-separated percentiles to report (default: 5,50,95)'
    )
    parser.add_argument(
        '--output', '-o',
        type=str,
        default=None,
        help='Output directory for graph, CSV and log (default: current directory)'
    )
    parser.add_argument(
        '--config',
        type=str,
        metavar='JSON_FILE',
        help='Load settings from a saved configuration file'
    )
    parser.add_argument(
        '--save-report',
        action='store_true',
        help='Also write scores.csv and summary.json to the output directory'
    )

    color = parser.add_argument_group('colour (ffmpeg decoder)')
    color.add_argument('--src-matrix', type=matrix_arg, help='Source color matrix')
    color.add_argument('--src-transfer', type=transfer_arg,
                       help='Source transfer characteristics (default: bt1886)')
    color.add_argument('--src-primaries', type=primaries_arg, help='Source color primaries')
    color.add_argument('--src-full-range', action='store_true',
                       help='The source is using full-range data')
    color.add_argument('--dst-matrix', type=matrix_arg, help='Distorted color matrix')
    color.add_argument('--dst-transfer', type=transfer_arg,
                       help='Distorted transfer characteristics (default: bt1886)')
    color.add_argument('--dst-primaries', type=primaries_arg, help='Distorted color primaries')
    color.add_argument('--dst-full-range', action='store_true',
                       help='The distorted video is using full-range data')

    return parser


def merge_color(base: StreamColorConfig, matrix=None, full_range=False,
                transfer=None, primaries=None) -> StreamColorConfig:
    """Command-line colour flags override the saved values they name."""
    return StreamColorConfig(
        matrix=matrix or base.matrix,
        full_range=full_range or base.full_range,
        transfer=transfer or base.transfer,
        primaries=primaries or base.primaries,
    )


def build_config(args) -> PipelineConfig:
    """Merge command-line overrides onto the defaults or a saved config."""
    base = PipelineConfig.load(args.config) if args.config else PipelineConfig()

    source_color = merge_color(base.source_color, args.src_matrix, args.src_full_range,
                               args.src_transfer, args.src_primaries)
    distorted_color = merge_color(base.distorted_color, args.dst_matrix, args.dst_full_range,
                                  args.dst_transfer, args.dst_primaries)

    return PipelineConfig(
        worker_count=max(1, args.frame_threads if args.frame_threads is not None else base.worker_count),
        stride=args.stride if args.stride is not None else base.stride,
        percentiles=args.percentiles or base.percentiles or DEFAULT_PERCENTILES,
        metric=args.metric or base.metric,
        decoder=args.decoder or base.decoder,
        progress_window_sec=base.progress_window_sec,
        progress_interval_sec=base.progress_interval_sec,
        verbose=args.verbose or base.verbose,
        graph=args.graph or base.graph,
        output_dir=args.output or base.output_dir,
        source_color=source_color,
        distorted_color=distorted_color,
    )


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = build_config(args)
    except (OSError, ValueError) as e:
        parser.error(str(e))

    log_file = setup_logging(config.output_dir, config.verbose)
    logger = logging.getLogger(__name__)

    logger.info("=" * 70)
    logger.info("videoscore comparison")
    logger.info("=" * 70)
    logger.info(f"Workers: {config.worker_count}, stride: {config.stride}, metric: {config.metric}")
    logger.info(f"Log file: {log_file}")

    on_sample = None
    if config.verbose:
        def on_sample(sample):
            print(f"Frame {sample.index}: {sample.value:.8f}")

    try:
        report = compare_videos(
            args.source,
            args.distorted,
            config=config,
            on_sample=on_sample,
        )
    except PipelineError as e:
        logger.error(f"{e.kind}: {e}")
        print(f"error: {e.kind}: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.exception(f"Comparison failed: {e}")
        print(f"error: {e}", file=sys.stderr)
        return 1

    reporter = QualityReporter(report, config.output_dir, config.graph_config)
    print(reporter.format_summary())

    if args.save_report:
        reporter.generate_full_report(graph=False)

    if config.graph:
        graph_path = reporter.plot_score_graph()
        print()
        print(f"Graph written to {graph_path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
