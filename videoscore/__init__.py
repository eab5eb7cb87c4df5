"""
videoscore - Frame-Parallel Video Quality Scoring
=================================================

Full-reference per-frame quality scoring of a distorted video against
its reference, with bounded concurrent evaluation and ordered
aggregation into a summary report and score graph.

Modules:
- config: Frozen graph parameters and runtime settings
- errors: Fatal error taxonomy
- decoding: OpenCV / ffmpeg frame producers
- frames: Reference/distorted frame pairing with stride
- scheduler: Bounded thread pool for metric evaluation
- reassembly: Reordering buffer restoring frame order
- aggregation: Summary statistics
- progress: Rolling throughput / ETA tracking
- metrics: Ready-made frame metrics
- reporting: Report payload, text/CSV/JSON output and graph
- orchestrator: End-to-end comparison
"""

__version__ = "0.3.4"
