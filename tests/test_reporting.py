from pathlib import Path
import json
import sys

import matplotlib
matplotlib.use("Agg")
import matplotlib.image as mpimg
import pandas as pd
import pytest

# Ensure package importable when tests run directly
sys.path.append(str(Path(__file__).resolve().parents[1]))

from videoscore.aggregation import aggregate
from videoscore.config import GraphConfig
from videoscore.errors import InvariantViolation
from videoscore.frames import ScoreSample
from videoscore.reporting import QualityReporter, assemble_report, ordinal


def build_report(n=10, stride=1):
    series = [ScoreSample(i, i * 10.0) for i in range(n)]
    stats = aggregate([s.value for s in series])
    return assemble_report(stats, series, {"stride": stride, "metric": "stub"})


def test_assemble_report_keeps_series_and_metadata():
    report = build_report()
    assert report.stats.count == 10
    assert report.values == [i * 10.0 for i in range(10)]
    assert report.metadata["metric"] == "stub"


def test_assemble_report_rejects_unordered_series():
    series = [ScoreSample(0, 1.0), ScoreSample(2, 2.0), ScoreSample(1, 3.0)]
    stats = aggregate([1.0, 2.0, 3.0])
    with pytest.raises(InvariantViolation, match="position 1 holds index 2"):
        assemble_report(stats, series)


def test_assemble_report_rejects_count_mismatch():
    series = [ScoreSample(0, 1.0), ScoreSample(1, 2.0)]
    with pytest.raises(InvariantViolation):
        assemble_report(aggregate([1.0, 2.0, 3.0]), series)


@pytest.mark.parametrize("p, expected", [
    (1, "1st"), (2, "2nd"), (3, "3rd"), (5, "5th"), (11, "11th"),
    (12, "12th"), (22, "22nd"), (50.0, "50th"), (95, "95th"), (99.9, "99.9th"),
])
def test_ordinal(p, expected):
    assert ordinal(p) == expected


def test_format_summary_layout():
    summary = QualityReporter(build_report()).format_summary()
    lines = summary.splitlines()

    assert lines[0] == "Video Score for 10 frames"
    assert lines[1] == "Mean: 45.00000000"
    assert "Min: 0.00000000" in lines
    assert "Max: 90.00000000" in lines
    assert lines[-3:] == [
        "5th Percentile: 4.50000000",
        "50th Percentile: 45.00000000",
        "95th Percentile: 85.50000000",
    ]


def test_format_series():
    text = QualityReporter(build_report(n=3)).format_series()
    assert text.splitlines() == [
        "Frame 0: 0.00000000",
        "Frame 1: 10.00000000",
        "Frame 2: 20.00000000",
    ]


def test_dataframe_maps_index_to_source_frame():
    df = build_report(n=5, stride=2).to_dataframe()
    assert list(df.columns) == ["index", "frame", "score"]
    assert df["frame"].tolist() == [0, 2, 4, 6, 8]


def test_csv_and_json_written(tmp_path):
    reporter = QualityReporter(build_report(n=4, stride=3), output_dir=tmp_path / "out")
    written = reporter.generate_full_report()

    assert set(written) == {"csv", "json"}
    df = pd.read_csv(written["csv"])
    assert df["score"].tolist() == [0.0, 10.0, 20.0, 30.0]
    assert df["frame"].tolist() == [0, 3, 6, 9]

    payload = json.loads(Path(written["json"]).read_text())
    assert payload["summary"]["count"] == 4
    assert payload["summary"]["percentiles"]["p50"] == pytest.approx(15.0)
    assert payload["metadata"]["stride"] == 3


def test_graph_written_with_configured_size(tmp_path):
    reporter = QualityReporter(build_report(), output_dir=tmp_path)
    path = reporter.plot_score_graph()

    assert path.parent == tmp_path
    assert path.name.startswith("ssimulacra2-video-")
    assert path.suffix == ".png"

    image = mpimg.imread(str(path))
    assert image.shape[:2] == (1000, 1500)


def test_graph_with_small_layout_and_explicit_path(tmp_path):
    cfg = GraphConfig(WIDTH=300, HEIGHT=200, DPI=50)
    reporter = QualityReporter(build_report(n=1), graph_config=cfg)
    target = tmp_path / "graphs" / "single.png"

    assert reporter.plot_score_graph(target) == target
    image = mpimg.imread(str(target))
    assert image.shape[:2] == (200, 300)
