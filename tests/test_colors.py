from pathlib import Path
import sys

import pytest

# Ensure package importable when tests run directly
sys.path.append(str(Path(__file__).resolve().parents[1]))

from videoscore.colors import (
    ffmpeg_matrix_name,
    ffmpeg_primaries_name,
    ffmpeg_transfer_name,
    guess_color_primaries,
    guess_matrix_coefficients,
    parse_matrix,
    parse_primaries,
    parse_transfer,
)


@pytest.mark.parametrize("text, expected", [
    ("709", "bt709"),
    ("BT709", "bt709"),
    ("1", "bt709"),
    ("ntsc", "smpte170m"),
    ("601", "smpte170m"),
    ("pal", "bt470bg"),
    ("2020", "bt2020nc"),
    ("2020cl", "bt2020c"),
    ("9", "bt2020nc"),
    ("srgb", "identity"),
    (" 2100 ", "ictcp"),
])
def test_parse_matrix(text, expected):
    assert parse_matrix(text) == expected


@pytest.mark.parametrize("text", ["3", "15", "rec999", ""])
def test_parse_matrix_rejects_unknown(text):
    with pytest.raises(ValueError):
        parse_matrix(text)


def test_guess_matrix_from_resolution():
    assert guess_matrix_coefficients(1920, 1080) == "bt709"
    assert guess_matrix_coefficients(720, 576) == "bt470bg"
    assert guess_matrix_coefficients(720, 480) == "smpte170m"


def test_guess_primaries():
    assert guess_color_primaries("bt2020nc", 3840, 2160) == "bt2020"
    assert guess_color_primaries("smpte170m", 720, 480) == "smpte170m"
    assert guess_color_primaries("bt470bg", 720, 576) == "bt470bg"
    assert guess_color_primaries("smpte170m", 640, 360) == "bt709"


def test_ffmpeg_matrix_name():
    assert ffmpeg_matrix_name("bt470bg") == "bt470"
    assert ffmpeg_matrix_name("bt2020c") == "bt2020"
    assert ffmpeg_matrix_name("ictcp") == "auto"


@pytest.mark.parametrize("text, expected", [
    ("709", "bt1886"),
    ("1", "bt1886"),
    ("1886", "bt1886"),
    ("pal", "bt470m"),
    ("601", "smpte170m"),
    ("13", "srgb"),
    ("2020", "bt2020-10"),
    ("2020-12", "bt2020-12"),
    ("PQ", "pq"),
    ("2100", "pq"),
    ("18", "hlg"),
    ("b67", "hlg"),
])
def test_parse_transfer(text, expected):
    assert parse_transfer(text) == expected


@pytest.mark.parametrize("text", ["0", "3", "19", "gamma9", ""])
def test_parse_transfer_rejects_unknown(text):
    with pytest.raises(ValueError):
        parse_transfer(text)


@pytest.mark.parametrize("text, expected", [
    ("709", "bt709"),
    ("srgb", "bt709"),
    ("ntsc", "smpte170m"),
    ("pal", "bt470bg"),
    ("9", "bt2020"),
    ("2100", "bt2020"),
    ("p3", "p3dci"),
    ("12", "p3display"),
    ("xyz", "smpte428"),
    ("c", "film"),
    ("22", "tech3213"),
])
def test_parse_primaries(text, expected):
    assert parse_primaries(text) == expected


@pytest.mark.parametrize("text", ["0", "3", "13", "21", "adobe"])
def test_parse_primaries_rejects_unknown(text):
    with pytest.raises(ValueError):
        parse_primaries(text)


def test_error_messages_name_the_property():
    with pytest.raises(ValueError, match="Invalid transfer characteristics value: 3"):
        parse_transfer("3")
    with pytest.raises(ValueError, match="Unrecognized color primaries string: adobe"):
        parse_primaries("adobe")


def test_ffmpeg_transfer_and_primaries_names():
    assert ffmpeg_transfer_name("bt1886") == "bt709"
    assert ffmpeg_transfer_name("pq") == "smpte2084"
    assert ffmpeg_transfer_name("hlg") == "arib-std-b67"
    assert ffmpeg_transfer_name("unspecified") is None
    assert ffmpeg_primaries_name("p3dci") == "smpte431"
    assert ffmpeg_primaries_name("tech3213") == "ebu3213"
    assert ffmpeg_primaries_name("unspecified") is None
