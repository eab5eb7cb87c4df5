"""
Colour description helpers for YUV -> RGB decoding.

Matrix, transfer and primaries names follow ITU-T H.273. Each parser
accepts the numeric code or one of the usual aliases and returns a
canonical name; the FFMPEG_* tables translate canonical names to the
option values ffmpeg's filters expect.
"""

from typing import Dict, Iterable, Mapping


def _alias_table(groups: Mapping[str, Iterable[str]]) -> Dict[str, str]:
    table = {}
    for name, aliases in groups.items():
        for alias in aliases:
            table[alias] = name
    return table


def _parse(text: str, codes: Dict[int, str], aliases: Dict[str, str], what: str) -> str:
    value = text.strip().lower()
    if value.isdigit():
        code = int(value)
        if code in codes:
            return codes[code]
        raise ValueError(f"Invalid {what} value: {text}")
    try:
        return aliases[value]
    except KeyError:
        raise ValueError(f"Unrecognized {what} string: {text}") from None


# ============================================================================
# MATRIX COEFFICIENTS
# ============================================================================

# H.273 code -> canonical name (3 is reserved)
MATRIX_CODES: Dict[int, str] = {
    0: "identity",
    1: "bt709",
    2: "unspecified",
    4: "bt470m",
    5: "bt470bg",
    6: "smpte170m",
    7: "smpte240m",
    8: "ycgco",
    9: "bt2020nc",
    10: "bt2020c",
    11: "smpte2085",
    12: "chroma-derived-nc",
    13: "chroma-derived-c",
    14: "ictcp",
}

MATRIX_ALIASES: Dict[str, str] = _alias_table({
    "identity": ("identity", "rgb", "srgb", "smpte428", "xyz", "gbr"),
    "bt709": ("709", "bt709"),
    "unspecified": ("unspecified",),
    "bt470m": ("bt470m", "470m", "fcc"),
    "bt470bg": ("bt470bg", "470bg", "601-625", "bt601-625", "pal"),
    "smpte170m": ("smpte170m", "170m", "601-525", "bt601-525", "bt601", "601", "ntsc"),
    "smpte240m": ("240m", "smpte240m"),
    "ycgco": ("ycgco",),
    "bt2020nc": ("2020", "2020ncl", "2020-ncl", "bt2020", "bt2020ncl", "bt2020-ncl", "bt2020nc"),
    "bt2020c": ("2020cl", "2020-cl", "bt2020cl", "bt2020-cl", "bt2020c"),
    "smpte2085": ("2085", "smpte2085"),
    "chroma-derived-nc": ("cd-ncl", "chroma-derived-nc"),
    "chroma-derived-c": ("cd-cl", "chroma-derived-c"),
    "ictcp": ("2100", "bt2100", "ictcp"),
})

# Names understood by ffmpeg's scale filter (in_color_matrix)
FFMPEG_SCALE_MATRICES: Dict[str, str] = {
    "bt709": "bt709",
    "bt470m": "fcc",
    "bt470bg": "bt470",
    "smpte170m": "smpte170m",
    "smpte240m": "smpte240m",
    "bt2020nc": "bt2020",
    "bt2020c": "bt2020",
}


# ============================================================================
# TRANSFER CHARACTERISTICS
# ============================================================================

# H.273 code -> canonical name (0 and 3 are reserved)
TRANSFER_CODES: Dict[int, str] = {
    1: "bt1886",
    2: "unspecified",
    4: "bt470m",
    5: "bt470bg",
    6: "smpte170m",
    7: "smpte240m",
    8: "linear",
    9: "log100",
    10: "log316",
    11: "xvycc",
    12: "bt1361e",
    13: "srgb",
    14: "bt2020-10",
    15: "bt2020-12",
    16: "pq",
    17: "smpte428",
    18: "hlg",
}

TRANSFER_ALIASES: Dict[str, str] = _alias_table({
    "bt1886": ("709", "bt709", "1886", "bt1886", "1361", "bt1361"),
    "unspecified": ("unspecified",),
    "bt470m": ("470m", "bt470m", "pal"),
    "bt470bg": ("470bg", "bt470bg"),
    "smpte170m": ("601", "bt601", "ntsc", "smpte170m", "170m", "1358", "bt1358",
                  "1700", "bt1700"),
    "smpte240m": ("240m", "smpte240m"),
    "linear": ("linear",),
    "log100": ("log100",),
    "log316": ("log316",),
    "xvycc": ("xvycc",),
    "bt1361e": ("1361e", "bt1361e"),
    "srgb": ("srgb",),
    "bt2020-10": ("2020", "bt2020", "2020-10", "bt2020-10"),
    "bt2020-12": ("2020-12", "bt2020-12"),
    "pq": ("pq", "2084", "smpte2084", "2100", "bt2100"),
    "smpte428": ("428", "smpte428"),
    "hlg": ("hlg", "b67", "arib-b67"),
})

# Names understood by ffmpeg's setparams filter (color_trc)
FFMPEG_TRANSFERS: Dict[str, str] = {
    "bt1886": "bt709",
    "bt470m": "gamma22",
    "bt470bg": "gamma28",
    "smpte170m": "smpte170m",
    "smpte240m": "smpte240m",
    "linear": "linear",
    "log100": "log100",
    "log316": "log316",
    "xvycc": "iec61966-2-4",
    "bt1361e": "bt1361e",
    "srgb": "iec61966-2-1",
    "bt2020-10": "bt2020-10",
    "bt2020-12": "bt2020-12",
    "pq": "smpte2084",
    "smpte428": "smpte428",
    "hlg": "arib-std-b67",
}

DEFAULT_TRANSFER = "bt1886"


# ============================================================================
# COLOUR PRIMARIES
# ============================================================================

# H.273 code -> canonical name (0, 3 and 13-21 are reserved)
PRIMARIES_CODES: Dict[int, str] = {
    1: "bt709",
    2: "unspecified",
    4: "bt470m",
    5: "bt470bg",
    6: "smpte170m",
    7: "smpte240m",
    8: "film",
    9: "bt2020",
    10: "smpte428",
    11: "p3dci",
    12: "p3display",
    22: "tech3213",
}

PRIMARIES_ALIASES: Dict[str, str] = _alias_table({
    "bt709": ("709", "bt709", "1361", "bt1361", "srgb"),
    "unspecified": ("unspecified",),
    "bt470m": ("470m", "bt470m"),
    "bt470bg": ("470bg", "bt470bg", "601-625", "bt601-625", "pal"),
    "smpte170m": ("smpte170m", "170m", "601-525", "bt601-525", "bt601", "601", "ntsc"),
    "smpte240m": ("240m", "smpte240m"),
    "film": ("film", "c"),
    "bt2020": ("2020", "bt2020", "2100", "bt2100"),
    "smpte428": ("428", "smpte428", "xyz"),
    "p3dci": ("p3", "p3dci", "p3-dci", "431", "smpte431"),
    "p3display": ("p3display", "p3-display", "432", "smpte432"),
    "tech3213": ("3213", "tech3213"),
})

# Names understood by ffmpeg's setparams filter (color_primaries)
FFMPEG_PRIMARIES: Dict[str, str] = {
    "bt709": "bt709",
    "bt470m": "bt470m",
    "bt470bg": "bt470bg",
    "smpte170m": "smpte170m",
    "smpte240m": "smpte240m",
    "film": "film",
    "bt2020": "bt2020",
    "smpte428": "smpte428",
    "p3dci": "smpte431",
    "p3display": "smpte432",
    "tech3213": "ebu3213",
}


# ============================================================================
# PARSING
# ============================================================================

def parse_matrix(text: str) -> str:
    """
    Parse a matrix coefficients argument.

    Accepts H.273 numeric codes and the usual aliases
    ("709", "ntsc", "pal", "2020", ...).

    Raises:
        ValueError: unrecognized value
    """
    return _parse(text, MATRIX_CODES, MATRIX_ALIASES, "matrix coefficient")


def parse_transfer(text: str) -> str:
    """Parse a transfer characteristics argument ("709", "pq", "hlg", "13", ...)."""
    return _parse(text, TRANSFER_CODES, TRANSFER_ALIASES, "transfer characteristics")


def parse_primaries(text: str) -> str:
    """Parse a colour primaries argument ("709", "2020", "p3", "9", ...)."""
    return _parse(text, PRIMARIES_CODES, PRIMARIES_ALIASES, "color primaries")


# ============================================================================
# GUESSING
# ============================================================================

def guess_matrix_coefficients(width: int, height: int) -> str:
    if width >= 1280 or height > 576:
        return "bt709"
    if height == 576:
        return "bt470bg"
    return "smpte170m"


# Heuristic taken from mpv
def guess_color_primaries(matrix: str, width: int, height: int) -> str:
    if matrix in ("bt2020nc", "bt2020c"):
        return "bt2020"
    if matrix == "bt709" or width >= 1280 or height > 576:
        return "bt709"
    if height == 576:
        return "bt470bg"
    if height in (480, 488):
        return "smpte170m"
    return "bt709"


def ffmpeg_matrix_name(matrix: str) -> str:
    """Map a canonical matrix name to ffmpeg's scaler option ("auto" if unsupported)."""
    return FFMPEG_SCALE_MATRICES.get(matrix, "auto")


def ffmpeg_transfer_name(transfer: str):
    """ffmpeg color_trc name, or None when ffmpeg has no equivalent."""
    return FFMPEG_TRANSFERS.get(transfer)


def ffmpeg_primaries_name(primaries: str):
    """ffmpeg color_primaries name, or None when ffmpeg has no equivalent."""
    return FFMPEG_PRIMARIES.get(primaries)
