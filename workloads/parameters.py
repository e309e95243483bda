"""
Parameter token parsing for workload filenames.

The parameter is the third dash-separated field of a workload filename:
  randread-005-16k.fio.json        -> "16k"
  mixed-301-1to4k_10Mseq.fio.json  -> "1to4k_10Mseq"
  mixed-309-1to4k_uncapped.fio.json -> "1to4k_uncapped"
"""

import math
import re

from utils import print_warning

SIZE_MULTIPLIERS = {
    "": 1,
    "k": 1024,
    "m": 1024 ** 2,
    "g": 1024 ** 3,
}

_NUMBER = r"(\d+(?:\.\d+)?)"
_SUFFIX = r"([kKmMgG]?)"

BARE_SIZE_PATTERN = re.compile(rf"^{_NUMBER}{_SUFFIX}$")
RANGE_PATTERN = re.compile(rf"^{_NUMBER}{_SUFFIX}to{_NUMBER}{_SUFFIX}$")
STREAM_LIMIT_PATTERN = re.compile(r"_(\d+)Mseq")


def _to_bytes(number: str, suffix: str) -> float:
    return float(number) * SIZE_MULTIPLIERS[suffix.lower()]


def parse_blocksize(token: str) -> float:
    """Parse a blocksize token to bytes.

    Supported grammars:
      - bare size:                 "512", "16k", "64K", "1M"
      - range, shared suffix:      "1to4k"     -> avg(1K, 4K)   = 2560
      - range, per-bound suffix:   "512Kto1M"  -> avg(512K, 1M) = 786432
      - bare numeric range:        "1to4"      -> avg(1, 4)     = 2.5

    Anything else returns 0.0, which downstream matching treats as the
    worst possible match. Never raises.
    """
    if token is None:
        return 0.0
    token = str(token).strip()

    match = RANGE_PATTERN.match(token)
    if match:
        low_num, low_suffix, high_num, high_suffix = match.groups()
        if not low_suffix:
            # "1to4k": the trailing suffix applies to both bounds
            low_suffix = high_suffix
        low = _to_bytes(low_num, low_suffix)
        high = _to_bytes(high_num, high_suffix)
        return (low + high) / 2.0

    match = BARE_SIZE_PATTERN.match(token)
    if match:
        return _to_bytes(*match.groups())

    print_warning(f"Unable to parse blocksize: {token!r}")
    return 0.0


def blocksize_token(parameter: str) -> str:
    """Return the size part of a parameter (everything before the first '_')."""
    return (parameter or "").split("_")[0]


def parse_stream_limit(parameter: str) -> float:
    """Streaming limit in MB/s from a '_<N>Mseq' token; uncapped sorts last (inf)."""
    match = STREAM_LIMIT_PATTERN.search(parameter or "")
    if match:
        return float(match.group(1))
    return math.inf


def stream_limit_mbps(parameter: str):
    """Streaming limit in MB/s, or None when the workload is uncapped."""
    limit = parse_stream_limit(parameter)
    return None if math.isinf(limit) else limit


def describe_stream_limit(parameter: str, short: bool = False) -> str:
    """Human-readable streaming limit for reports."""
    limit = stream_limit_mbps(parameter)
    if limit is None:
        if short:
            return "Unlimited"
        return "Uncapped (no streaming limit)"
    if short:
        return f"{limit:g} MB/s"
    return f"{limit:g} MB/s sequential streaming limit"


_DISPLAY_PREFIXES = {
    "randread": "Random Read",
    "seqread": "Sequential Read",
    "seqwrite": "Sequential Write",
}


def workload_display_name(filename: str) -> str:
    """Readable workload name from a filename.

    randread-005-16k.fio.json            -> Random Read 16K
    mixed-602-128to256k_20Mseq.fio.json  -> Mixed 128-256k (20 MB/s)
    """
    basename = filename
    for ext in (".fio.json", ".json"):
        if basename.endswith(ext):
            basename = basename[:-len(ext)]
            break

    parts = basename.split("-", 2)
    if len(parts) < 3:
        return basename.replace("-", " ").upper()

    kind, _test_id, parameter = parts
    if kind in _DISPLAY_PREFIXES:
        return f"{_DISPLAY_PREFIXES[kind]} {parameter.upper()}"

    if kind == "mixed":
        block_range = blocksize_token(parameter).replace("to", "-")
        limit = stream_limit_mbps(parameter)
        if limit is None:
            return f"Mixed {block_range} (Uncapped)"
        return f"Mixed {block_range} ({limit:g} MB/s)"

    return basename.replace("-", " ").upper()
