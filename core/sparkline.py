"""
Unicode sparklines for markdown reports.
"""

import math
from typing import Sequence

SPARK_CHARS = "▁▂▃▄▅▆▇█"
MIDDLE_LEVEL = 4

# (upper bound of consecutive ratio, level)
MAGNITUDE_STEPS = (
    (0.5, 0),
    (0.8, 2),
    (1.2, 4),
    (2.0, 6),
)


def _level(value: float, low: float, high: float) -> int:
    normalized = (value - low) / (high - low)
    # Round half up to the nearest of the eight levels
    index = int(math.floor(normalized * (len(SPARK_CHARS) - 1) + 0.5))
    return max(0, min(len(SPARK_CHARS) - 1, index))


def sparkline(values: Sequence[float]) -> str:
    """Min-max scaled sparkline; uniform series render as middle blocks."""
    if not values:
        return ""
    low, high = min(values), max(values)
    if low == high:
        return SPARK_CHARS[MIDDLE_LEVEL] * len(values)
    return "".join(SPARK_CHARS[_level(v, low, high)] for v in values)


def log_sparkline(values: Sequence[float]) -> str:
    """Sparkline over log10 of the values; non-positive values count as 0."""
    return sparkline([math.log10(v) if v > 0 else 0.0 for v in values])


def sparkline_char(values: Sequence[float], index: int) -> str:
    """The sparkline cell for one position of a series, for grid tables."""
    if not values or index < 0 or index >= len(values):
        return SPARK_CHARS[0]
    low, high = min(values), max(values)
    if low == high:
        return SPARK_CHARS[MIDDLE_LEVEL]
    return SPARK_CHARS[_level(values[index], low, high)]


def labeled_sparkline(values: Sequence[float], unit: str = "") -> str:
    line = sparkline(values)
    if not values:
        return line
    return f"{line} ({min(values):.1f}{unit} - {max(values):.1f}{unit})"


def _magnitude_level(previous: float, current: float) -> int:
    if previous == 0:
        return MIDDLE_LEVEL if current == 0 else len(SPARK_CHARS) - 1
    ratio = current / previous
    for bound, level in MAGNITUDE_STEPS:
        if ratio < bound:
            return level
    return len(SPARK_CHARS) - 1


def magnitude_sparkline(values: Sequence[float]) -> str:
    """One cell per step, showing how much each value changed from the previous one."""
    if len(values) < 2:
        return sparkline(values)
    cells = [SPARK_CHARS[MIDDLE_LEVEL]]
    for previous, current in zip(values, values[1:]):
        cells.append(SPARK_CHARS[_magnitude_level(previous, current)])
    return "".join(cells)
