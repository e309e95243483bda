"""
Per-system workload analysis for fio-xsys.

Given every parsed workload record of one system:
  1. find the random-read blocksize with the highest bandwidth,
  2. pick the mixed-workload series whose average blocksize is closest to it,
  3. walk that series in order of increasing streaming limit and locate the
     knee point where random-read P99 latency jumps.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from core.errors import InsufficientDataError
from utils import print_warning
from workloads import (
    WorkloadKind,
    WorkloadRecord,
    blocksize_token,
    parse_blocksize,
    parse_stream_limit,
)

# Relative P99 increase between consecutive points that marks a knee
KNEE_THRESHOLD = 0.20
MIN_KNEE_POINTS = 3
MIN_RANDREAD_RESULTS = 2

STATUS_COMPLETE = "Knee point analysis complete"
STATUS_NO_KNEE = "No clear knee point found"
STATUS_INSUFFICIENT_MIXED = "Insufficient mixed workload data"


@dataclass(frozen=True)
class KneePoint:
    """Location of the largest above-threshold P99 jump in a sorted series."""
    index: int
    increase: float            # fractional, 1.61 == +161%
    previous_p99_ns: float
    p99_ns: float

    @property
    def increase_percent(self) -> float:
        return self.increase * 100.0


@dataclass(frozen=True)
class KneePointAnalysis:
    """Optimal (before knee) and sub-optimal (at knee) mixed workloads."""
    optimal_mixed: Optional[WorkloadRecord] = None
    sub_optimal_mixed: Optional[WorkloadRecord] = None
    message: str = STATUS_NO_KNEE
    sorted_series: Sequence[WorkloadRecord] = ()
    knee: Optional[KneePoint] = None

    @property
    def found(self) -> bool:
        return self.optimal_mixed is not None and self.sub_optimal_mixed is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "optimal_mixed": self.optimal_mixed.filename if self.optimal_mixed else None,
            "sub_optimal_mixed": self.sub_optimal_mixed.filename if self.sub_optimal_mixed else None,
            "message": self.message,
            "knee_increase_percent": round(self.knee.increase_percent, 2) if self.knee else None,
            "sorted_series": [r.filename for r in self.sorted_series],
        }


@dataclass(frozen=True)
class SystemAnalysis:
    """Complete analysis of one system's workload files."""
    optimal_randread: Optional[WorkloadRecord] = None
    all_randread_results: List[WorkloadRecord] = field(default_factory=list)
    matching_mixed_series: List[WorkloadRecord] = field(default_factory=list)
    knee_point: KneePointAnalysis = field(default_factory=KneePointAnalysis)
    records: List[WorkloadRecord] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)

    @property
    def status(self) -> str:
        return "; ".join([self.knee_point.message] + list(self.notes))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "optimal_randread": self.optimal_randread.filename if self.optimal_randread else None,
            "all_randread_results": [r.filename for r in self.all_randread_results],
            "matching_mixed_series": [r.filename for r in self.matching_mixed_series],
            "knee_point": self.knee_point.to_dict(),
            "total_records": len(self.records),
            "status": self.status,
        }


# ══════════════════════════════════════════════════════════════
# Classifier / Matcher
# ══════════════════════════════════════════════════════════════

def _has_usable_read_job(record: WorkloadRecord) -> bool:
    return record.randread_stats() is not None


def randread_results(records: Sequence[WorkloadRecord]) -> List[WorkloadRecord]:
    """Random-read records with a usable read job, bandwidth descending (stable)."""
    usable = [
        r for r in records
        if r.kind == WorkloadKind.RANDREAD and _has_usable_read_job(r)
    ]
    return sorted(usable, key=lambda r: r.randread_bandwidth_kbps, reverse=True)


def find_optimal_randread(records: Sequence[WorkloadRecord]) -> Optional[WorkloadRecord]:
    """Random-read record with the highest bandwidth; first one wins ties."""
    best = None
    for record in records:
        if record.kind != WorkloadKind.RANDREAD or not _has_usable_read_job(record):
            continue
        if best is None or record.randread_bandwidth_kbps > best.randread_bandwidth_kbps:
            best = record
    return best


def group_mixed_series(records: Sequence[WorkloadRecord]) -> "OrderedDict[str, List[WorkloadRecord]]":
    """Mixed records grouped by leading test-id digit, series ascending."""
    groups: Dict[str, List[WorkloadRecord]] = {}
    for record in records:
        if record.kind == WorkloadKind.MIXED:
            groups.setdefault(record.series_key, []).append(record)
    return OrderedDict((key, groups[key]) for key in sorted(groups))


def average_blocksize(series: Sequence[WorkloadRecord]) -> float:
    """Mean blocksize in bytes over a series, using the size token before any '_'."""
    if not series:
        return 0.0
    sizes = [parse_blocksize(blocksize_token(r.parameter)) for r in series]
    return sum(sizes) / len(sizes)


def find_matching_mixed_series(records: Sequence[WorkloadRecord],
                               optimal_randread: Optional[WorkloadRecord]) -> List[WorkloadRecord]:
    """Mixed series whose average blocksize is closest to the optimal randread's.

    Series are compared in ascending order and only a strictly closer series
    replaces the current best, so equidistant series resolve to the lowest.
    """
    if optimal_randread is None:
        return []

    target = parse_blocksize(blocksize_token(optimal_randread.parameter))
    best_series = None
    closest = None
    groups = group_mixed_series(records)
    for key, series in groups.items():
        difference = abs(average_blocksize(series) - target)
        if closest is None or difference < closest:
            closest = difference
            best_series = key

    return list(groups[best_series]) if best_series is not None else []


# ══════════════════════════════════════════════════════════════
# Knee-Point Analyzer
# ══════════════════════════════════════════════════════════════

def sort_by_stream_limit(series: Sequence[WorkloadRecord]) -> List[WorkloadRecord]:
    """Sort by streaming limit ascending; uncapped workloads go last."""
    return sorted(series, key=lambda r: parse_stream_limit(r.parameter))


def detect_knee_point(p99_values: Sequence[float],
                      threshold: float = KNEE_THRESHOLD) -> Optional[KneePoint]:
    """Find the largest consecutive P99 increase above the threshold.

    Pairs whose earlier value is not positive are skipped. Raises
    InsufficientDataError for fewer than three points.
    """
    if len(p99_values) < MIN_KNEE_POINTS:
        raise InsufficientDataError(
            f"need at least {MIN_KNEE_POINTS} points for knee detection, got {len(p99_values)}"
        )

    knee = None
    for i in range(1, len(p99_values)):
        previous = p99_values[i - 1]
        current = p99_values[i]
        if previous <= 0:
            continue
        increase = (current - previous) / previous
        if increase > threshold and (knee is None or increase > knee.increase):
            knee = KneePoint(index=i, increase=increase, previous_p99_ns=previous, p99_ns=current)
    return knee


def analyze_knee_point(mixed_series: Sequence[WorkloadRecord]) -> KneePointAnalysis:
    """Run knee detection over a mixed series (any order)."""
    ordered = sort_by_stream_limit(mixed_series)
    try:
        knee = detect_knee_point([r.randread_p99_ns for r in ordered])
    except InsufficientDataError:
        return KneePointAnalysis(message=STATUS_INSUFFICIENT_MIXED, sorted_series=tuple(ordered))

    if knee is None:
        return KneePointAnalysis(message=STATUS_NO_KNEE, sorted_series=tuple(ordered))

    return KneePointAnalysis(
        optimal_mixed=ordered[knee.index - 1],
        sub_optimal_mixed=ordered[knee.index],
        message=STATUS_COMPLETE,
        sorted_series=tuple(ordered),
        knee=knee,
    )


# ══════════════════════════════════════════════════════════════
# System Analysis
# ══════════════════════════════════════════════════════════════

def analyze_records(records: Sequence[WorkloadRecord], system_label: str = "") -> SystemAnalysis:
    """Run the full classifier → matcher → knee-point sequence for one system."""
    records = list(records)
    label = f"{system_label}: " if system_label else ""
    notes: List[str] = []

    all_randread = randread_results(records)
    optimal = find_optimal_randread(records)
    if optimal is None:
        notes.append("No randread workloads found")
        print_warning(f"{label}no usable randread workloads")
    elif len(all_randread) < MIN_RANDREAD_RESULTS:
        notes.append(f"Only {len(all_randread)} randread result; blocksize selection is not comparative")
        print_warning(f"{label}only {len(all_randread)} randread result available")

    matching = find_matching_mixed_series(records, optimal)
    if optimal is not None and not matching:
        notes.append("No matching mixed workload series found")

    knee = analyze_knee_point(matching)
    if knee.message == STATUS_INSUFFICIENT_MIXED and matching:
        print_warning(f"{label}{len(matching)} mixed workloads in series, knee detection needs {MIN_KNEE_POINTS}")

    return SystemAnalysis(
        optimal_randread=optimal,
        all_randread_results=all_randread,
        matching_mixed_series=matching,
        knee_point=knee,
        records=records,
        notes=notes,
    )
