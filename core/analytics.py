"""
fio-xsys Analytics Module - Profile Aggregation

Rolls per-system metrics up into per-profile summary statistics
(average / min / max / range factor) and ranks profiles against each other.
Everything here is a pure function of SystemMetrics records.
"""

import statistics
from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from core.metrics import SystemMetrics

HIGH_PERFORMANCE_MBPS = 5000.0
MEDIUM_PERFORMANCE_MBPS = 1000.0


# ══════════════════════════════════════════════════════════════
# Data Classes
# ══════════════════════════════════════════════════════════════

@dataclass
class SeriesStats:
    """Average, extremes and spread of one metric across a profile."""
    count: int = 0
    average: float = 0.0
    minimum: float = 0.0
    maximum: float = 0.0
    range_factor: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "average": self.average,
            "minimum": self.minimum,
            "maximum": self.maximum,
            "range_factor": self.range_factor,
        }


@dataclass
class SystemProfileMetrics:
    """Aggregate statistics for all systems of one profile."""
    profile_name: str
    total_systems: int = 0

    average_randread_throughput_mbps: float = 0.0
    maximum_randread_throughput_mbps: float = 0.0
    minimum_randread_throughput_mbps: float = 0.0
    randread_throughput_range_factor: float = 0.0

    average_randread_iops: float = 0.0
    maximum_randread_iops: float = 0.0

    average_randread_latency_p99_us: float = 0.0
    best_randread_latency_p99_us: float = 0.0
    worst_randread_latency_p99_us: float = 0.0
    randread_latency_range_factor: float = 0.0
    average_randread_latency_p95_us: float = 0.0
    average_randread_latency_p50_us: float = 0.0
    average_randread_latency_p99_p50_ratio: float = 0.0

    average_seqread_throughput_mbps: float = 0.0
    maximum_seqread_throughput_mbps: float = 0.0
    average_seqwrite_throughput_mbps: float = 0.0
    maximum_seqwrite_throughput_mbps: float = 0.0

    best_system_name: Optional[str] = None
    best_system_randread_throughput_mbps: float = 0.0
    system_names: List[str] = field(default_factory=list)
    analysis_timestamp: str = ""

    @property
    def average_randread_throughput_gbps(self) -> float:
        return self.average_randread_throughput_mbps / 1024.0

    def to_dict(self) -> Dict[str, Any]:
        d = {f.name: getattr(self, f.name) for f in fields(self)}
        d["system_names"] = list(self.system_names)
        d["average_randread_throughput_gbps"] = self.average_randread_throughput_gbps
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SystemProfileMetrics":
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known}
        kwargs.setdefault("profile_name", "unknown")
        return cls(**kwargs)


# ══════════════════════════════════════════════════════════════
# Statistics Helpers
# ══════════════════════════════════════════════════════════════

def range_factor(minimum: float, maximum: float) -> float:
    """max/min, or 0.0 when min is not positive."""
    if minimum <= 0:
        return 0.0
    return maximum / minimum


def compute_series_stats(values: Sequence[float]) -> SeriesStats:
    """Average/min/max/range-factor of a metric series."""
    if not values:
        return SeriesStats()
    low = min(values)
    high = max(values)
    return SeriesStats(
        count=len(values),
        average=statistics.mean(values),
        minimum=low,
        maximum=high,
        range_factor=range_factor(low, high),
    )


def performance_class(randread_throughput_mbps: float) -> str:
    if randread_throughput_mbps > HIGH_PERFORMANCE_MBPS:
        return "High"
    if randread_throughput_mbps > MEDIUM_PERFORMANCE_MBPS:
        return "Medium"
    return "Low"


def best_system(metrics_list: Sequence[SystemMetrics]) -> Optional[SystemMetrics]:
    """System with the highest random-read throughput; first one wins ties."""
    best = None
    for m in metrics_list:
        if best is None or m.randread_throughput_mbps > best.randread_throughput_mbps:
            best = m
    return best


# ══════════════════════════════════════════════════════════════
# Aggregation
# ══════════════════════════════════════════════════════════════

def aggregate_profile(profile_name: str,
                      metrics_list: Sequence[SystemMetrics]) -> SystemProfileMetrics:
    """Summarize every system of a profile, including ones with missing (0.0) metrics."""
    result = SystemProfileMetrics(
        profile_name=profile_name,
        total_systems=len(metrics_list),
        system_names=[m.system_name for m in metrics_list],
        analysis_timestamp=datetime.now().isoformat(timespec="seconds"),
    )
    if not metrics_list:
        return result

    throughput = compute_series_stats([m.randread_throughput_mbps for m in metrics_list])
    result.average_randread_throughput_mbps = throughput.average
    result.maximum_randread_throughput_mbps = throughput.maximum
    result.minimum_randread_throughput_mbps = throughput.minimum
    result.randread_throughput_range_factor = throughput.range_factor

    iops = compute_series_stats([m.randread_iops for m in metrics_list])
    result.average_randread_iops = iops.average
    result.maximum_randread_iops = iops.maximum

    p99_us = [m.randread_latency_p99_ms * 1000.0 for m in metrics_list]
    result.average_randread_latency_p99_us = statistics.mean(p99_us)
    # Lower latency is better; zeros are missing data, not fast systems
    measured = [v for v in p99_us if v > 0]
    if measured:
        result.best_randread_latency_p99_us = min(measured)
        result.worst_randread_latency_p99_us = max(measured)
        result.randread_latency_range_factor = range_factor(min(measured), max(measured))

    result.average_randread_latency_p95_us = statistics.mean(
        [m.randread_latency_p95_ms * 1000.0 for m in metrics_list])
    result.average_randread_latency_p50_us = statistics.mean(
        [m.randread_latency_p50_ms * 1000.0 for m in metrics_list])
    result.average_randread_latency_p99_p50_ratio = statistics.mean(
        [m.randread_latency_p99_p50_ratio for m in metrics_list])

    seqread = compute_series_stats([m.seqread_throughput_mbps for m in metrics_list])
    result.average_seqread_throughput_mbps = seqread.average
    result.maximum_seqread_throughput_mbps = seqread.maximum
    seqwrite = compute_series_stats([m.seqwrite_throughput_mbps for m in metrics_list])
    result.average_seqwrite_throughput_mbps = seqwrite.average
    result.maximum_seqwrite_throughput_mbps = seqwrite.maximum

    best = best_system(metrics_list)
    result.best_system_name = best.system_name
    result.best_system_randread_throughput_mbps = best.randread_throughput_mbps
    return result


def rank_profiles(profile_metrics: Sequence[SystemProfileMetrics]) -> List[SystemProfileMetrics]:
    """Profiles by average random-read throughput, descending; ties keep input order."""
    return sorted(profile_metrics, key=lambda p: -p.average_randread_throughput_mbps)
