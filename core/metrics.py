"""
Canonical per-system metrics for fio-xsys.

All component metrics come from the optimal mixed workload chosen by the
knee-point analysis. Extraction happens in two steps:

  1. extract_component_metrics() walks the mixed workload's jobs and
     collects raw values (KB/s, IOPS, nanoseconds) into RawComponentMetrics.
  2. finalize_metrics() converts units and computes every derived field in
     one place, producing an immutable SystemMetrics.

Units in SystemMetrics are fixed at construction: throughput in MB/s
(KB/s / 1024) and latency in milliseconds (ns / 1e6). A value of exactly
0.0 means "missing", which the scoring engine treats as disqualifying.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from core.analysis import SystemAnalysis
from utils import print_warning
from workloads import JobRole, WorkloadRecord, stream_limit_mbps

KB_PER_MB = 1024.0
NS_PER_MS = 1e6


def kbps_to_mbps(kbps: float) -> float:
    return kbps / KB_PER_MB


def ns_to_ms(ns: float) -> float:
    return ns / NS_PER_MS


@dataclass
class RawComponentMetrics:
    """Raw values pulled out of one mixed workload, before unit conversion."""
    randread_bandwidth_kbps: float = 0.0
    randread_iops: float = 0.0
    randread_latency_mean_ns: float = 0.0
    randread_latency_p50_ns: float = 0.0
    randread_latency_p95_ns: float = 0.0
    randread_latency_p99_ns: float = 0.0
    seqread_bandwidth_kbps: float = 0.0
    seqwrite_bandwidth_kbps: float = 0.0
    notes: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class SystemMetrics:
    """Persisted per-system record; the unit the scoring engine operates on."""
    system_name: str
    system_profile: str

    randread_throughput_mbps: float = 0.0
    randread_iops: float = 0.0
    randread_latency_mean_ms: float = 0.0
    randread_latency_p50_ms: float = 0.0
    randread_latency_p95_ms: float = 0.0
    randread_latency_p99_ms: float = 0.0
    randread_latency_p99_p50_ratio: float = 0.0
    seqread_throughput_mbps: float = 0.0
    seqwrite_throughput_mbps: float = 0.0

    knee_point_latency_increase_percent: float = 0.0
    optimal_stream_limit_mbps: Optional[float] = None
    optimal_mixed_workload_name: Optional[str] = None
    suboptimal_mixed_workload_name: Optional[str] = None
    optimal_blocksize: Optional[str] = None
    total_workloads: int = 0

    analysis_status: str = ""
    extraction_notes: List[str] = field(default_factory=list)
    analysis_timestamp: str = ""

    def to_dict(self) -> Dict[str, Any]:
        d = {f.name: getattr(self, f.name) for f in fields(self)}
        d["extraction_notes"] = list(self.extraction_notes)
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SystemMetrics":
        """Rebuild from persisted JSON. Values are taken as stored (no unit conversion)."""
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known}
        kwargs.setdefault("system_name", "unknown")
        kwargs.setdefault("system_profile", "unknown")
        return cls(**kwargs)


# ══════════════════════════════════════════════════════════════
# Extraction
# ══════════════════════════════════════════════════════════════

def _fill_randread(raw: RawComponentMetrics, stats) -> None:
    raw.randread_bandwidth_kbps = stats.bandwidth_kbps
    raw.randread_iops = stats.iops
    raw.randread_latency_mean_ns = stats.latency.value("mean")
    raw.randread_latency_p50_ns = stats.latency.value("p50")
    raw.randread_latency_p95_ns = stats.latency.value("p95")
    raw.randread_latency_p99_ns = stats.latency.value("p99")


def extract_component_metrics(mixed: Optional[WorkloadRecord]) -> RawComponentMetrics:
    """Collect per-role raw metrics from a mixed workload.

    The first job of each role supplies that role's values. Sequential roles
    contribute throughput only. If no job matches any role, random-read
    metrics are taken from the first job and a note is recorded.
    """
    raw = RawComponentMetrics()
    if mixed is None:
        return raw

    seen = set()
    for job in mixed.components:
        if job.role == JobRole.UNKNOWN or job.role in seen:
            continue
        stats = job.metrics
        if stats is None:
            continue
        seen.add(job.role)
        if job.role == JobRole.RANDREAD:
            _fill_randread(raw, stats)
        elif job.role == JobRole.SEQREAD:
            raw.seqread_bandwidth_kbps = stats.bandwidth_kbps
        elif job.role == JobRole.SEQWRITE:
            raw.seqwrite_bandwidth_kbps = stats.bandwidth_kbps

    if not seen and mixed.components:
        first = mixed.components[0]
        stats = first.read if first.read is not None else first.metrics
        note = (f"{mixed.filename}: no randread/seqread/seqwrite job names; "
                f"using first job '{first.jobname}' as random read")
        print_warning(note)
        raw.notes.append(note)
        if stats is not None:
            _fill_randread(raw, stats)
    elif JobRole.RANDREAD not in seen:
        note = f"{mixed.filename}: no random-read job found"
        print_warning(note)
        raw.notes.append(note)

    return raw


def knee_increase_percent(optimal: Optional[WorkloadRecord],
                          sub_optimal: Optional[WorkloadRecord]) -> float:
    """Random-read P99 increase from the optimal to the sub-optimal point, in percent."""
    if optimal is None or sub_optimal is None:
        return 0.0
    before = optimal.randread_p99_ns
    after = sub_optimal.randread_p99_ns
    if before <= 0:
        return 0.0
    return (after - before) / before * 100.0


def finalize_metrics(system_name: str,
                     system_profile: str,
                     raw: RawComponentMetrics,
                     knee_increase: float = 0.0,
                     optimal_mixed: Optional[WorkloadRecord] = None,
                     sub_optimal_mixed: Optional[WorkloadRecord] = None,
                     optimal_blocksize: Optional[str] = None,
                     total_workloads: int = 0,
                     analysis_status: str = "",
                     timestamp: Optional[str] = None) -> SystemMetrics:
    """Convert units and compute derived fields in a single pure step."""
    p50_ms = ns_to_ms(raw.randread_latency_p50_ns)
    p99_ms = ns_to_ms(raw.randread_latency_p99_ns)
    ratio = p99_ms / p50_ms if p50_ms > 0 and p99_ms > 0 else 0.0

    return SystemMetrics(
        system_name=system_name,
        system_profile=system_profile,
        randread_throughput_mbps=kbps_to_mbps(raw.randread_bandwidth_kbps),
        randread_iops=raw.randread_iops,
        randread_latency_mean_ms=ns_to_ms(raw.randread_latency_mean_ns),
        randread_latency_p50_ms=p50_ms,
        randread_latency_p95_ms=ns_to_ms(raw.randread_latency_p95_ns),
        randread_latency_p99_ms=p99_ms,
        randread_latency_p99_p50_ratio=ratio,
        seqread_throughput_mbps=kbps_to_mbps(raw.seqread_bandwidth_kbps),
        seqwrite_throughput_mbps=kbps_to_mbps(raw.seqwrite_bandwidth_kbps),
        knee_point_latency_increase_percent=knee_increase,
        optimal_stream_limit_mbps=stream_limit_mbps(optimal_mixed.parameter) if optimal_mixed else None,
        optimal_mixed_workload_name=optimal_mixed.filename if optimal_mixed else None,
        suboptimal_mixed_workload_name=sub_optimal_mixed.filename if sub_optimal_mixed else None,
        optimal_blocksize=optimal_blocksize,
        total_workloads=total_workloads,
        analysis_status=analysis_status,
        extraction_notes=list(raw.notes),
        analysis_timestamp=timestamp or datetime.now().isoformat(timespec="seconds"),
    )


def build_system_metrics(system_name: str,
                         system_profile: str,
                         analysis: SystemAnalysis,
                         total_workloads: Optional[int] = None) -> SystemMetrics:
    """SystemMetrics for one analyzed system."""
    knee = analysis.knee_point
    raw = extract_component_metrics(knee.optimal_mixed)
    return finalize_metrics(
        system_name,
        system_profile,
        raw,
        knee_increase=knee_increase_percent(knee.optimal_mixed, knee.sub_optimal_mixed),
        optimal_mixed=knee.optimal_mixed,
        sub_optimal_mixed=knee.sub_optimal_mixed,
        optimal_blocksize=analysis.optimal_randread.parameter if analysis.optimal_randread else None,
        total_workloads=len(analysis.records) if total_workloads is None else total_workloads,
        analysis_status=analysis.status,
    )


def empty_system_metrics(system_name: str, system_profile: str,
                         status: str, total_workloads: int = 0) -> SystemMetrics:
    """Placeholder metrics for a system whose analysis failed outright."""
    return finalize_metrics(system_name, system_profile, RawComponentMetrics(),
                            total_workloads=total_workloads, analysis_status=status)


# ══════════════════════════════════════════════════════════════
# Metric Name Lookup
# ══════════════════════════════════════════════════════════════

UNKNOWN_METRIC_VALUE = 0.0


def _attr(name: str, scale: float = 1.0) -> Callable[[SystemMetrics], float]:
    def accessor(m: SystemMetrics) -> float:
        value = getattr(m, name)
        return float(value) * scale if value is not None else 0.0
    return accessor


def _latency_accessors(prefix: str, stat: str) -> Dict[str, Callable[[SystemMetrics], float]]:
    field_name = f"randread_latency_{stat}_ms"
    return {
        f"{prefix}_latency_{stat}_ms": _attr(field_name),
        f"{prefix}_latency_{stat}_us": _attr(field_name, 1000.0),
    }


METRIC_ACCESSORS: Dict[str, Callable[[SystemMetrics], float]] = {
    "randread_throughput_mbps": _attr("randread_throughput_mbps"),
    "randread_iops": _attr("randread_iops"),
    "randread_latency_p99_p50_ratio": _attr("randread_latency_p99_p50_ratio"),
    "seqread_throughput_mbps": _attr("seqread_throughput_mbps"),
    "seqwrite_throughput_mbps": _attr("seqwrite_throughput_mbps"),
    "knee_point_latency_increase_percent": _attr("knee_point_latency_increase_percent"),
    "optimal_stream_limit_mbps": _attr("optimal_stream_limit_mbps"),
    "total_workloads": _attr("total_workloads"),
    # optimal_* names refer to the random-read component of the optimal mixed workload
    "optimal_throughput_mbps": _attr("randread_throughput_mbps"),
    "optimal_throughput_gbps": _attr("randread_throughput_mbps", 1.0 / 1024.0),
    "optimal_iops": _attr("randread_iops"),
    "optimal_latency_p99_p50_ratio": _attr("randread_latency_p99_p50_ratio"),
}
for _prefix in ("randread", "optimal"):
    for _stat in ("mean", "p50", "p95", "p99"):
        METRIC_ACCESSORS.update(_latency_accessors(_prefix, _stat))


def metric_value(metrics: SystemMetrics, metric_name: str) -> float:
    """Value of a named metric; unknown names return UNKNOWN_METRIC_VALUE (0.0)."""
    accessor = METRIC_ACCESSORS.get((metric_name or "").lower())
    if accessor is None:
        return UNKNOWN_METRIC_VALUE
    return accessor(metrics)


def is_known_metric(metric_name: str) -> bool:
    return (metric_name or "").lower() in METRIC_ACCESSORS
