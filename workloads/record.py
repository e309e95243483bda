"""
Workload result parsing.

One fio JSON result file becomes one immutable WorkloadRecord. Each job in
the file becomes a JobComponent tagged with the role inferred from its job
name (randread / seqread / seqwrite / unknown).

Filename grammar:  <kind>-<testId>-<parameter>.fio.json
  kind       randread | seqread | seqwrite | mixed
  testId     three digits, first digit is the series (3xx, 4xx, ...)
  parameter  size/range token, e.g. 16k, 1to4k_10Mseq, 512Kto1M_uncapped
"""

import json
import math
import os
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from core.errors import ParseError

# Latencies at or above 10 s are corrupt samples, not measurements
MAX_VALID_LATENCY_NS = 1e10

PERCENTILE_KEYS = {
    "p50": "50.000000",
    "p95": "95.000000",
    "p99": "99.000000",
}

WORKLOAD_FILENAME_PATTERN = re.compile(
    r"^(?P<kind>randread|seqread|seqwrite|mixed)"
    r"-(?P<test_id>\d{3})"
    r"-(?P<parameter>[A-Za-z0-9_.]+?)"
    r"\.(?:fio\.)?json$"
)


class WorkloadKind(str, Enum):
    """Access pattern of a workload file."""
    RANDREAD = "randread"
    SEQREAD = "seqread"
    SEQWRITE = "seqwrite"
    MIXED = "mixed"


class JobRole(str, Enum):
    """Role of a single fio job, inferred from its job name."""
    RANDREAD = "randread"
    SEQREAD = "seqread"
    SEQWRITE = "seqwrite"
    UNKNOWN = "unknown"


def classify_job_role(jobname: Optional[str]) -> JobRole:
    """Classify a job by case-insensitive substring match on its name.

    Total: anything unrecognized (including a missing name) is UNKNOWN.
    """
    name = (jobname or "").lower()
    for role in (JobRole.RANDREAD, JobRole.SEQREAD, JobRole.SEQWRITE):
        if role.value in name:
            return role
    return JobRole.UNKNOWN


@dataclass(frozen=True)
class LatencyStats:
    """Completion latency in nanoseconds. None means absent or discarded."""
    mean_ns: Optional[float] = None
    p50_ns: Optional[float] = None
    p95_ns: Optional[float] = None
    p99_ns: Optional[float] = None

    def value(self, name: str) -> float:
        """Latency by short name ('mean', 'p50', 'p95', 'p99'); absent reads as 0.0."""
        v = getattr(self, f"{name}_ns")
        return v if v is not None else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mean_ns": self.mean_ns,
            "p50_ns": self.p50_ns,
            "p95_ns": self.p95_ns,
            "p99_ns": self.p99_ns,
        }


@dataclass(frozen=True)
class IoStats:
    """One direction (read or write) of a fio job."""
    bandwidth_kbps: float = 0.0
    iops: float = 0.0
    io_bytes: int = 0
    latency: LatencyStats = field(default_factory=LatencyStats)

    @property
    def active(self) -> bool:
        return self.io_bytes > 0 or self.bandwidth_kbps > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bandwidth_kbps": self.bandwidth_kbps,
            "iops": self.iops,
            "io_bytes": self.io_bytes,
            "latency": self.latency.to_dict(),
        }


@dataclass(frozen=True)
class JobComponent:
    """A single fio job inside a workload file."""
    jobname: str
    role: JobRole
    read: Optional[IoStats] = None
    write: Optional[IoStats] = None

    @property
    def metrics(self) -> Optional[IoStats]:
        """The direction that carries this job's metrics.

        Read roles use the read section, seqwrite uses the write section.
        Unknown jobs use whichever direction moved data, preferring read.
        """
        if self.role in (JobRole.RANDREAD, JobRole.SEQREAD):
            return self.read
        if self.role == JobRole.SEQWRITE:
            return self.write
        if self.read is not None and (self.read.active or self.write is None or not self.write.active):
            return self.read
        return self.write

    def to_dict(self) -> Dict[str, Any]:
        return {
            "jobname": self.jobname,
            "role": self.role.value,
            "read": self.read.to_dict() if self.read else None,
            "write": self.write.to_dict() if self.write else None,
        }


@dataclass(frozen=True)
class WorkloadRecord:
    """One parsed workload result file."""
    filename: str
    kind: WorkloadKind
    test_id: str
    parameter: str
    components: Tuple[JobComponent, ...] = ()

    @property
    def series(self) -> int:
        return int(self.test_id) // 100

    @property
    def series_key(self) -> str:
        return self.test_id[0]

    def job_for_role(self, role: JobRole) -> Optional[JobComponent]:
        """First job tagged with the given role, in file order."""
        for job in self.components:
            if job.role == role:
                return job
        return None

    def randread_job(self) -> Optional[JobComponent]:
        """The random-read job, falling back to the first job."""
        job = self.job_for_role(JobRole.RANDREAD)
        if job is None and self.components:
            job = self.components[0]
        return job

    def randread_stats(self) -> Optional[IoStats]:
        """Read-side metrics of the random-read job (or first job)."""
        job = self.randread_job()
        if job is None:
            return None
        return job.read if job.read is not None else job.metrics

    @property
    def randread_bandwidth_kbps(self) -> float:
        stats = self.randread_stats()
        return stats.bandwidth_kbps if stats else 0.0

    @property
    def randread_p99_ns(self) -> float:
        stats = self.randread_stats()
        return stats.latency.value("p99") if stats else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filename": self.filename,
            "kind": self.kind.value,
            "test_id": self.test_id,
            "parameter": self.parameter,
            "components": [c.to_dict() for c in self.components],
        }


# ══════════════════════════════════════════════════════════════
# Parsing
# ══════════════════════════════════════════════════════════════

def parse_filename(filename: str) -> Tuple[WorkloadKind, str, str]:
    """Split a workload filename into (kind, test_id, parameter)."""
    basename = os.path.basename(filename)
    match = WORKLOAD_FILENAME_PATTERN.match(basename)
    if not match:
        raise ParseError(basename, "invalid workload filename format")
    return WorkloadKind(match.group("kind")), match.group("test_id"), match.group("parameter")


def _number(value, default=0.0) -> float:
    """A finite float, or default for missing, non-numeric or non-finite values."""
    if isinstance(value, bool):
        return default
    try:
        v = float(value)
    except (TypeError, ValueError, OverflowError):
        return default
    return v if math.isfinite(v) else default


def _latency_ns(value) -> Optional[float]:
    """A latency sample in ns, or None if missing, negative, or corrupt."""
    if value is None or isinstance(value, bool):
        return None
    try:
        v = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(v) or v < 0 or v >= MAX_VALID_LATENCY_NS:
        return None
    return v


def _parse_latency(clat: Optional[Dict[str, Any]]) -> LatencyStats:
    if not isinstance(clat, dict):
        return LatencyStats()
    percentiles = clat.get("percentile") or {}
    if not isinstance(percentiles, dict):
        percentiles = {}
    return LatencyStats(
        mean_ns=_latency_ns(clat.get("mean")),
        p50_ns=_latency_ns(percentiles.get(PERCENTILE_KEYS["p50"])),
        p95_ns=_latency_ns(percentiles.get(PERCENTILE_KEYS["p95"])),
        p99_ns=_latency_ns(percentiles.get(PERCENTILE_KEYS["p99"])),
    )


def _parse_io_stats(section: Optional[Dict[str, Any]]) -> Optional[IoStats]:
    if not isinstance(section, dict):
        return None
    return IoStats(
        bandwidth_kbps=_number(section.get("bw")),
        iops=_number(section.get("iops")),
        io_bytes=int(_number(section.get("io_bytes"))),
        latency=_parse_latency(section.get("clat_ns")),
    )


def _parse_job(job: Dict[str, Any]) -> JobComponent:
    jobname = str(job.get("jobname") or "")
    return JobComponent(
        jobname=jobname,
        role=classify_job_role(jobname),
        read=_parse_io_stats(job.get("read")),
        write=_parse_io_stats(job.get("write")),
    )


def parse_workload_data(filename: str, data: Any) -> WorkloadRecord:
    """Build a WorkloadRecord from already-decoded fio JSON."""
    kind, test_id, parameter = parse_filename(filename)
    basename = os.path.basename(filename)

    if not isinstance(data, dict):
        raise ParseError(basename, "top-level JSON value is not an object")
    jobs = data.get("jobs")
    if not isinstance(jobs, list):
        raise ParseError(basename, "missing 'jobs' array")

    components: List[JobComponent] = [_parse_job(j) for j in jobs if isinstance(j, dict)]
    return WorkloadRecord(
        filename=basename,
        kind=kind,
        test_id=test_id,
        parameter=parameter,
        components=tuple(components),
    )


def parse_workload_file(path: str) -> WorkloadRecord:
    """Parse one fio JSON result file. Raises ParseError on any failure."""
    basename = os.path.basename(path)
    # Validate the name before touching the file
    parse_filename(basename)
    try:
        with open(path, "r") as f:
            data = json.load(f)
    except (json.JSONDecodeError, RecursionError) as e:
        raise ParseError(basename, f"invalid JSON ({e})") from e
    except (OSError, UnicodeDecodeError) as e:
        raise ParseError(basename, f"unreadable ({e})") from e
    try:
        return parse_workload_data(path, data)
    except (ValueError, ArithmeticError, RecursionError) as e:
        raise ParseError(basename, f"malformed fio output ({e})") from e
