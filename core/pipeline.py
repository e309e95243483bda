"""
Analysis pipeline.

Stages are barrier-synchronized:

  1. analyze_systems()    per-system parse → match → knee → metrics, run
                          concurrently, one worker per system
  2. aggregate_profiles() per-profile summary statistics
  3. rank_systems()       one ranking per scoring function

A system that fails in stage 1 still yields a SystemResult carrying empty
metrics and the error text, so later stages always see every system.
"""

import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from core.analysis import SystemAnalysis, analyze_records
from core.analytics import SystemProfileMetrics, aggregate_profile
from core.discovery import AnalysisManifest, find_workload_files
from core.errors import ParseError
from core.metrics import SystemMetrics, build_system_metrics, empty_system_metrics
from core.scoring import ScoringConfiguration, ScoringResult, score_and_rank
from utils import print_error, print_info, print_warning
from workloads import WorkloadRecord, parse_workload_file


@dataclass
class SystemResult:
    """Everything computed for one system directory."""
    profile: str
    name: str
    files: List[str]
    metrics: SystemMetrics
    analysis: Optional[SystemAnalysis] = None
    parse_errors: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass
class PipelineResult:
    systems: List[SystemResult] = field(default_factory=list)
    profiles: List[SystemProfileMetrics] = field(default_factory=list)
    rankings: Dict[str, List[ScoringResult]] = field(default_factory=dict)

    @property
    def all_metrics(self) -> List[SystemMetrics]:
        return [s.metrics for s in self.systems]


def default_worker_count() -> int:
    return os.cpu_count() or 1


# ══════════════════════════════════════════════════════════════
# Stage 1: per-system analysis
# ══════════════════════════════════════════════════════════════

def parse_workload_files(files: Sequence[str], system_label: str = ""):
    """Parse every file; malformed ones are reported and skipped.

    Returns (records, error_messages).
    """
    records: List[WorkloadRecord] = []
    errors: List[str] = []
    label = f"{system_label}: " if system_label else ""
    for path in files:
        try:
            records.append(parse_workload_file(path))
        except ParseError as e:
            errors.append(str(e))
            print_warning(f"{label}skipping {e}")
    return records, errors


def analyze_system(profile: str, name: str, files: Sequence[str]) -> SystemResult:
    """Run parse → analysis → metric extraction for one system."""
    label = f"{profile}/{name}"
    records, errors = parse_workload_files(files, label)
    analysis = analyze_records(records, label)
    metrics = build_system_metrics(name, profile, analysis, total_workloads=len(files))
    return SystemResult(
        profile=profile,
        name=name,
        files=list(files),
        metrics=metrics,
        analysis=analysis,
        parse_errors=errors,
    )


def _safe_analyze(profile: str, name: str, path: str) -> SystemResult:
    # System boundary: no single system may abort the run
    files: List[str] = []
    try:
        files = find_workload_files(path)
        return analyze_system(profile, name, files)
    except Exception as e:
        message = f"analysis failed: {e}"
        print_error(f"{profile}/{name}: {message}")
        return SystemResult(
            profile=profile,
            name=name,
            files=files,
            metrics=empty_system_metrics(name, profile, message, total_workloads=len(files)),
            error=message,
        )


def analyze_systems(manifest: AnalysisManifest,
                    max_workers: Optional[int] = None) -> List[SystemResult]:
    """Analyze every system of the manifest on a worker pool.

    Results come back in manifest order (profile, then system name)
    regardless of completion order.
    """
    jobs = [
        (profile, name, path)
        for profile in manifest.profile_names
        for name, path in sorted(manifest.systems_for_profile(profile).items())
    ]
    if not jobs:
        return []

    workers = max(1, min(max_workers or default_worker_count(), len(jobs)))
    print_info(f"Analyzing {len(jobs)} systems with {workers} workers")

    results: Dict[int, SystemResult] = {}
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="fio-xsys") as ex:
        futures = {ex.submit(_safe_analyze, *job): i for i, job in enumerate(jobs)}
        for fu in as_completed(futures):
            results[futures[fu]] = fu.result()
    return [results[i] for i in range(len(jobs))]


# ══════════════════════════════════════════════════════════════
# Stages 2 and 3
# ══════════════════════════════════════════════════════════════

def aggregate_profiles(systems: Sequence[SystemResult]) -> List[SystemProfileMetrics]:
    """One SystemProfileMetrics per profile, profiles in first-seen order."""
    grouped: Dict[str, List[SystemMetrics]] = {}
    for s in systems:
        grouped.setdefault(s.profile, []).append(s.metrics)
    return [aggregate_profile(profile, metrics) for profile, metrics in grouped.items()]


def rank_systems(metrics: Sequence[SystemMetrics],
                 configs: Sequence[ScoringConfiguration]) -> Dict[str, List[ScoringResult]]:
    return {config.name: score_and_rank(metrics, config) for config in configs}


def run_pipeline(manifest: AnalysisManifest,
                 configs: Sequence[ScoringConfiguration],
                 max_workers: Optional[int] = None,
                 on_systems_analyzed=None) -> PipelineResult:
    """Run all stages.

    on_systems_analyzed, if given, is called with the stage-1 results before
    aggregation starts (used to persist per-system metrics).
    """
    systems = analyze_systems(manifest, max_workers)
    if on_systems_analyzed is not None:
        on_systems_analyzed(systems)
    profiles = aggregate_profiles(systems)
    rankings = rank_systems([s.metrics for s in systems], configs)
    return PipelineResult(systems=systems, profiles=profiles, rankings=rankings)
