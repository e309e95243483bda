"""
fio-xsys Markdown Report Generator

Reports written under the report directory:
  <profile>__<system>.md          per-system analysis walkthrough
  PROFILE_<profile>.md            per-profile aggregate statistics
  CROSS_PROFILE_COMPARISON.md     profile KPIs and scoring-function rankings
  manifest.md                     discovered profiles and systems
"""

import os
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from core.analysis import SystemAnalysis
from core.analytics import SystemProfileMetrics, performance_class, rank_profiles
from core.discovery import AnalysisManifest, sanitize_name
from core.metrics import SystemMetrics, kbps_to_mbps, ns_to_ms
from core.pipeline import PipelineResult, SystemResult
from core.results import system_file_stem
from core.scoring import ScoringResult
from core.sparkline import labeled_sparkline, log_sparkline, magnitude_sparkline, sparkline_char
from utils import print_error, print_success
from workloads import (
    WorkloadRecord,
    blocksize_token,
    describe_stream_limit,
    parse_blocksize,
    workload_display_name,
)

CROSS_PROFILE_REPORT = "CROSS_PROFILE_COMPARISON.md"
MANIFEST_REPORT = "manifest.md"


def _generated_line() -> str:
    return f"**Generated:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}"


def _fmt(value: Optional[float], digits: int = 2) -> str:
    if value is None:
        return "N/A"
    return f"{value:,.{digits}f}"


# ══════════════════════════════════════════════════════════════
# Per-System Report
# ══════════════════════════════════════════════════════════════

def generate_system_report(result: SystemResult) -> str:
    lines = []
    m = result.metrics

    lines.append(f"# System Analysis: {result.name}")
    lines.append("")
    lines.append(f"**Profile:** `{result.profile}`")
    lines.append(_generated_line())
    lines.append(f"**Status:** {m.analysis_status}")
    lines.append("")

    if result.error:
        lines.append(f"> Analysis failed: {result.error}")
        lines.append("")

    lines.extend(_format_workload_files(result))

    if result.analysis is not None:
        lines.extend(_format_blocksize_section(result.analysis))
        lines.extend(_format_mixed_series_section(result.analysis))
        lines.extend(_format_knee_section(result.analysis))

    lines.extend(_format_metrics_section(m))
    return "\n".join(lines)


def _format_workload_files(result: SystemResult) -> List[str]:
    lines = ["## Workload Files", ""]
    lines.append(f"{len(result.files)} workload files analyzed.")
    lines.append("")
    for path in result.files:
        name = os.path.basename(path)
        lines.append(f"- `{name}` ({workload_display_name(name)})")
    if result.parse_errors:
        lines.append("")
        lines.append("**Skipped files:**")
        lines.append("")
        for err in result.parse_errors:
            lines.append(f"- {err}")
    lines.append("")
    return lines


def _format_blocksize_section(analysis: SystemAnalysis) -> List[str]:
    lines = ["## Optimal Blocksize Selection", ""]
    if not analysis.all_randread_results:
        lines.append("No random-read workloads available.")
        lines.append("")
        return lines

    bandwidths = [kbps_to_mbps(r.randread_bandwidth_kbps) for r in analysis.all_randread_results]
    lines.append("| Workload | Blocksize | Throughput (MB/s) | P99 (ms) | |")
    lines.append("|----------|-----------|-------------------|----------|---|")
    for i, r in enumerate(analysis.all_randread_results):
        marker = " **optimal**" if r is analysis.optimal_randread else ""
        lines.append(
            f"| {workload_display_name(r.filename)} | {r.parameter} | "
            f"{_fmt(bandwidths[i])} | {_fmt(ns_to_ms(r.randread_p99_ns), 3)} | "
            f"{sparkline_char(bandwidths, i)}{marker} |"
        )
    lines.append("")
    lines.append(f"Throughput: {labeled_sparkline(bandwidths, ' MB/s')}")
    lines.append("")
    return lines


def _format_mixed_series_section(analysis: SystemAnalysis) -> List[str]:
    lines = ["## Matching Mixed Workload Series", ""]
    series = list(analysis.knee_point.sorted_series) or analysis.matching_mixed_series
    if not series:
        lines.append("No mixed workload series matched the optimal blocksize.")
        lines.append("")
        return lines

    if analysis.optimal_randread is not None:
        target = parse_blocksize(blocksize_token(analysis.optimal_randread.parameter))
        lines.append(f"Target blocksize: {target:,.0f} bytes "
                     f"(from `{analysis.optimal_randread.filename}`)")
        lines.append("")

    p99 = [ns_to_ms(r.randread_p99_ns) for r in series]
    lines.append("| Workload | Streaming Limit | Random Read P99 (ms) | |")
    lines.append("|----------|-----------------|----------------------|---|")
    for i, r in enumerate(series):
        lines.append(
            f"| {workload_display_name(r.filename)} | {describe_stream_limit(r.parameter, short=True)} | "
            f"{_fmt(p99[i], 3)} | {sparkline_char(p99, i)} |"
        )
    lines.append("")
    lines.append(f"P99 trend: {magnitude_sparkline(p99)} (step-to-step change)")
    lines.append("")
    return lines


def _format_knee_section(analysis: SystemAnalysis) -> List[str]:
    knee = analysis.knee_point
    lines = ["## Knee Point", ""]
    lines.append(f"**Result:** {knee.message}")
    lines.append("")
    if not knee.found:
        return lines

    lines.append(f"- **Optimal:** `{knee.optimal_mixed.filename}` "
                 f"({describe_stream_limit(knee.optimal_mixed.parameter)})")
    lines.append(f"- **Sub-optimal:** `{knee.sub_optimal_mixed.filename}` "
                 f"({describe_stream_limit(knee.sub_optimal_mixed.parameter)})")
    if knee.knee is not None:
        lines.append(
            f"- **Calculation:** ({_fmt(ns_to_ms(knee.knee.p99_ns), 3)} - "
            f"{_fmt(ns_to_ms(knee.knee.previous_p99_ns), 3)}) / "
            f"{_fmt(ns_to_ms(knee.knee.previous_p99_ns), 3)} = "
            f"+{_fmt(knee.knee.increase_percent, 1)}%"
        )
    lines.append("")
    lines.extend(_format_component_table("Optimal Mixed Workload", knee.optimal_mixed))
    lines.extend(_format_component_table("Sub-optimal Mixed Workload", knee.sub_optimal_mixed))
    return lines


def _format_component_table(title: str, record: WorkloadRecord) -> List[str]:
    lines = [f"### {title}: {workload_display_name(record.filename)}", ""]
    lines.append("| Job | Role | Throughput (MB/s) | IOPS | P50 (ms) | P99 (ms) |")
    lines.append("|-----|------|-------------------|------|----------|----------|")
    for job in record.components:
        stats = job.metrics
        if stats is None:
            continue
        lines.append(
            f"| {job.jobname} | {job.role.value} | {_fmt(kbps_to_mbps(stats.bandwidth_kbps))} | "
            f"{_fmt(stats.iops, 0)} | {_fmt(ns_to_ms(stats.latency.value('p50')), 3)} | "
            f"{_fmt(ns_to_ms(stats.latency.value('p99')), 3)} |"
        )
    lines.append("")
    return lines


def _format_metrics_section(m: SystemMetrics) -> List[str]:
    lines = ["## Extracted Metrics", ""]
    lines.append("| Metric | Value |")
    lines.append("|--------|-------|")
    lines.append(f"| Random Read Throughput | {_fmt(m.randread_throughput_mbps)} MB/s |")
    lines.append(f"| Random Read IOPS | {_fmt(m.randread_iops, 0)} |")
    lines.append(f"| Sequential Read Throughput | {_fmt(m.seqread_throughput_mbps)} MB/s |")
    lines.append(f"| Sequential Write Throughput | {_fmt(m.seqwrite_throughput_mbps)} MB/s |")
    lines.append(f"| Knee Latency Increase | {_fmt(m.knee_point_latency_increase_percent, 1)}% |")
    limit = "Uncapped" if m.optimal_stream_limit_mbps is None else f"{m.optimal_stream_limit_mbps:g} MB/s"
    lines.append(f"| Optimal Streaming Limit | {limit} |")
    lines.append(f"| Optimal Blocksize | {m.optimal_blocksize or 'N/A'} |")
    lines.append(f"| Total Workloads | {m.total_workloads} |")
    lines.append("")

    quantiles = [
        ("Mean", m.randread_latency_mean_ms),
        ("P50", m.randread_latency_p50_ms),
        ("P95", m.randread_latency_p95_ms),
        ("P99", m.randread_latency_p99_ms),
    ]
    values = [v for _, v in quantiles]
    lines.append("### Random Read Latency")
    lines.append("")
    lines.append("| Quantile | Latency (ms) | |")
    lines.append("|----------|--------------|---|")
    for i, (label, value) in enumerate(quantiles):
        lines.append(f"| {label} | {_fmt(value, 3)} | {sparkline_char(values, i)} |")
    lines.append("")
    lines.append(f"P99/P50 ratio: {_fmt(m.randread_latency_p99_p50_ratio)}")
    lines.append("")

    if m.extraction_notes:
        lines.append("**Notes:**")
        lines.append("")
        for note in m.extraction_notes:
            lines.append(f"- {note}")
        lines.append("")
    return lines


# ══════════════════════════════════════════════════════════════
# Per-Profile Report
# ══════════════════════════════════════════════════════════════

def generate_profile_report(profile: SystemProfileMetrics,
                            metrics_list: Sequence[SystemMetrics]) -> str:
    lines = []
    lines.append(f"# Profile: {profile.profile_name}")
    lines.append("")
    lines.append(_generated_line())
    lines.append(f"**Systems:** {profile.total_systems}")
    lines.append("")

    lines.append("## Aggregate Statistics")
    lines.append("")
    lines.append("| Metric | Average | Min | Max | Range Factor |")
    lines.append("|--------|---------|-----|-----|--------------|")
    lines.append(
        f"| Random Read Throughput (MB/s) | {_fmt(profile.average_randread_throughput_mbps)} | "
        f"{_fmt(profile.minimum_randread_throughput_mbps)} | {_fmt(profile.maximum_randread_throughput_mbps)} | "
        f"{_fmt(profile.randread_throughput_range_factor)}x |"
    )
    lines.append(
        f"| Random Read P99 (µs) | {_fmt(profile.average_randread_latency_p99_us, 1)} | "
        f"{_fmt(profile.best_randread_latency_p99_us, 1)} | {_fmt(profile.worst_randread_latency_p99_us, 1)} | "
        f"{_fmt(profile.randread_latency_range_factor)}x |"
    )
    lines.append(f"| Random Read IOPS | {_fmt(profile.average_randread_iops, 0)} | | "
                 f"{_fmt(profile.maximum_randread_iops, 0)} | |")
    lines.append(f"| Sequential Read (MB/s) | {_fmt(profile.average_seqread_throughput_mbps)} | | "
                 f"{_fmt(profile.maximum_seqread_throughput_mbps)} | |")
    lines.append(f"| Sequential Write (MB/s) | {_fmt(profile.average_seqwrite_throughput_mbps)} | | "
                 f"{_fmt(profile.maximum_seqwrite_throughput_mbps)} | |")
    lines.append("")
    if profile.best_system_name:
        lines.append(f"**Best system:** {profile.best_system_name} "
                     f"({_fmt(profile.best_system_randread_throughput_mbps)} MB/s random read)")
        lines.append("")

    ordered = sorted(metrics_list, key=lambda m: -m.randread_throughput_mbps)
    throughputs = [m.randread_throughput_mbps for m in ordered]
    lines.append("## Systems")
    lines.append("")
    lines.append("| System | Throughput (MB/s) | P99 (ms) | Knee Increase | Class | |")
    lines.append("|--------|-------------------|----------|---------------|-------|---|")
    for i, m in enumerate(ordered):
        lines.append(
            f"| {m.system_name} | {_fmt(m.randread_throughput_mbps)} | {_fmt(m.randread_latency_p99_ms, 3)} | "
            f"{_fmt(m.knee_point_latency_increase_percent, 1)}% | {performance_class(m.randread_throughput_mbps)} | "
            f"{sparkline_char(throughputs, i)} |"
        )
    lines.append("")
    if throughputs:
        lines.append(f"Throughput spread (log scale): {log_sparkline(throughputs)}")
        lines.append("")
    return "\n".join(lines)


# ══════════════════════════════════════════════════════════════
# Cross-Profile Report
# ══════════════════════════════════════════════════════════════

def generate_cross_profile_report(profiles: Sequence[SystemProfileMetrics],
                                  rankings: Dict[str, List[ScoringResult]]) -> str:
    lines = []
    lines.append("# Cross-Profile Comparison")
    lines.append("")
    lines.append(_generated_line())
    lines.append("")

    lines.append("## Profile KPIs")
    lines.append("")
    lines.append("| Profile | Systems | Avg Throughput (MB/s) | Avg P99 (µs) | Range Factor | Best System |")
    lines.append("|---------|---------|-----------------------|--------------|--------------|-------------|")
    for p in profiles:
        lines.append(
            f"| {p.profile_name} | {p.total_systems} | {_fmt(p.average_randread_throughput_mbps)} | "
            f"{_fmt(p.average_randread_latency_p99_us, 1)} | {_fmt(p.randread_throughput_range_factor)}x | "
            f"{p.best_system_name or 'N/A'} |"
        )
    lines.append("")

    lines.append("## Profile Ranking")
    lines.append("")
    lines.append("Ordered by average random-read throughput.")
    lines.append("")
    for i, p in enumerate(rank_profiles(profiles), start=1):
        lines.append(f"{i}. **{p.profile_name}** ({_fmt(p.average_randread_throughput_mbps)} MB/s, "
                     f"{performance_class(p.average_randread_throughput_mbps)})")
    lines.append("")

    for name, results in rankings.items():
        lines.extend(_format_ranking_section(name, results))
    return "\n".join(lines)


def _format_ranking_section(name: str, results: Sequence[ScoringResult]) -> List[str]:
    lines = [f"## Ranking: {name}", ""]
    if not results:
        lines.append("No systems to rank.")
        lines.append("")
        return lines

    metric_names = list(results[0].component_scores)
    header = "| Rank | System | Profile | Score | " + " | ".join(metric_names) + " |"
    divider = "|------|--------|---------|-------|" + "|".join("---" for _ in metric_names) + "|"
    lines.append(header)
    lines.append(divider)
    for rank, r in enumerate(results, start=1):
        score = "DISQUALIFIED" if r.disqualified else f"{r.total_score:.6f}"
        components = " | ".join(f"{r.component_scores.get(n, 0.0):.4f}" for n in metric_names)
        lines.append(f"| {rank} | {r.system_name} | {r.system_profile} | {score} | {components} |")
    lines.append("")

    disqualified = [r for r in results if r.disqualified]
    if disqualified:
        lines.append("**Disqualified systems:**")
        lines.append("")
        for r in disqualified:
            lines.append(f"- {r.system_profile}/{r.system_name}: missing or zero "
                         f"{', '.join(r.failing_metrics)}")
            lines.append("")
            lines.append("  <details><summary>Explanation</summary>")
            lines.append("")
            lines.append("  ```")
            lines.extend(f"  {line}" for line in r.explanation.splitlines())
            lines.append("  ```")
            lines.append("")
            lines.append("  </details>")
            lines.append("")
    return lines


# ══════════════════════════════════════════════════════════════
# Manifest Report
# ══════════════════════════════════════════════════════════════

def generate_manifest_report(manifest: AnalysisManifest) -> str:
    lines = []
    lines.append("# Analysis Manifest")
    lines.append("")
    lines.append(f"**Results root:** `{manifest.root}`")
    lines.append(f"**Profiles:** {len(manifest.profiles)}")
    lines.append(f"**Systems:** {manifest.total_systems}")
    lines.append("")
    for profile in manifest.profile_names:
        entry = manifest.profiles[profile]
        lines.append(f"## {profile}")
        lines.append("")
        lines.append(f"Profile path: `{entry.profile_path}`")
        lines.append("")
        lines.append("| System | Path |")
        lines.append("|--------|------|")
        for name in entry.system_names:
            lines.append(f"| {name} | `{entry.system_paths[name]}` |")
        lines.append("")
    return "\n".join(lines)


# ══════════════════════════════════════════════════════════════
# Writing
# ══════════════════════════════════════════════════════════════

def _write_report(path: str, content: str) -> bool:
    try:
        with open(path, 'w') as f:
            f.write(content)
    except OSError as e:
        print_error(f"Error writing report {path}: {e}")
        return False
    return True


def write_reports(result: PipelineResult, manifest: AnalysisManifest, report_dir: str) -> List[str]:
    """Write every markdown report; returns the paths written."""
    written = []

    for s in result.systems:
        path = os.path.join(report_dir, system_file_stem(s.profile, s.name) + ".md")
        if _write_report(path, generate_system_report(s)):
            written.append(path)

    for profile in result.profiles:
        members = [s.metrics for s in result.systems if s.profile == profile.profile_name]
        path = os.path.join(report_dir, f"PROFILE_{sanitize_name(profile.profile_name)}.md")
        if _write_report(path, generate_profile_report(profile, members)):
            written.append(path)

    path = os.path.join(report_dir, CROSS_PROFILE_REPORT)
    if _write_report(path, generate_cross_profile_report(result.profiles, result.rankings)):
        written.append(path)

    path = os.path.join(report_dir, MANIFEST_REPORT)
    if _write_report(path, generate_manifest_report(manifest)):
        written.append(path)

    print_success(f"Wrote {len(written)} reports to {report_dir}")
    return written
