"""
JSON persistence for fio-xsys.

Layout under the report directory:

    manifest.json
    metrics/<profile>__<system>.json
    metrics/PROFILE_<profile>.json
    rankings/<function>.json
"""

import json
import os
from typing import Dict, List, Sequence

from core.analytics import SystemProfileMetrics
from core.discovery import AnalysisManifest, sanitize_name
from core.metrics import SystemMetrics
from core.scoring import ScoringResult
from utils import print_error, print_info, print_success

DEFAULT_REPORT_DIR = "report"
METRICS_DIR = "metrics"
RANKINGS_DIR = "rankings"
MANIFEST_FILE = "manifest.json"


class ReportDirectoryError(Exception):
    """The report directory cannot be used without update mode."""


def prepare_report_dir(report_dir=None, update=False, base_dir=None):
    """Resolve and create the report directory.

    The default 'report' directory is reused freely; any other existing
    directory requires update mode.
    """
    base_dir = base_dir or os.getcwd()
    name = report_dir or DEFAULT_REPORT_DIR
    target = os.path.join(base_dir, name)
    if os.path.exists(target) and not update and name != DEFAULT_REPORT_DIR:
        raise ReportDirectoryError(
            f"Report directory '{name}' already exists. Use -U to update it."
        )
    os.makedirs(os.path.join(target, METRICS_DIR), exist_ok=True)
    os.makedirs(os.path.join(target, RANKINGS_DIR), exist_ok=True)
    return target


def system_file_stem(profile: str, system: str) -> str:
    """File stem for a system; path separators in names become '_'."""
    return f"{sanitize_name(profile)}__{sanitize_name(system.replace('/', '_'))}"


def _write_json(data, path):
    with open(path, 'w') as f:
        json.dump(data, f, indent=2)


def _read_json(path):
    with open(path, 'r') as f:
        return json.load(f)


def save_system_metrics(metrics: SystemMetrics, report_dir: str) -> str:
    path = os.path.join(report_dir, METRICS_DIR,
                        system_file_stem(metrics.system_profile, metrics.system_name) + ".json")
    _write_json(metrics.to_dict(), path)
    return path


def load_system_metrics(path: str) -> SystemMetrics:
    """Load a persisted metrics record; values are used as stored."""
    return SystemMetrics.from_dict(_read_json(path))


def save_all_system_metrics(metrics_list: Sequence[SystemMetrics], report_dir: str) -> List[str]:
    paths = []
    for metrics in metrics_list:
        try:
            paths.append(save_system_metrics(metrics, report_dir))
        except OSError as e:
            print_error(f"Error saving metrics for {metrics.system_profile}/{metrics.system_name}: {e}")
    print_info(f"Saved {len(paths)} system metrics files to {os.path.join(report_dir, METRICS_DIR)}")
    return paths


def load_all_system_metrics(report_dir: str) -> List[SystemMetrics]:
    """Every persisted per-system metrics record (profile files excluded)."""
    metrics_dir = os.path.join(report_dir, METRICS_DIR)
    if not os.path.isdir(metrics_dir):
        return []
    return [
        load_system_metrics(os.path.join(metrics_dir, name))
        for name in sorted(os.listdir(metrics_dir))
        if name.endswith(".json") and not name.startswith("PROFILE_")
    ]


def save_profile_metrics(profile: SystemProfileMetrics, report_dir: str) -> str:
    path = os.path.join(report_dir, METRICS_DIR, f"PROFILE_{sanitize_name(profile.profile_name)}.json")
    _write_json(profile.to_dict(), path)
    return path


def load_profile_metrics(path: str) -> SystemProfileMetrics:
    return SystemProfileMetrics.from_dict(_read_json(path))


def save_rankings(function_name: str, results: Sequence[ScoringResult], report_dir: str) -> str:
    path = os.path.join(report_dir, RANKINGS_DIR, f"{sanitize_name(function_name)}.json")
    _write_json({
        "ranking_function": function_name,
        "results": [
            dict(rank=i, **r.to_dict()) for i, r in enumerate(results, start=1)
        ],
    }, path)
    return path


def save_all_rankings(rankings: Dict[str, List[ScoringResult]], report_dir: str) -> List[str]:
    paths = []
    for name, results in rankings.items():
        try:
            paths.append(save_rankings(name, results, report_dir))
        except OSError as e:
            print_error(f"Error saving rankings for '{name}': {e}")
    return paths


def save_manifest(manifest: AnalysisManifest, report_dir: str) -> str:
    path = os.path.join(report_dir, MANIFEST_FILE)
    try:
        _write_json(manifest.to_dict(), path)
        print_success(f"Manifest saved to: {os.path.abspath(path)}")
    except OSError as e:
        print_error(f"Error saving manifest: {e}")
    return path


def load_manifest(path: str) -> AnalysisManifest:
    return AnalysisManifest.from_dict(_read_json(path))
