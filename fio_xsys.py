#!/usr/bin/env python3
"""
fio-xsys - cross-system fio result analysis

Discovers system result directories, analyzes each system's fio JSON
workloads concurrently, persists per-system metrics, aggregates profiles,
ranks systems with the configured scoring functions and writes markdown
reports.
"""

import argparse
import os
import sys

from utils import (
    print_header, print_info, print_success, print_warning, print_error,
    print_section, print_subheader, print_bullet, set_quiet
)
from core.config import init_ranking_functions, load_ranking_functions
from core.discovery import enumerate_results
from core.errors import ConfigurationError
from core.pipeline import run_pipeline
from core.report_generator import write_reports
from core.results import (
    ReportDirectoryError,
    prepare_report_dir,
    save_all_rankings,
    save_all_system_metrics,
    save_manifest,
    save_profile_metrics,
)
from core.scoring import (
    list_non_example_functions,
    list_ranking_functions,
    scoring_functions_to_run,
)

__version__ = "1.0.0"


# ── Argument parsing ─────────────────────────────────────────────────────

def build_parser():
    """Build the argument parser with all CLI options."""
    parser = argparse.ArgumentParser(
        prog='fio-xsys',
        description=f'fio-xsys v{__version__} - cross-system fio result analysis',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
examples:
  Analyze results below the current directory:
    fio-xsys

  Analyze a results tree into an existing custom report directory:
    fio-xsys --results-dir ./runs --report-dir report_nvme -U

  Rank with a single scoring function:
    fio-xsys --ranking-function latency
"""
    )

    parser.add_argument('--results-dir', type=str, default=None,
                        help='Root directory of system result directories (default: current directory)')
    parser.add_argument('--report-dir', type=str, default=None,
                        help="Report directory name (default: 'report')")
    parser.add_argument('-U', '--update', action='store_true', default=False,
                        help='Allow writing into an existing non-default report directory '
                             '(and overwriting with --init-config)')

    # Scoring
    parser.add_argument('--ranking-function', type=str, default=None,
                        help='Rank with this function only (default: every non-example function)')
    parser.add_argument('--ranking-file', type=str, default=None,
                        help='Path to a JSON or YAML ranking-function document')
    parser.add_argument('--list-ranking-functions', action='store_true', default=False,
                        help='List available ranking functions and exit')
    parser.add_argument('--init-config', action='store_true', default=False,
                        help='Write the bundled ranking-functions.yaml to the current directory and exit')

    parser.add_argument('--workers', type=int, default=None,
                        help='Worker threads for per-system analysis (default: CPU count)')
    parser.add_argument('--quiet', '-q', action='store_true', default=False,
                        help='Only print warnings and errors')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


# ── Sub-commands ─────────────────────────────────────────────────────────

def run_init_config(args):
    try:
        path = init_ranking_functions(overwrite=args.update)
    except (ConfigurationError, OSError) as e:
        print_error(str(e))
        sys.exit(1)
    print_success(f"Ranking functions written to {path}")


def run_list_ranking_functions(args):
    document = load_ranking_functions(args.ranking_file)
    names = list_ranking_functions(document)
    if not names:
        print_warning("No ranking functions found; the hardcoded default will be used")
        return
    runnable = set(list_non_example_functions(document))
    print_section("Ranking Functions")
    for name in names:
        description = (document.get(name) or {}).get("description", "")
        suffix = "" if name in runnable else " (example)"
        print_bullet(f"{name}{suffix}: {description}" if description else f"{name}{suffix}")


def print_summary(manifest, result, report_dir):
    print_section("Summary")
    print_info(f"Profiles: {len(manifest.profiles)}")
    print_info(f"Systems: {manifest.total_systems}")
    failed = [s for s in result.systems if s.failed]
    if failed:
        print_warning(f"{len(failed)} systems failed analysis:")
        for s in failed:
            print_bullet(f"{s.profile}/{s.name}: {s.error}", indent=2)
    print_subheader("Rankings")
    for name, ranking in result.rankings.items():
        qualified = [r for r in ranking if not r.disqualified]
        if qualified:
            top = qualified[0]
            print_bullet(f"{name}: top system {top.system_profile}/{top.system_name} "
                         f"(score {top.total_score:.6f})")
        else:
            print_bullet(f"{name}: no qualified systems")
    print_success(f"Reports written to {os.path.abspath(report_dir)}")


# ── Main ─────────────────────────────────────────────────────────────────

def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    set_quiet(args.quiet)

    if args.init_config:
        run_init_config(args)
        return

    if args.list_ranking_functions:
        run_list_ranking_functions(args)
        return

    if args.workers is not None and args.workers < 1:
        print_error("--workers must be at least 1")
        sys.exit(1)

    results_dir = os.path.abspath(args.results_dir or os.getcwd())
    if not os.path.isdir(results_dir):
        print_error(f"Results directory not found: {results_dir}")
        sys.exit(1)

    print_header(f"fio-xsys v{__version__}")

    try:
        report_dir = prepare_report_dir(args.report_dir, update=args.update)
    except (ReportDirectoryError, OSError) as e:
        print_error(str(e))
        sys.exit(1)

    # ── Discovery ────────────────────────────────────────────────────
    print_section("Discovery")
    manifest = enumerate_results(results_dir)
    if manifest.total_systems == 0:
        print_error(f"No directories containing *.fio.json files found under {results_dir}")
        sys.exit(1)
    print_info(f"Found {manifest.total_systems} systems in {len(manifest.profiles)} profiles")
    save_manifest(manifest, report_dir)

    # ── Scoring configuration ────────────────────────────────────────
    document = load_ranking_functions(args.ranking_file)
    configs = scoring_functions_to_run(document, args.ranking_function)
    print_info(f"Ranking functions: {', '.join(c.name for c in configs)}")

    # ── Pipeline ─────────────────────────────────────────────────────
    print_section("Analysis")
    result = run_pipeline(
        manifest,
        configs,
        max_workers=args.workers,
        on_systems_analyzed=lambda systems: save_all_system_metrics(
            [s.metrics for s in systems], report_dir),
    )

    for profile in result.profiles:
        try:
            save_profile_metrics(profile, report_dir)
        except OSError as e:
            print_error(f"Error saving profile metrics for {profile.profile_name}: {e}")
    save_all_rankings(result.rankings, report_dir)

    # ── Reports ──────────────────────────────────────────────────────
    print_section("Reports")
    write_reports(result, manifest, report_dir)
    print_summary(manifest, result, report_dir)


if __name__ == "__main__":
    main()
