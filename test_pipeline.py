#!/usr/bin/env python3
"""
Tests for directory discovery, the concurrent pipeline, JSON persistence,
markdown reports and the command line.
Runs under pytest or directly: python3 test_pipeline.py
"""

import json
import os
import sys
import tempfile

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import pytest

from core.discovery import derive_system_names, enumerate_results, find_workload_files, sanitize_name
import core.pipeline as pipeline
from core.pipeline import analyze_system, analyze_systems, run_pipeline
from core.report_generator import CROSS_PROFILE_REPORT, MANIFEST_REPORT, generate_system_report, write_reports
from core.results import (
    ReportDirectoryError,
    load_all_system_metrics,
    load_manifest,
    load_profile_metrics,
    prepare_report_dir,
    save_all_rankings,
    save_all_system_metrics,
    save_manifest,
    save_profile_metrics,
    system_file_stem,
)
from core.scoring import hardcoded_default_configuration
from fio_fixtures import write_document, write_system
from utils import set_quiet
import fio_xsys

set_quiet(True)


def _build_results_tree(root):
    """Two profiles, three good systems, one broken system, plus directories that must be skipped."""
    write_system(os.path.join(root, "nvme", "host-a", "run1"))
    write_system(os.path.join(root, "nvme", "host-b", "run1"),
                 knee_p99_ms=(50.0, 52.0, 300.0), mixed_randread_mbps=1600.0)
    write_system(os.path.join(root, "sata disks", "box1"), mixed_randread_mbps=200.0)
    write_document(os.path.join(root, "sata disks", "box2"), "mixed-301-garbage.fio.json", "{broken")
    write_document(os.path.join(root, "sata disks", "box2"), "randread-001-4k.fio.json", {"nojobs": []})

    write_system(os.path.join(root, "report", "stale"))
    write_system(os.path.join(root, ".cache", "hidden"))
    write_system(os.path.join(root, "src", "code"))
    write_system(os.path.join(root, "deep", "a", "b", "c"))


def test_sanitize_and_elision():
    print("=" * 70)
    print("TEST: discovery naming")
    print("=" * 70)

    assert sanitize_name("sata disks") == "sata_disks"
    assert sanitize_name("a/b:c") == "a_b_c"

    names = derive_system_names(["nvme/host-a/run1", "nvme/host-b/run1"])
    assert names == {"host-a": "nvme/host-a/run1", "host-b": "nvme/host-b/run1"}
    assert derive_system_names(["nvme/only"]) == {"nvme/only": "nvme/only"}

    # elision that would leave nothing keeps the full path
    names = derive_system_names(["lab/x", "lab/x/y"])
    assert names == {"lab/x": "lab/x", "y": "lab/x/y"}


def test_enumerate_results():
    with tempfile.TemporaryDirectory() as root:
        _build_results_tree(root)
        manifest = enumerate_results(root)

        assert manifest.profile_names == ["nvme", "sata_disks"]
        assert manifest.profiles["nvme"].system_names == ["host-a", "host-b"]
        assert manifest.profiles["nvme"].profile_path == os.path.join(root, "nvme")
        assert manifest.profiles["sata_disks"].system_names == ["box1", "box2"]
        assert manifest.total_systems == 4

        files = find_workload_files(manifest.systems_for_profile("nvme")["host-a"])
        assert [os.path.basename(f) for f in files] == [
            "mixed-301-1to4k_10Mseq.fio.json",
            "mixed-302-1to4k_20Mseq.fio.json",
            "mixed-303-1to4k_uncapped.fio.json",
            "randread-001-1k.fio.json",
            "randread-002-4k.fio.json",
            "randread-003-16k.fio.json",
        ]


def test_analyze_system_skips_bad_files():
    with tempfile.TemporaryDirectory() as root:
        system_dir = write_system(os.path.join(root, "p", "s"))
        write_document(system_dir, "mixed-399-1to4k_5Mseq.fio.json", "{oops")
        files = find_workload_files(system_dir)
        result = analyze_system("p", "s", files)

        assert not result.failed
        assert len(result.parse_errors) == 1
        assert result.metrics.total_workloads == 7
        assert result.metrics.randread_latency_p99_ms == pytest.approx(105.0)


def test_pipeline_isolates_broken_system():
    with tempfile.TemporaryDirectory() as root:
        _build_results_tree(root)
        manifest = enumerate_results(root)

        systems = analyze_systems(manifest, max_workers=3)
        assert [(s.profile, s.name) for s in systems] == [
            ("nvme", "host-a"), ("nvme", "host-b"), ("sata_disks", "box1"), ("sata_disks", "box2"),
        ]
        broken = systems[-1]
        assert broken.metrics.randread_throughput_mbps == 0.0
        assert broken.metrics.total_workloads == 2
        assert len(broken.parse_errors) == 2

        result = run_pipeline(manifest, [hardcoded_default_configuration()], max_workers=2)
        ranking = result.rankings["default"]
        assert [r.system_name for r in ranking] == ["host-b", "host-a", "box1", "box2"]
        assert ranking[-1].disqualified
        assert [p.profile_name for p in result.profiles] == ["nvme", "sata_disks"]
        assert result.profiles[0].best_system_name == "host-b"


def test_deeply_nested_file_does_not_abort_run():
    with tempfile.TemporaryDirectory() as root:
        write_system(os.path.join(root, "lab", "sysA"))
        sys_b = write_system(os.path.join(root, "lab", "sysB"))
        write_document(sys_b, "mixed-399-1to4k_5Mseq.fio.json", "[" * 100000 + "]" * 100000)
        write_document(sys_b, "seqread-100-1M.fio.json",
                       '{"jobs": [{"jobname": "seqread", "read": {"bw": 10, "io_bytes": 1e400}}]}')

        result = run_pipeline(enumerate_results(root), [hardcoded_default_configuration()], max_workers=2)
        sys_a, sys_b_result = result.systems
        assert not sys_a.failed and not sys_b_result.failed
        assert len(sys_b_result.parse_errors) == 1
        assert sys_b_result.metrics.total_workloads == 8
        assert sys_b_result.metrics.randread_throughput_mbps == sys_a.metrics.randread_throughput_mbps
        assert not any(r.disqualified for r in result.rankings["default"])


def test_unexpected_error_is_isolated_to_its_system():
    def explode(records, label=""):
        if label.endswith("bad"):
            raise RuntimeError("unexpected")
        return original(records, label)

    original = pipeline.analyze_records
    pipeline.analyze_records = explode
    try:
        with tempfile.TemporaryDirectory() as root:
            write_system(os.path.join(root, "lab", "bad"))
            write_system(os.path.join(root, "lab", "good"))
            systems = analyze_systems(enumerate_results(root), max_workers=2)
    finally:
        pipeline.analyze_records = original

    bad, good = systems
    assert bad.failed and "unexpected" in bad.error
    assert bad.metrics.total_workloads == 6
    assert not good.failed
    assert good.metrics.randread_throughput_mbps > 0.0


def test_persistence_and_reports():
    with tempfile.TemporaryDirectory() as root:
        results_root = os.path.join(root, "results")
        _build_results_tree(results_root)
        manifest = enumerate_results(results_root)
        result = run_pipeline(manifest, [hardcoded_default_configuration()], max_workers=2)

        report_dir = prepare_report_dir(base_dir=root)
        assert report_dir == os.path.join(root, "report")
        save_manifest(manifest, report_dir)
        save_all_system_metrics(result.all_metrics, report_dir)
        save_all_rankings(result.rankings, report_dir)

        loaded = load_all_system_metrics(report_dir)
        assert sorted(m.system_name for m in loaded) == ["box1", "box2", "host-a", "host-b"]
        by_name = {m.system_name: m for m in loaded}
        assert by_name["host-a"] == result.systems[0].metrics

        assert load_manifest(os.path.join(report_dir, "manifest.json")).total_systems == 4
        for profile in result.profiles:
            assert load_profile_metrics(save_profile_metrics(profile, report_dir)) == profile
        with open(os.path.join(report_dir, "rankings", "default.json")) as f:
            ranking = json.load(f)
        assert ranking["results"][0]["rank"] == 1
        assert ranking["results"][-1]["disqualified"] is True

        written = write_reports(result, manifest, report_dir)
        names = {os.path.basename(p) for p in written}
        assert system_file_stem("nvme", "host-a") + ".md" in names
        assert "PROFILE_sata_disks.md" in names
        assert CROSS_PROFILE_REPORT in names
        assert MANIFEST_REPORT in names

        with open(os.path.join(report_dir, CROSS_PROFILE_REPORT)) as f:
            cross = f.read()
        assert "## Ranking: default" in cross
        assert "DISQUALIFIED" in cross
        assert "System disqualified due to missing or zero values" in cross
        assert "randread_throughput_mbps: MISSING/ZERO" in cross

        report = generate_system_report(result.systems[0])
        assert "Knee point analysis complete" in report
        assert "mixed-302-1to4k_20Mseq.fio.json" in report


def test_report_dir_requires_update_mode():
    with tempfile.TemporaryDirectory() as root:
        prepare_report_dir("report_custom", base_dir=root)
        with pytest.raises(ReportDirectoryError):
            prepare_report_dir("report_custom", base_dir=root)
        assert prepare_report_dir("report_custom", update=True, base_dir=root)
        # default directory is reused freely
        prepare_report_dir(base_dir=root)
        prepare_report_dir(base_dir=root)


def test_cli_end_to_end():
    with tempfile.TemporaryDirectory() as root:
        results_root = os.path.join(root, "results")
        _build_results_tree(results_root)
        workdir = os.path.join(root, "work")
        os.makedirs(workdir)

        previous = os.getcwd()
        os.chdir(workdir)
        try:
            fio_xsys.main(["--results-dir", results_root, "--workers", "2", "--quiet"])
            assert os.path.isfile(os.path.join(workdir, "report", CROSS_PROFILE_REPORT))
            rankings = sorted(os.listdir(os.path.join(workdir, "report", "rankings")))
            assert rankings == ["default.json", "latency.json", "throughput.json"]

            fio_xsys.main(["--init-config", "--quiet"])
            assert os.path.isfile(os.path.join(workdir, "ranking-functions.yaml"))
            with pytest.raises(SystemExit):
                fio_xsys.main(["--init-config", "--quiet"])

            with pytest.raises(SystemExit):
                fio_xsys.main(["--results-dir", os.path.join(root, "absent"), "--quiet"])
        finally:
            os.chdir(previous)
            set_quiet(True)


if __name__ == "__main__":
    test_sanitize_and_elision()
    test_enumerate_results()
    test_analyze_system_skips_bad_files()
    test_pipeline_isolates_broken_system()
    test_deeply_nested_file_does_not_abort_run()
    test_unexpected_error_is_isolated_to_its_system()
    test_persistence_and_reports()
    test_report_dir_requires_update_mode()
    test_cli_end_to_end()
    print("All pipeline tests passed.")
