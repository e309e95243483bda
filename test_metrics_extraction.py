#!/usr/bin/env python3
"""
Tests for metric extraction from the optimal mixed workload and for the
metric-name lookup used by scoring.
Runs under pytest or directly: python3 test_metrics_extraction.py
"""

import os
import sys

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import pytest

from core.analysis import analyze_records
from core.metrics import (
    RawComponentMetrics,
    SystemMetrics,
    build_system_metrics,
    extract_component_metrics,
    finalize_metrics,
    is_known_metric,
    metric_value,
)
from fio_fixtures import io_section, job, mixed_document, randread_document
from utils import set_quiet
from workloads import parse_workload_data

set_quiet(True)


def _end_to_end_records():
    return [
        parse_workload_data("randread-001-1k.fio.json", randread_document(100.0)),
        parse_workload_data("randread-002-4k.fio.json", randread_document(500.0)),
        parse_workload_data("randread-003-16k.fio.json", randread_document(300.0)),
        parse_workload_data("mixed-301-1to4k_10Mseq.fio.json", mixed_document(100.0, p50_ms=50.0)),
        parse_workload_data("mixed-302-1to4k_20Mseq.fio.json",
                            mixed_document(105.0, randread_mbps=1000.0, p50_ms=50.0)),
        parse_workload_data("mixed-303-1to4k_uncapped.fio.json", mixed_document(400.0, p50_ms=50.0)),
    ]


def test_end_to_end_knee_metrics():
    print("=" * 70)
    print("TEST: end-to-end metric extraction")
    print("=" * 70)

    records = _end_to_end_records()
    analysis = analyze_records(records, "lab/host1")
    metrics = build_system_metrics("host1", "lab", analysis)

    assert metrics.randread_latency_p99_ms == pytest.approx(105.0)
    assert metrics.randread_latency_p50_ms == pytest.approx(50.0)
    assert metrics.randread_latency_p99_p50_ratio == pytest.approx(2.1)
    assert metrics.randread_throughput_mbps == pytest.approx(1000.0)
    assert metrics.seqread_throughput_mbps == pytest.approx(300.0)
    assert metrics.seqwrite_throughput_mbps == pytest.approx(200.0)
    assert metrics.knee_point_latency_increase_percent == pytest.approx(280.952, rel=1e-4)
    assert metrics.optimal_stream_limit_mbps == 20.0
    assert metrics.optimal_mixed_workload_name == "mixed-302-1to4k_20Mseq.fio.json"
    assert metrics.suboptimal_mixed_workload_name == "mixed-303-1to4k_uncapped.fio.json"
    assert metrics.optimal_blocksize == "4k"
    assert metrics.total_workloads == 6
    assert metrics.analysis_status == "Knee point analysis complete"


def test_no_knee_leaves_zero_metrics():
    records = _end_to_end_records()[:3] + [
        parse_workload_data("mixed-301-1to4k_10Mseq.fio.json", mixed_document(100.0)),
        parse_workload_data("mixed-302-1to4k_20Mseq.fio.json", mixed_document(101.0)),
        parse_workload_data("mixed-303-1to4k_uncapped.fio.json", mixed_document(102.0)),
    ]
    metrics = build_system_metrics("host1", "lab", analyze_records(records), total_workloads=9)
    assert metrics.randread_throughput_mbps == 0.0
    assert metrics.randread_latency_p99_ms == 0.0
    assert metrics.randread_latency_p99_p50_ratio == 0.0
    assert metrics.optimal_mixed_workload_name is None
    assert metrics.optimal_stream_limit_mbps is None
    assert metrics.total_workloads == 9


def test_first_job_per_role_wins():
    doc = {"jobs": [
        job("randread-a", read=io_section(700.0, 1000.0, p50_ms=1.0, p99_ms=3.0)),
        job("randread-b", read=io_section(9999.0, 1.0, p50_ms=9.0, p99_ms=99.0)),
        job("seqwrite", write=io_section(123.0, 1.0)),
    ]}
    mixed = parse_workload_data("mixed-301-4k_10Mseq.fio.json", doc)
    raw = extract_component_metrics(mixed)
    assert raw.randread_bandwidth_kbps == 700.0 * 1024
    assert raw.randread_latency_p99_ns == 3.0 * 1_000_000
    assert raw.seqwrite_bandwidth_kbps == 123.0 * 1024
    assert raw.seqread_bandwidth_kbps == 0.0
    assert raw.notes == []


def test_unnamed_jobs_fall_back_to_first_job():
    doc = {"jobs": [
        job("job0", read=io_section(640.0, 500.0, p50_ms=2.0, p99_ms=6.0)),
        job("job1", read=io_section(10.0, 5.0, p99_ms=1.0)),
    ]}
    mixed = parse_workload_data("mixed-301-4k_10Mseq.fio.json", doc)
    raw = extract_component_metrics(mixed)
    assert raw.randread_bandwidth_kbps == 640.0 * 1024
    assert len(raw.notes) == 1
    assert "job0" in raw.notes[0]


def test_finalize_converts_units():
    raw = RawComponentMetrics(
        randread_bandwidth_kbps=2048.0,
        randread_iops=512.0,
        randread_latency_mean_ns=1_500_000.0,
        randread_latency_p50_ns=0.0,
        randread_latency_p99_ns=4_000_000.0,
        seqread_bandwidth_kbps=1024.0,
    )
    metrics = finalize_metrics("sys", "prof", raw, timestamp="2026-01-01T00:00:00")
    assert metrics.randread_throughput_mbps == 2.0
    assert metrics.randread_latency_mean_ms == 1.5
    assert metrics.randread_latency_p99_ms == 4.0
    # ratio needs both percentiles
    assert metrics.randread_latency_p99_p50_ratio == 0.0
    assert metrics.seqread_throughput_mbps == 1.0
    assert metrics.analysis_timestamp == "2026-01-01T00:00:00"


def test_metric_lookup_aliases():
    metrics = SystemMetrics(
        system_name="s", system_profile="p",
        randread_throughput_mbps=2048.0,
        randread_iops=10000.0,
        randread_latency_p99_ms=0.75,
        optimal_stream_limit_mbps=None,
    )
    assert metric_value(metrics, "randread_throughput_mbps") == 2048.0
    assert metric_value(metrics, "optimal_throughput_mbps") == 2048.0
    assert metric_value(metrics, "optimal_throughput_gbps") == 2.0
    assert metric_value(metrics, "randread_latency_p99_ms") == 0.75
    assert metric_value(metrics, "randread_latency_p99_us") == 750.0
    assert metric_value(metrics, "optimal_latency_p99_us") == 750.0
    assert metric_value(metrics, "RANDREAD_IOPS") == 10000.0
    assert metric_value(metrics, "optimal_stream_limit_mbps") == 0.0
    assert metric_value(metrics, "no_such_metric") == 0.0
    assert not is_known_metric("no_such_metric")


def test_metrics_json_roundtrip_keeps_values():
    analysis = analyze_records(_end_to_end_records())
    metrics = build_system_metrics("host1", "lab", analysis)
    restored = SystemMetrics.from_dict(metrics.to_dict())
    assert restored == metrics


if __name__ == "__main__":
    test_end_to_end_knee_metrics()
    test_no_knee_leaves_zero_metrics()
    test_first_job_per_role_wins()
    test_unnamed_jobs_fall_back_to_first_job()
    test_finalize_converts_units()
    test_metric_lookup_aliases()
    test_metrics_json_roundtrip_keeps_values()
    print("All metrics extraction tests passed.")
