#!/usr/bin/env python3
"""
Tests for workload filename grammar, blocksize parsing and fio JSON parsing.
Runs under pytest or directly: python3 test_workload_parsing.py
"""

import math
import os
import sys
import tempfile

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import pytest

from core.errors import ParseError
from fio_fixtures import io_section, job, mixed_document, randread_document, write_document
from utils import set_quiet
from workloads import (
    JobRole,
    WorkloadKind,
    classify_job_role,
    describe_stream_limit,
    parse_blocksize,
    parse_filename,
    parse_stream_limit,
    parse_workload_data,
    parse_workload_file,
    stream_limit_mbps,
    workload_display_name,
)

set_quiet(True)


def test_blocksize_grammars():
    print("=" * 70)
    print("TEST: blocksize grammars")
    print("=" * 70)

    assert parse_blocksize("16k") == 16384
    assert parse_blocksize("4K") == 4096
    assert parse_blocksize("512") == 512
    assert parse_blocksize("1M") == 1048576
    assert parse_blocksize("1to4k") == 2560
    assert parse_blocksize("512Kto1M") == 786432
    assert parse_blocksize("1to4") == 2.5


def test_blocksize_unparseable_is_zero():
    assert parse_blocksize("garbage") == 0.0
    assert parse_blocksize("") == 0.0
    assert parse_blocksize("4kb") == 0.0


def test_stream_limits():
    assert parse_stream_limit("1to4k_10Mseq") == 10.0
    assert parse_stream_limit("1to4k_250Mseq") == 250.0
    assert math.isinf(parse_stream_limit("1to4k_uncapped"))
    assert stream_limit_mbps("1to4k_uncapped") is None
    assert describe_stream_limit("4k_20Mseq") == "20 MB/s sequential streaming limit"
    assert describe_stream_limit("4k_20Mseq", short=True) == "20 MB/s"
    assert describe_stream_limit("4k_uncapped") == "Uncapped (no streaming limit)"
    assert describe_stream_limit("4k_uncapped", short=True) == "Unlimited"


def test_display_names():
    assert workload_display_name("randread-005-16k.fio.json") == "Random Read 16K"
    assert workload_display_name("seqwrite-010-1m.fio.json") == "Sequential Write 1M"
    assert workload_display_name("mixed-602-128to256k_20Mseq.fio.json") == "Mixed 128-256k (20 MB/s)"
    assert workload_display_name("mixed-309-1to4k_uncapped.fio.json") == "Mixed 1-4k (Uncapped)"


def test_parse_filename():
    kind, test_id, parameter = parse_filename("mixed-301-1to4k_10Mseq.fio.json")
    assert kind == WorkloadKind.MIXED
    assert test_id == "301"
    assert parameter == "1to4k_10Mseq"

    with pytest.raises(ParseError):
        parse_filename("mixed-31-1to4k.fio.json")
    with pytest.raises(ParseError):
        parse_filename("randwrite-001-4k.fio.json")
    with pytest.raises(ParseError):
        parse_filename("notes.txt")


def test_job_role_classification():
    assert classify_job_role("randread") == JobRole.RANDREAD
    assert classify_job_role("Job-RandRead-4k") == JobRole.RANDREAD
    assert classify_job_role("seqread_stream") == JobRole.SEQREAD
    assert classify_job_role("SEQWRITE") == JobRole.SEQWRITE
    assert classify_job_role("job0") == JobRole.UNKNOWN
    assert classify_job_role(None) == JobRole.UNKNOWN


def test_parse_mixed_document():
    record = parse_workload_data("mixed-302-1to4k_20Mseq.fio.json", mixed_document(105.0))
    assert record.kind == WorkloadKind.MIXED
    assert record.series_key == "3"
    assert [c.role for c in record.components] == [JobRole.RANDREAD, JobRole.SEQREAD, JobRole.SEQWRITE]
    assert record.randread_p99_ns == 105.0 * 1_000_000
    assert record.randread_bandwidth_kbps == 800.0 * 1024

    seqwrite = record.job_for_role(JobRole.SEQWRITE)
    assert seqwrite.metrics is seqwrite.write
    assert seqwrite.metrics.bandwidth_kbps == 200.0 * 1024


def test_corrupt_latency_is_discarded():
    doc = {"jobs": [job("randread", read=io_section(100.0, 1000.0, p50_ms=1.0, p99_ms=20_000.0))]}
    record = parse_workload_data("randread-001-4k.fio.json", doc)
    latency = record.randread_stats().latency
    assert latency.p99_ns is None
    assert latency.value("p99") == 0.0
    assert latency.value("p50") == 1_000_000


def test_parse_workload_file_errors():
    with tempfile.TemporaryDirectory() as tmp:
        good = write_document(tmp, "randread-001-4k.fio.json", randread_document(250.0))
        record = parse_workload_file(good)
        assert record.filename == "randread-001-4k.fio.json"
        assert record.randread_bandwidth_kbps == 250.0 * 1024

        broken = write_document(tmp, "randread-002-8k.fio.json", "{not json")
        with pytest.raises(ParseError) as excinfo:
            parse_workload_file(broken)
        assert excinfo.value.filename == "randread-002-8k.fio.json"

        no_jobs = write_document(tmp, "randread-003-16k.fio.json", {"fio version": "fio-3.36"})
        with pytest.raises(ParseError):
            parse_workload_file(no_jobs)

        bad_name = write_document(tmp, "random.fio.json", randread_document(1.0))
        with pytest.raises(ParseError):
            parse_workload_file(bad_name)


def test_non_finite_numbers_read_as_missing():
    # 1e400 is valid JSON but decodes to infinity
    raw = ('{"jobs": [{"jobname": "seqread", "read": {"bw": 1e400, "iops": 12, "io_bytes": 1e400,'
           ' "clat_ns": {"mean": 1e400, "percentile": {"99.000000": 2000000}}}}]}')
    with tempfile.TemporaryDirectory() as tmp:
        path = write_document(tmp, "seqread-100-1M.fio.json", raw)
        record = parse_workload_file(path)

    stats = record.components[0].read
    assert stats.io_bytes == 0
    assert stats.bandwidth_kbps == 0.0
    assert stats.iops == 12.0
    assert stats.latency.mean_ns is None
    assert stats.latency.p99_ns == 2_000_000


def test_deeply_nested_json_is_a_parse_error():
    with tempfile.TemporaryDirectory() as tmp:
        path = write_document(tmp, "mixed-301-1to4k_10Mseq.fio.json", "[" * 100000 + "]" * 100000)
        with pytest.raises(ParseError) as excinfo:
            parse_workload_file(path)
        assert excinfo.value.filename == "mixed-301-1to4k_10Mseq.fio.json"


def test_unknown_jobs_fall_back_to_first():
    doc = {"jobs": [
        job("job0", read=io_section(400.0, 100.0, p99_ms=2.0)),
        job("job1", read=io_section(900.0, 100.0, p99_ms=9.0)),
    ]}
    record = parse_workload_data("randread-001-4k.fio.json", doc)
    assert record.randread_job().jobname == "job0"
    assert record.randread_bandwidth_kbps == 400.0 * 1024


if __name__ == "__main__":
    test_blocksize_grammars()
    test_blocksize_unparseable_is_zero()
    test_stream_limits()
    test_display_names()
    test_parse_filename()
    test_job_role_classification()
    test_parse_mixed_document()
    test_corrupt_latency_is_discarded()
    test_parse_workload_file_errors()
    test_non_finite_numbers_read_as_missing()
    test_deeply_nested_json_is_a_parse_error()
    test_unknown_jobs_fall_back_to_first()
    print("All workload parsing tests passed.")
