"""
fio-xsys Workloads Module

Parsing of fio JSON result files into WorkloadRecord objects, plus the
filename parameter grammar (blocksizes, streaming limits, display names).
"""

from workloads.record import (
    WorkloadKind,
    JobRole,
    LatencyStats,
    IoStats,
    JobComponent,
    WorkloadRecord,
    classify_job_role,
    parse_filename,
    parse_workload_data,
    parse_workload_file,
)
from workloads.parameters import (
    parse_blocksize,
    blocksize_token,
    parse_stream_limit,
    stream_limit_mbps,
    describe_stream_limit,
    workload_display_name,
)

__all__ = [
    'WorkloadKind', 'JobRole', 'LatencyStats', 'IoStats', 'JobComponent', 'WorkloadRecord',
    'classify_job_role', 'parse_filename', 'parse_workload_data', 'parse_workload_file',
    'parse_blocksize', 'blocksize_token', 'parse_stream_limit', 'stream_limit_mbps',
    'describe_stream_limit', 'workload_display_name',
]
