"""
Synthetic fio JSON documents for the test modules.

Latencies are given in milliseconds and bandwidth in MB/s for readability;
they are converted to fio's native units (ns, KB/s) here.
"""

import json
import os

NS_PER_MS = 1_000_000


def io_section(bw_mbps=0.0, iops=0.0, p50_ms=None, p95_ms=None, p99_ms=None, mean_ms=None):
    """One fio read/write section."""
    percentiles = {}
    if p50_ms is not None:
        percentiles["50.000000"] = p50_ms * NS_PER_MS
    if p95_ms is not None:
        percentiles["95.000000"] = p95_ms * NS_PER_MS
    if p99_ms is not None:
        percentiles["99.000000"] = p99_ms * NS_PER_MS
    bw_kbps = bw_mbps * 1024
    return {
        "bw": bw_kbps,
        "iops": iops,
        "io_bytes": int(bw_kbps * 1024 * 60),
        "clat_ns": {
            "mean": mean_ms * NS_PER_MS if mean_ms is not None else 0.0,
            "percentile": percentiles,
        },
    }


def job(jobname, read=None, write=None):
    return {
        "jobname": jobname,
        "read": read if read is not None else io_section(),
        "write": write if write is not None else io_section(),
    }


def randread_document(bw_mbps, p99_ms=1.0, iops=None):
    iops = iops if iops is not None else bw_mbps * 256
    return {"jobs": [job("randread", read=io_section(bw_mbps, iops, p50_ms=p99_ms / 2,
                                                   p95_ms=p99_ms * 0.8, p99_ms=p99_ms,
                                                   mean_ms=p99_ms / 3))]}


def mixed_document(p99_ms, randread_mbps=800.0, p50_ms=None, seqread_mbps=300.0, seqwrite_mbps=200.0):
    p50_ms = p50_ms if p50_ms is not None else p99_ms / 2
    return {"jobs": [
        job("randread", read=io_section(randread_mbps, randread_mbps * 256, p50_ms=p50_ms,
                                        p95_ms=(p50_ms + p99_ms) / 2, p99_ms=p99_ms,
                                        mean_ms=p50_ms)),
        job("seqread", read=io_section(seqread_mbps, seqread_mbps, p99_ms=5.0)),
        job("seqwrite", write=io_section(seqwrite_mbps, seqwrite_mbps, p99_ms=8.0)),
    ]}


def write_document(directory, filename, document):
    os.makedirs(directory, exist_ok=True)
    path = os.path.join(directory, filename)
    with open(path, "w") as f:
        if isinstance(document, str):
            f.write(document)
        else:
            json.dump(document, f)
    return path


def write_system(directory, knee_p99_ms=(100.0, 105.0, 400.0), randread_mbps=(100.0, 500.0, 300.0),
                 mixed_randread_mbps=800.0):
    """A complete system directory: randread blocksize sweep plus one mixed series.

    The 4k randread is the fastest by default and the 1to4k mixed series is
    the only one, so the knee lands between the second and third mixed file.
    """
    blocksizes = ("1k", "4k", "16k")
    for i, (bs, bw) in enumerate(zip(blocksizes, randread_mbps), start=1):
        write_document(directory, f"randread-00{i}-{bs}.fio.json", randread_document(bw))

    limits = ("10Mseq", "20Mseq", "uncapped")
    for i, (limit, p99) in enumerate(zip(limits, knee_p99_ms), start=1):
        write_document(directory, f"mixed-30{i}-1to4k_{limit}.fio.json",
                       mixed_document(p99, randread_mbps=mixed_randread_mbps))
    return directory
