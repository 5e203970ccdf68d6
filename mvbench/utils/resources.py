"""
Process resource snapshots.

A snapshot is taken from the ``rusage`` that ``os.wait4`` returns when a worker
is reaped, so it always describes a process that has already terminated.
Platforms without ``wait4`` get ``ZERO_SNAPSHOT``.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from typing import Any, Dict

import psutil


WAIT4_AVAILABLE = hasattr(os, "wait4")


@dataclass(frozen=True)
class ResourceSnapshot:
    """Peak resident memory and accumulated user-mode CPU time of one worker."""

    peak_rss_kb: int
    user_cpu_seconds: float


ZERO_SNAPSHOT = ResourceSnapshot(peak_rss_kb=0, user_cpu_seconds=0.0)


def snapshot_from_rusage(usage: Any) -> ResourceSnapshot:
    """Convert a ``resource.struct_rusage`` into a snapshot."""
    peak = int(usage.ru_maxrss)
    if sys.platform == "darwin":
        peak //= 1024  # macOS reports bytes
    return ResourceSnapshot(peak_rss_kb=peak, user_cpu_seconds=float(usage.ru_utime))


def host_summary() -> Dict[str, Any]:
    """Logical CPU count and total memory of the benchmarking host."""
    return {
        "logical_cpus": psutil.cpu_count(logical=True) or 1,
        "physical_cpus": psutil.cpu_count(logical=False),
        "total_memory_kb": psutil.virtual_memory().total // 1024,
    }
