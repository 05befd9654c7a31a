#"""
# MQA Identifier v1.0
# - Process resource telemetry (CPU/RSS/RAM) for the scan log, and the
#   hardware parallelism used to size the worker pool.
#"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

import psutil


@dataclass(frozen=True, slots=True)
class ResourceSnapshot:
    cpu_percent: float
    rss_mb: float
    ram_used_gb: float
    ram_total_gb: float


def _bytes_to_gb(b: float) -> float:
    return float(b) / (1024.0 ** 3)


def _bytes_to_mb(b: float) -> float:
    return float(b) / (1024.0 ** 2)


def hardware_parallelism() -> Optional[int]:
    """Logical CPUs, or None when neither psutil nor the OS can tell."""
    return psutil.cpu_count(logical=True) or os.cpu_count()


def get_resource_snapshot() -> ResourceSnapshot:
    """Point-in-time snapshot of this process and the host."""
    proc = psutil.Process()
    vm = psutil.virtual_memory()
    return ResourceSnapshot(
        cpu_percent=float(proc.cpu_percent(interval=None)),
        rss_mb=_bytes_to_mb(proc.memory_info().rss),
        ram_used_gb=_bytes_to_gb(vm.used),
        ram_total_gb=_bytes_to_gb(vm.total),
    )
