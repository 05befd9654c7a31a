"""
MQA Identifier Reporting v1.0
- Console table (serialized writes, no interleaved partial lines)
- Classification labels and sample-rate rendering
- Verbose scan log: events, resource snapshot, errors grouped by reason
"""

from __future__ import annotations

import sys
import threading
from pathlib import Path
from typing import IO, List, Optional

from ..core.models import Detected, DetectionResult, NotDetected, ScanSummary
from .telemetry import ResourceSnapshot

BANNER = (
    "**************************************************",
    "***********  MQA flac identifier tool  ***********",
    "**************************************************",
)

NOT_MQA = "NOT MQA"
MAX_PCM_RATE = 768000


def format_sample_rate(hz: int) -> str:
    """44100 -> '44.1K', 2822400 -> 'DSD64', 3072000 -> 'DSD64x48'."""
    if hz <= MAX_PCM_RATE:
        return f"{hz / 1000:g}K"
    if hz % 44100 == 0:
        return f"DSD{hz // 44100}"
    return f"DSD{hz // 48000}x48"


def classify(result: DetectionResult) -> Optional[str]:
    """Console label for a verdict; None for errors (they go to the error log)."""
    if isinstance(result, Detected):
        label = "MQA Studio" if result.studio else "MQA"
        if result.original_sample_rate:
            label += " " + format_sample_rate(result.original_sample_rate)
        return label
    if isinstance(result, NotDetected):
        return NOT_MQA
    return None


class ConsoleReporter:
    def __init__(self, stream: Optional[IO[str]] = None):
        self._stream = stream
        self._lock = threading.Lock()

    def emit(self, *lines: str) -> None:
        out = self._stream or sys.stdout
        with self._lock:
            for line in lines:
                out.write(line + "\n")
            out.flush()

    def banner(self, file_count: int) -> None:
        self.emit(*BANNER)
        self.emit(f"Found {file_count} file(s) for scanning...", "", "  #\tEncoding\tName")

    def file_line(self, index: int, classification: str, filename: str) -> None:
        self.emit(f"{index:>3}\t{classification}\t{filename}")

    def dry_run_notice(self, filename: str) -> None:
        self.emit(f"DRY RUN: Would write tags to {filename}")

    def summary(self, summary: ScanSummary) -> None:
        self.emit(
            "",
            BANNER[0],
            f"Scanned {summary.scanned} files",
            f"Found {summary.detected} MQA files",
        )


def render_log(summary: ScanSummary, snapshot: Optional[ResourceSnapshot] = None) -> str:
    lines: List[str] = ["MQA Identifier Scan Log", "=======================", ""]

    lines.append("Events")
    lines.append("------")
    for event in summary.events:
        stamp = event.timestamp.strftime("%Y-%m-%d %H:%M:%S")
        lines.append(f"{stamp} [{event.index:>3}] {event.path}: {event.message}")
    lines.append("")

    lines.append(f"Scanned: {summary.scanned}, MQA: {summary.detected}")
    if snapshot is not None:
        lines.append(
            f"Resources: cpu {snapshot.cpu_percent:.1f}%, rss {snapshot.rss_mb:.1f} MB, "
            f"ram {snapshot.ram_used_gb:.2f}/{snapshot.ram_total_gb:.2f} GB"
        )
    lines.append("")

    lines.append("Errors")
    lines.append("------")
    for reason, paths in summary.errors.items():
        lines.append(f"Reason: {reason}")
        lines.extend(f" - {p}" for p in paths)
        lines.append("")

    return "\n".join(lines) + "\n"


def write_log_file(path: Path, summary: ScanSummary,
                   snapshot: Optional[ResourceSnapshot] = None) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_log(summary, snapshot), encoding="utf-8")
    return path
