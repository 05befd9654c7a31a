"""
MQA Identifier Scan Manager v1.0
- Role: Orchestrates Decoder -> Detector -> Tagger for every discovered file.
- Logic: Bounded ThreadPoolExecutor with FIFO back-pressure on admission.
- Integrity: every task returns a ScanOutcome; the task boundary converts any
  failure into an error outcome, so one file can never break another file's
  accounting or the run itself.
"""

from __future__ import annotations

import logging
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Deque, Iterable, Optional, Sequence

from ..config import ScanConfig
from ..services.report import ConsoleReporter, classify
from ..services.telemetry import hardware_parallelism
from .aggregation import AggregationState
from .decoder import DecodedStream, open_stream
from .detector import detect
from .models import (
    Detected,
    DetectionError,
    DetectionResult,
    ErrorKind,
    MQAIdentifierError,
    PCMFrame,
    ScanOutcome,
    ScanSummary,
    ScanTask,
    SkippedPath,
    StreamInfo,
    TagError,
)
from .tagger import MetadataTagger

logger = logging.getLogger("system.manager")

MAX_WORKERS = 16
FALLBACK_WORKERS = 4

DecoderFn = Callable[[str], DecodedStream]
DetectorFn = Callable[[StreamInfo, Iterable[PCMFrame]], DetectionResult]


def resolve_worker_count(requested: Optional[int] = None,
                         parallelism: Optional[int] = None) -> int:
    """Pool size: explicit request (1..16), else hardware parallelism capped at 16, else 4."""
    if requested is not None:
        return max(1, min(MAX_WORKERS, int(requested)))
    cpus = parallelism if parallelism is not None else hardware_parallelism()
    if not cpus:
        return FALLBACK_WORKERS
    return min(MAX_WORKERS, cpus)


class ScanManager:
    def __init__(
        self,
        config: ScanConfig,
        *,
        decoder: DecoderFn = open_stream,
        detector: DetectorFn = detect,
        tagger: Optional[MetadataTagger] = None,
        reporter: Optional[ConsoleReporter] = None,
    ):
        self.config = config
        self.decoder = decoder
        self.detector = detector
        self.tagger = tagger or MetadataTagger()
        self.reporter = reporter or ConsoleReporter()
        self.workers = resolve_worker_count(config.max_workers)

    def run(self, paths: Sequence[str],
            skipped: Sequence[SkippedPath] = ()) -> ScanSummary:
        """Scans every path and blocks until all tasks have completed."""
        state = AggregationState(collect_events=self.config.verbose)
        for skip in skipped:
            state.record_skip(skip)

        logger.info("Scanning %d file(s) with %d worker(s)%s",
                    len(paths), self.workers, " (dry run)" if self.config.dry_run else "")

        in_flight: Deque[Future] = deque()
        with ThreadPoolExecutor(max_workers=self.workers,
                                thread_name_prefix="mqa-scan") as executor:
            for index, path in enumerate(paths, start=1):
                # Reclaim finished tasks, then wait on the oldest if saturated
                in_flight = deque(f for f in in_flight if not f.done())
                if len(in_flight) >= self.workers:
                    in_flight.popleft().result()
                in_flight.append(executor.submit(self._run_task, ScanTask(index, path), state))

            while in_flight:
                in_flight.popleft().result()

        summary = state.snapshot(list(skipped))
        logger.info("Scan complete: %d scanned, %d MQA, %d error reason(s)",
                    summary.scanned, summary.detected, len(summary.errors))
        return summary

    # --- task boundary ------------------------------------------------------------

    def _run_task(self, task: ScanTask, state: AggregationState) -> ScanOutcome:
        try:
            outcome = self._scan_file(task, state)
        except Exception as e:
            logger.exception("Task %d failed on %s", task.index, task.path)
            outcome = self._failure_outcome(task, e)

        try:
            self._merge(outcome, state)
        except Exception:
            logger.exception("Failed to record outcome for %s", task.path)
        finally:
            state.mark_scanned()
        return outcome

    @staticmethod
    def _failure_outcome(task: ScanTask, error: Exception) -> ScanOutcome:
        if isinstance(error, MQAIdentifierError):
            result = DetectionError.from_exception(error)
        else:
            result = DetectionError(ErrorKind.DECODE_ERROR,
                                    f"Exception: {type(error).__name__}", str(error))
        return ScanOutcome(task.index, task.path, result,
                           reason=result.reason, detail=result.description)

    def _merge(self, outcome: ScanOutcome, state: AggregationState) -> None:
        # Error map is keyed by the stable reason; the event log gets the full text
        if outcome.reason:
            message = outcome.detail or outcome.reason
            state.record_error(outcome.reason, outcome.path)
            state.log_event(outcome.index, outcome.path, message)
            logger.warning("%s: %s", outcome.path, message)
        if outcome.is_detected:
            state.mark_detected()
        state.record_outcome(outcome)
        if outcome.classification:
            self.reporter.file_line(outcome.index, outcome.classification, Path(outcome.path).name)

    # --- per-file work ------------------------------------------------------------

    def _scan_file(self, task: ScanTask, state: AggregationState) -> ScanOutcome:
        index, path = task.index, task.path

        try:
            stream = self.decoder(path)
        except MQAIdentifierError as e:
            return ScanOutcome(index, path, DetectionError.from_exception(e),
                               reason=e.reason, detail=e.description)

        info = stream.info
        state.log_event(index, path, f"Opened: {info.sample_rate} Hz, "
                                     f"{info.channel_count} ch, {info.bit_depth} bit")
        if stream.encoder:
            state.log_event(index, path, f"Existing MQAENCODER tag: {stream.encoder}")

        result = self.detector(info, stream.frames)
        if isinstance(result, DetectionError):
            return ScanOutcome(index, path, result, reason=result.reason,
                               detail=result.description, encoder=stream.encoder)

        classification = classify(result)
        if not isinstance(result, Detected):
            state.log_event(index, path, "No watermark in detection window")
            return ScanOutcome(index, path, result, classification=classification,
                               encoder=stream.encoder)

        state.log_event(index, path, f"Detected: {classification}")
        tagged, failure = self._write_tags(task, result, state)
        return ScanOutcome(index, path, result, classification=classification,
                           reason=failure.reason if failure else None,
                           detail=failure.description if failure else None,
                           tagged=tagged, encoder=stream.encoder)

    def _write_tags(self, task: ScanTask, result: Detected, state: AggregationState):
        """Returns (tagged, TagError or None)."""
        if self.config.dry_run:
            self.reporter.dry_run_notice(Path(task.path).name)
            state.log_event(task.index, task.path, "Dry run: tag write skipped")
            return False, None

        try:
            written = self.tagger.tag(task.path, result.original_sample_rate)
        except TagError as e:
            return False, e

        if written:
            state.log_event(task.index, task.path, f"Tags written: {', '.join(written)}")
        else:
            state.log_event(task.index, task.path, "Tags already present")
        return bool(written), None
