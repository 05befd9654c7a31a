"""
MQA Identifier Aggregation State v1.0
- Role: Shared, per-run record of what every scan task produced.
- Integrity: counters, error map and event log each have their own lock;
  totals are read through snapshot() once all tasks have joined.
"""

from __future__ import annotations

import threading
from typing import Dict, List, Optional

from .models import ScanEvent, ScanOutcome, ScanSummary, SkippedPath


class _Counter:
    def __init__(self) -> None:
        self._value = 0
        self._lock = threading.Lock()

    def increment(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


class AggregationState:
    """
    Owned by ScanManager for the duration of one run.

    Events are only kept when `collect_events` is set (verbose mode); errors
    are always kept.
    """

    def __init__(self, collect_events: bool = False):
        self.collect_events = collect_events
        self._scanned = _Counter()
        self._detected = _Counter()
        self._errors: Dict[str, List[str]] = {}
        self._errors_lock = threading.Lock()
        self._events: List[ScanEvent] = []
        self._events_lock = threading.Lock()
        self._outcomes: List[ScanOutcome] = []
        self._outcomes_lock = threading.Lock()

    # --- counters -------------------------------------------------------------

    def mark_scanned(self) -> int:
        return self._scanned.increment()

    def mark_detected(self) -> int:
        return self._detected.increment()

    @property
    def scanned(self) -> int:
        return self._scanned.value

    @property
    def detected(self) -> int:
        return self._detected.value

    # --- logs -----------------------------------------------------------------

    def record_error(self, reason: str, path: str) -> None:
        with self._errors_lock:
            self._errors.setdefault(reason, []).append(path)

    def record_skip(self, skip: SkippedPath) -> None:
        self.record_error(skip.reason, skip.path)

    def log_event(self, index: int, path: str, message: str) -> Optional[ScanEvent]:
        if not self.collect_events:
            return None
        event = ScanEvent(index=index, path=path, message=message)
        with self._events_lock:
            self._events.append(event)
        return event

    def record_outcome(self, outcome: ScanOutcome) -> None:
        with self._outcomes_lock:
            self._outcomes.append(outcome)

    def snapshot(self, skipped: Optional[List[SkippedPath]] = None) -> ScanSummary:
        with self._errors_lock:
            errors = {reason: list(paths) for reason, paths in self._errors.items()}
        with self._events_lock:
            events = list(self._events)
        with self._outcomes_lock:
            outcomes = sorted(self._outcomes, key=lambda o: o.index)
        return ScanSummary(
            scanned=self.scanned,
            detected=self.detected,
            errors=errors,
            events=events,
            outcomes=outcomes,
            skipped=list(skipped or []),
        )
