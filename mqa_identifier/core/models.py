"""
MQA Identifier Data Contracts v1.0
- Defines immutable models for cross-layer communication.
- Detection verdicts, per-file scan outcomes and the run summary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

# (left, right) signed samples, bit_depth bits wide
PCMFrame = Tuple[int, int]


class ErrorKind(str, Enum):
    PATH_ERROR = "PathError"
    FORMAT_ERROR = "FormatError"
    DECODE_ERROR = "DecodeError"
    TAG_ERROR = "TagError"


class MQAIdentifierError(Exception):
    """Base class for per-file failures.

    `message` is the stable, human-readable failure class and keys the error
    log together with `kind`. `detail` carries the file-specific text (library
    message, frame counts) for the event log and the system log.
    """

    kind: ErrorKind = ErrorKind.DECODE_ERROR

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def __str__(self) -> str:
        return f"{self.message}: {self.detail}" if self.detail else self.message

    @property
    def reason(self) -> str:
        return f"{self.kind.value}: {self.message}"

    @property
    def description(self) -> str:
        return f"{self.kind.value}: {self}"


class PathError(MQAIdentifierError):
    kind = ErrorKind.PATH_ERROR


class FormatError(MQAIdentifierError):
    kind = ErrorKind.FORMAT_ERROR


class DecodeError(MQAIdentifierError):
    kind = ErrorKind.DECODE_ERROR


class TagError(MQAIdentifierError):
    kind = ErrorKind.TAG_ERROR


@dataclass(frozen=True)
class StreamInfo:
    """Stream parameters taken from the FLAC STREAMINFO block."""
    sample_rate: int
    channel_count: int
    bit_depth: int
    total_frames: int = 0  # 0 when the header does not declare a length


# --- Detection verdicts --------------------------------------------------------

@dataclass(frozen=True)
class NotDetected:
    pass


@dataclass(frozen=True)
class Detected:
    original_sample_rate: int
    studio: bool = False


@dataclass(frozen=True)
class DetectionError:
    kind: ErrorKind
    message: str
    detail: Optional[str] = None

    @classmethod
    def from_exception(cls, error: MQAIdentifierError) -> "DetectionError":
        return cls(error.kind, error.message, error.detail)

    @property
    def reason(self) -> str:
        return f"{self.kind.value}: {self.message}"

    @property
    def description(self) -> str:
        if self.detail:
            return f"{self.reason}: {self.detail}"
        return self.reason


DetectionResult = Union[NotDetected, Detected, DetectionError]


# --- Pipeline contracts --------------------------------------------------------

@dataclass(frozen=True)
class ScanTask:
    index: int
    path: str


@dataclass(frozen=True)
class ScanOutcome:
    """
    Result of one file task as merged into the aggregation state.
    `classification` is the console label, None when the file errored.
    """
    index: int
    path: str
    result: DetectionResult
    classification: Optional[str] = None
    reason: Optional[str] = None
    detail: Optional[str] = None  # full error text for the event log
    tagged: bool = False
    encoder: Optional[str] = None

    @property
    def is_detected(self) -> bool:
        return isinstance(self.result, Detected)


@dataclass(frozen=True)
class ScanEvent:
    index: int
    path: str
    message: str
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class SkippedPath:
    path: str
    reason: str


@dataclass(frozen=True)
class ScanSummary:
    scanned: int
    detected: int
    errors: Dict[str, List[str]]
    events: List[ScanEvent]
    outcomes: List[ScanOutcome] = field(default_factory=list)
    skipped: List[SkippedPath] = field(default_factory=list)
