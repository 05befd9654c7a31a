"""Detection core: data contracts, detector, decoder/tagger adapters, orchestration."""

from .detector import decode_original_sample_rate, detect
from .models import Detected, DetectionError, ErrorKind, NotDetected, StreamInfo

__all__ = [
    "decode_original_sample_rate",
    "detect",
    "Detected",
    "DetectionError",
    "ErrorKind",
    "NotDetected",
    "StreamInfo",
]
