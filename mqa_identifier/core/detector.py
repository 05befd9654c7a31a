"""
MQA Identifier Watermark Detector v1.0
- Role: Bit-plane correlation of decoded PCM against the MQA magic word.
- Logic: Three parallel 36-bit shift registers (offsets pos, pos+1, pos+2),
  first sync wins, then the rate and provenance fields are read from the
  frames that follow the sync point.
- Scope: first three seconds of audio only.
"""

from __future__ import annotations

import logging
from itertools import islice
from typing import Iterable, List, Optional, Sequence

from .models import (
    DecodeError,
    Detected,
    DetectionError,
    DetectionResult,
    ErrorKind,
    NotDetected,
    PCMFrame,
    StreamInfo,
)

logger = logging.getLogger("analysis.detector")

MQA_MAGIC_WORD = 0xBE0498C88
REGISTER_MASK = 0xFFFFFFFFF  # 36 bits
REGISTER_COUNT = 3
WINDOW_SECONDS = 3
SUPPORTED_BIT_DEPTHS = (16, 24)

# Sync-relative frame positions of the packed fields.
# The rate code is read as 4 bits; the original tool did the same, and files it
# already tagged must keep decoding to the same rate.
RATE_CODE_FRAMES = range(3, 7)
PROVENANCE_FRAMES = range(29, 34)
LOOKAHEAD_FRAMES = PROVENANCE_FRAMES.stop - 1

STUDIO_PROVENANCE_THRESHOLD = 8


def decode_original_sample_rate(code: int) -> int:
    """Returns the original sample rate (Hz) for a 4-bit rate code.

    LSB selects the base (44.1k / 48k family). The three MSBs are rotated
    into an exponent of two; multipliers above 16 are doubled (DSD range).
    """
    if not 0 <= code <= 0b1111:
        raise ValueError(f"Invalid rate code: {code}")

    base = 48000 if code & 1 else 44100
    rotated = ((code >> 3) & 1) | (((code >> 2) & 1) << 1) | (((code >> 1) & 1) << 2)
    multiplier = 1 << rotated
    if multiplier > 16:
        multiplier *= 2

    return base * multiplier


def detection_window(info: StreamInfo) -> int:
    """Number of frames examined for a stream."""
    return max(0, info.sample_rate) * WINDOW_SECONDS


def validate_stream_info(info: StreamInfo) -> Optional[str]:
    """Returns an error message when the stream cannot carry the watermark."""
    if info.channel_count != 2 or info.bit_depth not in SUPPORTED_BIT_DEPTHS:
        return f"Unsupported Audio Format: {info.channel_count} channels, {info.bit_depth} bits"
    if info.sample_rate <= 0:
        return f"Invalid sample rate: {info.sample_rate}"
    return None


def _plane_bit(frame: PCMFrame, offset: int, width_mask: int) -> int:
    left, right = frame
    return (((left ^ right) & width_mask) >> offset) & 1


def _pack_bits(lookahead: Sequence[PCMFrame], positions: range, offset: int, width_mask: int) -> int:
    """Packs one bit per sync-relative position, most significant first."""
    value = 0
    for m in positions:
        # lookahead[0] is the frame right after the sync frame
        idx = m - 1
        bit = _plane_bit(lookahead[idx], offset, width_mask) if idx < len(lookahead) else 0
        value = (value << 1) | bit
    return value


def _terminal_error(frames: Iterable[PCMFrame]) -> Optional[DetectionError]:
    """Reads the decoder's side channel, if the sequence exposes one."""
    error = getattr(frames, "error", None)
    if error is None:
        return None
    if isinstance(error, DecodeError):
        return DetectionError.from_exception(error)
    return DetectionError(ErrorKind.DECODE_ERROR, str(error))


def detect(info: StreamInfo, frames: Iterable[PCMFrame]) -> DetectionResult:
    """Scans the detection window of `frames` for the MQA watermark.

    `frames` is consumed lazily and at most once. Decode failures, either
    raised as DecodeError or reported through the sequence's `error`
    attribute, produce a DetectionError rather than a verdict.
    """
    # 1. Format gate (nothing is read from the stream)
    problem = validate_stream_info(info)
    if problem:
        return DetectionError(ErrorKind.FORMAT_ERROR, problem)

    window = detection_window(info)
    pos = info.bit_depth - 16
    width_mask = (1 << info.bit_depth) - 1
    registers: List[int] = [0] * REGISTER_COUNT

    stream = iter(frames)
    try:
        # 2. Correlation over the window
        for index, frame in enumerate(islice(stream, window)):
            diff = (frame[0] ^ frame[1]) & width_mask
            for i in range(REGISTER_COUNT):
                registers[i] = ((registers[i] << 1) & REGISTER_MASK) | ((diff >> (pos + i)) & 1)

            for i in range(REGISTER_COUNT):
                if registers[i] == MQA_MAGIC_WORD:
                    # 3. Field extraction from the matching bit plane
                    offset = pos + i
                    remaining = window - index - 1
                    lookahead = list(islice(stream, min(LOOKAHEAD_FRAMES, remaining)))

                    failure = _terminal_error(frames)
                    if failure:
                        return failure
                    if len(lookahead) < LOOKAHEAD_FRAMES:
                        logger.debug(
                            "Sync at frame %d truncated: %d of %d field frames available",
                            index, len(lookahead), LOOKAHEAD_FRAMES,
                        )

                    rate_code = _pack_bits(lookahead, RATE_CODE_FRAMES, offset, width_mask)
                    provenance = _pack_bits(lookahead, PROVENANCE_FRAMES, offset, width_mask)
                    logger.debug(
                        "Sync at frame %d, bit offset %d: rate code %d, provenance %d",
                        index, offset, rate_code, provenance,
                    )
                    return Detected(
                        original_sample_rate=decode_original_sample_rate(rate_code),
                        studio=provenance > STUDIO_PROVENANCE_THRESHOLD,
                    )
    except DecodeError as e:
        return DetectionError.from_exception(e)

    failure = _terminal_error(frames)
    if failure:
        return failure

    return NotDetected()
