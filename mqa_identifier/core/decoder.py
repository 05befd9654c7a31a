"""
MQA Identifier Decoder Adapter v1.0
- Role: FLAC header validation and PCM frame delivery for the detector.
- Logic: Dual-path. Mutagen parses STREAMINFO and Vorbis comments (fast, no
  audio decode); soundfile/libsndfile decodes PCM in bounded int32 blocks.
- Frames are pulled lazily; a decode failure ends the sequence and is
  reported through `FrameStream.error` instead of propagating.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Iterator, Optional

import numpy as np
import soundfile as sf
from mutagen import MutagenError
from mutagen.flac import FLAC, FLACNoHeaderError

from .detector import detection_window
from .models import DecodeError, FormatError, PathError, PCMFrame, StreamInfo

logger = logging.getLogger("system.decoder")

DEFAULT_BLOCK_SIZE = 4096
ENCODER_TAG = "MQAENCODER"


class FrameStream:
    """Lazy, finite, non-restartable sequence of (left, right) frames.

    At most `max_frames` frames are decoded. When decoding fails, or the
    stream ends before the length declared in its header, iteration stops
    and `error` holds a DecodeError.
    """

    def __init__(self, path: str, info: StreamInfo, max_frames: int,
                 block_size: int = DEFAULT_BLOCK_SIZE):
        self.path = path
        self.info = info
        self.max_frames = max_frames
        self.block_size = block_size
        self.error: Optional[DecodeError] = None
        self.frames_read = 0
        self._started = False

    def __iter__(self) -> Iterator[PCMFrame]:
        if self._started:
            raise RuntimeError(f"Frame stream for {self.path} cannot be restarted")
        self._started = True
        return self._generate()

    def _generate(self) -> Iterator[PCMFrame]:
        # libsndfile scales every subtype to the full int32 range
        shift = 32 - self.info.bit_depth

        try:
            with sf.SoundFile(self.path) as f:
                remaining = self.max_frames
                while remaining > 0:
                    block = f.read(min(self.block_size, remaining), dtype="int32", always_2d=True)
                    if not len(block):
                        break
                    samples = np.right_shift(block[:, :2], shift)
                    self.frames_read += len(samples)
                    remaining -= len(samples)
                    for left, right in samples.tolist():
                        yield left, right
        except RuntimeError as e:
            # sf.LibsndfileError derives from RuntimeError
            self.error = DecodeError("Decoding failed", str(e))
            logger.warning("Decode failure on %s after %d frames: %s", self.path, self.frames_read, e)
            return

        expected = min(self.max_frames, self.info.total_frames) if self.info.total_frames else 0
        if expected and self.frames_read < expected:
            self.error = DecodeError(
                "Premature end of stream", f"{self.frames_read} of {expected} frames decoded"
            )
            logger.warning("%s: %s", self.path, self.error)


@dataclass
class DecodedStream:
    path: str
    info: StreamInfo
    frames: FrameStream
    encoder: Optional[str] = None


def read_stream_info(path: str) -> tuple:
    """Validates the FLAC header. Returns (StreamInfo, existing MQAENCODER value)."""
    if not os.path.isfile(path):
        raise PathError("Path does not exist", path)

    try:
        audio = FLAC(path)
    except FLACNoHeaderError as e:
        raise FormatError("Invalid FLAC header", str(e)) from e
    except MutagenError as e:
        raise FormatError("Failed to read FLAC metadata", str(e)) from e

    info = StreamInfo(
        sample_rate=int(getattr(audio.info, "sample_rate", 0) or 0),
        channel_count=int(getattr(audio.info, "channels", 0) or 0),
        bit_depth=int(getattr(audio.info, "bits_per_sample", 0) or 0),
        total_frames=int(getattr(audio.info, "total_samples", 0) or 0),
    )

    encoder = None
    if audio.tags is not None:
        values = audio.tags.get(ENCODER_TAG)
        if values:
            encoder = values[0]

    return info, encoder


def open_stream(path: str, block_size: int = DEFAULT_BLOCK_SIZE) -> DecodedStream:
    """Opens a FLAC file for detection.

    Raises PathError for missing files and FormatError for invalid headers.
    Decode errors surface later through `DecodedStream.frames.error`.
    """
    info, encoder = read_stream_info(path)
    logger.debug(
        "%s: %d Hz, %d ch, %d bit, %d frames",
        path, info.sample_rate, info.channel_count, info.bit_depth, info.total_frames,
    )
    frames = FrameStream(path, info, detection_window(info), block_size)
    return DecodedStream(path=path, info=info, frames=frames, encoder=encoder)
