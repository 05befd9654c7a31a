"""
MQA Identifier Detector Test Suite
- Rate-code table (all 16 codes)
- Sync detection on every candidate bit plane, 16 and 24 bit
- Window cap, format gate, decode-error propagation
"""

import pytest

from mqa_identifier.core.detector import (
    MQA_MAGIC_WORD,
    REGISTER_MASK,
    decode_original_sample_rate,
    detect,
)
from mqa_identifier.core.models import (
    DecodeError,
    Detected,
    DetectionError,
    ErrorKind,
    NotDetected,
    StreamInfo,
)
from synthetic import CountingFrames, frames_from_bits, noise_frames, watermark_bits

RATE_TABLE = {
    0: 44100,
    1: 48000,
    2: 705600,
    3: 768000,
    4: 176400,
    5: 192000,
    6: 5644800,
    7: 6144000,
    8: 88200,
    9: 96000,
    10: 2822400,
    11: 3072000,
    12: 352800,
    13: 384000,
    14: 11289600,
    15: 12288000,
}


def _stereo(sample_rate=1000, bit_depth=16):
    return StreamInfo(sample_rate=sample_rate, channel_count=2, bit_depth=bit_depth)


def _register_ever_matches(frames, bit_depth, window):
    pos = bit_depth - 16
    regs = [0, 0, 0]
    for left, right in frames[:window]:
        d = (left ^ right) & ((1 << bit_depth) - 1)
        for i in range(3):
            regs[i] = ((regs[i] << 1) & REGISTER_MASK) | ((d >> (pos + i)) & 1)
        if MQA_MAGIC_WORD in regs:
            return True
    return False


# --- Rate code table -------------------------------------------------------------

@pytest.mark.parametrize("code,expected", sorted(RATE_TABLE.items()))
def test_rate_code_table(code, expected):
    """VERIFY: every 4-bit code decodes to its table rate."""
    assert decode_original_sample_rate(code) == expected


@pytest.mark.parametrize("code", [-1, 16, 31])
def test_rate_code_out_of_range(code):
    with pytest.raises(ValueError):
        decode_original_sample_rate(code)


# --- No watermark ----------------------------------------------------------------

def test_noise_is_not_detected_and_window_is_capped():
    """VERIFY: no register match within 3 s -> NotDetected; frames past the window are never pulled."""
    info = _stereo(sample_rate=1000)
    frames = noise_frames(5000)
    assert not _register_ever_matches(frames, 16, 3000)

    counting = CountingFrames(frames)
    assert detect(info, counting) == NotDetected()
    assert counting.consumed == 3000


def test_empty_stream_is_not_detected():
    assert detect(_stereo(), []) == NotDetected()


def test_sync_beyond_window_is_ignored():
    """VERIFY: a magic word completing after sample_rate * 3 frames is not consulted."""
    info = _stereo(sample_rate=100)  # window = 300 frames
    bits = watermark_bits(400, sync_index=350, rate_code=1)
    assert detect(info, frames_from_bits(bits, 0)) == NotDetected()


# --- Sync and field extraction ---------------------------------------------------

@pytest.mark.parametrize("bit_depth", [16, 24])
@pytest.mark.parametrize("plane", [0, 1, 2])
@pytest.mark.parametrize("rate_code,provenance", [(0, 0), (8, 9), (3, 31), (14, 8)])
def test_detects_constructed_sync(bit_depth, plane, rate_code, provenance):
    """VERIFY: sync at frame k on plane pos+i yields the table rate and provenance > 8 flag."""
    info = _stereo(sample_rate=1000, bit_depth=bit_depth)
    offset = (bit_depth - 16) + plane
    bits = watermark_bits(2000, sync_index=700, rate_code=rate_code, provenance=provenance)

    result = detect(info, frames_from_bits(bits, offset, bit_depth))

    assert result == Detected(original_sample_rate=RATE_TABLE[rate_code], studio=provenance > 8)


def test_detection_stops_at_first_sync():
    """VERIFY: scanning ends at the sync point plus the 33-frame field lookahead."""
    bits = watermark_bits(2000, sync_index=100, rate_code=9)
    counting = CountingFrames(frames_from_bits(bits, 0))

    result = detect(_stereo(), counting)

    assert result == Detected(original_sample_rate=96000, studio=False)
    assert counting.consumed == 100 + 1 + 33


def test_lowest_offset_wins_on_same_frame():
    """VERIFY: simultaneous matches on planes 0 and 1 resolve to plane 0."""
    plane0 = watermark_bits(500, sync_index=200, rate_code=1)   # 48000
    plane1 = watermark_bits(500, sync_index=200, rate_code=4)   # 176400
    frames = [(0, a | (b << 1)) for a, b in zip(plane0, plane1)]

    assert detect(_stereo(), frames) == Detected(original_sample_rate=48000, studio=False)


def test_earlier_sync_on_higher_plane_wins():
    plane0 = watermark_bits(600, sync_index=400, rate_code=1)
    plane2 = watermark_bits(600, sync_index=150, rate_code=5)   # 192000
    frames = [(0, a | (c << 2)) for a, c in zip(plane0, plane2)]

    assert detect(_stereo(), frames) == Detected(original_sample_rate=192000, studio=False)


def test_truncated_fields_read_as_zero():
    """VERIFY: field frames missing at end of stream contribute 0 bits."""
    bits = watermark_bits(210, sync_index=200, rate_code=0b1111, provenance=31)
    # frames 203..206 are present (rate code 15), provenance frames 229.. are not
    result = detect(_stereo(), frames_from_bits(bits, 0))
    assert result == Detected(original_sample_rate=12288000, studio=False)


def test_negative_samples_use_twos_complement_bits():
    bits = watermark_bits(300, sync_index=100, rate_code=2)
    frames = [(-1, -1 ^ bit) for bit in bits]
    assert detect(_stereo(), frames) == Detected(original_sample_rate=705600, studio=False)


# --- Format gate -----------------------------------------------------------------

@pytest.mark.parametrize("channels,bit_depth", [(1, 16), (6, 24), (2, 8), (2, 20), (2, 32)])
def test_unsupported_format_reads_no_frames(channels, bit_depth):
    """VERIFY: channel/bit-depth gate returns FormatError with zero frames consumed."""
    counting = CountingFrames(noise_frames(100))
    info = StreamInfo(sample_rate=44100, channel_count=channels, bit_depth=bit_depth)

    result = detect(info, counting)

    assert isinstance(result, DetectionError)
    assert result.kind is ErrorKind.FORMAT_ERROR
    assert f"{channels} channels, {bit_depth} bits" in result.message
    assert counting.consumed == 0


def test_zero_sample_rate_is_format_error():
    result = detect(StreamInfo(sample_rate=0, channel_count=2, bit_depth=16), [])
    assert isinstance(result, DetectionError)
    assert result.kind is ErrorKind.FORMAT_ERROR


# --- Decode failures -------------------------------------------------------------

def test_raised_decode_error_becomes_error_result():
    def frames():
        yield from noise_frames(50)
        raise DecodeError("FLAC Error: LOST_SYNC")

    result = detect(_stereo(), frames())

    assert result == DetectionError(ErrorKind.DECODE_ERROR, "FLAC Error: LOST_SYNC")


class _SideChannelFrames:
    """Stops early and reports the failure through `error`, like FrameStream."""

    def __init__(self, frames, fail_after):
        self.frames = frames
        self.fail_after = fail_after
        self.error = None

    def __iter__(self):
        for i, frame in enumerate(self.frames):
            if i == self.fail_after:
                self.error = DecodeError("Decoding failed: corrupt frame")
                return
            yield frame


def test_side_channel_error_before_sync():
    stream = _SideChannelFrames(noise_frames(500), fail_after=100)
    result = detect(_stereo(), stream)
    assert result == DetectionError(ErrorKind.DECODE_ERROR, "Decoding failed: corrupt frame")


def test_error_during_field_lookahead_is_not_detected():
    """VERIFY: a failure after sync never yields a partial Detected verdict."""
    bits = watermark_bits(500, sync_index=100, rate_code=1)
    stream = _SideChannelFrames(frames_from_bits(bits, 0), fail_after=110)

    result = detect(_stereo(), stream)

    assert isinstance(result, DetectionError)
    assert result.kind is ErrorKind.DECODE_ERROR
