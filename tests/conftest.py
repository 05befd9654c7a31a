"""
MQA Identifier Test Fixtures
- FLAC artifacts with and without the watermark, written in tmp_path
"""

import logging

import pytest

from synthetic import frames_from_bits, watermark_bits, write_flac


@pytest.fixture
def mqa_flac(tmp_path):
    """Factory: stereo FLAC carrying the watermark on bit plane `plane`."""

    def _make(name="mqa.flac", bit_depth=24, sample_rate=8000, seconds=2,
              sync_index=500, rate_code=0b1000, provenance=0, plane=0):
        length = sample_rate * seconds
        bits = watermark_bits(length, sync_index, rate_code, provenance)
        frames = frames_from_bits(bits, (bit_depth - 16) + plane, bit_depth)
        return write_flac(tmp_path / name, frames, sample_rate, bit_depth)

    return _make


@pytest.fixture
def plain_flac(tmp_path):
    """Factory: stereo FLAC without a watermark."""

    def _make(name="plain.flac", bit_depth=16, sample_rate=8000, seconds=1):
        frames = frames_from_bits([0] * (sample_rate * seconds), 0, bit_depth)
        return write_flac(tmp_path / name, frames, sample_rate, bit_depth)

    return _make


@pytest.fixture
def reset_logging():
    """Removes the handlers setup_logging installs so later tests start clean."""
    yield
    for name in ("system", "analysis", None):
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            if getattr(handler, "_mqa_identifier_handler", False):
                logger.removeHandler(handler)
                handler.close()
