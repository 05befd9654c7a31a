"""
MQA Identifier Metadata Tagger v1.0
- Role: Persists the detection verdict into the FLAC Vorbis comment block.
- Logic: Add-only. Keys already present are never overwritten, and the file
  is only rewritten when at least one key was added.
"""

from __future__ import annotations

import logging
from typing import List

from mutagen import MutagenError
from mutagen.flac import FLAC

from .models import TagError

logger = logging.getLogger("system.tagger")

ENCODER_KEY = "MQAENCODER"
ORIGINAL_SAMPLE_RATE_KEY = "ORIGINALSAMPLERATE"
ENCODER_SIGNATURE = (
    "MQAEncode v1.1, 2.3.3+800 (a505918), "
    "F8EC1703-7616-45E5-B81E-D60821434062, Dec 01 2017 22:19:30"
)


class MetadataTagger:
    """Writes MQAENCODER / ORIGINALSAMPLERATE into FLAC files."""

    def __init__(self, encoder_signature: str = ENCODER_SIGNATURE):
        self.encoder_signature = encoder_signature

    def pending_tags(self, audio: FLAC, original_sample_rate: int) -> List[tuple]:
        """Tags that would be added to `audio` (empty when fully tagged)."""
        tags = audio.tags
        pending = []
        if tags is None or ENCODER_KEY not in tags:
            pending.append((ENCODER_KEY, self.encoder_signature))
        if original_sample_rate > 0 and (tags is None or ORIGINAL_SAMPLE_RATE_KEY not in tags):
            pending.append((ORIGINAL_SAMPLE_RATE_KEY, str(original_sample_rate)))
        return pending

    def tag(self, path: str, original_sample_rate: int) -> List[str]:
        """Adds missing tags. Returns the keys written; raises TagError on failure."""
        try:
            audio = FLAC(path)
        except (MutagenError, OSError) as e:
            raise TagError("Failed to read metadata chain", str(e)) from e

        pending = self.pending_tags(audio, original_sample_rate)
        if not pending:
            logger.debug("%s already tagged", path)
            return []

        if audio.tags is None:
            audio.add_tags()
        for key, value in pending:
            audio.tags[key] = value

        try:
            audio.save()
        except (MutagenError, OSError) as e:
            raise TagError("Failed to write metadata changes", str(e)) from e

        written = [key for key, _ in pending]
        logger.info("Tagged %s: %s", path, ", ".join(written))
        return written
