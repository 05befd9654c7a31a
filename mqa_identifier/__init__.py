"""MQA Identifier - detect and tag MQA encoded FLAC files."""

__version__ = "1.0.0"
