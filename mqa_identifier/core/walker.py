"""
MQA Identifier File Discovery v1.0
- Role: Expands CLI paths into the list of FLAC files to scan.
- Logic: Recursive, sorted, suffix-filtered. Expected filesystem conditions
  (missing path, permission denied) become skip records, not exceptions.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Sequence

from .models import SkippedPath

logger = logging.getLogger("system.walker")


@dataclass
class WalkResult:
    files: List[str] = field(default_factory=list)
    skipped: List[SkippedPath] = field(default_factory=list)


def _matches(path: Path, extensions: Sequence[str]) -> bool:
    return path.suffix.lower() in extensions


def _walk_dir(root: Path, extensions: Sequence[str], result: WalkResult) -> None:
    try:
        entries = sorted(os.scandir(root), key=lambda e: e.name)
    except PermissionError as e:
        result.skipped.append(SkippedPath(str(root), f"Access Denied: {e.strerror or e}"))
        return
    except OSError as e:
        result.skipped.append(SkippedPath(str(root), f"Filesystem Error: {e.strerror or e}"))
        return

    for entry in entries:
        try:
            if entry.is_dir():
                _walk_dir(Path(entry.path), extensions, result)
            elif entry.is_file() and _matches(Path(entry.name), extensions):
                result.files.append(entry.path)
        except OSError as e:
            result.skipped.append(SkippedPath(entry.path, f"Error during scan: {e.strerror or e}"))


def _unique(files: List[str]) -> List[str]:
    seen = set()
    unique = []
    for f in files:
        key = os.path.realpath(f)
        if key in seen:
            logger.debug("Duplicate input skipped: %s", f)
            continue
        seen.add(key)
        unique.append(f)
    return unique


def discover_files(paths: Iterable[str], extensions: Sequence[str] = (".flac",)) -> WalkResult:
    """Resolves input paths to files. Files given explicitly must still match `extensions`.

    A file reachable through several inputs (or links) is listed once, at its
    first-seen position, so each file is owned by exactly one scan task.
    """
    exts = tuple(e.lower() for e in extensions)
    result = WalkResult()

    for raw in paths:
        path = Path(raw)
        if not path.exists():
            result.skipped.append(SkippedPath(str(path), "Path does not exist"))
            continue
        if path.is_file():
            if _matches(path, exts):
                result.files.append(str(path))
            continue
        if path.is_dir():
            _walk_dir(path, exts, result)

    result.files = _unique(result.files)
    logger.info("Discovered %d file(s), skipped %d path(s)", len(result.files), len(result.skipped))
    return result
