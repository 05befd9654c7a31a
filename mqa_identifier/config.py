"""
MQA Identifier Configuration v1.0
- JSON config file with safe defaults; CLI flags override file values.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger("system.config")

DEFAULT_CONFIG_PATH = Path("config.json")


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class ScanConfig:
    """Run configuration for one scan."""

    dry_run: bool = False
    verbose: bool = False
    log_file: str = "mqa_identifier.log"
    log_dir: str = "logs"
    max_workers: Optional[int] = None  # None: sized from hardware parallelism
    extensions: Tuple[str, ...] = (".flac",)

    def with_overrides(self, **overrides: Any) -> "ScanConfig":
        """Returns a copy where every non-None override replaces the field."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes)


def _coerce(raw: Dict[str, Any]) -> Dict[str, Any]:
    known = {f.name for f in fields(ScanConfig)}
    values: Dict[str, Any] = {}
    for key, value in raw.items():
        if key not in known:
            logger.warning("Ignoring unknown config key: %s", key)
            continue
        if key == "extensions":
            value = tuple(str(e).lower() for e in value)
        elif key in ("dry_run", "verbose"):
            value = bool(value)
        elif key == "max_workers" and value is not None:
            value = int(value)
        values[key] = value
    return values


def load_config(path: Optional[Path] = None) -> ScanConfig:
    """Loads a ScanConfig from JSON. A missing file yields the defaults."""
    config_path = Path(path) if path else DEFAULT_CONFIG_PATH
    try:
        with config_path.open("r", encoding="utf-8") as f:
            raw = json.load(f)
    except FileNotFoundError:
        if path:
            logger.warning("%s not found, using default settings.", config_path)
        return ScanConfig()
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {config_path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"{config_path} must contain a JSON object")

    try:
        return ScanConfig(**_coerce(raw))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value in {config_path}: {e}") from e
