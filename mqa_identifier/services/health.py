"""
MQA Identifier Diagnostics v1.0
- Verifies the decode/tag stack: libsndfile FLAC support, mutagen, config.
"""

import json
import platform
from pathlib import Path

import mutagen
import psutil
import soundfile as sf


def check_step(name, status, message=""):
    """Standardized status reporting."""
    symbol = "OK  " if status else "FAIL"
    print(f"[{symbol}] {name:<25} : {message}")
    return status


def flac_supported():
    return "FLAC" in sf.available_formats()


def run_diagnostics(config_path="config.json"):
    """Prints a report; returns True when FLAC files can be scanned and tagged."""
    print("=" * 65)
    print("MQA IDENTIFIER - ENVIRONMENT DIAGNOSTIC")
    print("=" * 65)

    overall_health = True

    # 1. Platform
    mem = psutil.virtual_memory()
    check_step("System Environment", True,
               f"{platform.system()} {platform.release()} | RAM: {mem.total / (1024**3):.2f}GB")

    # 2. Decoder (libsndfile)
    if flac_supported():
        check_step("FLAC Decoder", True, f"libsndfile {sf.__libsndfile_version__}")
    else:
        overall_health = check_step("FLAC Decoder", False,
                                    f"libsndfile {sf.__libsndfile_version__} built without FLAC")

    # 3. Tagger
    check_step("Metadata Tagger", True, f"mutagen {mutagen.version_string}")

    # 4. Configuration (optional)
    path = Path(config_path)
    if path.exists():
        try:
            with path.open("r", encoding="utf-8") as f:
                json.load(f)
            check_step("Configuration", True, f"{path} loaded.")
        except json.JSONDecodeError as e:
            overall_health = check_step("Configuration", False, f"JSON Error: {e}")
    else:
        check_step("Configuration", True, "No config file, defaults apply.")

    print("=" * 65)
    print("SYSTEM READY" if overall_health else "CRITICAL: Fix highlighted issues before scanning.")
    print("=" * 65)
    return overall_health
