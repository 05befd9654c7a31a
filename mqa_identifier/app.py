"""
MQA Identifier entry point: read config (JSON + CLI), walk paths, scan, report.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from .config import ConfigError, load_config
from .core.manager import ScanManager
from .core.walker import discover_files
from .logging_config import setup_logging
from .services.report import ConsoleReporter, write_log_file
from .services.telemetry import get_resource_snapshot

HINT = (
    "HINT: To use the tool provide files and/or directories as program arguments.\n"
    "      Use -v to enable verbose logging to mqa_identifier.log\n"
    "      Use --dry-run to scan without modifying files.\n"
)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="mqa-identifier",
        description="Identify MQA encoded FLAC files and tag them.",
    )
    p.add_argument("paths", nargs="*", help="FLAC files and/or directories (recursive).")
    p.add_argument("-v", "--verbose", action="store_true", default=None,
                   help="Collect scan events and write the scan log.")
    p.add_argument("--dry-run", action="store_true", default=None,
                   help="Scan without modifying files.")
    p.add_argument("--log", type=str, default=None, help="Scan log path (default: mqa_identifier.log).")
    p.add_argument("--log-dir", type=str, default=None, help="Directory for system/analysis logs.")
    p.add_argument("--workers", type=int, default=None, help="Worker threads (1-16).")
    p.add_argument("--config", type=str, default=None, help="Optional JSON config (flags override).")
    return p.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    if not args.paths:
        print(HINT)
        return 0

    try:
        config = load_config(Path(args.config) if args.config else None).with_overrides(
            dry_run=args.dry_run,
            verbose=args.verbose,
            log_file=args.log,
            log_dir=args.log_dir,
            max_workers=args.workers,
        )
    except ConfigError as exc:
        print(f"[ERR] {exc}", file=sys.stderr)
        return 1

    setup_logging(config.log_dir, config.verbose)

    walk = discover_files(args.paths, config.extensions)
    reporter = ConsoleReporter()
    reporter.banner(len(walk.files))

    summary = ScanManager(config, reporter=reporter).run(walk.files, walk.skipped)
    reporter.summary(summary)

    if config.verbose:
        log_path = write_log_file(Path(config.log_file), summary, get_resource_snapshot())
        reporter.emit(f"Log written to {log_path}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
