"""
MQA Identifier v1.0
Handles the management of system-level and analysis-level logging.
"""
import logging
import logging.handlers
from pathlib import Path

LOG_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)-12s | %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

_HANDLER_TAG = "_mqa_identifier_handler"


def _tagged(handler: logging.Handler) -> logging.Handler:
    setattr(handler, _HANDLER_TAG, True)
    return handler


def _clear(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            logger.removeHandler(handler)
            handler.close()


def setup_logging(log_dir="logs", verbose=False):
    """
    Logging setup:
    - logs/system.log: orchestration, decoder, tagger, walker events
    - logs/analysis.log: detector telemetry (sync points, field values)
    - stderr: warnings only, or INFO and up when verbose

    Safe to call more than once; previously installed handlers are replaced.
    """
    # 1. Ensure Logs Directory Exists
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    # 2. System Logger
    system_logger = logging.getLogger("system")
    _clear(system_logger)
    sys_handler = _tagged(logging.handlers.RotatingFileHandler(
        log_path / "system.log", maxBytes=5*1024*1024, backupCount=3, encoding="utf-8"
    ))
    sys_handler.setFormatter(formatter)
    system_logger.setLevel(logging.INFO)
    system_logger.addHandler(sys_handler)

    # 3. Analysis Logger
    analysis_logger = logging.getLogger("analysis")
    _clear(analysis_logger)
    analysis_handler = _tagged(logging.handlers.RotatingFileHandler(
        log_path / "analysis.log", maxBytes=10*1024*1024, backupCount=10, encoding="utf-8"
    ))
    analysis_handler.setFormatter(formatter)
    analysis_logger.setLevel(logging.DEBUG)
    analysis_logger.addHandler(analysis_handler)

    # 4. Console Output
    root = logging.getLogger()
    _clear(root)
    console_handler = _tagged(logging.StreamHandler())
    console_handler.setFormatter(formatter)
    console_handler.setLevel(logging.INFO if verbose else logging.WARNING)
    root.addHandler(console_handler)

    system_logger.info("Logging online (dir=%s, verbose=%s)", log_path, verbose)
    return system_logger
