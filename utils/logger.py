from __future__ import annotations

import logging
import logging.config
from pathlib import Path
from typing import Dict, Optional

LOG_FILE_NAME = "vacation_responder.log"
FILE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
CONSOLE_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"
# Third-party loggers that are noisy at INFO.
QUIET_LOGGERS = ("googleapiclient.discovery_cache", "schedule")


def _handlers(log_path: Optional[Path]) -> Dict[str, Dict]:
    handlers: Dict[str, Dict] = {
        "stdout": {
            "class": "logging.StreamHandler",
            "formatter": "console",
            "stream": "ext://sys.stdout",
        },
    }
    if log_path is not None:
        # Rotated at ~1 MB, three backups kept.
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": "file",
            "filename": str(log_path),
            "maxBytes": 1_000_000,
            "backupCount": 3,
            "encoding": "utf-8",
        }
    return handlers


def configure_logging(log_dir: Optional[Path], level: str = "INFO") -> Optional[Path]:
    """Send records to stdout and, when ``log_dir`` is given, a rotating file.

    Returns the log file path, or ``None`` for console-only logging.
    """

    log_path = None
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        log_path = log_dir / LOG_FILE_NAME

    handlers = _handlers(log_path)
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "file": {"format": FILE_FORMAT},
                "console": {"format": CONSOLE_FORMAT, "datefmt": "%H:%M:%S"},
            },
            "handlers": handlers,
            "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
            "root": {"handlers": sorted(handlers), "level": level.upper()},
        }
    )
    logging.getLogger(__name__).debug("Logging configured at %s (file: %s)", level, log_path)
    return log_path
