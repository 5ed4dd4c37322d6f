"""Logging configuration for vigil.

Provides:
- JSON output for structured logs
- Contextual information (environment, subsystem, cycle)
- Log rotation for the structured logs
- Append-only, human-readable audit logs per subsystem
  (watchdog, performance, deploy)

Usage:
    from vigil.logging_config import get_logger

    logger = get_logger(__name__)
    logger.info("Deployment started", extra={"environment": "staging"})
"""

from __future__ import annotations

import json
import logging
import logging.handlers
import sys
import traceback
from collections import deque
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

AUDIT_DATEFMT = "%Y-%m-%d %H:%M:%S"


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for structured logging."""

    @staticmethod
    def _utc_isoformat() -> str:
        return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": self._utc_isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Add extra fields
        if hasattr(record, "extra"):
            log_data.update(record.extra)

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info),
            }

        return json.dumps(log_data, default=str)


class AuditFormatter(logging.Formatter):
    """Human-readable audit line: ``[WATCHDOG] 2026-01-01 12:00:00 message``."""

    def __init__(self, subsystem: str):
        super().__init__(
            fmt=f"[{subsystem.upper()}] %(asctime)s %(message)s",
            datefmt=AUDIT_DATEFMT,
        )


def setup_logging(
    name: str = "vigil",
    level: int = logging.INFO,
    log_dir: Path | None = None,
    enable_json: bool = True,
    enable_console: bool = True,
    enable_rotation: bool = True,
) -> logging.Logger:
    """Set up logging for a vigil command.

    Args:
        name: Logger name
        level: Logging level
        log_dir: Directory for log files (default: ./logs)
        enable_json: Write a rotating JSON log next to the text log
        enable_console: Log to console
        enable_rotation: Write a rotating text log

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Clear existing handlers
    logger.handlers.clear()

    if log_dir is None:
        log_dir = Path("logs")
    log_dir.mkdir(parents=True, exist_ok=True)

    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)s] %(name)s - %(message)s",
                datefmt="%H:%M:%S",
            )
        )
        logger.addHandler(console_handler)

    if enable_rotation:
        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / f"{name}.log",
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)s] %(name)s:%(funcName)s:%(lineno)d - %(message)s",
                datefmt=AUDIT_DATEFMT,
            )
        )
        logger.addHandler(file_handler)

    if enable_json:
        json_handler = logging.handlers.RotatingFileHandler(
            log_dir / f"{name}.json.log",
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
        )
        json_handler.setLevel(logging.DEBUG)
        json_handler.setFormatter(JSONFormatter())
        logger.addHandler(json_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get or create a logger under the ``vigil`` namespace."""
    if name == "vigil" or name.startswith("vigil."):
        return logging.getLogger(name)
    return logging.getLogger(f"vigil.{name}")


def audit_log_path(subsystem: str, log_dir: Path) -> Path:
    """Path of the audit log for a subsystem."""
    return log_dir / f"{subsystem.lower()}.log"


def attach_audit_log(
    subsystem: str,
    log_dir: Path,
    logger_name: str | None = None,
) -> Path:
    """Attach an append-only audit log to a subsystem logger.

    The audit log is never rotated. Attaching twice to the same file is a
    no-op, so callers do not need to track whether they already did it.

    Args:
        subsystem: Audit label, e.g. ``watchdog``
        log_dir: Directory holding the audit logs
        logger_name: Logger to attach to (default: ``vigil``)

    Returns:
        Path of the audit log file
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    path = audit_log_path(subsystem, log_dir)
    logger = get_logger(logger_name or "vigil")

    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler) and Path(handler.baseFilename) == path.resolve():
            return path

    handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    handler.setLevel(logging.INFO)
    handler.setFormatter(AuditFormatter(subsystem))
    logger.addHandler(handler)
    if logger.level == logging.NOTSET or logger.level > logging.INFO:
        logger.setLevel(logging.INFO)
    return path


def read_audit_tail(path: Path, lines: int = 20) -> list[str]:
    """Return the last ``lines`` entries of an audit log.

    Raises:
        OSError: If the log exists but cannot be read
    """
    with open(path, encoding="utf-8") as f:
        return [line.rstrip("\n") for line in deque(f, maxlen=lines)]


class LogContext:
    """Context manager for adding contextual information to logs.

    Usage:
        with LogContext(environment="staging", action="deploy"):
            logger.info("Pipeline started")
            # All logs in this block carry environment and action
    """

    def __init__(self, **kwargs: Any):
        self.context = kwargs
        self.old_factory = None

    def __enter__(self):
        old_factory = logging.getLogRecordFactory()
        context = self.context

        def record_factory(*args, **kwargs):
            record = old_factory(*args, **kwargs)
            record.extra = context
            return record

        logging.setLogRecordFactory(record_factory)
        self.old_factory = old_factory
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        logging.setLogRecordFactory(self.old_factory)


__all__ = [
    "setup_logging",
    "get_logger",
    "attach_audit_log",
    "audit_log_path",
    "read_audit_tail",
    "LogContext",
    "JSONFormatter",
    "AuditFormatter",
]
