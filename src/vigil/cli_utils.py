"""Shared CLI helpers."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from .config import load_config_model
from .logging_config import attach_audit_log, setup_logging
from .schema import VigilConfig


def load_command_config(args: argparse.Namespace) -> VigilConfig:
    """Load the typed config for a command, honoring ``--config``."""
    config_path = getattr(args, "config", None)
    return load_config_model(Path(config_path) if config_path else None)


def start_command_logging(
    args: argparse.Namespace,
    config: VigilConfig,
    subsystem: str | None = None,
) -> logging.Logger:
    """Console and rotating logs, plus the subsystem audit log when given."""
    level = logging.DEBUG if getattr(args, "verbose", False) else logging.INFO
    logger = setup_logging(level=level, log_dir=config.general.log_dir)
    if subsystem:
        attach_audit_log(subsystem, config.general.log_dir)
    return logger
