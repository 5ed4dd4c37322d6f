"""``vigil`` command-line interface.

Commands are organized into groups:
- watchdog: start, status, stop
- perf: benchmark, continuous, launch-time, memory, api, report

Deployments have their own entry point, ``vigil-deploy``.
"""

from __future__ import annotations

import argparse
import sys
from typing import Iterable

from . import __version__
from .errors import ConfigurationError, VigilError
from .gates import cli as gates_cli
from .health import cli as health_cli
from .logging_config import get_logger

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the main argument parser."""
    parser = argparse.ArgumentParser(prog="vigil")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", help="Config file (default: ./vigil.toml over the user config)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command")

    health_cli.register_parsers(subparsers)
    gates_cli.register_parsers(subparsers)

    return parser


def _command_parser(parser: argparse.ArgumentParser, command: str) -> argparse.ArgumentParser | None:
    for action in parser._actions:
        if isinstance(action, argparse._SubParsersAction):
            return action.choices.get(command)
    return None


def main(argv: Iterable[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if not getattr(args, "command", None):
        parser.print_help()
        return 2

    if not hasattr(args, "func"):
        command_parser = _command_parser(parser, args.command)
        (command_parser or parser).print_help()
        return 2

    try:
        return args.func(args)
    except ConfigurationError as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except VigilError as e:
        logger.error(str(e), exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


__all__ = ["build_parser", "main"]
