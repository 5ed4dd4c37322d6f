"""CLI commands for the watchdog."""

from __future__ import annotations

import argparse
import signal
from pathlib import Path

from vigil.cli_utils import load_command_config, start_command_logging
from vigil.errors import InstanceAlreadyRunningError
from vigil.logging_config import audit_log_path, get_logger, read_audit_tail
from vigil.notifications import build_notification_manager
from vigil.schema import VigilConfig

from .liveness import LivenessMarker
from .monitor import HealthMonitor
from .probe import build_health_probe
from .recovery import FileSignalController, RecoveryDispatcher

logger = get_logger(__name__)

SUBSYSTEM = "watchdog"


def register_parsers(subparsers: argparse._SubParsersAction) -> None:
    """Register watchdog commands."""
    watchdog_parser = subparsers.add_parser("watchdog", help="Supervise the subject's health")
    watchdog_subparsers = watchdog_parser.add_subparsers(dest="watchdog_command")

    # watchdog start
    start_parser = watchdog_subparsers.add_parser("start", help="Run the watchdog loop")
    start_parser.add_argument(
        "--interval",
        type=float,
        help="Seconds between probes (default: from config, 30)",
    )
    start_parser.add_argument(
        "--cycles",
        type=int,
        help="Stop after N probe cycles (default: run until stopped)",
    )
    start_parser.set_defaults(func=handle_start)

    # watchdog status
    status_parser = watchdog_subparsers.add_parser("status", help="Show recent watchdog activity")
    status_parser.add_argument(
        "--lines",
        type=int,
        help="Number of audit lines to show (default: from config, 20)",
    )
    status_parser.set_defaults(func=handle_status)

    # watchdog stop
    stop_parser = watchdog_subparsers.add_parser("stop", help="Stop the running watchdog")
    stop_parser.set_defaults(func=handle_stop)


def _marker(config: VigilConfig) -> LivenessMarker:
    return LivenessMarker(config.general.state_dir / "watchdog.pid")


def build_monitor(config: VigilConfig, interval_s: float | None = None) -> HealthMonitor:
    """Assemble probe, controller, dispatcher and monitor from config."""
    watchdog = config.watchdog
    controller = FileSignalController(watchdog.control_dir, watchdog.progress_file)
    dispatcher = RecoveryDispatcher(controller, build_notification_manager(config.notifications))
    return HealthMonitor(
        probe=build_health_probe(watchdog),
        dispatcher=dispatcher,
        interval_s=interval_s if interval_s is not None else watchdog.interval_s,
    )


def handle_start(args: argparse.Namespace) -> int:
    """Run the watchdog in the foreground until SIGTERM/SIGINT."""
    config = load_command_config(args)
    monitor = build_monitor(config, args.interval)
    start_command_logging(args, config, SUBSYSTEM)

    marker = _marker(config)
    try:
        marker.acquire()
    except InstanceAlreadyRunningError as e:
        logger.warning(str(e))
        print(f"Watchdog already running (pid {e.pid})")
        return 1

    def _request_stop(signum, frame):
        monitor.stop()

    previous = {
        sig: signal.signal(sig, _request_stop) for sig in (signal.SIGTERM, signal.SIGINT)
    }
    try:
        monitor.run(max_cycles=args.cycles)
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
        marker.release()
    return 0


def handle_status(args: argparse.Namespace) -> int:
    """Print the tail of the watchdog audit log."""
    config = load_command_config(args)
    lines = args.lines or config.watchdog.status_lines
    log_path: Path = audit_log_path(SUBSYSTEM, config.general.log_dir)

    pid = _marker(config).running_pid()
    print(f"Watchdog running (pid {pid})" if pid else "Watchdog not running")

    if not log_path.exists():
        print("No watchdog logs found")
        return 0
    try:
        entries = read_audit_tail(log_path, lines)
    except OSError as e:
        print(f"Cannot read {log_path}: {e}")
        return 1

    print(f"Recent watchdog activity ({log_path}):")
    for entry in entries:
        print(entry)
    return 0


def handle_stop(args: argparse.Namespace) -> int:
    """Signal the running watchdog to exit."""
    config = load_command_config(args)
    if _marker(config).signal_stop():
        print("Watchdog stopped")
        return 0
    print("No running watchdog found")
    return 1
