"""CLI commands for performance monitoring.

Provides command-line interface for:
- Running the full benchmark and writing a report
- Re-running the benchmark on a fixed cadence
- Sampling a single metric
- Rendering a report from the last persisted samples
"""

from __future__ import annotations

import argparse
import signal
import threading
from typing import Optional, Sequence

from vigil.cli_utils import load_command_config, start_command_logging
from vigil.errors import ConfigurationError
from vigil.logging_config import get_logger
from vigil.schema import VigilConfig

from .performance import PerformanceGate, load_samples
from .probes import API_RESPONSE, LAUNCH_TIME, MEMORY_USAGE, build_probes
from .report import write_benchmark_report
from .thresholds import ThresholdRegistry

logger = get_logger(__name__)

SUBSYSTEM = "performance"

_SINGLE_METRIC_COMMANDS = {
    "launch-time": LAUNCH_TIME,
    "memory": MEMORY_USAGE,
    "api": API_RESPONSE,
}


def register_parsers(subparsers: argparse._SubParsersAction) -> None:
    """Register performance subcommands.

    Args:
        subparsers: Argument subparsers from parent parser
    """
    perf_parser = subparsers.add_parser("perf", help="Performance benchmarks and reports")
    perf_subparsers = perf_parser.add_subparsers(dest="perf_command")

    benchmark_parser = perf_subparsers.add_parser(
        "benchmark",
        help="Sample every metric, compare with thresholds, write a report",
    )
    benchmark_parser.set_defaults(func=handle_benchmark)

    continuous_parser = perf_subparsers.add_parser(
        "continuous",
        help="Run the benchmark repeatedly until interrupted",
    )
    continuous_parser.add_argument(
        "--interval",
        type=float,
        help="Seconds between runs (default: from config, 3600)",
    )
    continuous_parser.add_argument(
        "--runs",
        type=int,
        help="Stop after N runs (default: run until interrupted)",
    )
    continuous_parser.set_defaults(func=handle_continuous)

    for command, metric in _SINGLE_METRIC_COMMANDS.items():
        metric_parser = perf_subparsers.add_parser(
            command,
            help=f"Sample {metric.replace('_', ' ')} only",
        )
        metric_parser.set_defaults(func=handle_metric, metric=metric)

    report_parser = perf_subparsers.add_parser(
        "report",
        help="Write a report from the last persisted samples",
    )
    report_parser.set_defaults(func=handle_report)


def run_benchmark(
    config: VigilConfig,
    metrics: Optional[Sequence[str]] = None,
    write_report: bool = True,
) -> bool:
    """Evaluate the performance gate once.

    Args:
        config: Loaded configuration
        metrics: Restrict sampling to these metrics (default: all thresholded)
        write_report: Write a markdown report for the run

    Returns:
        True if every sampled metric is within its threshold
    """
    registry = ThresholdRegistry.from_config(config.performance)
    if metrics is not None:
        registry = ThresholdRegistry([registry.get(name) for name in metrics])

    gate = PerformanceGate(
        registry,
        build_probes(config.performance, registry.names()),
        probe_timeout_s=config.performance.probe_timeout_s,
        metrics_dir=config.general.metrics_dir,
    )
    result = gate.evaluate()
    print(result.summary_string())

    if write_report:
        values = {
            name: sample.value if (sample := gate.last_samples.get(name)) else None
            for name in registry.names()
        }
        path = write_benchmark_report(registry, values, config.general.reports_dir)
        print(f"Report: {path}")
    return result.passed


def handle_benchmark(args: argparse.Namespace) -> int:
    config = load_command_config(args)
    start_command_logging(args, config, SUBSYSTEM)
    logger.info("Starting performance benchmarks...")
    return 0 if run_benchmark(config) else 1


def handle_continuous(args: argparse.Namespace) -> int:
    """Benchmark every interval until SIGINT/SIGTERM or ``--runs`` runs."""
    config = load_command_config(args)
    start_command_logging(args, config, SUBSYSTEM)
    interval = args.interval if args.interval is not None else config.performance.continuous_interval_s
    stop = threading.Event()

    def _request_stop(signum, frame):
        stop.set()

    previous = {
        sig: signal.signal(sig, _request_stop) for sig in (signal.SIGTERM, signal.SIGINT)
    }
    logger.info(f"Starting continuous performance monitoring (every {interval:g}s)")
    runs = 0
    try:
        while not stop.is_set():
            try:
                run_benchmark(config)
            except (OSError, ConfigurationError) as e:
                logger.error(f"Benchmark run failed: {e}")
            runs += 1
            if args.runs is not None and runs >= args.runs:
                break
            stop.wait(interval)
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
    logger.info(f"Continuous monitoring stopped after {runs} run(s)")
    return 0


def handle_metric(args: argparse.Namespace) -> int:
    config = load_command_config(args)
    start_command_logging(args, config, SUBSYSTEM)
    return 0 if run_benchmark(config, [args.metric], write_report=False) else 1


def handle_report(args: argparse.Namespace) -> int:
    config = load_command_config(args)
    start_command_logging(args, config, SUBSYSTEM)
    registry = ThresholdRegistry.from_config(config.performance)
    values = load_samples(config.general.metrics_dir, registry)
    path = write_benchmark_report(registry, values, config.general.reports_dir)
    print(f"Report: {path}")
    return 0
