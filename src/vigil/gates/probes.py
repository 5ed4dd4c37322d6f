"""Metric probes for the performance gate.

A probe is any zero-argument callable returning one numeric sample. It may
raise ``ProbeError``; the gate turns that, or an expired wait, into a failed
check.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Callable, Sequence

import psutil
import requests

from vigil.errors import ConfigurationError, ProbeError, ProbeTimeoutError
from vigil.logging_config import get_logger
from vigil.schema import PerformanceConfig
from vigil.supervision import SupervisedProcess

logger = get_logger(__name__)

LAUNCH_TIME = "launch_time"
MEMORY_USAGE = "memory_usage"
API_RESPONSE = "api_response"

MetricProbe = Callable[[], float]


def _url_ready(url: str) -> bool:
    try:
        return 200 <= requests.get(url, timeout=1.0).status_code < 300
    except requests.RequestException:
        return False


class LaunchTimeProbe:
    """Milliseconds from launching the app until its URL answers."""

    def __init__(self, command: Sequence[str], ready_url: str, timeout_s: float = 30.0):
        self.command = list(command)
        self.ready_url = ready_url
        self.timeout_s = timeout_s

    def __call__(self) -> float:
        logger.info("Measuring app launch time...")
        with SupervisedProcess(self.command) as proc:
            elapsed = proc.wait_until(lambda: _url_ready(self.ready_url), self.timeout_s)
        return round(elapsed * 1000.0, 1)


class MemoryUsageProbe:
    """Resident memory of the subject process in MB."""

    def __init__(self, pid_file: Path):
        self.pid_file = pid_file

    def __call__(self) -> float:
        logger.info("Checking memory usage...")
        try:
            pid = int(self.pid_file.read_text().strip())
        except (OSError, ValueError) as exc:
            raise ProbeError(f"cannot read subject pid from {self.pid_file}: {exc}") from exc
        try:
            rss = psutil.Process(pid).memory_info().rss
        except psutil.Error as exc:
            raise ProbeError(f"cannot inspect process {pid}: {exc}") from exc
        return round(rss / (1024 * 1024), 1)


class ApiLatencyProbe:
    """Milliseconds for one request to the API endpoint."""

    def __init__(self, url: str, timeout_s: float = 10.0):
        self.url = url
        self.timeout_s = timeout_s

    def __call__(self) -> float:
        logger.info("Testing API performance...")
        start = time.perf_counter()
        try:
            response = requests.get(self.url, timeout=self.timeout_s)
        except requests.Timeout as exc:
            raise ProbeTimeoutError(f"{self.url} did not answer within {self.timeout_s:.0f}s") from exc
        except requests.RequestException as exc:
            raise ProbeError(f"{self.url} unreachable: {exc}") from exc
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        if not 200 <= response.status_code < 300:
            raise ProbeError(f"{self.url} returned HTTP {response.status_code}")
        return round(elapsed_ms, 1)


_REQUIRED_SETTINGS = {
    LAUNCH_TIME: "launch_command, launch_ready_url",
    MEMORY_USAGE: "subject_pid_file",
    API_RESPONSE: "api_url",
}


def build_probes(
    config: PerformanceConfig,
    metrics: Sequence[str] | None = None,
) -> dict[str, MetricProbe]:
    """Build the probes for ``metrics`` (default: every thresholded metric).

    Raises:
        ConfigurationError: If a requested metric has no usable probe configuration
    """
    available: dict[str, MetricProbe] = {}
    if config.launch_command and config.launch_ready_url:
        available[LAUNCH_TIME] = LaunchTimeProbe(
            config.launch_command, config.launch_ready_url, config.probe_timeout_s
        )
    if config.subject_pid_file:
        available[MEMORY_USAGE] = MemoryUsageProbe(config.subject_pid_file)
    if config.api_url:
        available[API_RESPONSE] = ApiLatencyProbe(config.api_url, config.probe_timeout_s)

    requested = list(metrics) if metrics is not None else list(config.thresholds)
    missing = [
        f"{name} ({_REQUIRED_SETTINGS.get(name, 'no built-in probe')})"
        for name in requested
        if name not in available
    ]
    if missing:
        raise ConfigurationError(
            "Missing [performance] settings for: " + ", ".join(missing),
            {"metrics": missing},
        )
    return {name: available[name] for name in requested}
