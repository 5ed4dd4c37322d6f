"""Health probes against the supervised subject.

Every probe call returns a ``HealthStatus``; probes never raise for an
unhealthy subject. The maximum wait is part of the probe, and exceeding it is
a ``timed_out`` outcome.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Protocol, Sequence

import requests

from vigil.errors import ConfigurationError
from vigil.logging_config import get_logger
from vigil.schema import WatchdogConfig
from vigil.supervision import run_command

logger = get_logger(__name__)


class ProbeOutcome(str, Enum):
    """Result category of one health probe."""

    HEALTHY = "healthy"
    TIMED_OUT = "timed_out"
    UNREACHABLE = "unreachable"


@dataclass
class HealthStatus:
    """One probe cycle's observation."""

    outcome: ProbeOutcome
    probe_latency_ms: float = 0.0
    detail: str = ""
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def healthy(self) -> bool:
        return self.outcome == ProbeOutcome.HEALTHY


class HealthProbe(Protocol):
    def __call__(self) -> HealthStatus: ...


def _latency_ms(start: float) -> float:
    return round((time.monotonic() - start) * 1000.0, 1)


class HttpHealthProbe:
    """GET a health endpoint; any 2xx within ``max_response_s`` is healthy."""

    def __init__(self, url: str, max_response_s: float = 120.0):
        self.url = url
        self.max_response_s = max_response_s

    def __call__(self) -> HealthStatus:
        start = time.monotonic()
        try:
            response = requests.get(self.url, timeout=self.max_response_s)
        except requests.Timeout:
            return HealthStatus(
                ProbeOutcome.TIMED_OUT,
                _latency_ms(start),
                f"no response within {self.max_response_s:g}s",
            )
        except requests.RequestException as e:
            return HealthStatus(ProbeOutcome.UNREACHABLE, _latency_ms(start), str(e))

        latency = _latency_ms(start)
        if latency > self.max_response_s * 1000.0:
            return HealthStatus(ProbeOutcome.TIMED_OUT, latency, "response too slow")
        if not 200 <= response.status_code < 300:
            return HealthStatus(ProbeOutcome.UNREACHABLE, latency, f"HTTP {response.status_code}")
        return HealthStatus(ProbeOutcome.HEALTHY, latency)


class CommandHealthProbe:
    """Run a check command; exit code 0 within ``max_response_s`` is healthy."""

    def __init__(self, command: Sequence[str], max_response_s: float = 120.0):
        self.command = list(command)
        self.max_response_s = max_response_s

    def __call__(self) -> HealthStatus:
        result = run_command(self.command, timeout_s=self.max_response_s)
        latency = round(result.duration_s * 1000.0, 1)
        if result.timed_out:
            return HealthStatus(ProbeOutcome.TIMED_OUT, latency, result.error or "")
        if not result.success:
            return HealthStatus(ProbeOutcome.UNREACHABLE, latency, result.error or "")
        return HealthStatus(ProbeOutcome.HEALTHY, latency)


def build_health_probe(config: WatchdogConfig) -> HealthProbe:
    """HTTP probe when ``health_url`` is set, otherwise the command probe.

    Raises:
        ConfigurationError: If neither is configured
    """
    if config.health_url:
        return HttpHealthProbe(config.health_url, config.max_response_s)
    if config.health_command:
        return CommandHealthProbe(config.health_command, config.max_response_s)
    raise ConfigurationError("Set [watchdog] health_url or health_command to supervise a subject")
