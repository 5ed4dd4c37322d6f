"""Tests for the HTTP and command health probes."""

from __future__ import annotations

import sys
from unittest.mock import MagicMock, patch

import pytest
import requests

from vigil.errors import ConfigurationError
from vigil.health import (
    CommandHealthProbe,
    HttpHealthProbe,
    ProbeOutcome,
    build_health_probe,
)
from vigil.schema import WatchdogConfig

PY = sys.executable


class TestHttpHealthProbe:
    @patch("vigil.health.probe.requests.get")
    def test_healthy(self, mock_get):
        mock_get.return_value = MagicMock(status_code=200)

        status = HttpHealthProbe("http://localhost/health", max_response_s=5)()

        assert status.healthy
        mock_get.assert_called_once_with("http://localhost/health", timeout=5)

    @patch("vigil.health.probe.requests.get")
    def test_timeout(self, mock_get):
        mock_get.side_effect = requests.Timeout()

        status = HttpHealthProbe("http://localhost/health", max_response_s=5)()

        assert status.outcome == ProbeOutcome.TIMED_OUT

    @patch("vigil.health.probe.requests.get")
    def test_connection_error(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("refused")

        status = HttpHealthProbe("http://localhost/health")()

        assert status.outcome == ProbeOutcome.UNREACHABLE
        assert "refused" in status.detail

    @patch("vigil.health.probe.requests.get")
    def test_server_error(self, mock_get):
        mock_get.return_value = MagicMock(status_code=503)

        status = HttpHealthProbe("http://localhost/health")()

        assert status.outcome == ProbeOutcome.UNREACHABLE
        assert status.detail == "HTTP 503"

    @patch("vigil.health.probe.requests.get")
    def test_redirect_is_not_healthy(self, mock_get):
        mock_get.return_value = MagicMock(ok=True, status_code=304)

        status = HttpHealthProbe("http://localhost/health")()

        assert status.outcome == ProbeOutcome.UNREACHABLE
        assert status.detail == "HTTP 304"

    @patch("vigil.health.probe.time.monotonic")
    @patch("vigil.health.probe.requests.get")
    def test_slow_response_counts_as_timeout(self, mock_get, mock_clock):
        mock_get.return_value = MagicMock(status_code=200)
        ticks = iter([100.0, 103.0])
        mock_clock.side_effect = lambda: next(ticks, 103.0)

        status = HttpHealthProbe("http://localhost/health", max_response_s=2)()

        assert status.outcome == ProbeOutcome.TIMED_OUT
        assert status.probe_latency_ms == 3000.0


class TestCommandHealthProbe:
    def test_exit_zero_is_healthy(self):
        assert CommandHealthProbe([PY, "-c", "pass"], max_response_s=30)().healthy

    def test_non_zero_is_unreachable(self):
        status = CommandHealthProbe([PY, "-c", "raise SystemExit(1)"], max_response_s=30)()

        assert status.outcome == ProbeOutcome.UNREACHABLE

    def test_missing_command_is_unreachable(self):
        status = CommandHealthProbe(["definitely-not-a-real-tool-xyz"])()

        assert status.outcome == ProbeOutcome.UNREACHABLE

    def test_slow_command_times_out(self):
        status = CommandHealthProbe([PY, "-c", "import time; time.sleep(10)"], max_response_s=0.5)()

        assert status.outcome == ProbeOutcome.TIMED_OUT


class TestBuildHealthProbe:
    def test_url_preferred(self):
        probe = build_health_probe(
            WatchdogConfig(health_url="http://localhost/health", health_command=["true"])
        )

        assert isinstance(probe, HttpHealthProbe)

    def test_command_probe(self):
        assert isinstance(build_health_probe(WatchdogConfig(health_command=["true"])), CommandHealthProbe)

    def test_nothing_configured(self):
        with pytest.raises(ConfigurationError):
            build_health_probe(WatchdogConfig())
