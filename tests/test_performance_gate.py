"""Tests for the threshold registry and the performance gate."""

from __future__ import annotations

import threading

import pytest

from vigil.errors import ConfigurationError, ProbeError
from vigil.gates import PerformanceGate, Threshold, ThresholdRegistry, load_samples
from vigil.gates.probes import build_probes
from vigil.schema import PerformanceConfig


def constant(value):
    return lambda: value


def probes_for(launch, memory, api):
    return {
        "launch_time": constant(launch),
        "memory_usage": constant(memory),
        "api_response": constant(api),
    }


class TestThresholds:
    def test_strictly_less_than(self):
        threshold = Threshold("api_response", 300.0, "ms")

        assert threshold.passes(299.9)
        assert not threshold.passes(300.0)
        assert not threshold.passes(301.0)
        assert threshold.describe() == "<300ms"

    def test_default_registry(self):
        registry = ThresholdRegistry.default()

        assert registry.names() == ["launch_time", "memory_usage", "api_response"]
        assert registry.get("memory_usage").bound == 100.0
        assert "launch_time" in registry
        assert len(registry) == 3

    def test_duplicate_metric_rejected(self):
        with pytest.raises(ValueError):
            ThresholdRegistry([Threshold("a", 1.0), Threshold("a", 2.0)])

    def test_from_config(self):
        config = PerformanceConfig(thresholds={"api_response": 150.0}, units={"api_response": "ms"})

        registry = ThresholdRegistry.from_config(config)

        assert registry.names() == ["api_response"]
        assert registry.get("api_response").describe() == "<150ms"


class TestPerformanceGate:
    def test_all_below_bounds_passes(self):
        gate = PerformanceGate(ThresholdRegistry.default(), probes_for(1999, 99, 299))

        result = gate.evaluate()

        assert result.passed
        assert [c.check_name for c in result.checks] == ["launch_time", "memory_usage", "api_response"]

    def test_one_metric_over_bound_fails_exactly_one_check(self):
        gate = PerformanceGate(ThresholdRegistry.default(), probes_for(2001, 99, 299))

        result = gate.evaluate()

        assert not result.passed
        failed = result.failed_checks()
        assert len(failed) == 1
        assert failed[0].check_name == "launch_time"
        assert failed[0].observed_value == 2001

    def test_value_equal_to_bound_fails(self):
        gate = PerformanceGate(ThresholdRegistry.default(), probes_for(1500, 100, 200))

        result = gate.evaluate()

        assert [c.check_name for c in result.failed_checks()] == ["memory_usage"]

    def test_probe_error_is_a_failed_check(self):
        def broken():
            raise ProbeError("subject not running")

        probes = probes_for(1000, 50, 100)
        probes["memory_usage"] = broken
        gate = PerformanceGate(ThresholdRegistry.default(), probes)

        result = gate.evaluate()

        failed = result.failed_checks()
        assert [c.check_name for c in failed] == ["memory_usage"]
        assert failed[0].observed_value is None
        assert "subject not running" in failed[0].message

    def test_unexpected_exception_is_a_failed_check(self):
        probes = probes_for(1000, 50, 100)
        probes["api_response"] = lambda: 1 / 0
        gate = PerformanceGate(ThresholdRegistry.default(), probes)

        result = gate.evaluate()

        assert [c.check_name for c in result.failed_checks()] == ["api_response"]

    def test_slow_probe_times_out_without_hanging(self):
        release = threading.Event()

        def hanging():
            release.wait(10)
            return 1.0

        probes = probes_for(1000, 50, 100)
        probes["launch_time"] = hanging
        gate = PerformanceGate(ThresholdRegistry.default(), probes, probe_timeout_s=0.2)

        try:
            result = gate.evaluate()
        finally:
            release.set()

        failed = result.failed_checks()
        assert [c.check_name for c in failed] == ["launch_time"]
        assert "no sample within" in failed[0].message

    def test_missing_probe_is_a_configuration_error(self):
        with pytest.raises(ConfigurationError, match="api_response"):
            PerformanceGate(
                ThresholdRegistry.default(),
                {"launch_time": constant(1), "memory_usage": constant(1)},
            )

    def test_evaluate_subset(self):
        gate = PerformanceGate(ThresholdRegistry.default(), probes_for(5000, 50, 100))

        result = gate.evaluate(["api_response"])

        assert result.passed
        assert [c.check_name for c in result.checks] == ["api_response"]

    def test_samples_are_persisted_and_reloaded(self, temp_dir):
        registry = ThresholdRegistry.default()
        gate = PerformanceGate(registry, probes_for(1234.5, 80, 210), metrics_dir=temp_dir)

        gate.evaluate()

        assert (temp_dir / "launch_time.txt").read_text().strip() == "1234.5"
        assert load_samples(temp_dir, registry) == {
            "launch_time": 1234.5,
            "memory_usage": 80.0,
            "api_response": 210.0,
        }
        assert gate.last_samples["memory_usage"].unit == "MB"

    def test_failed_probe_removes_stale_sample(self, temp_dir):
        registry = ThresholdRegistry.default()
        PerformanceGate(registry, probes_for(1000, 50, 100), metrics_dir=temp_dir).evaluate()

        def broken():
            raise ProbeError("gone")

        probes = probes_for(1000, 50, 100)
        probes["api_response"] = broken
        PerformanceGate(registry, probes, metrics_dir=temp_dir).evaluate()

        assert not (temp_dir / "api_response.txt").exists()
        assert load_samples(temp_dir, registry)["api_response"] is None

    def test_unwritable_metrics_dir_keeps_results(self, temp_dir):
        metrics_file = temp_dir / "metrics"
        metrics_file.write_text("not a directory", encoding="utf-8")
        gate = PerformanceGate(
            ThresholdRegistry.default(), probes_for(2500, 50, 100), metrics_dir=metrics_file
        )

        result = gate.evaluate()

        assert [c.check_name for c in result.failed_checks()] == ["launch_time"]
        assert gate.last_samples["api_response"].value == 100.0


class TestBuildProbes:
    def test_missing_settings_are_reported(self):
        with pytest.raises(ConfigurationError) as exc_info:
            build_probes(PerformanceConfig(api_url="http://localhost/api"))

        message = str(exc_info.value)
        assert "launch_time" in message
        assert "memory_usage" in message
        assert "api_response" not in message

    def test_subset_only_needs_its_own_settings(self):
        probes = build_probes(PerformanceConfig(api_url="http://localhost/api"), ["api_response"])

        assert list(probes) == ["api_response"]
