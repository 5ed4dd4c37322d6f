"""Performance gate.

Samples every thresholded metric once, concurrently, and compares each
sample against its bound. A probe that raises or does not answer within the
bounded wait becomes a failed check; the gate itself never raises for probe
problems and never retries.
"""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from pathlib import Path
from typing import Mapping, Optional, Sequence

from vigil.errors import ConfigurationError, ProbeError
from vigil.logging_config import get_logger

from .models import GateResult, MetricSample
from .probes import MetricProbe
from .thresholds import Threshold, ThresholdRegistry

logger = get_logger(__name__)


class PerformanceGate:
    """Compare metric samples with the threshold registry."""

    GATE_NAME = "performance"

    def __init__(
        self,
        registry: ThresholdRegistry,
        probes: Mapping[str, MetricProbe],
        probe_timeout_s: float = 30.0,
        metrics_dir: Optional[Path] = None,
    ):
        """Initialize performance gate.

        Args:
            registry: Thresholds to enforce
            probes: One probe per thresholded metric
            probe_timeout_s: Bounded wait applied to every probe
            metrics_dir: Where raw samples are persisted (None = not persisted)

        Raises:
            ConfigurationError: If a thresholded metric has no probe
        """
        missing = [name for name in registry.names() if name not in probes]
        if missing:
            raise ConfigurationError(
                f"No probe registered for: {', '.join(missing)}",
                {"metrics": missing},
            )
        self.registry = registry
        self.probes = dict(probes)
        self.probe_timeout_s = probe_timeout_s
        self.metrics_dir = metrics_dir
        self.last_samples: dict[str, MetricSample] = {}

    def evaluate(self, metrics: Optional[Sequence[str]] = None) -> GateResult:
        """Take one sample per metric and build the gate result.

        Args:
            metrics: Restrict the evaluation to these metrics (default: all)
        """
        thresholds = (
            [self.registry.get(name) for name in metrics]
            if metrics is not None
            else list(self.registry)
        )
        result = GateResult(gate_name=self.GATE_NAME)
        self.last_samples = {}
        if not thresholds:
            return result

        executor = ThreadPoolExecutor(
            max_workers=len(thresholds),
            thread_name_prefix="vigil-probe",
        )
        try:
            futures = {
                t.metric_name: executor.submit(self.probes[t.metric_name])
                for t in thresholds
            }
            # All probes start together, so one shared deadline bounds each of them.
            deadline = time.monotonic() + self.probe_timeout_s
            for threshold in thresholds:
                name = threshold.metric_name
                remaining = max(0.0, deadline - time.monotonic())
                try:
                    value = float(futures[name].result(timeout=remaining))
                except FuturesTimeoutError:
                    self._record_failure(
                        result, threshold, f"no sample within {self.probe_timeout_s:g}s"
                    )
                    continue
                except ProbeError as exc:
                    self._record_failure(result, threshold, str(exc))
                    continue
                except Exception as exc:
                    logger.warning(f"Probe for {name} crashed: {exc}", exc_info=True)
                    self._record_failure(result, threshold, f"probe error: {exc}")
                    continue

                self._record_sample(result, threshold, value)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        if result.passed:
            logger.info("All performance benchmarks passed")
        else:
            failed = ", ".join(c.check_name for c in result.failed_checks())
            logger.warning(f"Performance benchmarks failed: {failed}")
        return result

    def _record_sample(self, result: GateResult, threshold: Threshold, value: float) -> None:
        sample = MetricSample(threshold.metric_name, value, threshold.unit)
        self.last_samples[threshold.metric_name] = sample
        self._persist(threshold.metric_name, value)

        passed = threshold.passes(value)
        label = threshold.metric_name.replace("_", " ")
        logger.info(f"{label}: {value:g}{threshold.unit} (target: {threshold.describe()})")
        if passed:
            result.add(threshold.metric_name, True, value)
        else:
            logger.warning(f"{label} exceeds target!")
            result.add(
                threshold.metric_name,
                False,
                value,
                f"{value:g}{threshold.unit} not below {threshold.bound:g}{threshold.unit}",
            )

    def _record_failure(self, result: GateResult, threshold: Threshold, reason: str) -> None:
        logger.warning(f"{threshold.metric_name}: no sample ({reason})")
        self._persist(threshold.metric_name, None)
        result.add(threshold.metric_name, False, None, reason)

    def _persist(self, metric_name: str, value: Optional[float]) -> None:
        if self.metrics_dir is None:
            return
        path = self.metrics_dir / f"{metric_name}.txt"
        try:
            self.metrics_dir.mkdir(parents=True, exist_ok=True)
            if value is None:
                # A failed run must not leave the previous run's value behind.
                path.unlink(missing_ok=True)
                return
            path.write_text(f"{value:g}\n", encoding="utf-8")
        except OSError as e:
            logger.warning(f"Could not persist {metric_name} sample to {path}: {e}")


def load_samples(metrics_dir: Path, registry: ThresholdRegistry) -> dict[str, Optional[float]]:
    """Read the persisted sample of every metric; missing or unreadable -> None."""
    values: dict[str, Optional[float]] = {}
    for threshold in registry:
        path = metrics_dir / f"{threshold.metric_name}.txt"
        try:
            values[threshold.metric_name] = float(path.read_text(encoding="utf-8").strip())
        except (OSError, ValueError):
            values[threshold.metric_name] = None
    return values
