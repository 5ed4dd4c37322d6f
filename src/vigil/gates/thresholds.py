"""Threshold registry: the pass/fail bound of every gated metric."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Mapping

from vigil.schema import PerformanceConfig, default_threshold_units, default_thresholds


@dataclass(frozen=True)
class Threshold:
    """A metric passes when its value is strictly less than ``bound``."""

    metric_name: str
    bound: float
    unit: str = ""

    def passes(self, value: float) -> bool:
        return value < self.bound

    def describe(self) -> str:
        return f"<{self.bound:g}{self.unit}"


class ThresholdRegistry:
    """Immutable, ordered set of thresholds keyed by metric name."""

    def __init__(self, thresholds: tuple[Threshold, ...] | list[Threshold]):
        ordered = tuple(thresholds)
        names = [t.metric_name for t in ordered]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate metric in threshold registry: {names}")
        self._thresholds = ordered
        self._by_name = {t.metric_name: t for t in ordered}

    @classmethod
    def from_bounds(
        cls,
        bounds: Mapping[str, float],
        units: Mapping[str, str] | None = None,
    ) -> "ThresholdRegistry":
        units = units or {}
        return cls(
            tuple(Threshold(name, float(bound), units.get(name, "")) for name, bound in bounds.items())
        )

    @classmethod
    def default(cls) -> "ThresholdRegistry":
        """launch_time < 2000 ms, memory_usage < 100 MB, api_response < 300 ms."""
        return cls.from_bounds(default_thresholds(), default_threshold_units())

    @classmethod
    def from_config(cls, config: PerformanceConfig) -> "ThresholdRegistry":
        return cls.from_bounds(config.thresholds, config.units)

    def get(self, metric_name: str) -> Threshold:
        return self._by_name[metric_name]

    def names(self) -> list[str]:
        return [t.metric_name for t in self._thresholds]

    def __contains__(self, metric_name: object) -> bool:
        return metric_name in self._by_name

    def __iter__(self) -> Iterator[Threshold]:
        return iter(self._thresholds)

    def __len__(self) -> int:
        return len(self._thresholds)
