"""Deployment gates.

- Threshold registry: the bound of every performance metric
- Performance gate: one concurrent sample per metric, strict less-than
- Quality gate: static analysis plus the test suite

Example usage:

    from vigil.gates import PerformanceGate, ThresholdRegistry

    gate = PerformanceGate(
        ThresholdRegistry.default(),
        probes={"launch_time": probe_a, "memory_usage": probe_b, "api_response": probe_c},
    )
    result = gate.evaluate()
    print(result.summary_string())
"""

from .models import CheckEntry, GateResult, MetricSample
from .performance import PerformanceGate, load_samples
from .quality import QualityGate
from .thresholds import Threshold, ThresholdRegistry

__all__ = [
    "CheckEntry",
    "GateResult",
    "MetricSample",
    "PerformanceGate",
    "QualityGate",
    "Threshold",
    "ThresholdRegistry",
    "load_samples",
]
