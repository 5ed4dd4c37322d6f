"""Markdown rendering of performance benchmark reports."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Mapping, Optional

from vigil.logging_config import get_logger

from .thresholds import ThresholdRegistry

logger = get_logger(__name__)

_TITLES = {
    "launch_time": "Launch Time",
    "memory_usage": "Memory Usage",
    "api_response": "API Performance",
}

_RECOMMENDATIONS = {
    "launch_time": "Optimize app launch time",
    "memory_usage": "Reduce memory usage",
    "api_response": "Optimize API response times",
}


def render_benchmark_report(
    registry: ThresholdRegistry,
    values: Mapping[str, Optional[float]],
    generated_at: Optional[datetime] = None,
) -> str:
    """Render current value, target and status of every metric."""
    generated_at = generated_at or datetime.now()
    lines = [f"# Performance Report - {generated_at:%Y-%m-%d %H:%M:%S}", ""]
    recommendations = []

    for threshold in registry:
        name = threshold.metric_name
        value = values.get(name)
        current = "N/A" if value is None else f"{value:g}{threshold.unit}"
        status = "✅ PASS" if value is not None and threshold.passes(value) else "❌ FAIL"
        lines.extend([
            f"## {_TITLES.get(name, name.replace('_', ' ').title())}",
            f"- Current: {current}",
            f"- Target: {threshold.describe()}",
            f"- Status: {status}",
            "",
        ])
        if value is not None and not threshold.passes(value):
            recommendations.append(
                _RECOMMENDATIONS.get(name, f"Reduce {name.replace('_', ' ')}")
            )

    lines.append("## Recommendations")
    lines.append("")
    if recommendations:
        lines.extend(f"- {item}" for item in recommendations)
    else:
        lines.append("- None, all measured metrics are within target")
    lines.append("")
    return "\n".join(lines)


def write_benchmark_report(
    registry: ThresholdRegistry,
    values: Mapping[str, Optional[float]],
    reports_dir: Path,
) -> Path:
    """Write a timestamped report file and return its path."""
    now = datetime.now()
    reports_dir.mkdir(parents=True, exist_ok=True)
    path = reports_dir / f"performance_report_{now:%Y%m%d_%H%M%S}.md"
    path.write_text(render_benchmark_report(registry, values, now), encoding="utf-8")
    logger.info(f"Report generated: {path}")
    return path
