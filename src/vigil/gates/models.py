"""Gate result types shared by the performance and quality gates."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class MetricSample:
    """A single measurement produced by a metric probe."""

    metric_name: str
    value: float
    unit: str = ""
    captured_at: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class CheckEntry:
    """One check inside a gate."""

    check_name: str
    passed: bool
    observed_value: Optional[float] = None
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class GateResult:
    """Aggregated result of a gate: passes only if every check passes."""

    gate_name: str
    checks: list[CheckEntry] = field(default_factory=list)
    timestamp: str = field(default_factory=_utc_now)

    @property
    def passed(self) -> bool:
        return all(check.passed for check in self.checks)

    def add(
        self,
        check_name: str,
        passed: bool,
        observed_value: Optional[float] = None,
        message: str = "",
    ) -> CheckEntry:
        entry = CheckEntry(check_name, passed, observed_value, message)
        self.checks.append(entry)
        return entry

    def failed_checks(self) -> list[CheckEntry]:
        return [check for check in self.checks if not check.passed]

    def summary(self) -> dict[str, Any]:
        return {
            "gate_name": self.gate_name,
            "total_checks": len(self.checks),
            "passed_checks": sum(1 for c in self.checks if c.passed),
            "failed_checks": len(self.failed_checks()),
            "passed": self.passed,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "gate_name": self.gate_name,
            "passed": self.passed,
            "timestamp": self.timestamp,
            "checks": [check.to_dict() for check in self.checks],
        }

    def summary_string(self) -> str:
        summary = self.summary()
        lines = [
            f"{self.gate_name}: {summary['passed_checks']}/{summary['total_checks']} checks passed",
        ]
        for check in self.checks:
            mark = "✓" if check.passed else "✗"
            observed = "N/A" if check.observed_value is None else f"{check.observed_value:g}"
            line = f"  {mark} {check.check_name} = {observed}"
            if check.message:
                line += f" ({check.message})"
            lines.append(line)
        return "\n".join(lines)
