"""Contracts for the external tools vigil drives, plus command-backed adapters.

The pipeline only relies on the result types and protocols below. The
``Command*`` adapters wrap a configured external command (Flutter, Firebase
CLI, or anything with the same exit-status conventions) and interpret its
output into those results.
"""

from __future__ import annotations

import json
import re
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol, Sequence

from .environments import EnvironmentTarget
from .errors import MissingCollaboratorError
from .logging_config import get_logger
from .supervision import CommandResult, executable_available, render_command, run_command

logger = get_logger(__name__)


@dataclass
class BuildResult:
    success: bool
    artifact: Path | None = None
    message: str = ""
    targets: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["artifact"] = str(self.artifact) if self.artifact else None
        return data


@dataclass
class PublishResult:
    success: bool
    url: str | None = None
    reference: str | None = None
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class AnalysisResult:
    passed: bool
    issue_count: int = 0
    message: str = ""


@dataclass
class TestRunResult:
    __test__ = False

    passed: bool
    executed: int = 0
    message: str = ""


class Builder(Protocol):
    def build(self, target: EnvironmentTarget) -> BuildResult: ...


class Publisher(Protocol):
    def current_reference(self, target: EnvironmentTarget) -> str | None: ...

    def publish(self, target: EnvironmentTarget, artifact: Path | None) -> PublishResult: ...

    def restore(self, target: EnvironmentTarget, reference: str) -> PublishResult: ...


class Analyzer(Protocol):
    def analyze(self) -> AnalysisResult: ...


class TestRunner(Protocol):
    def run_tests(self) -> TestRunResult: ...


def ensure_available(collaborator: str, *commands: Sequence[str]) -> None:
    """Fail fast when a command's executable is missing.

    Raises:
        MissingCollaboratorError: For the first unavailable executable
    """
    for command in commands:
        if command and not executable_available(command):
            raise MissingCollaboratorError(collaborator, command[0])


class CommandBuilder:
    """Run the prepare commands, then one build command per build target."""

    def __init__(
        self,
        build_command: Sequence[str],
        prepare_commands: Sequence[Sequence[str]] = (),
        artifact_dir: Path = Path("build"),
        timeout_s: float = 1800.0,
    ):
        self.build_command = list(build_command)
        self.prepare_commands = [list(cmd) for cmd in prepare_commands]
        self.artifact_dir = artifact_dir
        self.timeout_s = timeout_s

    def validate(self) -> None:
        ensure_available("Build toolchain", self.build_command, *self.prepare_commands)

    def build(self, target: EnvironmentTarget) -> BuildResult:
        values = target.template_values()
        for command in self.prepare_commands:
            result = run_command(render_command(command, values), self.timeout_s)
            if not result.success:
                return BuildResult(success=False, message=_describe_failure(result))

        built: list[str] = []
        for build_target in target.build_targets:
            command = render_command(self.build_command, {**values, "target": build_target})
            logger.info(f"Building {build_target} for {target.environment.value}")
            result = run_command(command, self.timeout_s)
            if not result.success:
                return BuildResult(
                    success=False,
                    message=f"{build_target} build failed: {_describe_failure(result)}",
                    targets=built,
                )
            built.append(build_target)

        return BuildResult(
            success=True,
            artifact=self.artifact_dir,
            message=f"Built {', '.join(built)}",
            targets=built,
        )


class CommandPublisher:
    """Publish through a CLI and remember what went live per environment.

    The live reference of each environment is recorded in
    ``<state_dir>/published/<environment>.json`` after every successful
    publish or restore; it is what a rollback snapshot captures.
    """

    def __init__(
        self,
        publish_command: Sequence[str],
        restore_command: Sequence[str],
        state_dir: Path,
        timeout_s: float = 1800.0,
    ):
        self.publish_command = list(publish_command)
        self.restore_command = list(restore_command)
        self.state_dir = state_dir
        self.timeout_s = timeout_s

    def validate(self) -> None:
        ensure_available("Publishing backend", self.publish_command, self.restore_command)

    def _record_path(self, target: EnvironmentTarget) -> Path:
        return self.state_dir / "published" / f"{target.environment.value}.json"

    def current_reference(self, target: EnvironmentTarget) -> str | None:
        path = self._record_path(target)
        if not path.exists():
            return None
        with open(path, encoding="utf-8") as f:
            return json.load(f).get("reference")

    def _record(self, target: EnvironmentTarget, reference: str) -> None:
        path = self._record_path(target)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(
                {
                    "environment": target.environment.value,
                    "reference": reference,
                    "recorded_at": datetime.now(timezone.utc).isoformat(),
                },
                f,
                indent=2,
            )

    def publish(self, target: EnvironmentTarget, artifact: Path | None) -> PublishResult:
        reference = datetime.now().strftime("%Y%m%d%H%M%S")
        values = {
            **target.template_values(),
            "reference": reference,
            "artifact": str(artifact or ""),
        }
        result = run_command(render_command(self.publish_command, values), self.timeout_s)
        if not result.success:
            return PublishResult(success=False, message=_describe_failure(result))
        self._record(target, reference)
        return PublishResult(
            success=True,
            url=target.base_url,
            reference=reference,
            message=f"Published {reference} to {target.project}",
        )

    def restore(self, target: EnvironmentTarget, reference: str) -> PublishResult:
        values = {**target.template_values(), "reference": reference}
        result = run_command(render_command(self.restore_command, values), self.timeout_s)
        if not result.success:
            return PublishResult(success=False, reference=reference, message=_describe_failure(result))
        self._record(target, reference)
        return PublishResult(
            success=True,
            url=target.base_url,
            reference=reference,
            message=f"Restored {reference} on {target.project}",
        )


_ISSUES_RE = re.compile(r"(\d+)\s+issues?\s+found", re.IGNORECASE)


class CommandAnalyzer:
    """Static analysis through a linter command (``flutter analyze`` style)."""

    def __init__(self, command: Sequence[str], timeout_s: float = 900.0):
        self.command = list(command)
        self.timeout_s = timeout_s

    def validate(self) -> None:
        ensure_available("Static analysis", self.command)

    def analyze(self) -> AnalysisResult:
        result = run_command(self.command, self.timeout_s)
        issues = count_issues(result.stdout + "\n" + result.stderr)
        if result.success:
            return AnalysisResult(passed=True, issue_count=issues, message="analysis clean")
        return AnalysisResult(
            passed=False,
            issue_count=issues,
            message=_describe_failure(result),
        )


def count_issues(output: str) -> int:
    """Issue count reported by an analyzer, 0 when it reports none."""
    match = _ISSUES_RE.search(output)
    return int(match.group(1)) if match else 0


class CommandTestRunner:
    """Run the test suite through a command emitting JSON reporter events."""

    def __init__(self, command: Sequence[str], timeout_s: float = 900.0):
        self.command = list(command)
        self.timeout_s = timeout_s

    def validate(self) -> None:
        ensure_available("Test runner", self.command)

    def run_tests(self) -> TestRunResult:
        result = run_command(self.command, self.timeout_s)
        executed = count_executed_tests(result.stdout)
        if result.success:
            return TestRunResult(passed=True, executed=executed, message=f"{executed} tests passed")
        return TestRunResult(passed=False, executed=executed, message=_describe_failure(result))


_PASSED_RE = re.compile(r"(\d+)\s+passed")


def count_executed_tests(output: str) -> int:
    """Count executed tests from JSON reporter lines or a pytest-style summary."""
    executed = 0
    saw_events = False
    for line in output.splitlines():
        line = line.strip()
        if not line.startswith("{"):
            continue
        try:
            event = json.loads(line)
        except json.JSONDecodeError:
            continue
        if not isinstance(event, dict):
            continue
        saw_events = True
        if event.get("type") == "testDone" and not event.get("hidden", False):
            executed += 1
    if saw_events:
        return executed
    match = _PASSED_RE.search(output)
    return int(match.group(1)) if match else 0


def _describe_failure(result: CommandResult) -> str:
    return f"{' '.join(result.command)}: {result.error or 'failed'}"
