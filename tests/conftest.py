from __future__ import annotations

import logging
import sys
import tempfile
from pathlib import Path
from typing import Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from vigil.collaborators import AnalysisResult, BuildResult, PublishResult, TestRunResult  # noqa: E402
from vigil.environments import EnvironmentTarget  # noqa: E402


@pytest.fixture
def temp_dir() -> Path:
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(autouse=True)
def reset_vigil_logger():
    """Commands install handlers on the ``vigil`` logger; drop them after each test."""
    yield
    logger = logging.getLogger("vigil")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def write_config(temp_dir: Path):
    """Write a vigil.toml whose directories all live under ``temp_dir``."""

    def _write(extra: str = "") -> Path:
        path = temp_dir / "vigil.toml"
        path.write_text(
            "[general]\n"
            f'log_dir = "{temp_dir / "logs"}"\n'
            f'state_dir = "{temp_dir / "state"}"\n'
            f'reports_dir = "{temp_dir / "reports"}"\n'
            f'metrics_dir = "{temp_dir / "metrics"}"\n'
            + extra,
            encoding="utf-8",
        )
        return path

    return _write


class FakeAnalyzer:
    def __init__(self, passed: bool = True, issues: int = 0):
        self.passed = passed
        self.issues = issues
        self.calls = 0

    def analyze(self) -> AnalysisResult:
        self.calls += 1
        return AnalysisResult(self.passed, self.issues, "ok" if self.passed else "issues found")


class FakeTestRunner:
    def __init__(self, passed: bool = True, executed: int = 12):
        self.passed = passed
        self.executed = executed
        self.calls = 0

    def run_tests(self) -> TestRunResult:
        self.calls += 1
        return TestRunResult(self.passed, self.executed, "done")


class FakeBuilder:
    def __init__(self, success: bool = True):
        self.success = success
        self.calls: list[str] = []

    def build(self, target: EnvironmentTarget) -> BuildResult:
        self.calls.append(target.environment.value)
        if not self.success:
            return BuildResult(False, message="compile error")
        return BuildResult(True, artifact=Path("build"), message="Built web", targets=["web"])


class FakePublisher:
    """In-memory publisher keeping one live reference per environment."""

    def __init__(self, publish_ok: bool = True, restore_ok: bool = True):
        self.publish_ok = publish_ok
        self.restore_ok = restore_ok
        self.live: dict[str, str] = {}
        self.published: list[str] = []
        self.restored: list[tuple[str, str]] = []
        self._counter = 0

    def current_reference(self, target: EnvironmentTarget) -> Optional[str]:
        return self.live.get(target.environment.value)

    def publish(self, target: EnvironmentTarget, artifact: Optional[Path]) -> PublishResult:
        env = target.environment.value
        self.published.append(env)
        if not self.publish_ok:
            return PublishResult(False, message="quota exceeded")
        self._counter += 1
        reference = f"release-{self._counter}"
        self.live[env] = reference
        return PublishResult(True, url=target.base_url, reference=reference)

    def restore(self, target: EnvironmentTarget, reference: str) -> PublishResult:
        env = target.environment.value
        self.restored.append((env, reference))
        if not self.restore_ok:
            return PublishResult(False, reference=reference, message="clone failed")
        self.live[env] = reference
        return PublishResult(True, url=target.base_url, reference=reference)


@pytest.fixture
def fakes():
    """Factory namespace for fake collaborators."""
    return type(
        "Fakes",
        (),
        {
            "Analyzer": FakeAnalyzer,
            "TestRunner": FakeTestRunner,
            "Builder": FakeBuilder,
            "Publisher": FakePublisher,
        },
    )
