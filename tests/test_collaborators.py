"""Tests for the command-backed collaborator adapters."""

from __future__ import annotations

import json
import sys

import pytest

from vigil.collaborators import (
    CommandAnalyzer,
    CommandBuilder,
    CommandPublisher,
    CommandTestRunner,
    count_executed_tests,
    count_issues,
    ensure_available,
)
from vigil.environments import resolve_target
from vigil.errors import MissingCollaboratorError
from vigil.schema import DeployConfig

PY = sys.executable


@pytest.fixture
def staging():
    return resolve_target("staging", DeployConfig())


class TestOutputParsing:
    def test_count_issues(self):
        assert count_issues("Analyzing app...\n3 issues found. (ran in 2.1s)") == 3
        assert count_issues("1 issue found.") == 1
        assert count_issues("No issues found!") == 0

    def test_count_executed_tests_from_json_events(self):
        events = [
            {"type": "start"},
            {"type": "testDone", "testID": 1, "hidden": False},
            {"type": "testDone", "testID": 2, "hidden": True},
            {"type": "testDone", "testID": 3, "hidden": False},
            {"type": "done", "success": True},
        ]
        output = "\n".join(json.dumps(e) for e in events)

        assert count_executed_tests(output) == 2

    def test_count_executed_tests_from_summary(self):
        assert count_executed_tests("===== 14 passed in 0.52s =====") == 14
        assert count_executed_tests("") == 0


class TestEnsureAvailable:
    def test_missing_executable(self):
        with pytest.raises(MissingCollaboratorError) as exc_info:
            ensure_available("Publishing backend", ["definitely-not-a-real-tool-xyz", "deploy"])

        assert exc_info.value.executable == "definitely-not-a-real-tool-xyz"
        assert "Publishing backend" in str(exc_info.value)

    def test_available_executable(self):
        ensure_available("Build toolchain", [PY, "-V"])


class TestCommandBuilder:
    def test_builds_every_target(self, staging):
        builder = CommandBuilder(
            [PY, "-c", "import sys; print(sys.argv[1:])", "{target}", "{environment}"],
            prepare_commands=[[PY, "-c", "pass"]],
            timeout_s=30,
        )

        result = builder.build(staging)

        assert result.success
        assert result.targets == ["web"]

    def test_prepare_failure_stops_build(self, staging):
        builder = CommandBuilder(
            [PY, "-c", "pass"],
            prepare_commands=[[PY, "-c", "raise SystemExit(1)"]],
            timeout_s=30,
        )

        result = builder.build(staging)

        assert not result.success
        assert result.targets == []

    def test_failed_target_reported(self, staging):
        builder = CommandBuilder([PY, "-c", "raise SystemExit(1)", "{target}"], timeout_s=30)

        result = builder.build(staging)

        assert not result.success
        assert "web build failed" in result.message


class TestCommandPublisher:
    def test_publish_records_live_reference(self, staging, temp_dir):
        publisher = CommandPublisher(
            [PY, "-c", "pass", "{project}"],
            [PY, "-c", "pass", "{reference}"],
            state_dir=temp_dir,
            timeout_s=30,
        )
        assert publisher.current_reference(staging) is None

        result = publisher.publish(staging, None)

        assert result.success
        assert result.url == "https://goral-app-staging.web.app"
        assert publisher.current_reference(staging) == result.reference
        assert (temp_dir / "published" / "staging.json").exists()

    def test_failed_publish_keeps_previous_reference(self, staging, temp_dir):
        ok = CommandPublisher([PY, "-c", "pass"], [PY, "-c", "pass"], temp_dir, 30)
        first = ok.publish(staging, None)
        failing = CommandPublisher([PY, "-c", "raise SystemExit(1)"], [PY, "-c", "pass"], temp_dir, 30)

        result = failing.publish(staging, None)

        assert not result.success
        assert failing.current_reference(staging) == first.reference

    def test_restore_records_reference(self, staging, temp_dir):
        publisher = CommandPublisher([PY, "-c", "pass"], [PY, "-c", "pass"], temp_dir, 30)

        result = publisher.restore(staging, "20260101120000")

        assert result.success
        assert publisher.current_reference(staging) == "20260101120000"


class TestQualityAdapters:
    def test_analyzer_failure_counts_issues(self):
        analyzer = CommandAnalyzer(
            [PY, "-c", "print('2 issues found.'); raise SystemExit(1)"],
            timeout_s=30,
        )

        result = analyzer.analyze()

        assert not result.passed
        assert result.issue_count == 2

    def test_test_runner_counts_tests(self):
        script = (
            "import json\n"
            "for i in range(3):\n"
            "    print(json.dumps({'type': 'testDone', 'hidden': False}))\n"
        )
        runner = CommandTestRunner([PY, "-c", script], timeout_s=30)

        result = runner.run_tests()

        assert result.passed
        assert result.executed == 3
