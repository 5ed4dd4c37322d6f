from __future__ import annotations

import sys
import time

import pytest

from vigil.errors import ProbeError, ProbeTimeoutError
from vigil.supervision import (
    SupervisedProcess,
    executable_available,
    render_command,
    run_command,
)

PY = sys.executable


class TestRunCommand:
    def test_success_captures_output(self):
        result = run_command([PY, "-c", "print('hello')"], timeout_s=30)

        assert result.success
        assert result.returncode == 0
        assert result.stdout.strip() == "hello"
        assert result.error is None

    def test_non_zero_exit(self):
        result = run_command(
            [PY, "-c", "import sys; sys.stderr.write('boom'); sys.exit(3)"],
            timeout_s=30,
        )

        assert not result.success
        assert result.returncode == 3
        assert result.error == "boom"

    def test_missing_executable_does_not_raise(self):
        result = run_command(["definitely-not-a-real-tool-xyz"], timeout_s=5)

        assert not result.success
        assert "command not found" in result.error

    def test_timeout_is_reported(self):
        result = run_command([PY, "-c", "import time; time.sleep(10)"], timeout_s=0.5)

        assert not result.success
        assert result.timed_out
        assert result.duration_s < 5


def test_render_command_fills_placeholders():
    command = render_command(
        ["firebase", "deploy", "--only", "{publish_target}", "--project", "{project}"],
        {"publish_target": "hosting", "project": "goral-app-dev"},
    )

    assert command == ["firebase", "deploy", "--only", "hosting", "--project", "goral-app-dev"]


def test_executable_available():
    assert executable_available([PY])
    assert not executable_available(["definitely-not-a-real-tool-xyz"])
    assert not executable_available([])


class TestSupervisedProcess:
    def test_child_terminated_on_exit(self):
        with SupervisedProcess([PY, "-c", "import time; time.sleep(30)"]) as proc:
            assert proc.running
        assert not proc.running
        assert proc.process.returncode is not None

    def test_child_terminated_when_body_raises(self):
        with pytest.raises(RuntimeError):
            with SupervisedProcess([PY, "-c", "import time; time.sleep(30)"]) as proc:
                raise RuntimeError("probe failed")
        assert not proc.running

    def test_wait_until_returns_elapsed(self):
        start = time.monotonic()
        with SupervisedProcess([PY, "-c", "import time; time.sleep(30)"]) as proc:
            elapsed = proc.wait_until(lambda: time.monotonic() - start > 0.2, timeout_s=5, poll_s=0.05)
        assert elapsed >= 0.1

    def test_wait_until_times_out(self):
        with SupervisedProcess([PY, "-c", "import time; time.sleep(30)"]) as proc:
            with pytest.raises(ProbeTimeoutError):
                proc.wait_until(lambda: False, timeout_s=0.3, poll_s=0.05)

    def test_early_exit_is_a_probe_error(self):
        with SupervisedProcess([PY, "-c", "raise SystemExit(2)"]) as proc:
            with pytest.raises(ProbeError, match="exited early"):
                proc.wait_until(lambda: False, timeout_s=10, poll_s=0.05)

    def test_missing_executable_is_a_probe_error(self):
        with pytest.raises(ProbeError, match="command not found"):
            with SupervisedProcess(["definitely-not-a-real-tool-xyz"]):
                pass
