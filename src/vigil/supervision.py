"""Bounded subprocess execution and supervision.

``run_command`` runs a short-lived external tool with a hard timeout.
``SupervisedProcess`` owns a long-lived child (e.g. the app launched for a
launch-time measurement) and guarantees it is terminated when the scope
exits, whatever happened inside.
"""

from __future__ import annotations

import shutil
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from .errors import ProbeError, ProbeTimeoutError
from .logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class CommandResult:
    """Outcome of a bounded external command."""

    command: list[str]
    success: bool
    returncode: int | None = None
    stdout: str = ""
    stderr: str = ""
    error: str | None = None
    timed_out: bool = False
    duration_s: float = 0.0


def executable_available(command: Sequence[str]) -> bool:
    """True if the command's executable can be resolved."""
    if not command:
        return False
    exe = command[0]
    return Path(exe).is_file() or shutil.which(exe) is not None


def render_command(template: Sequence[str], values: dict[str, str]) -> list[str]:
    """Fill ``{placeholder}`` fields of a command template."""
    return [part.format(**values) for part in template]


def run_command(
    command: Sequence[str],
    timeout_s: float,
    cwd: Path | None = None,
) -> CommandResult:
    """Run ``command`` and wait at most ``timeout_s`` seconds.

    Never raises for the usual failure modes (missing executable, non-zero
    exit, timeout); they are reported on the result instead.
    """
    cmd = [str(part) for part in command]
    start = time.monotonic()
    try:
        completed = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout_s,
            cwd=str(cwd) if cwd else None,
        )
    except FileNotFoundError:
        return CommandResult(
            command=cmd,
            success=False,
            error=f"command not found: {cmd[0] if cmd else ''}",
            duration_s=time.monotonic() - start,
        )
    except subprocess.TimeoutExpired as exc:
        stdout = exc.stdout.decode(errors="replace") if isinstance(exc.stdout, bytes) else (exc.stdout or "")
        return CommandResult(
            command=cmd,
            success=False,
            stdout=stdout,
            error=f"timed out after {timeout_s:.0f}s",
            timed_out=True,
            duration_s=time.monotonic() - start,
        )

    duration = time.monotonic() - start
    result = CommandResult(
        command=cmd,
        success=completed.returncode == 0,
        returncode=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
        duration_s=duration,
    )
    if not result.success:
        result.error = result.stderr.strip() or f"exit code {completed.returncode}"
    logger.debug(f"{' '.join(cmd)} -> {completed.returncode} in {duration:.2f}s")
    return result


class SupervisedProcess:
    """Context manager that launches a child process and always reaps it.

    Usage:
        with SupervisedProcess(["flutter", "run", "--profile"]) as proc:
            proc.wait_until(lambda: ready(), timeout_s=30)
    """

    def __init__(
        self,
        command: Sequence[str],
        cwd: Path | None = None,
        terminate_grace_s: float = 5.0,
    ):
        self.command = [str(part) for part in command]
        self.cwd = cwd
        self.terminate_grace_s = terminate_grace_s
        self.process: subprocess.Popen | None = None
        self.started_at: float | None = None

    def __enter__(self) -> "SupervisedProcess":
        try:
            self.process = subprocess.Popen(
                self.command,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                cwd=str(self.cwd) if self.cwd else None,
            )
        except FileNotFoundError as exc:
            raise ProbeError(f"command not found: {self.command[0]}") from exc
        self.started_at = time.monotonic()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.terminate()

    @property
    def running(self) -> bool:
        return self.process is not None and self.process.poll() is None

    def elapsed_s(self) -> float:
        if self.started_at is None:
            return 0.0
        return time.monotonic() - self.started_at

    def wait_until(self, condition, timeout_s: float, poll_s: float = 0.1) -> float:
        """Poll ``condition`` until it is true; return seconds since launch.

        Raises:
            ProbeError: If the child exits before the condition holds
            ProbeTimeoutError: If the condition does not hold within ``timeout_s``
        """
        deadline = time.monotonic() + timeout_s
        while time.monotonic() < deadline:
            if condition():
                return self.elapsed_s()
            if not self.running:
                code = self.process.returncode if self.process else None
                raise ProbeError(f"process exited early with code {code}")
            time.sleep(poll_s)
        raise ProbeTimeoutError(f"not ready within {timeout_s:.0f}s")

    def terminate(self) -> None:
        """Terminate the child, escalating to kill after the grace period."""
        if self.process is None or self.process.poll() is not None:
            return
        self.process.terminate()
        try:
            self.process.wait(timeout=self.terminate_grace_s)
        except subprocess.TimeoutExpired:
            logger.warning(f"Process {self.process.pid} ignored SIGTERM, killing")
            self.process.kill()
            self.process.wait()
