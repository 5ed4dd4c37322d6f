"""Single-instance marker for the watchdog."""

from __future__ import annotations

import os
import signal
from pathlib import Path
from typing import Optional

import psutil

from vigil.errors import InstanceAlreadyRunningError
from vigil.logging_config import get_logger

logger = get_logger(__name__)

# Start times round-trip through the marker as text.
_START_TIME_TOLERANCE_S = 0.05


def process_start_time(pid: int) -> Optional[float]:
    """Creation time of ``pid``, or None if it does not exist or cannot be inspected."""
    try:
        return psutil.Process(pid).create_time()
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return None


class LivenessMarker:
    """PID file created atomically; a live PID blocks a second instance.

    The marker holds ``<pid> <create time>``. A process only counts as the
    recorded instance when both match, so a recycled PID reads as stale.

    Usage:
        with LivenessMarker(state_dir / "watchdog.pid"):
            monitor.run()
    """

    def __init__(self, path: Path):
        self.path = path
        self._owned = False

    def _read(self) -> tuple[Optional[int], Optional[float]]:
        try:
            fields = self.path.read_text(encoding="utf-8").split()
        except OSError:
            return None, None
        try:
            pid = int(fields[0])
        except (IndexError, ValueError):
            return None, None
        try:
            started = float(fields[1])
        except (IndexError, ValueError):
            started = None
        return pid, started

    def read_pid(self) -> Optional[int]:
        return self._read()[0]

    def running_pid(self) -> Optional[int]:
        """PID recorded in the marker if that very process is still alive."""
        pid, started = self._read()
        if pid is None or started is None:
            return None
        actual = process_start_time(pid)
        if actual is None or abs(actual - started) > _START_TIME_TOLERANCE_S:
            return None
        return pid

    def acquire(self) -> None:
        """Create the marker for the current process.

        Raises:
            InstanceAlreadyRunningError: If a live process holds the marker
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        pid = os.getpid()
        started = process_start_time(pid)
        for _ in range(2):
            try:
                fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
            except FileExistsError:
                holder = self.running_pid()
                if holder is not None:
                    raise InstanceAlreadyRunningError(holder, str(self.path))
                logger.info(f"Removing stale liveness marker {self.path}")
                self.path.unlink(missing_ok=True)
                continue
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(f"{pid} {started or 0.0:.6f}\n")
            self._owned = True
            return
        # Another instance recreated the marker between unlink and open.
        raise InstanceAlreadyRunningError(self.read_pid() or -1, str(self.path))

    def release(self) -> None:
        if self._owned and self.read_pid() == os.getpid():
            self.path.unlink(missing_ok=True)
        self._owned = False

    def signal_stop(self) -> bool:
        """Send SIGTERM to the recorded instance.

        Returns:
            False when no live instance is recorded
        """
        pid = self.running_pid()
        if pid is None:
            if self.path.exists():
                logger.info(f"Removing stale liveness marker {self.path}")
                self.path.unlink(missing_ok=True)
            return False
        try:
            os.kill(pid, signal.SIGTERM)
        except ProcessLookupError:
            self.path.unlink(missing_ok=True)
            return False
        return True

    def __enter__(self) -> "LivenessMarker":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()
