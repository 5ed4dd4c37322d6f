"""Per-environment deployment lock."""

from __future__ import annotations

import fcntl
import os
from pathlib import Path
from typing import IO, Optional

from vigil.errors import DeploymentInProgressError
from vigil.logging_config import get_logger

logger = get_logger(__name__)


def lock_path(state_dir: Path, environment: str) -> Path:
    return state_dir / "locks" / f"deploy-{environment}.lock"


class EnvironmentLock:
    """Exclusive, non-blocking ``flock`` held for a whole pipeline run.

    The kernel drops the lock when the holder exits, so a crashed run never
    leaves the environment locked.
    """

    def __init__(self, state_dir: Path, environment: str):
        self.environment = environment
        self.path = lock_path(state_dir, environment)
        self._handle: Optional[IO[str]] = None

    @property
    def held(self) -> bool:
        return self._handle is not None

    def acquire(self) -> None:
        """Take the lock or fail immediately.

        Raises:
            DeploymentInProgressError: If another run holds it
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        handle = open(self.path, "a+", encoding="utf-8")
        try:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            handle.close()
            raise DeploymentInProgressError(self.environment, str(self.path)) from None

        handle.seek(0)
        handle.truncate()
        handle.write(f"{os.getpid()}\n")
        handle.flush()
        self._handle = handle
        logger.debug(f"Acquired deployment lock {self.path}")

    def release(self) -> None:
        if self._handle is None:
            return
        try:
            fcntl.flock(self._handle.fileno(), fcntl.LOCK_UN)
        finally:
            self._handle.close()
            self._handle = None

    def __enter__(self) -> "EnvironmentLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()
