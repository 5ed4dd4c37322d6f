"""Single-level rollback.

Before each publish the currently live reference is stored as a snapshot.
A restore re-publishes that reference and deletes the snapshot; there is no
redo stack.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from vigil.collaborators import Publisher
from vigil.environments import EnvironmentTarget
from vigil.logging_config import get_logger

logger = get_logger(__name__)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class RollbackSnapshot:
    environment: str
    prior_reference: str
    captured_at: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RollbackSnapshot":
        return cls(
            environment=str(data["environment"]),
            prior_reference=str(data["prior_reference"]),
            captured_at=str(data.get("captured_at", "")),
        )


@dataclass
class RollbackOutcome:
    success: bool
    environment: str
    reference: Optional[str] = None
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class RollbackManager:
    """Stores one snapshot per environment under ``<state_dir>/snapshots``."""

    def __init__(self, publisher: Publisher, state_dir: Path):
        self.publisher = publisher
        self.snapshot_dir = state_dir / "snapshots"

    def snapshot_path(self, environment: str) -> Path:
        return self.snapshot_dir / f"{environment}.json"

    def load(self, environment: str) -> Optional[RollbackSnapshot]:
        path = self.snapshot_path(environment)
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                return RollbackSnapshot.from_dict(json.load(f))
        except (OSError, ValueError, KeyError) as e:
            logger.warning(f"Ignoring unreadable rollback snapshot {path}: {e}")
            return None

    def capture(self, target: EnvironmentTarget) -> Optional[RollbackSnapshot]:
        """Record the live reference; None when nothing is live yet."""
        environment = target.environment.value
        reference = self.publisher.current_reference(target)
        if not reference:
            logger.info(f"No live deployment on {environment}, nothing to snapshot")
            return None

        snapshot = RollbackSnapshot(environment=environment, prior_reference=reference)
        self.snapshot_dir.mkdir(parents=True, exist_ok=True)
        with open(self.snapshot_path(environment), "w", encoding="utf-8") as f:
            json.dump(snapshot.to_dict(), f, indent=2)
        logger.info(f"Captured rollback snapshot {reference} for {environment}")
        return snapshot

    def restore(self, target: EnvironmentTarget) -> RollbackOutcome:
        """Re-publish the snapshot's reference.

        A missing snapshot is a failed outcome and the publisher is not
        called. The snapshot survives a failed restore so it can be retried.
        """
        environment = target.environment.value
        snapshot = self.load(environment)
        if snapshot is None:
            logger.error(f"No rollback snapshot for {environment}")
            return RollbackOutcome(False, environment, message="no rollback snapshot")

        logger.warning(f"Rolling back {environment} to {snapshot.prior_reference}...")
        try:
            result = self.publisher.restore(target, snapshot.prior_reference)
        except Exception as e:
            logger.error(f"Rollback of {environment} failed: {e}", exc_info=True)
            return RollbackOutcome(False, environment, snapshot.prior_reference, str(e))

        if not result.success:
            logger.error(f"Rollback of {environment} failed: {result.message}")
            return RollbackOutcome(False, environment, snapshot.prior_reference, result.message)

        self.snapshot_path(environment).unlink(missing_ok=True)
        logger.info("Rollback completed. Please verify the application.")
        return RollbackOutcome(True, environment, snapshot.prior_reference, result.message)
