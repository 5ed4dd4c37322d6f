"""Deployment attempt and status types."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any, Optional

from vigil.collaborators import BuildResult, PublishResult
from vigil.errors import AttemptFinalizedError
from vigil.gates.models import GateResult

from .verify import VerificationResult


class DeployAction(str, Enum):
    DEPLOY = "deploy"
    CHECK = "check"
    BUILD = "build"
    ROLLBACK = "rollback"

    @classmethod
    def names(cls) -> list[str]:
        return [action.value for action in cls]


class FinalStatus(str, Enum):
    SUCCEEDED = "succeeded"
    ABORTED_AT_GATE = "aborted_at_gate"
    FAILED_BUILD = "failed_build"
    FAILED_PUBLISH = "failed_publish"
    FAILED_VERIFICATION = "failed_verification"


class ExitStatus(IntEnum):
    """Process exit codes of the deployment commands."""

    SUCCEEDED = 0
    FAILURE = 1
    USAGE_ERROR = 2
    ABORTED_AT_GATE = 3
    FAILED_BUILD = 4
    FAILED_PUBLISH = 5
    FAILED_VERIFICATION = 6
    DEPLOYMENT_IN_PROGRESS = 7
    ROLLBACK_FAILED = 8

    @classmethod
    def from_final_status(cls, status: FinalStatus) -> "ExitStatus":
        return _EXIT_BY_STATUS[status]


_EXIT_BY_STATUS = {
    FinalStatus.SUCCEEDED: ExitStatus.SUCCEEDED,
    FinalStatus.ABORTED_AT_GATE: ExitStatus.ABORTED_AT_GATE,
    FinalStatus.FAILED_BUILD: ExitStatus.FAILED_BUILD,
    FinalStatus.FAILED_PUBLISH: ExitStatus.FAILED_PUBLISH,
    FinalStatus.FAILED_VERIFICATION: ExitStatus.FAILED_VERIFICATION,
}


@dataclass
class DeploymentAttempt:
    """One pipeline run for one environment.

    Mutable until ``finalize`` sets the final status; afterwards every
    assignment raises ``AttemptFinalizedError``.
    """

    environment: str
    action: DeployAction = DeployAction.DEPLOY
    started_at: datetime = field(default_factory=datetime.now)
    gate_results: list[GateResult] = field(default_factory=list)
    build_outcome: Optional[BuildResult] = None
    publish_outcome: Optional[PublishResult] = None
    verification_outcome: Optional[VerificationResult] = None
    warnings: list[str] = field(default_factory=list)
    finished_at: Optional[datetime] = None
    final_status: Optional[FinalStatus] = None

    def __setattr__(self, name: str, value: Any) -> None:
        if getattr(self, "final_status", None) is not None:
            raise AttemptFinalizedError(
                f"Deployment attempt for {self.environment} is already {self.final_status.value}"
            )
        super().__setattr__(name, value)

    @property
    def finalized(self) -> bool:
        return self.final_status is not None

    def add_gate_result(self, result: GateResult) -> None:
        self._ensure_open()
        self.gate_results.append(result)

    def warn(self, message: str) -> None:
        self._ensure_open()
        self.warnings.append(message)

    def gate(self, gate_name: str) -> Optional[GateResult]:
        for result in self.gate_results:
            if result.gate_name == gate_name:
                return result
        return None

    def finalize(self, status: FinalStatus) -> FinalStatus:
        """Set the final status; the attempt is read-only afterwards."""
        self._ensure_open()
        object.__setattr__(self, "gate_results", tuple(self.gate_results))
        object.__setattr__(self, "warnings", tuple(self.warnings))
        self.finished_at = datetime.now()
        self.final_status = status
        return status

    def _ensure_open(self) -> None:
        if self.finalized:
            raise AttemptFinalizedError(
                f"Deployment attempt for {self.environment} is already {self.final_status.value}"
            )

    @property
    def exit_status(self) -> ExitStatus:
        if self.final_status is None:
            return ExitStatus.FAILURE
        return ExitStatus.from_final_status(self.final_status)

    def to_dict(self) -> dict[str, Any]:
        return {
            "environment": self.environment,
            "action": self.action.value,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "final_status": self.final_status.value if self.final_status else None,
            "gate_results": [result.to_dict() for result in self.gate_results],
            "build_outcome": self.build_outcome.to_dict() if self.build_outcome else None,
            "publish_outcome": self.publish_outcome.to_dict() if self.publish_outcome else None,
            "verification_outcome": (
                self.verification_outcome.to_dict() if self.verification_outcome else None
            ),
            "warnings": list(self.warnings),
        }
