"""Exceptions for vigil.

Everything vigil raises on purpose inherits from ``VigilError`` so the CLI
layer can map the whole family to a non-zero exit with a single ``except``.
Probe and metric failures are normally absorbed into a ``GateResult`` or a
``HealthStatus`` and only surface as exceptions inside the probe layer.
"""

from __future__ import annotations

from typing import Any


class VigilError(Exception):
    """Base exception for all vigil errors."""

    def __init__(self, message: str = "", details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = details or {}


class ConfigurationError(VigilError):
    """Raised for usage or configuration problems detected before any side effect."""


class UnknownEnvironmentError(ConfigurationError):
    """Raised when an environment name is not one of the supported set."""

    def __init__(self, name: str, valid: list[str]) -> None:
        super().__init__(
            f"Invalid environment: {name}. Valid options: {' '.join(valid)}",
            {"environment": name, "valid": valid},
        )
        self.name = name
        self.valid = valid


class MissingCollaboratorError(ConfigurationError):
    """Raised when an external tool the pipeline depends on is unavailable."""

    def __init__(self, collaborator: str, executable: str) -> None:
        super().__init__(
            f"{collaborator} not available: '{executable}' was not found on PATH",
            {"collaborator": collaborator, "executable": executable},
        )
        self.collaborator = collaborator
        self.executable = executable


class DeploymentInProgressError(VigilError):
    """Raised when another deployment holds the lock for the same environment."""

    def __init__(self, environment: str, lock_path: str = "") -> None:
        super().__init__(
            f"Deployment in progress for {environment}",
            {"environment": environment, "lock_path": lock_path},
        )
        self.environment = environment


class InstanceAlreadyRunningError(VigilError):
    """Raised when a second watchdog is started for the same subject."""

    def __init__(self, pid: int, marker: str) -> None:
        super().__init__(
            f"Watchdog already running (pid {pid}, marker {marker})",
            {"pid": pid, "marker": marker},
        )
        self.pid = pid


class AttemptFinalizedError(VigilError):
    """Raised when a finished deployment attempt is modified."""


class ProbeError(VigilError):
    """Raised by a probe that could not produce a measurement."""


class ProbeTimeoutError(ProbeError):
    """Raised by a probe whose bounded wait expired."""
