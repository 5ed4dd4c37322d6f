"""Deployment pipeline with gates, per-environment locking and rollback.

Example usage:

    from vigil.config import load_config_model
    from vigil.deployment import DeploymentOrchestrator

    orchestrator = DeploymentOrchestrator.from_config(load_config_model())
    status = orchestrator.run("staging", "deploy")
"""

from .locks import EnvironmentLock
from .models import DeployAction, DeploymentAttempt, ExitStatus, FinalStatus
from .orchestrator import DeploymentOrchestrator
from .report import git_commit, render_deployment_report, write_deployment_report
from .rollback import RollbackManager, RollbackOutcome, RollbackSnapshot
from .verify import HttpVerifier, VerificationResult

__all__ = [
    "DeployAction",
    "DeploymentAttempt",
    "DeploymentOrchestrator",
    "EnvironmentLock",
    "ExitStatus",
    "FinalStatus",
    "HttpVerifier",
    "RollbackManager",
    "RollbackOutcome",
    "RollbackSnapshot",
    "VerificationResult",
    "git_commit",
    "render_deployment_report",
    "write_deployment_report",
]
