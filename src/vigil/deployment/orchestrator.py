"""Deployment pipeline.

``deploy`` runs, strictly in order and stopping at the first failure:

1. environment validation (before any side effect)
2. quality gate: a failure aborts, nothing is built or published
3. performance gate: warning or abort, depending on ``performance_policy``
4. build
5. rollback snapshot, then publish
6. reachability check of the published URL (no automatic rollback)
7. report, written whatever the outcome

``check`` runs steps 2-3, ``build`` step 4 and ``rollback`` restores the last
snapshot. ``deploy`` and ``rollback`` hold the environment's lock throughout.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

from vigil.collaborators import (
    Builder,
    CommandAnalyzer,
    CommandBuilder,
    CommandPublisher,
    CommandTestRunner,
    PublishResult,
    Publisher,
)
from vigil.environments import EnvironmentTarget, resolve_target
from vigil.errors import ConfigurationError
from vigil.gates import PerformanceGate, QualityGate, ThresholdRegistry
from vigil.gates.probes import build_probes
from vigil.logging_config import LogContext, get_logger
from vigil.notifications import EventType, NotificationLevel, NotificationManager
from vigil.schema import DeployConfig, PerformancePolicy, VigilConfig

from .locks import EnvironmentLock
from .models import DeployAction, DeploymentAttempt, ExitStatus, FinalStatus
from .report import git_commit, write_deployment_report
from .rollback import RollbackManager
from .verify import HttpVerifier, VerificationResult

logger = get_logger(__name__)

Verifier = Callable[[str], VerificationResult]


class DeploymentOrchestrator:
    """Drive gates, build, publish, verification and rollback for one environment."""

    def __init__(
        self,
        config: DeployConfig,
        builder: Builder,
        publisher: Publisher,
        quality_gate: QualityGate,
        performance_gate: Optional[PerformanceGate],
        verifier: Verifier,
        state_dir: Path,
        reports_dir: Path,
        notifications: Optional[NotificationManager] = None,
        commit_resolver: Callable[[], str] = git_commit,
        performance_skip_reason: str = "",
    ):
        """Initialize the orchestrator.

        Args:
            config: Deployment settings (environment table, performance policy)
            builder: Build collaborator
            publisher: Publish/restore collaborator
            quality_gate: Static analysis and tests
            performance_gate: Metric thresholds (None = not configured, skipped)
            verifier: Reachability check of a published URL
            state_dir: Locks and rollback snapshots live here
            reports_dir: Deployment reports are written here
            notifications: Operator alerts (None = log only)
            commit_resolver: Returns the commit recorded in reports
            performance_skip_reason: Why ``performance_gate`` is None
        """
        self.config = config
        self.builder = builder
        self.publisher = publisher
        self.quality_gate = quality_gate
        self.performance_gate = performance_gate
        self.verifier = verifier
        self.state_dir = state_dir
        self.reports_dir = reports_dir
        self.notifications = notifications
        self.commit_resolver = commit_resolver
        self.performance_skip_reason = performance_skip_reason
        self.rollback_manager = RollbackManager(publisher, state_dir)
        self.last_attempt: Optional[DeploymentAttempt] = None
        self.last_report: Optional[tuple[Path, Path]] = None

    @classmethod
    def from_config(
        cls,
        config: VigilConfig,
        notifications: Optional[NotificationManager] = None,
    ) -> "DeploymentOrchestrator":
        """Wire the command-line collaborators described by ``config``.

        An unbuildable performance gate is recorded as a skip reason;
        ``validate`` rejects it for gated actions under ``enforce``.
        """
        deploy = config.deploy
        quality = config.quality
        performance = config.performance
        state_dir = config.general.state_dir

        performance_gate = None
        skip_reason = ""
        try:
            registry = ThresholdRegistry.from_config(performance)
            performance_gate = PerformanceGate(
                registry,
                build_probes(performance, registry.names()),
                probe_timeout_s=performance.probe_timeout_s,
                metrics_dir=config.general.metrics_dir,
            )
        except ConfigurationError as e:
            skip_reason = str(e)

        return cls(
            config=deploy,
            builder=CommandBuilder(
                deploy.build_command,
                deploy.prepare_commands,
                deploy.artifact_dir,
                deploy.command_timeout_s,
            ),
            publisher=CommandPublisher(
                deploy.publish_command,
                deploy.restore_command,
                state_dir,
                deploy.command_timeout_s,
            ),
            quality_gate=QualityGate(
                CommandAnalyzer(quality.analyze_command, quality.timeout_s),
                CommandTestRunner(quality.test_command, quality.timeout_s),
            ),
            performance_gate=performance_gate,
            verifier=HttpVerifier(deploy.verify_timeout_s),
            state_dir=state_dir,
            reports_dir=config.general.reports_dir,
            notifications=notifications,
            performance_skip_reason=skip_reason,
        )

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def run(self, environment: str, action: str | DeployAction = DeployAction.DEPLOY) -> ExitStatus:
        """Run one action against one environment.

        Raises:
            UnknownEnvironmentError: Unknown environment name (nothing was done)
            ConfigurationError: Unknown action (nothing was done)
            MissingCollaboratorError: A required tool is not installed
            DeploymentInProgressError: Another deploy/rollback holds the lock
        """
        action = self._parse_action(action)
        target = resolve_target(environment, self.config)
        self.validate(action)

        with LogContext(environment=target.environment.value, action=action.value):
            if action == DeployAction.CHECK:
                return self.check(target)
            if action == DeployAction.BUILD:
                return self.build(target)

            with EnvironmentLock(self.state_dir, target.environment.value):
                if action == DeployAction.ROLLBACK:
                    return self.rollback(target)
                return self.deploy(target).exit_status

    @staticmethod
    def _parse_action(action: str | DeployAction) -> DeployAction:
        try:
            return DeployAction(action)
        except ValueError:
            raise ConfigurationError(
                f"Unknown action: {action}. Valid options: {' '.join(DeployAction.names())}",
                {"action": str(action)},
            ) from None

    def validate(self, action: DeployAction) -> None:
        """Check that every collaborator ``action`` needs is installed.

        Collaborators without a ``validate`` method are assumed available.

        Raises:
            ConfigurationError: If ``action`` runs the performance gate under
                the ``enforce`` policy and the gate is not configured
            MissingCollaboratorError: If a required tool is not installed
        """
        gated = action in (DeployAction.DEPLOY, DeployAction.CHECK)
        if (
            gated
            and self.performance_gate is None
            and self.config.performance_policy == PerformancePolicy.ENFORCE
        ):
            raise ConfigurationError(
                f"Performance gate required by the enforce policy: {self.performance_skip_reason}",
                {"action": action.value},
            )

        needed: list[object] = []
        if gated:
            needed += [self.quality_gate.analyzer, self.quality_gate.test_runner]
        if action in (DeployAction.DEPLOY, DeployAction.BUILD):
            needed.append(self.builder)
        if action in (DeployAction.DEPLOY, DeployAction.ROLLBACK):
            needed.append(self.publisher)
        for collaborator in needed:
            validate = getattr(collaborator, "validate", None)
            if callable(validate):
                validate()

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def deploy(self, target: EnvironmentTarget) -> DeploymentAttempt:
        """Full pipeline; the caller holds the environment lock."""
        env = target.environment.value
        logger.info(f"Starting deployment process for {env} environment...")
        attempt = DeploymentAttempt(environment=env)
        self.last_attempt = attempt

        try:
            status = self._run_pipeline(attempt, target)
        except Exception as e:
            logger.error(f"Deployment pipeline error: {e}", exc_info=True)
            attempt.warn(f"Pipeline error: {e}")
            status = self._status_after_error(attempt)
        attempt.finalize(status)

        try:
            self.last_report = write_deployment_report(
                attempt, target, self.reports_dir, commit=self.commit_resolver()
            )
        except OSError as e:
            logger.error(f"Could not write deployment report: {e}", exc_info=True)

        if status == FinalStatus.SUCCEEDED:
            logger.info(f"Deployment completed successfully! URL: {target.base_url}")
            self._notify(
                "Deployment succeeded",
                f"{env} is live at {target.base_url}",
                EventType.DEPLOYMENT_SUCCEEDED,
                NotificationLevel.SUCCESS,
                environment=env,
            )
        else:
            logger.error(f"Deployment of {env} ended with status {status.value}")
            self._notify(
                "Deployment failed",
                f"{env}: {status.value}",
                EventType.DEPLOYMENT_FAILED,
                NotificationLevel.ERROR,
                environment=env,
                error_details=self._failure_detail(attempt),
            )
        return attempt

    def check(self, target: EnvironmentTarget) -> ExitStatus:
        """Quality and performance gates only."""
        logger.info(f"Running pre-deployment checks for {target.environment.value}...")
        quality = self.quality_gate.evaluate()
        logger.info(quality.summary_string())
        if not quality.passed:
            return ExitStatus.ABORTED_AT_GATE

        if self.performance_gate is None:
            logger.warning(f"Performance gate skipped: {self.performance_skip_reason}")
            return ExitStatus.SUCCEEDED
        performance = self.performance_gate.evaluate()
        logger.info(performance.summary_string())
        if not performance.passed:
            if self.config.performance_policy == PerformancePolicy.ENFORCE:
                return ExitStatus.ABORTED_AT_GATE
            logger.warning("Performance benchmarks failed. Review before deployment.")
        logger.info("Pre-deployment checks completed")
        return ExitStatus.SUCCEEDED

    def build(self, target: EnvironmentTarget) -> ExitStatus:
        """Build only, independent of the gates."""
        logger.info(f"Building application for {target.environment.value}...")
        try:
            result = self.builder.build(target)
        except Exception as e:
            logger.error(f"Build failed: {e}", exc_info=True)
            return ExitStatus.FAILED_BUILD
        if not result.success:
            logger.error(f"Build failed: {result.message}")
            return ExitStatus.FAILED_BUILD
        logger.info(f"Build completed: {result.message}")
        return ExitStatus.SUCCEEDED

    def rollback(self, target: EnvironmentTarget) -> ExitStatus:
        """Restore the last snapshot; the caller holds the environment lock."""
        env = target.environment.value
        outcome = self.rollback_manager.restore(target)
        if outcome.success:
            self._notify(
                "Rollback completed",
                f"{env} restored to {outcome.reference}",
                EventType.ROLLBACK_COMPLETED,
                NotificationLevel.WARNING,
                environment=env,
            )
            return ExitStatus.SUCCEEDED
        self._notify(
            "Rollback failed",
            f"{env}: {outcome.message}",
            EventType.ROLLBACK_FAILED,
            NotificationLevel.ERROR,
            environment=env,
        )
        return ExitStatus.ROLLBACK_FAILED

    # ------------------------------------------------------------------
    # Pipeline steps
    # ------------------------------------------------------------------

    def _run_pipeline(self, attempt: DeploymentAttempt, target: EnvironmentTarget) -> FinalStatus:
        if not self._quality_gate(attempt):
            return FinalStatus.ABORTED_AT_GATE
        if not self._performance_gate(attempt):
            return FinalStatus.ABORTED_AT_GATE

        logger.info(f"Building application for {attempt.environment}...")
        try:
            attempt.build_outcome = self.builder.build(target)
        except Exception as e:
            logger.error(f"Build failed: {e}", exc_info=True)
            return FinalStatus.FAILED_BUILD
        if not attempt.build_outcome.success:
            logger.error(f"Build failed: {attempt.build_outcome.message}")
            return FinalStatus.FAILED_BUILD

        try:
            self.rollback_manager.capture(target)
        except Exception as e:
            logger.error(f"Could not capture rollback snapshot: {e}", exc_info=True)
            attempt.publish_outcome = PublishResult(
                success=False, message=f"rollback snapshot not captured: {e}"
            )
            return FinalStatus.FAILED_PUBLISH

        logger.info(f"Publishing to {target.project}...")
        try:
            attempt.publish_outcome = self.publisher.publish(target, attempt.build_outcome.artifact)
        except Exception as e:
            logger.error(f"Publish failed: {e}", exc_info=True)
            attempt.publish_outcome = PublishResult(success=False, message=str(e))
            return FinalStatus.FAILED_PUBLISH
        if not attempt.publish_outcome.success:
            logger.error(f"Publish failed: {attempt.publish_outcome.message}")
            return FinalStatus.FAILED_PUBLISH

        logger.info("Running post-deployment verification...")
        url = attempt.publish_outcome.url or target.base_url
        try:
            attempt.verification_outcome = self.verifier(url)
        except Exception as e:
            logger.error(f"Verification failed: {e}", exc_info=True)
            attempt.verification_outcome = VerificationResult(False, url, message=str(e))
        if not attempt.verification_outcome.reachable:
            logger.warning(
                f"Health check failed ({attempt.verification_outcome.message}). "
                "Manual verification required."
            )
            return FinalStatus.FAILED_VERIFICATION
        logger.info("Health check passed")
        return FinalStatus.SUCCEEDED

    def _quality_gate(self, attempt: DeploymentAttempt) -> bool:
        logger.info("Running pre-deployment checks...")
        result = self.quality_gate.evaluate()
        attempt.add_gate_result(result)
        logger.info(result.summary_string())
        if not result.passed:
            logger.error("Quality gate failed, deployment aborted")
        return result.passed

    def _performance_gate(self, attempt: DeploymentAttempt) -> bool:
        """False only when the gate fails under the ``enforce`` policy."""
        if self.performance_gate is None:
            attempt.warn(f"Performance gate skipped: {self.performance_skip_reason}")
            logger.warning(attempt.warnings[-1])
            return True

        result = self.performance_gate.evaluate()
        attempt.add_gate_result(result)
        logger.info(result.summary_string())
        if result.passed:
            return True

        failed = ", ".join(check.check_name for check in result.failed_checks())
        if self.config.performance_policy == PerformancePolicy.ENFORCE:
            logger.error(f"Performance gate failed ({failed}), deployment aborted")
            return False
        attempt.warn(f"Performance gate failed ({failed}); continuing under warn policy")
        logger.warning(attempt.warnings[-1])
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _status_after_error(attempt: DeploymentAttempt) -> FinalStatus:
        """Final status for a pipeline step that raised, by how far it got."""
        if attempt.build_outcome is None:
            return FinalStatus.ABORTED_AT_GATE
        if attempt.publish_outcome is None:
            return FinalStatus.FAILED_PUBLISH
        return FinalStatus.FAILED_VERIFICATION

    @staticmethod
    def _failure_detail(attempt: DeploymentAttempt) -> str:
        if attempt.final_status == FinalStatus.ABORTED_AT_GATE:
            for result in attempt.gate_results:
                if not result.passed:
                    failed = ", ".join(check.check_name for check in result.failed_checks())
                    return f"{result.gate_name}: {failed}"
        for outcome in (attempt.verification_outcome, attempt.publish_outcome, attempt.build_outcome):
            if outcome is not None and outcome.message:
                return outcome.message
        return attempt.warnings[-1] if attempt.warnings else ""

    def _notify(
        self,
        title: str,
        message: str,
        event_type: EventType,
        level: NotificationLevel,
        **kwargs,
    ) -> None:
        if self.notifications is None:
            return
        self.notifications.notify(title, message, event_type=event_type, level=level, **kwargs)
