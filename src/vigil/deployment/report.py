"""Deployment reports (markdown for people, JSON for tooling)."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from vigil.environments import EnvironmentTarget
from vigil.logging_config import get_logger
from vigil.supervision import run_command

from .models import DeploymentAttempt, FinalStatus

logger = get_logger(__name__)

_STATUS_LABELS = {
    FinalStatus.SUCCEEDED: "✅ Succeeded",
    FinalStatus.ABORTED_AT_GATE: "❌ Aborted at gate",
    FinalStatus.FAILED_BUILD: "❌ Build failed",
    FinalStatus.FAILED_PUBLISH: "❌ Publish failed",
    FinalStatus.FAILED_VERIFICATION: "⚠️ Verification failed",
}

NEXT_STEPS = {
    FinalStatus.SUCCEEDED: [
        "Monitor application performance",
        "Review logs for any issues",
        "Run smoke tests on deployed application",
    ],
    FinalStatus.ABORTED_AT_GATE: [
        "Fix the failing checks listed above",
        "Re-run the deployment",
    ],
    FinalStatus.FAILED_BUILD: [
        "Inspect the build output in the deploy log",
        "Re-run the deployment once the build is fixed",
    ],
    FinalStatus.FAILED_PUBLISH: [
        "The previous release is still live",
        "Check publishing credentials and quota, then re-run",
    ],
    FinalStatus.FAILED_VERIFICATION: [
        "Verify the deployed application manually",
        "Roll back with `vigil-deploy <environment> rollback` if it is broken",
    ],
}


def git_commit(cwd: Optional[Path] = None) -> str:
    """Current commit hash, or ``N/A`` outside a repository."""
    result = run_command(["git", "rev-parse", "HEAD"], timeout_s=10, cwd=cwd)
    commit = result.stdout.strip()
    return commit if result.success and commit else "N/A"


def _yes_no(success: bool) -> str:
    return "✅ Success" if success else "❌ Failed"


def render_deployment_report(
    attempt: DeploymentAttempt,
    target: EnvironmentTarget,
    commit: str = "N/A",
) -> str:
    status = attempt.final_status
    lines = [
        f"# Deployment Report - {attempt.started_at:%Y-%m-%d %H:%M:%S}",
        "",
        "## Environment",
        f"- Target: {attempt.environment}",
        f"- Started: {attempt.started_at.isoformat(timespec='seconds')}",
        f"- Finished: {attempt.finished_at.isoformat(timespec='seconds') if attempt.finished_at else 'N/A'}",
        f"- Git Commit: {commit}",
        f"- Final Status: {_STATUS_LABELS.get(status, 'N/A') if status else 'N/A'}",
        "",
    ]

    for gate in attempt.gate_results:
        lines.append(f"## {gate.gate_name.title()} Gate")
        lines.append(f"- Status: {'✅ PASS' if gate.passed else '❌ FAIL'}")
        for check in gate.checks:
            observed = "N/A" if check.observed_value is None else f"{check.observed_value:g}"
            mark = "✅" if check.passed else "❌"
            entry = f"- {mark} {check.check_name}: {observed}"
            if check.message:
                entry += f" ({check.message})"
            lines.append(entry)
        lines.append("")

    lines.append("## Build")
    if attempt.build_outcome:
        lines.append(f"- Build Status: {_yes_no(attempt.build_outcome.success)}")
        if attempt.build_outcome.targets:
            lines.append(f"- Targets: {', '.join(attempt.build_outcome.targets)}")
        if attempt.build_outcome.message:
            lines.append(f"- Detail: {attempt.build_outcome.message}")
    else:
        lines.append("- Not attempted")
    lines.append("")

    lines.append("## Publish")
    if attempt.publish_outcome:
        lines.append(f"- Publish Status: {_yes_no(attempt.publish_outcome.success)}")
        if attempt.publish_outcome.reference:
            lines.append(f"- Release: {attempt.publish_outcome.reference}")
        if attempt.publish_outcome.message:
            lines.append(f"- Detail: {attempt.publish_outcome.message}")
    else:
        lines.append("- Not attempted")
    lines.append("")

    lines.append("## Verification")
    if attempt.verification_outcome:
        outcome = attempt.verification_outcome
        lines.append(f"- Reachable: {'✅ Yes' if outcome.reachable else '❌ No'}")
        if outcome.status_code is not None:
            lines.append(f"- HTTP Status: {outcome.status_code}")
        if outcome.message:
            lines.append(f"- Detail: {outcome.message}")
    else:
        lines.append("- Not attempted")
    lines.append("")

    if attempt.warnings:
        lines.append("## Warnings")
        lines.extend(f"- {warning}" for warning in attempt.warnings)
        lines.append("")

    lines.extend([
        "## Deployment URLs",
        f"- Web App: {target.base_url}",
        f"- Console: {target.console_url}",
        "",
        "## Next Steps",
    ])
    lines.extend(f"- {step}" for step in NEXT_STEPS.get(status, []))
    lines.append("")
    return "\n".join(lines)


def write_deployment_report(
    attempt: DeploymentAttempt,
    target: EnvironmentTarget,
    reports_dir: Path,
    commit: Optional[str] = None,
) -> tuple[Path, Path]:
    """Write ``deployment_<env>_<timestamp>.md`` and its JSON twin.

    Returns:
        (markdown path, json path)
    """
    commit = commit if commit is not None else git_commit()
    reports_dir.mkdir(parents=True, exist_ok=True)
    stem = f"deployment_{attempt.environment}_{attempt.started_at:%Y%m%d_%H%M%S}"
    md_path = reports_dir / f"{stem}.md"
    json_path = reports_dir / f"{stem}.json"

    md_path.write_text(render_deployment_report(attempt, target, commit), encoding="utf-8")
    data = attempt.to_dict()
    data.update({
        "git_commit": commit,
        "deployment_url": target.base_url,
        "console_url": target.console_url,
    })
    with open(json_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)

    logger.info(f"Deployment report generated: {md_path}")
    return md_path, json_path
