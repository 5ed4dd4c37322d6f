"""``vigil-deploy <environment> {deploy|rollback|check|build}``."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import click

from vigil.config import load_config_model
from vigil.environments import Environment
from vigil.errors import ConfigurationError, DeploymentInProgressError, VigilError
from vigil.logging_config import attach_audit_log, get_logger, setup_logging
from vigil.notifications import build_notification_manager

from .models import DeployAction, ExitStatus
from .orchestrator import DeploymentOrchestrator

logger = get_logger(__name__)

SUBSYSTEM = "deploy"


@click.command("vigil-deploy", help="Gate, build, publish and roll back deployments")
@click.argument(
    "environment",
    type=click.Choice(Environment.names(), case_sensitive=False),
)
@click.argument(
    "action",
    type=click.Choice(DeployAction.names()),
    default=DeployAction.DEPLOY.value,
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Config file (default: ./vigil.toml merged over the user config)",
)
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
@click.pass_context
def deploy_command(
    ctx: click.Context,
    environment: str,
    action: str,
    config_path: Optional[Path],
    verbose: bool,
) -> None:
    """Run ACTION against ENVIRONMENT and exit with its status.

    Example:
        vigil-deploy staging deploy
    """
    try:
        config = load_config_model(config_path)
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(int(ExitStatus.USAGE_ERROR))

    setup_logging(
        level=logging.DEBUG if verbose else logging.INFO,
        log_dir=config.general.log_dir,
    )
    attach_audit_log(SUBSYSTEM, config.general.log_dir)

    try:
        orchestrator = DeploymentOrchestrator.from_config(
            config, notifications=build_notification_manager(config.notifications)
        )
        status = orchestrator.run(environment, action)
    except ConfigurationError as e:
        logger.error(str(e))
        click.echo(f"Error: {e}", err=True)
        ctx.exit(int(ExitStatus.USAGE_ERROR))
    except DeploymentInProgressError as e:
        logger.error(str(e))
        click.echo(f"Error: {e}", err=True)
        ctx.exit(int(ExitStatus.DEPLOYMENT_IN_PROGRESS))
    except VigilError as e:
        logger.error(str(e), exc_info=True)
        click.echo(f"Error: {e}", err=True)
        ctx.exit(int(ExitStatus.FAILURE))

    if orchestrator.last_report:
        click.echo(f"Report: {orchestrator.last_report[0]}")
    click.echo(f"{environment} {action}: {status.name.lower()}")
    ctx.exit(int(status))


def main() -> None:
    deploy_command(prog_name="vigil-deploy")


if __name__ == "__main__":
    main()
