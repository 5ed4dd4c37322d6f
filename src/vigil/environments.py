"""Deployment environments.

Environment names are parsed once at the pipeline entry into the closed
``Environment`` enum; everything downstream receives an ``EnvironmentTarget``
resolved from the configured table.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .errors import UnknownEnvironmentError
from .schema import DeployConfig, EnvironmentConfig


class Environment(str, Enum):
    """Supported deployment environments."""

    DEV = "dev"
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def names(cls) -> list[str]:
        return [env.value for env in cls]

    @classmethod
    def parse(cls, value: "str | Environment") -> "Environment":
        if isinstance(value, Environment):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise UnknownEnvironmentError(str(value), cls.names()) from None


@dataclass(frozen=True)
class EnvironmentTarget:
    """Where an environment publishes to."""

    environment: Environment
    project: str
    base_url: str
    publish_target: str = "hosting"
    build_targets: tuple[str, ...] = field(default=("web",))

    @property
    def console_url(self) -> str:
        return f"https://console.firebase.google.com/project/{self.project}"

    def template_values(self) -> dict[str, str]:
        """Placeholders available to command templates."""
        return {
            "environment": self.environment.value,
            "project": self.project,
            "base_url": self.base_url,
            "publish_target": self.publish_target,
        }

    @classmethod
    def from_config(cls, environment: Environment, config: EnvironmentConfig) -> "EnvironmentTarget":
        return cls(
            environment=environment,
            project=config.project,
            base_url=config.base_url,
            publish_target=config.publish_target,
            build_targets=tuple(config.build_targets),
        )


def resolve_target(value: "str | Environment", config: DeployConfig) -> EnvironmentTarget:
    """Validate an environment name and resolve its publish target.

    Raises:
        UnknownEnvironmentError: If the name is not a supported environment
    """
    environment = Environment.parse(value)
    env_config = config.environments.get(environment.value)
    if env_config is None:
        raise UnknownEnvironmentError(environment.value, sorted(config.environments))
    return EnvironmentTarget.from_config(environment, env_config)
