from __future__ import annotations

import pytest

from vigil.environments import Environment, EnvironmentTarget, resolve_target
from vigil.errors import ConfigurationError, UnknownEnvironmentError
from vigil.schema import DeployConfig


class TestEnvironment:
    def test_parse_is_case_insensitive(self):
        assert Environment.parse("Staging") is Environment.STAGING
        assert Environment.parse(" production ") is Environment.PRODUCTION

    def test_parse_passes_enum_through(self):
        assert Environment.parse(Environment.DEV) is Environment.DEV

    def test_unknown_environment(self):
        with pytest.raises(UnknownEnvironmentError) as exc_info:
            Environment.parse("qa")

        assert "Invalid environment: qa" in str(exc_info.value)
        assert exc_info.value.valid == ["dev", "staging", "production"]

    def test_unknown_environment_is_a_configuration_error(self):
        with pytest.raises(ConfigurationError):
            Environment.parse("")


class TestResolveTarget:
    def test_default_table(self):
        target = resolve_target("production", DeployConfig())

        assert target.project == "goral-app-prod"
        assert target.base_url == "https://goral-app-prod.web.app"
        assert target.build_targets == ("web", "apk")
        assert target.console_url == "https://console.firebase.google.com/project/goral-app-prod"

    def test_template_values(self):
        target = resolve_target("dev", DeployConfig())

        assert target.template_values() == {
            "environment": "dev",
            "project": "goral-app-dev",
            "base_url": "https://goral-app-dev.web.app",
            "publish_target": "hosting",
        }

    def test_target_is_immutable(self):
        target = resolve_target("staging", DeployConfig())

        with pytest.raises(Exception):
            target.project = "other"  # type: ignore[misc]

    def test_environment_missing_from_table(self):
        config = DeployConfig()
        del config.environments["staging"]

        with pytest.raises(UnknownEnvironmentError):
            resolve_target("staging", config)


def test_targets_for_different_environments_are_independent():
    config = DeployConfig()
    dev = EnvironmentTarget.from_config(Environment.DEV, config.environments["dev"])
    staging = EnvironmentTarget.from_config(Environment.STAGING, config.environments["staging"])

    assert dev != staging
    assert dev.project != staging.project
