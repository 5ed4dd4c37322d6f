"""Configuration schema for vigil."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from .errors import ConfigurationError


def _as_path(value: str | Path) -> Path:
    return value if isinstance(value, Path) else Path(value).expanduser()


def _optional_path(value: Any) -> Path | None:
    if value in (None, ""):
        return None
    return _as_path(value)


def _as_command(value: Any, default: list[str]) -> list[str]:
    if isinstance(value, str):
        return value.split()
    if isinstance(value, list):
        return [str(part) for part in value]
    return list(default)


def _as_float(value: Any, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def default_thresholds() -> dict[str, float]:
    return {
        "launch_time": 2000.0,
        "memory_usage": 100.0,
        "api_response": 300.0,
    }


def default_threshold_units() -> dict[str, str]:
    return {
        "launch_time": "ms",
        "memory_usage": "MB",
        "api_response": "ms",
    }


class PerformancePolicy(str, Enum):
    """Whether a failed performance gate blocks a deployment."""

    WARN = "warn"
    ENFORCE = "enforce"


@dataclass
class GeneralConfig:
    log_dir: Path = field(default_factory=lambda: Path("logs"))
    state_dir: Path = field(default_factory=lambda: Path(".vigil"))
    reports_dir: Path = field(default_factory=lambda: Path("reports"))
    metrics_dir: Path = field(default_factory=lambda: Path("metrics"))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GeneralConfig":
        defaults = cls()
        return cls(
            log_dir=_as_path(data.get("log_dir", defaults.log_dir)),
            state_dir=_as_path(data.get("state_dir", defaults.state_dir)),
            reports_dir=_as_path(data.get("reports_dir", defaults.reports_dir)),
            metrics_dir=_as_path(data.get("metrics_dir", defaults.metrics_dir)),
        )


@dataclass
class WatchdogConfig:
    interval_s: float = 30.0
    max_response_s: float = 120.0
    health_url: str | None = None
    health_command: list[str] = field(default_factory=list)
    control_dir: Path = field(default_factory=lambda: Path(".vigil") / "control")
    progress_file: Path | None = None
    status_lines: int = 20

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WatchdogConfig":
        defaults = cls()
        return cls(
            interval_s=_as_float(data.get("interval_s"), defaults.interval_s),
            max_response_s=_as_float(data.get("max_response_s"), defaults.max_response_s),
            health_url=data.get("health_url") or None,
            health_command=_as_command(data.get("health_command"), []),
            control_dir=_as_path(data.get("control_dir", defaults.control_dir)),
            progress_file=_optional_path(data.get("progress_file")),
            status_lines=int(data.get("status_lines", defaults.status_lines)),
        )


@dataclass
class PerformanceConfig:
    probe_timeout_s: float = 30.0
    continuous_interval_s: float = 3600.0
    thresholds: dict[str, float] = field(default_factory=default_thresholds)
    units: dict[str, str] = field(default_factory=default_threshold_units)
    launch_command: list[str] = field(default_factory=list)
    launch_ready_url: str | None = None
    subject_pid_file: Path | None = None
    api_url: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PerformanceConfig":
        defaults = cls()
        thresholds = dict(defaults.thresholds)
        for name, bound in (data.get("thresholds") or {}).items():
            thresholds[name] = _as_float(bound, thresholds.get(name, 0.0))
        units = dict(defaults.units)
        units.update({k: str(v) for k, v in (data.get("units") or {}).items()})
        return cls(
            probe_timeout_s=_as_float(data.get("probe_timeout_s"), defaults.probe_timeout_s),
            continuous_interval_s=_as_float(
                data.get("continuous_interval_s"), defaults.continuous_interval_s
            ),
            thresholds=thresholds,
            units=units,
            launch_command=_as_command(data.get("launch_command"), []),
            launch_ready_url=data.get("launch_ready_url") or None,
            subject_pid_file=_optional_path(data.get("subject_pid_file")),
            api_url=data.get("api_url") or None,
        )


@dataclass
class QualityConfig:
    analyze_command: list[str] = field(
        default_factory=lambda: ["flutter", "analyze", "--no-fatal-infos"]
    )
    test_command: list[str] = field(
        default_factory=lambda: ["flutter", "test", "--reporter=json"]
    )
    timeout_s: float = 900.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "QualityConfig":
        defaults = cls()
        return cls(
            analyze_command=_as_command(data.get("analyze_command"), defaults.analyze_command),
            test_command=_as_command(data.get("test_command"), defaults.test_command),
            timeout_s=_as_float(data.get("timeout_s"), defaults.timeout_s),
        )


@dataclass
class EnvironmentConfig:
    project: str
    base_url: str
    publish_target: str = "hosting"
    build_targets: list[str] = field(default_factory=lambda: ["web"])

    @classmethod
    def from_dict(cls, data: dict[str, Any], base: "EnvironmentConfig") -> "EnvironmentConfig":
        project = str(data.get("project", base.project))
        base_url = data.get("base_url")
        if not base_url:
            base_url = base.base_url if project == base.project else f"https://{project}.web.app"
        targets = data.get("build_targets", base.build_targets)
        return cls(
            project=project,
            base_url=str(base_url),
            publish_target=str(data.get("publish_target", base.publish_target)),
            build_targets=[str(t) for t in targets],
        )


def default_environments() -> dict[str, EnvironmentConfig]:
    return {
        "dev": EnvironmentConfig(
            project="goral-app-dev",
            base_url="https://goral-app-dev.web.app",
        ),
        "staging": EnvironmentConfig(
            project="goral-app-staging",
            base_url="https://goral-app-staging.web.app",
        ),
        "production": EnvironmentConfig(
            project="goral-app-prod",
            base_url="https://goral-app-prod.web.app",
            build_targets=["web", "apk"],
        ),
    }


@dataclass
class DeployConfig:
    performance_policy: PerformancePolicy = PerformancePolicy.WARN
    verify_timeout_s: float = 10.0
    command_timeout_s: float = 1800.0
    prepare_commands: list[list[str]] = field(
        default_factory=lambda: [["flutter", "clean"], ["flutter", "pub", "get"]]
    )
    build_command: list[str] = field(
        default_factory=lambda: [
            "flutter", "build", "{target}", "--release", "--dart-define=ENV={environment}",
        ]
    )
    artifact_dir: Path = field(default_factory=lambda: Path("build"))
    publish_command: list[str] = field(
        default_factory=lambda: [
            "firebase", "deploy", "--only", "{publish_target}", "--project", "{project}",
        ]
    )
    restore_command: list[str] = field(
        default_factory=lambda: [
            "firebase", "hosting:clone", "{project}:{reference}", "{project}:live",
        ]
    )
    environments: dict[str, EnvironmentConfig] = field(default_factory=default_environments)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DeployConfig":
        defaults = cls()
        policy_raw = data.get("performance_policy", defaults.performance_policy.value)
        try:
            policy = PerformancePolicy(policy_raw)
        except ValueError:
            valid = ", ".join(p.value for p in PerformancePolicy)
            raise ConfigurationError(
                f"Invalid [deploy] performance_policy: {policy_raw!r}. Valid options: {valid}",
                {"performance_policy": policy_raw},
            ) from None

        environments = dict(defaults.environments)
        for name, env_data in (data.get("environments") or {}).items():
            if name in environments:
                environments[name] = EnvironmentConfig.from_dict(env_data, environments[name])

        prepare = data.get("prepare_commands")
        prepare_commands = (
            [_as_command(cmd, []) for cmd in prepare]
            if isinstance(prepare, list)
            else defaults.prepare_commands
        )

        return cls(
            performance_policy=policy,
            verify_timeout_s=_as_float(data.get("verify_timeout_s"), defaults.verify_timeout_s),
            command_timeout_s=_as_float(data.get("command_timeout_s"), defaults.command_timeout_s),
            prepare_commands=prepare_commands,
            build_command=_as_command(data.get("build_command"), defaults.build_command),
            artifact_dir=_as_path(data.get("artifact_dir", defaults.artifact_dir)),
            publish_command=_as_command(data.get("publish_command"), defaults.publish_command),
            restore_command=_as_command(data.get("restore_command"), defaults.restore_command),
            environments=environments,
        )


@dataclass
class NotificationsConfig:
    webhook_url: str | None = None
    username: str = "vigil"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NotificationsConfig":
        return cls(
            webhook_url=data.get("webhook_url") or None,
            username=str(data.get("username", "vigil")),
        )


@dataclass
class VigilConfig:
    general: GeneralConfig = field(default_factory=GeneralConfig)
    watchdog: WatchdogConfig = field(default_factory=WatchdogConfig)
    performance: PerformanceConfig = field(default_factory=PerformanceConfig)
    quality: QualityConfig = field(default_factory=QualityConfig)
    deploy: DeployConfig = field(default_factory=DeployConfig)
    notifications: NotificationsConfig = field(default_factory=NotificationsConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VigilConfig":
        return cls(
            general=GeneralConfig.from_dict(data.get("general", {})),
            watchdog=WatchdogConfig.from_dict(data.get("watchdog", {})),
            performance=PerformanceConfig.from_dict(data.get("performance", {})),
            quality=QualityConfig.from_dict(data.get("quality", {})),
            deploy=DeployConfig.from_dict(data.get("deploy", {})),
            notifications=NotificationsConfig.from_dict(data.get("notifications", {})),
        )
