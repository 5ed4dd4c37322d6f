"""Config loader for vigil."""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from .errors import ConfigurationError
from .schema import VigilConfig

LOCAL_CONFIG_NAME = "vigil.toml"


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _load_toml(path: Path) -> dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in {path}: {e}", {"path": str(path)}) from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read config {path}: {e}", {"path": str(path)}) from e


def user_config_path() -> Path:
    return Path.home() / ".config" / "vigil" / "config.toml"


def load_config(config_path: Path | None = None, merge_user: bool = True) -> dict[str, Any]:
    """Load configuration with precedence user < local ``vigil.toml`` < explicit.

    ``VIGIL_CONFIG_PATH`` supplies the explicit path when none is given.

    Raises:
        ConfigurationError: If the explicit file is missing or any file is not valid TOML
    """
    env_config = os.environ.get("VIGIL_CONFIG_PATH")
    if config_path is None and env_config:
        config_path = Path(env_config).expanduser()

    config_data: dict[str, Any] = {}

    if merge_user:
        user_path = user_config_path()
        if user_path.exists():
            config_data = _deep_merge(config_data, _load_toml(user_path))

    local_path = Path(LOCAL_CONFIG_NAME)
    if local_path.exists():
        config_data = _deep_merge(config_data, _load_toml(local_path))

    if config_path:
        if not config_path.exists():
            raise ConfigurationError(f"Config file not found: {config_path}", {"path": str(config_path)})
        config_data = _deep_merge(config_data, _load_toml(config_path))

    return config_data


def load_config_model(
    config_path: Path | None = None,
    merge_user: bool = True,
) -> VigilConfig:
    """Load configuration and return a typed model."""
    data = load_config(config_path=config_path, merge_user=merge_user)
    return VigilConfig.from_dict(data)
