"""vigil: watchdog, performance gate and deployment pipeline."""

__version__ = "0.1.0"

from .config import load_config, load_config_model
from .environments import Environment, EnvironmentTarget, resolve_target
from .errors import ConfigurationError, VigilError

__all__ = [
    "ConfigurationError",
    "Environment",
    "EnvironmentTarget",
    "VigilError",
    "load_config",
    "load_config_model",
    "resolve_target",
]
