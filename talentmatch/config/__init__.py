"""Configuration management for talentmatch."""

from .duration import DurationParseError, parse_duration
from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .loader import load_app_config, load_config, validate_config_file
from .models import (
    AppConfig,
    EmailConfig,
    LogFormat,
    LogLevel,
    LoggingConfig,
    MatchingConfig,
    NotificationsConfig,
    ScoringConfig,
)

__all__ = [
    "load_config",
    "load_app_config",
    "validate_config_file",
    "load_environment_config",
    "parse_duration",
    "AppConfig",
    "MatchingConfig",
    "ScoringConfig",
    "NotificationsConfig",
    "EmailConfig",
    "LoggingConfig",
    "EnvironmentConfig",
    "LogLevel",
    "LogFormat",
    "ConfigurationError",
    "DurationParseError",
]
