"""Configuration module."""

from sendlater.config.loader import find_config_path, load_config
from sendlater.config.models import (
    ConfigError,
    LoggingConfig,
    SchedulerConfig,
    SendLaterConfig,
    TelegramConfig,
)
from sendlater.config.paths import (
    get_config_path,
    get_logs_path,
    get_sendlater_home,
    get_system_timezone,
)

__all__ = [
    "ConfigError",
    "LoggingConfig",
    "SchedulerConfig",
    "SendLaterConfig",
    "TelegramConfig",
    "find_config_path",
    "get_config_path",
    "get_logs_path",
    "get_sendlater_home",
    "get_system_timezone",
    "load_config",
]
