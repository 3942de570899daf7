"""Configuration loading from TOML files and environment variables."""

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import SecretStr, ValidationError

from sendlater.config.models import ConfigError, SendLaterConfig
from sendlater.config.paths import get_config_path


def _get_default_config_paths() -> list[Path]:
    """Get ordered list of default config file locations."""
    return [
        Path("config.toml"),  # Current directory
        get_config_path(),  # ~/.sendlater/config.toml (or SENDLATER_HOME)
        Path("/etc/sendlater/config.toml"),  # System-wide
    ]


def _set_secret_from_env(section: dict[str, Any], key: str, env_var: str) -> None:
    """Set a secret value from environment if not already set."""
    if section.get(key) is None:
        value = os.environ.get(env_var)
        if value:
            section[key] = SecretStr(value)


def _resolve_env_secrets(config: dict[str, Any]) -> dict[str, Any]:
    """Resolve secrets from environment variables where not set in config."""
    telegram = config.setdefault("telegram", {})
    if isinstance(telegram, dict):
        _set_secret_from_env(telegram, "bot_token", "TELEGRAM_BOT_TOKEN")
    return config


def find_config_path(path: Path | None = None) -> Path | None:
    """Locate the config file to load.

    Args:
        path: Explicit path to config file. If None, searches default locations.

    Returns:
        The config file path, or None if no default location exists.

    Raises:
        FileNotFoundError: If an explicit path does not exist.
    """
    if path is not None:
        config_path = Path(path).expanduser()
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        return config_path

    for default_path in _get_default_config_paths():
        expanded = default_path.expanduser()
        if expanded.exists():
            return expanded
    return None


def load_config(path: Path | None = None) -> SendLaterConfig:
    """Load configuration from a TOML file and the environment.

    Without a config file the defaults are used, so a bare
    ``TELEGRAM_BOT_TOKEN=... sendlater serve`` works.

    Args:
        path: Explicit path to config file. If None, searches default locations.

    Returns:
        Validated SendLaterConfig instance.

    Raises:
        FileNotFoundError: If an explicit config path does not exist.
        ConfigError: If the config file is not valid TOML or fails validation.
    """
    config_path = find_config_path(path)

    raw_config: dict[str, Any] = {}
    if config_path is not None:
        try:
            with config_path.open("rb") as f:
                raw_config = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {config_path}: {e}") from e

    raw_config = _resolve_env_secrets(raw_config)

    try:
        return SendLaterConfig.model_validate(raw_config)
    except ValidationError as e:
        source = config_path or "environment"
        raise ConfigError(f"Invalid configuration ({source}): {e}") from e
