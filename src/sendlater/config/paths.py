"""Centralized path management for sendlater.

All state (config, logs) is stored under a single base directory.
The base directory can be overridden with the SENDLATER_HOME environment variable.

Default locations:
- Linux/macOS: ~/.sendlater
- Windows: %USERPROFILE%\\.sendlater
"""

import os
from functools import lru_cache
from pathlib import Path

ENV_VAR = "SENDLATER_HOME"


def get_system_timezone() -> str:
    """Detect system timezone, falling back to UTC.

    Resolution order:
    1. TZ environment variable (if set)
    2. /etc/timezone file (Debian/Ubuntu)
    3. /etc/localtime symlink target (most Linux distros)
    4. Fallback to UTC

    Returns:
        IANA timezone name (e.g., "Europe/Paris", "America/Los_Angeles", "UTC").
    """
    if tz := os.environ.get("TZ"):
        # POSIX allows a leading colon ("TZ=:Europe/Paris")
        return tz.lstrip(":")

    try:
        tz = Path("/etc/timezone").read_text().strip()
        if tz:
            return tz
    except (FileNotFoundError, PermissionError):
        pass

    try:
        link = Path("/etc/localtime").resolve()
        parts = str(link).split("zoneinfo/")
        if len(parts) > 1:
            return parts[1]
    except (FileNotFoundError, PermissionError):
        pass

    return "UTC"


@lru_cache(maxsize=1)
def get_sendlater_home() -> Path:
    """Get the base directory for all sendlater data.

    Resolution order:
    1. SENDLATER_HOME environment variable (if set)
    2. Platform default (~/.sendlater)
    """
    if env_home := os.environ.get(ENV_VAR):
        return Path(env_home).expanduser().resolve()

    return Path.home() / ".sendlater"


def get_config_path() -> Path:
    """Get the default config file path."""
    return get_sendlater_home() / "config.toml"


def get_logs_path() -> Path:
    """Get the default logs directory path."""
    return get_sendlater_home() / "logs"
