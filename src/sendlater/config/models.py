"""Configuration models using Pydantic."""

import os
from typing import Literal

from pydantic import BaseModel, Field, SecretStr, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]

# Telegram Bot API download limit for getFile
DEFAULT_MAX_ATTACHMENT_BYTES = 20 * 1024 * 1024


def _default_log_level() -> str:
    level = os.environ.get("SENDLATER_LOG_LEVEL", "INFO").upper()
    if level not in ("DEBUG", "INFO", "WARNING", "ERROR"):
        return "INFO"
    return level


class TelegramConfig(BaseModel):
    """Configuration for the Telegram transport."""

    bot_token: SecretStr | None = None
    # User ids or @usernames; empty allows everyone
    allowed_users: list[str] = []


class SchedulerConfig(BaseModel):
    """Configuration for the delivery scheduler.

    The poll interval is also the delivery granularity: a message due at T
    is sent somewhere in [T, T + poll_interval).
    """

    poll_interval: float = Field(default=60.0, gt=0)
    # IANA zone name; None = detect from the host
    timezone: str | None = None
    max_attachment_bytes: int = Field(default=DEFAULT_MAX_ATTACHMENT_BYTES, gt=0)


class LoggingConfig(BaseModel):
    """Configuration for logging output."""

    level: LogLevel = Field(default_factory=_default_log_level)  # type: ignore[arg-type]
    log_to_file: bool = False
    retention_days: int = Field(default=7, ge=1)

    @field_validator("level", mode="before")
    @classmethod
    def _normalize_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value


class ConfigError(Exception):
    """Configuration error."""

    pass


class SendLaterConfig(BaseModel):
    """Root configuration model."""

    telegram: TelegramConfig = Field(default_factory=TelegramConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def require_bot_token(self) -> str:
        """Return the bot token or raise ConfigError if it is not configured."""
        if self.telegram.bot_token is None:
            raise ConfigError(
                "Telegram bot token not configured "
                "(set [telegram].bot_token or TELEGRAM_BOT_TOKEN)"
            )
        token = self.telegram.bot_token.get_secret_value().strip()
        if not token:
            raise ConfigError("Telegram bot token is empty")
        return token
