"""Telegram provider."""

from sendlater.providers.telegram.commands import (
    USAGE,
    parse_command_args,
    parse_sendlater_command,
)
from sendlater.providers.telegram.provider import TelegramProvider

__all__ = [
    "USAGE",
    "TelegramProvider",
    "parse_command_args",
    "parse_sendlater_command",
]
