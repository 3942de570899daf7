"""Chat platform providers."""

from sendlater.providers.base import CommandHandler, Provider
from sendlater.providers.telegram import TelegramProvider

__all__ = [
    "CommandHandler",
    "Provider",
    "TelegramProvider",
]
