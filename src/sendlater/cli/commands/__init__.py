"""CLI command modules."""

from sendlater.cli.commands import config, serve, when

__all__ = [
    "config",
    "serve",
    "when",
]
