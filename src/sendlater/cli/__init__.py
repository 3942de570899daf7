"""Command line interface."""

from sendlater.cli.app import app

__all__ = ["app"]
