"""Resolve a date/time the way the bot does."""

from datetime import UTC
from typing import Annotated

import typer

from sendlater.cli.console import console, dim, error, warning


def register(app: typer.Typer) -> None:
    """Register the when command."""

    @app.command()
    def when(
        time: Annotated[str, typer.Argument(help="Time of day (HH:MM)")],
        date: Annotated[
            str | None,
            typer.Option("--date", "-d", help="Date (DD/MM/YYYY), default today"),
        ] = None,
        timezone: Annotated[
            str | None,
            typer.Option("--timezone", "-z", help="IANA zone, default host zone"),
        ] = None,
    ) -> None:
        """Show the instant a /sendlater time resolves to."""
        from sendlater.config import ConfigError
        from sendlater.scheduling import (
            ScheduleValidationError,
            SystemClock,
            TimeResolver,
            load_timezone,
        )

        try:
            zone = load_timezone(timezone)
        except ConfigError as e:
            error(str(e))
            raise typer.Exit(1) from None

        clock = SystemClock(zone)
        resolver = TimeResolver(zone)
        now = clock.now()
        try:
            due_at = resolver.resolve(date or resolver.today(now), time)
        except ScheduleValidationError as e:
            error(str(e))
            raise typer.Exit(1) from None

        console.print(due_at.isoformat())
        remaining = due_at.astimezone(UTC) - now.astimezone(UTC).replace(microsecond=0)
        if remaining.total_seconds() <= 0:
            warning("Already passed: would be sent at the next poll")
        else:
            dim(f"In {remaining}")
