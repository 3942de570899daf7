"""Configuration management commands."""

from pathlib import Path
from typing import Annotated

import click
import typer

from sendlater.cli.console import console, create_table, error, success


def register(app: typer.Typer) -> None:
    """Register the config command."""

    @app.command()
    def config(
        action: Annotated[
            str | None,
            typer.Argument(help="Action: show, validate"),
        ] = None,
        path: Annotated[
            Path | None,
            typer.Option(
                "--path",
                "-p",
                help="Path to config file (default: $SENDLATER_HOME/config.toml)",
            ),
        ] = None,
    ) -> None:
        """Manage configuration."""
        if action is None:
            ctx = click.get_current_context()
            click.echo(ctx.get_help())
            raise typer.Exit(0)

        from rich.syntax import Syntax

        from sendlater.config import ConfigError, get_config_path, load_config
        from sendlater.scheduling.timeparse import load_timezone

        expanded_path = path.expanduser() if path else get_config_path()

        if action == "show":
            if not expanded_path.exists():
                error(f"Config file not found: {expanded_path}")
                raise typer.Exit(1)

            content = expanded_path.read_text()
            syntax = Syntax(content, "toml", theme="monokai", line_numbers=True)
            console.print(f"[bold]Config file: {expanded_path}[/bold]\n")
            console.print(syntax)

        elif action == "validate":
            if not expanded_path.exists():
                error(f"Config file not found: {expanded_path}")
                raise typer.Exit(1)

            try:
                config_obj = load_config(expanded_path)
                zone = load_timezone(config_obj.scheduler.timezone)
            except ConfigError as e:
                error(f"Configuration validation failed: {e}")
                raise typer.Exit(1) from None

            table = create_table(
                "Configuration Summary", [("Setting", "cyan"), ("Value", "green")]
            )
            table.add_row(
                "Telegram",
                "configured"
                if config_obj.telegram.bot_token
                else "[dim]not configured[/dim]",
            )
            table.add_row(
                "Allowed users",
                ", ".join(config_obj.telegram.allowed_users) or "[dim]everyone[/dim]",
            )
            table.add_row("Time zone", str(zone))
            table.add_row("Poll interval", f"{config_obj.scheduler.poll_interval:g}s")
            table.add_row("Log level", config_obj.logging.level)
            console.print(table)
            success("Configuration is valid")

        else:
            error(f"Unknown action: {action}")
            console.print("Valid actions: show, validate")
            raise typer.Exit(1)
