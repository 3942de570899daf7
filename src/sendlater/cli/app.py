"""Main CLI application."""

import typer

from sendlater.cli.commands import config, serve, when

app = typer.Typer(
    name="sendlater",
    help="sendlater - schedule chat messages for later delivery",
    no_args_is_help=True,
)

config.register(app)
serve.register(app)
when.register(app)


if __name__ == "__main__":
    app()
