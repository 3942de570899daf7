"""Server command for running the sendlater bot."""

import asyncio
import contextlib
import logging
from pathlib import Path
from typing import Annotated

import typer

from sendlater.providers.base import Provider

logger = logging.getLogger(__name__)


def register(app: typer.Typer) -> None:
    """Register the serve command."""

    @app.command()
    def serve(
        config: Annotated[
            Path | None,
            typer.Option(
                "--config",
                "-c",
                help="Path to configuration file",
            ),
        ] = None,
    ) -> None:
        """Start the sendlater bot."""
        from aiogram.exceptions import TelegramAPIError

        from sendlater.config import ConfigError

        try:
            asyncio.run(_run_server(config))
        except (ConfigError, FileNotFoundError) as e:
            logger.error("startup_failed", extra={"error.message": str(e)})
            raise typer.Exit(1) from None
        except TelegramAPIError as e:
            logger.error(
                "polling_failed",
                extra={"error.type": type(e).__name__, "error.message": str(e)},
            )
            raise typer.Exit(1) from None
        except KeyboardInterrupt:
            # Use print here since logging may not be configured yet
            print("\nServer stopped")


async def _run_server(config_path: Path | None = None) -> None:
    """Run the bot until SIGINT/SIGTERM."""
    import signal as signal_module

    from sendlater.config import load_config
    from sendlater.logging import configure_logging
    from sendlater.providers.telegram import TelegramProvider
    from sendlater.scheduling import (
        DeliveryScheduler,
        SendLaterCommand,
        SystemClock,
        TimeResolver,
        load_timezone,
    )

    # Console logging first so configuration errors are visible
    configure_logging(use_rich=True)

    logger.info("Loading configuration")
    config = load_config(config_path)
    configure_logging(
        level=config.logging.level,
        use_rich=True,
        log_to_file=config.logging.log_to_file,
        retention_days=config.logging.retention_days,
    )

    bot_token = config.require_bot_token()
    zone = load_timezone(config.scheduler.timezone)
    logger.info("Using time zone %s", zone)

    provider = TelegramProvider(
        bot_token=bot_token,
        allowed_users=config.telegram.allowed_users,
        max_attachment_bytes=config.scheduler.max_attachment_bytes,
    )
    clock = SystemClock(zone)
    scheduler = DeliveryScheduler(
        provider, clock, poll_interval=config.scheduler.poll_interval
    )
    command = SendLaterCommand(scheduler, TimeResolver(zone), clock, provider)

    polling_task: asyncio.Task[None] | None = None
    try:
        await provider.connect()
        await provider.register_commands()

        shutdown_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal_module.SIGTERM, signal_module.SIGINT):
            loop.add_signal_handler(sig, shutdown_event.set)

        logger.info("Bot is up, press Ctrl+C to exit")
        polling_task = asyncio.create_task(provider.start(command.handle))
        shutdown_task = asyncio.create_task(shutdown_event.wait())
        done, _ = await asyncio.wait(
            {polling_task, shutdown_task}, return_when=asyncio.FIRST_COMPLETED
        )
        shutdown_task.cancel()
        if polling_task in done:
            # Polling only returns on its own when it crashed
            polling_task.result()

        logger.info("Removing commands")
        await provider.unregister_commands()
    finally:
        await _cleanup_server(provider, polling_task, scheduler.pending_count)


async def _cleanup_server(
    provider: Provider,
    polling_task: asyncio.Task[None] | None,
    pending_count: int,
) -> None:
    """Stop polling and close the bot session without waiting for deliveries."""
    try:
        await provider.stop()
    except Exception as e:
        logger.warning(f"Error during stop: {e}")

    if polling_task is not None and not polling_task.done():
        polling_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await polling_task

    # Pending deliveries live only in memory and are lost on exit
    if pending_count:
        logger.warning(
            "pending_deliveries_dropped",
            extra={"schedule.pending_count": pending_count},
        )
    logger.info("Gracefully shutting down")
