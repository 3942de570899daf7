"""Telegram provider using aiogram."""

from __future__ import annotations

import asyncio
import logging

from aiogram import Bot, Dispatcher
from aiogram.exceptions import TelegramAPIError
from aiogram.filters import Command, CommandObject
from aiogram.types import BotCommand, BufferedInputFile
from aiogram.types import Message as TelegramMessage
from aiogram.utils.token import TokenValidationError

from sendlater.config.models import DEFAULT_MAX_ATTACHMENT_BYTES, ConfigError
from sendlater.providers.base import CommandHandler, Provider
from sendlater.providers.telegram.commands import USAGE, parse_sendlater_command
from sendlater.scheduling.command import COMMAND_DESCRIPTION, COMMAND_NAME
from sendlater.scheduling.types import (
    AttachmentPayload,
    AttachmentRef,
    Destination,
    ScheduleValidationError,
    TransportError,
)

logger = logging.getLogger(__name__)

LOG_PREVIEW_MAX_LEN = 180
DEFAULT_CONTENT_TYPE = "application/octet-stream"


def _truncate(text: str, max_len: int = LOG_PREVIEW_MAX_LEN) -> str:
    """Truncate text for logging (first line only, max length)."""
    first_line, *rest = text.split("\n", 1)
    truncated = len(first_line) > max_len or bool(rest)
    return first_line[:max_len] + "..." if truncated else first_line


def _chat_ref(chat_id: str) -> int | str:
    """Numeric chat ids go to the API as ints, @usernames as strings."""
    if chat_id.lstrip("-").isdigit():
        return int(chat_id)
    return chat_id


class TelegramProvider(Provider):
    """Telegram provider using aiogram 3.x."""

    def __init__(
        self,
        bot_token: str,
        allowed_users: list[str] | None = None,
        max_attachment_bytes: int = DEFAULT_MAX_ATTACHMENT_BYTES,
    ):
        self._allowed_users = set(allowed_users or [])
        self._max_attachment_bytes = max_attachment_bytes

        try:
            self._bot = Bot(token=bot_token)
        except TokenValidationError as e:
            raise ConfigError(f"Invalid Telegram bot token: {e}") from e
        self._dp = Dispatcher()
        self._handler: CommandHandler | None = None
        self._handlers_installed = False
        self._running = False
        self._bot_username: str | None = None

    @property
    def name(self) -> str:
        return "telegram"

    @property
    def bot(self) -> Bot:
        return self._bot

    @property
    def bot_username(self) -> str | None:
        return self._bot_username

    def _is_user_allowed(self, user_id: int, username: str | None) -> bool:
        if not self._allowed_users:
            return True
        return str(user_id) in self._allowed_users or (
            username is not None and f"@{username}" in self._allowed_users
        )

    def _should_process_message(self, message: TelegramMessage) -> bool:
        """Check the sender against the allowlist and log the decision."""
        user = message.from_user
        allowed = user is not None and self._is_user_allowed(user.id, user.username)
        log = logger.info if allowed else logger.warning
        log(
            "incoming_command" if allowed else "command_ignored",
            extra={
                "messaging.chat_id": str(message.chat.id),
                "user.id": str(user.id) if user else None,
                "user.username": user.username if user else None,
                "input.preview": _truncate(message.text or message.caption or ""),
            },
        )
        return allowed

    @staticmethod
    def _attachment_ref(message: TelegramMessage) -> AttachmentRef | None:
        document = message.document
        if document is None:
            return None
        return AttachmentRef(
            file_id=document.file_id,
            name=document.file_name,
            content_type=document.mime_type,
            size=document.file_size,
        )

    async def connect(self) -> None:
        """Verify the bot token and cache the bot username."""
        try:
            me = await self._bot.get_me()
        except TelegramAPIError as e:
            raise ConfigError(f"Cannot establish Telegram session: {e}") from e
        self._bot_username = me.username
        logger.info("bot_connected", extra={"telegram.bot_username": me.username})

    async def register_commands(self) -> None:
        commands = [
            BotCommand(command=COMMAND_NAME, description=COMMAND_DESCRIPTION),
            BotCommand(command="help", description="How to schedule a message"),
        ]
        try:
            await self._bot.set_my_commands(commands)
        except TelegramAPIError as e:
            raise ConfigError(f"Cannot register command /{COMMAND_NAME}: {e}") from e
        logger.info("command_registered", extra={"telegram.command": COMMAND_NAME})

    async def unregister_commands(self) -> None:
        try:
            await self._bot.delete_my_commands()
        except TelegramAPIError as e:
            logger.error(
                "command_unregister_failed",
                extra={"telegram.command": COMMAND_NAME, "error.message": str(e)},
            )
            return
        logger.info("command_unregistered", extra={"telegram.command": COMMAND_NAME})

    async def start(self, handler: CommandHandler) -> None:
        """Start long polling. Returns once polling stops."""
        self._handler = handler
        self._setup_handlers()
        self._running = True

        logger.info("telegram_bot_starting")
        await self._bot.delete_webhook(drop_pending_updates=False)
        # Disable aiogram's signal handling - the serve command owns SIGINT/SIGTERM
        await self._dp.start_polling(
            self._bot,
            handle_signals=False,
            close_bot_session=False,  # We close it ourselves in stop()
        )

    async def stop(self) -> None:
        if not self._running:
            await self._close_session()
            return
        self._running = False

        try:
            await self._dp.stop_polling()
        except RuntimeError as e:
            # Raised when polling never started
            logger.debug(f"Error stopping polling: {e}")

        await self._close_session()
        logger.info("telegram_bot_stopped")

    async def _close_session(self) -> None:
        try:
            await self._bot.session.close()
        except Exception as e:
            logger.debug(f"Error closing bot session: {e}")

    def _setup_handlers(self) -> None:
        """Set up command handlers on the dispatcher."""
        if self._handlers_installed:
            return
        self._handlers_installed = True

        @self._dp.message(Command("start", "help"))
        async def handle_help(message: TelegramMessage) -> None:
            if not self._should_process_message(message):
                return
            await message.answer(USAGE)

        @self._dp.message(Command(COMMAND_NAME))
        async def handle_sendlater(
            message: TelegramMessage, command: CommandObject
        ) -> None:
            if not self._should_process_message(message):
                return
            reply = await self.handle_command(
                command.args, self._attachment_ref(message), str(message.chat.id)
            )
            await message.answer(reply)

    async def handle_command(
        self,
        args: str | None,
        attachment: AttachmentRef | None,
        chat_id: str,
    ) -> str:
        """Parse a command, pass it to the handler and return the reply text."""
        try:
            options = parse_sendlater_command(args, attachment)
        except ScheduleValidationError as e:
            logger.info(
                "command_parse_failed",
                extra={"messaging.chat_id": chat_id, "error.message": str(e)},
            )
            return f"Error scheduling message: {e}\n\n{USAGE}"

        if self._handler is None:
            raise RuntimeError("Provider started without a command handler")
        result = await self._handler(options, chat_id)
        return result.reply

    async def send_text(self, destination: Destination, text: str) -> str:
        try:
            sent = await self._bot.send_message(
                chat_id=_chat_ref(destination.chat_id),
                text=text,
            )
        except TelegramAPIError as e:
            raise TransportError(f"Could not send to {destination.label}: {e}") from e
        logger.debug(
            "message_sent",
            extra={
                "messaging.chat_id": destination.chat_id,
                "messaging.message_id": str(sent.message_id),
                "output.preview": _truncate(text),
            },
        )
        return str(sent.message_id)

    async def send_attachment(
        self,
        destination: Destination,
        name: str,
        content_type: str,
        data: bytes,
    ) -> str:
        # Telegram derives the content type from the upload itself
        document = BufferedInputFile(data, filename=name)
        try:
            sent = await self._bot.send_document(
                chat_id=_chat_ref(destination.chat_id),
                document=document,
            )
        except TelegramAPIError as e:
            raise TransportError(
                f"Could not send {name} to {destination.label}: {e}"
            ) from e
        logger.debug(
            "document_sent",
            extra={
                "messaging.chat_id": destination.chat_id,
                "messaging.message_id": str(sent.message_id),
                "file.name": name,
                "file.content_type": content_type,
                "file.size": len(data),
            },
        )
        return str(sent.message_id)

    async def resolve_destination(self, chat_id: str) -> Destination:
        try:
            chat = await self._bot.get_chat(_chat_ref(chat_id))
        except TelegramAPIError as e:
            raise TransportError(f"Unknown channel {chat_id}: {e}") from e
        title = chat.title or chat.username or chat.first_name
        return Destination(chat_id=str(chat.id), title=title)

    async def fetch_attachment(self, ref: AttachmentRef) -> AttachmentPayload:
        if ref.size is not None and ref.size > self._max_attachment_bytes:
            raise TransportError(
                f"Could not get attachment: {ref.size} bytes exceeds the "
                f"{self._max_attachment_bytes} byte limit"
            )
        try:
            file = await self._bot.get_file(ref.file_id)
            if not file.file_path:
                raise TransportError("Could not get attachment: no download path")
            file_data = await self._bot.download_file(file.file_path)
        except (TelegramAPIError, asyncio.TimeoutError) as e:
            logger.warning(
                "attachment_download_failed",
                extra={"file.id": ref.file_id, "error.message": str(e)},
            )
            raise TransportError(f"Could not get attachment: {e}") from e

        data = file_data.read() if file_data else b""
        if len(data) > self._max_attachment_bytes:
            raise TransportError(
                f"Could not get attachment: {len(data)} bytes exceeds the "
                f"{self._max_attachment_bytes} byte limit"
            )
        return AttachmentPayload(
            name=ref.name or ref.file_id,
            content_type=ref.content_type or DEFAULT_CONTENT_TYPE,
            data=data,
        )
