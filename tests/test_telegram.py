"""Tests for the Telegram provider and /sendlater argument parsing."""

import io
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from aiogram.exceptions import TelegramBadRequest, TelegramUnauthorizedError

from sendlater.config import ConfigError
from sendlater.providers.telegram.commands import (
    USAGE,
    parse_command_args,
    parse_sendlater_command,
)
from sendlater.providers.telegram.provider import TelegramProvider
from sendlater.scheduling import (
    AttachmentRef,
    CommandResult,
    Destination,
    ScheduleValidationError,
    SendLaterOptions,
    TransportError,
)


def api_error(cls=TelegramBadRequest, message: str = "Bad Request: chat not found"):
    return cls(method=MagicMock(), message=message)


class TestParseCommandArgs:
    """Tests for name=value argument parsing."""

    def test_all_options(self):
        options = parse_command_args(
            "time=09:30 date=25/12/2025 channel=@news message=Happy holidays!"
        )
        assert options == {
            "time": "09:30",
            "date": "25/12/2025",
            "channel": "@news",
            "message": "Happy holidays!",
        }

    def test_message_keeps_rest_of_text(self):
        options = parse_command_args("time=09:30 message=a=b  c\nsecond line")
        assert options["message"] == "a=b  c\nsecond line"

    def test_extra_whitespace(self):
        options = parse_command_args("  time=09:30\n\tdate=01/01/2026  ")
        assert options == {"time": "09:30", "date": "01/01/2026"}

    def test_names_case_insensitive(self):
        assert parse_command_args("TIME=09:30") == {"time": "09:30"}

    def test_empty(self):
        assert parse_command_args(None) == {}
        assert parse_command_args("   ") == {}

    @pytest.mark.parametrize(
        ("args", "error"),
        [
            ("09:30", "expected name=value"),
            ("=09:30", "expected name=value"),
            ("when=09:30", "unknown option 'when'"),
            ("time=09:30 time=10:00", "given twice"),
            ("time= 09:30", "has no value"),
            ("time=09:30 message=", "has no value"),
        ],
    )
    def test_malformed(self, args: str, error: str):
        with pytest.raises(ScheduleValidationError, match=error):
            parse_command_args(args)


class TestParseSendLaterCommand:
    def test_builds_options(self):
        ref = AttachmentRef(file_id="f1")
        options = parse_sendlater_command("time=10:01 channel=-100123", ref)
        assert options == SendLaterOptions(
            time="10:01", attachment=ref, channel="-100123"
        )

    def test_time_required(self):
        with pytest.raises(ScheduleValidationError, match="time is required"):
            parse_sendlater_command("message=hi")


@pytest.fixture
def provider():
    """Create a Telegram provider with a mock bot."""
    with patch("sendlater.providers.telegram.provider.Bot"):
        provider = TelegramProvider(
            bot_token="test_token",
            allowed_users=["@alice", "42"],
            max_attachment_bytes=1024,
        )
        provider._bot = AsyncMock()
        yield provider


class TestAuthorization:
    def test_allowlist(self, provider):
        assert provider._is_user_allowed(1, "alice")
        assert provider._is_user_allowed(42, None)
        assert not provider._is_user_allowed(7, "mallory")

    def test_empty_allowlist_allows_everyone(self):
        with patch("sendlater.providers.telegram.provider.Bot"):
            provider = TelegramProvider(bot_token="test_token")
        assert provider._is_user_allowed(7, None)

    def test_message_from_unknown_user_ignored(self, provider):
        message = MagicMock()
        message.from_user.id = 7
        message.from_user.username = "mallory"
        message.chat.id = 100
        message.text = "/sendlater time=10:00 message=hi"
        assert provider._should_process_message(message) is False

    def test_message_without_user_ignored(self, provider):
        message = MagicMock()
        message.from_user = None
        message.chat.id = 100
        message.text = "/sendlater"
        assert provider._should_process_message(message) is False


class TestLifecycle:
    def test_invalid_token_is_config_error(self):
        with pytest.raises(ConfigError, match="Invalid Telegram bot token"):
            TelegramProvider(bot_token="not a token")

    @pytest.mark.asyncio
    async def test_connect_caches_username(self, provider):
        provider._bot.get_me.return_value = MagicMock(username="later_bot")
        await provider.connect()
        assert provider.bot_username == "later_bot"

    @pytest.mark.asyncio
    async def test_connect_failure_is_config_error(self, provider):
        provider._bot.get_me.side_effect = api_error(
            TelegramUnauthorizedError, "Unauthorized"
        )
        with pytest.raises(ConfigError, match="Cannot establish Telegram session"):
            await provider.connect()

    @pytest.mark.asyncio
    async def test_register_commands(self, provider):
        await provider.register_commands()

        (commands,), _ = provider._bot.set_my_commands.await_args
        assert [c.command for c in commands] == ["sendlater", "help"]

    @pytest.mark.asyncio
    async def test_register_rejected_is_config_error(self, provider):
        provider._bot.set_my_commands.side_effect = api_error()
        with pytest.raises(ConfigError, match="Cannot register command"):
            await provider.register_commands()

    @pytest.mark.asyncio
    async def test_unregister_failure_only_logged(self, provider):
        provider._bot.delete_my_commands.side_effect = api_error()
        await provider.unregister_commands()
        provider._bot.delete_my_commands.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stop_before_start_closes_session(self, provider):
        await provider.stop()
        provider._bot.session.close.assert_awaited_once()


class TestHandleCommand:
    @pytest.mark.asyncio
    async def test_passes_options_to_handler(self, provider):
        handler = AsyncMock(return_value=CommandResult(reply="Message scheduled"))
        provider._handler = handler

        reply = await provider.handle_command("time=10:01 message=hi", None, "100")

        assert reply == "Message scheduled"
        handler.assert_awaited_once_with(
            SendLaterOptions(time="10:01", message="hi"), "100"
        )

    @pytest.mark.asyncio
    async def test_parse_error_replies_with_usage(self, provider):
        handler = AsyncMock()
        provider._handler = handler

        reply = await provider.handle_command("at=10:01", None, "100")

        assert reply.startswith("Error scheduling message: unknown option 'at'")
        assert reply.endswith(USAGE)
        handler.assert_not_awaited()

    def test_attachment_ref_from_document(self, provider):
        message = MagicMock()
        message.document.file_id = "doc1"
        message.document.file_name = "notes.txt"
        message.document.mime_type = "text/plain"
        message.document.file_size = 12

        assert provider._attachment_ref(message) == AttachmentRef(
            file_id="doc1", name="notes.txt", content_type="text/plain", size=12
        )

    def test_no_document_no_attachment(self, provider):
        message = MagicMock()
        message.document = None
        assert provider._attachment_ref(message) is None


class TestDelivery:
    @pytest.mark.asyncio
    async def test_send_text(self, provider):
        provider._bot.send_message.return_value = MagicMock(message_id=42)

        message_id = await provider.send_text(Destination("-100123"), "hello")

        assert message_id == "42"
        provider._bot.send_message.assert_awaited_once_with(
            chat_id=-100123, text="hello"
        )

    @pytest.mark.asyncio
    async def test_send_text_to_username(self, provider):
        provider._bot.send_message.return_value = MagicMock(message_id=1)
        await provider.send_text(Destination("@news"), "hello")
        assert provider._bot.send_message.await_args.kwargs["chat_id"] == "@news"

    @pytest.mark.asyncio
    async def test_send_text_failure_is_transport_error(self, provider):
        provider._bot.send_message.side_effect = api_error()
        with pytest.raises(TransportError, match="Could not send to News"):
            await provider.send_text(Destination("-100123", "News"), "hello")

    @pytest.mark.asyncio
    async def test_send_attachment_uploads_document(self, provider):
        provider._bot.send_document.return_value = MagicMock(message_id=7)

        message_id = await provider.send_attachment(
            Destination("100"), "notes.txt", "text/plain", b"a\nb"
        )

        assert message_id == "7"
        kwargs = provider._bot.send_document.await_args.kwargs
        assert kwargs["chat_id"] == 100
        assert kwargs["document"].filename == "notes.txt"
        assert kwargs["document"].data == b"a\nb"

    @pytest.mark.asyncio
    async def test_send_attachment_failure_is_transport_error(self, provider):
        provider._bot.send_document.side_effect = api_error()
        with pytest.raises(TransportError, match="notes.txt"):
            await provider.send_attachment(
                Destination("100"), "notes.txt", "text/plain", b"a"
            )


class TestLookups:
    @pytest.mark.asyncio
    async def test_resolve_destination(self, provider):
        provider._bot.get_chat.return_value = MagicMock(
            id=-100123, title="News", username=None, first_name=None
        )

        destination = await provider.resolve_destination("@news")

        assert destination == Destination(chat_id="-100123", title="News")
        provider._bot.get_chat.assert_awaited_once_with("@news")

    @pytest.mark.asyncio
    async def test_resolve_private_chat_uses_name(self, provider):
        provider._bot.get_chat.return_value = MagicMock(
            id=42, title=None, username="alice", first_name="Alice"
        )
        destination = await provider.resolve_destination("42")
        assert destination == Destination(chat_id="42", title="alice")
        provider._bot.get_chat.assert_awaited_once_with(42)

    @pytest.mark.asyncio
    async def test_resolve_unknown_chat(self, provider):
        provider._bot.get_chat.side_effect = api_error()
        with pytest.raises(TransportError, match="Unknown channel @gone"):
            await provider.resolve_destination("@gone")

    @pytest.mark.asyncio
    async def test_fetch_attachment(self, provider):
        provider._bot.get_file.return_value = MagicMock(file_path="documents/f.txt")
        provider._bot.download_file.return_value = io.BytesIO(b"line 1\nline 2")

        payload = await provider.fetch_attachment(
            AttachmentRef(file_id="f1", name="notes.txt", content_type="text/plain")
        )

        assert payload.name == "notes.txt"
        assert payload.content_type == "text/plain"
        assert payload.data == b"line 1\nline 2"
        provider._bot.download_file.assert_awaited_once_with("documents/f.txt")

    @pytest.mark.asyncio
    async def test_fetch_attachment_defaults(self, provider):
        provider._bot.get_file.return_value = MagicMock(file_path="documents/f")
        provider._bot.download_file.return_value = io.BytesIO(b"data")

        payload = await provider.fetch_attachment(AttachmentRef(file_id="f1"))

        assert payload.name == "f1"
        assert payload.content_type == "application/octet-stream"

    @pytest.mark.asyncio
    async def test_fetch_attachment_too_large(self, provider):
        with pytest.raises(TransportError, match="exceeds the 1024 byte limit"):
            await provider.fetch_attachment(AttachmentRef(file_id="f1", size=4096))
        provider._bot.get_file.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fetch_attachment_download_failure(self, provider):
        provider._bot.get_file.side_effect = api_error(message="file is too big")
        with pytest.raises(TransportError, match="Could not get attachment"):
            await provider.fetch_attachment(AttachmentRef(file_id="f1"))

    @pytest.mark.asyncio
    async def test_fetch_attachment_without_path(self, provider):
        provider._bot.get_file.return_value = MagicMock(file_path=None)
        with pytest.raises(TransportError, match="no download path"):
            await provider.fetch_attachment(AttachmentRef(file_id="f1"))
