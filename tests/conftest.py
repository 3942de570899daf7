"""Shared test fixtures and factories."""

import asyncio
import logging
from collections.abc import Iterator
from datetime import UTC, datetime, timedelta, tzinfo
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

from sendlater.scheduling import (
    AttachmentPayload,
    AttachmentRef,
    DeliveryScheduler,
    Destination,
    SendLaterCommand,
    TimeResolver,
    TransportError,
)

POLL_INTERVAL = 60.0

# =============================================================================
# Clock
# =============================================================================


class ManualClock:
    """Clock that only moves when a test advances it.

    Time is kept in UTC and reported in ``zone``, so local readings jump at
    DST changes like the wall clock. Sleepers wake in deadline order, one tick
    at a time, so a waiter sees the same sequence of ``now()`` values it would
    see on the wall clock.
    """

    def __init__(self, start: datetime, zone: tzinfo | None = None):
        self._zone = zone or start.tzinfo
        self._now = start.astimezone(UTC)
        self._sleepers: list[tuple[datetime, asyncio.Future[None]]] = []

    def now(self) -> datetime:
        return self._now.astimezone(self._zone)

    async def sleep(self, seconds: float) -> None:
        future = asyncio.get_running_loop().create_future()
        self._sleepers.append((self._now + timedelta(seconds=seconds), future))
        await future

    @property
    def sleeping(self) -> int:
        return sum(1 for _, f in self._sleepers if not f.done())

    async def _settle(self) -> None:
        for _ in range(10):
            await asyncio.sleep(0)

    async def advance(self, seconds: float) -> None:
        target = self._now + timedelta(seconds=seconds)
        await self._settle()
        while True:
            deadlines = [d for d, f in self._sleepers if not f.done()]
            if not deadlines or min(deadlines) > target:
                break
            self._now = min(deadlines)
            due = [f for d, f in self._sleepers if d <= self._now and not f.done()]
            self._sleepers = [
                (d, f) for d, f in self._sleepers if d > self._now and not f.done()
            ]
            for future in due:
                future.set_result(None)
            await self._settle()
        self._now = target
        await self._settle()


# =============================================================================
# Transport
# =============================================================================


class RecordingTransport:
    """In-memory chat platform that records deliveries with their clock time."""

    def __init__(self, clock: ManualClock):
        self._clock = clock
        self.sent: list[tuple[datetime, Destination, object]] = []
        self.failing_chats: set[str] = set()
        self.unknown_chats: set[str] = set()
        self.attachments: dict[str, AttachmentPayload] = {}
        self.fetched: list[AttachmentRef] = []

    async def send_text(self, destination: Destination, text: str) -> str:
        return self._record(destination, text)

    async def send_attachment(
        self, destination: Destination, name: str, content_type: str, data: bytes
    ) -> str:
        return self._record(destination, (name, content_type, data))

    def _record(self, destination: Destination, content: object) -> str:
        if destination.chat_id in self.failing_chats:
            raise TransportError(f"chat {destination.chat_id} is unreachable")
        self.sent.append((self._clock.now(), destination, content))
        return str(len(self.sent))

    async def resolve_destination(self, chat_id: str) -> Destination:
        if chat_id in self.unknown_chats:
            raise TransportError(f"Unknown channel {chat_id}")
        return Destination(chat_id=chat_id, title=f"chat {chat_id}")

    async def fetch_attachment(self, ref: AttachmentRef) -> AttachmentPayload:
        self.fetched.append(ref)
        if ref.file_id not in self.attachments:
            raise TransportError("Could not get attachment: file not found")
        return self.attachments[ref.file_id]


# =============================================================================
# Scheduling Fixtures
# =============================================================================


@pytest.fixture
def zone() -> ZoneInfo:
    return ZoneInfo("Europe/Paris")


@pytest.fixture
def clock_start(zone: ZoneInfo) -> datetime:
    """10/03/2025 10:00:00 local time. Parametrize to start elsewhere."""
    return datetime(2025, 3, 10, 10, 0, 0, tzinfo=zone)


@pytest.fixture
def clock(clock_start: datetime, zone: ZoneInfo) -> ManualClock:
    return ManualClock(clock_start, zone)


@pytest.fixture
def transport(clock: ManualClock) -> RecordingTransport:
    return RecordingTransport(clock)


@pytest.fixture
def resolver(zone: ZoneInfo) -> TimeResolver:
    return TimeResolver(zone)


@pytest.fixture
def scheduler(transport: RecordingTransport, clock: ManualClock) -> DeliveryScheduler:
    return DeliveryScheduler(transport, clock, poll_interval=POLL_INTERVAL)


@pytest.fixture
def command(
    scheduler: DeliveryScheduler,
    resolver: TimeResolver,
    clock: ManualClock,
    transport: RecordingTransport,
) -> SendLaterCommand:
    return SendLaterCommand(scheduler, resolver, clock, transport)


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def config_toml_content() -> str:
    """Valid TOML config content."""
    return """
[telegram]
bot_token = "123456789:AAbbCCddEEffGGhhIIjjKKllMMnnOOppQQ"
allowed_users = ["@alice"]

[scheduler]
poll_interval = 30
timezone = "Europe/Paris"

[logging]
level = "debug"
"""


@pytest.fixture
def config_file(tmp_path: Path, config_toml_content: str) -> Path:
    """Create a temporary config file."""
    config_path = tmp_path / "config.toml"
    config_path.write_text(config_toml_content)
    return config_path


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    """Point SENDLATER_HOME at a temp dir and clear env secrets."""
    from sendlater.config.paths import get_sendlater_home

    home = tmp_path / "home"
    monkeypatch.setenv("SENDLATER_HOME", str(home))
    monkeypatch.delenv("TELEGRAM_BOT_TOKEN", raising=False)
    monkeypatch.delenv("SENDLATER_LOG_LEVEL", raising=False)
    monkeypatch.chdir(tmp_path)
    get_sendlater_home.cache_clear()
    yield home
    get_sendlater_home.cache_clear()


@pytest.fixture
def cli_runner():
    """Create a Typer CLI test runner with colors disabled."""
    from typer.testing import CliRunner

    return CliRunner(env={"NO_COLOR": "1"})


@pytest.fixture
def restore_logging() -> Iterator[None]:
    """Undo configure_logging() changes to the root logger."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)
