"""Time source for the scheduler.

Waiters only ever ask for the current instant and sleep between polls, so
tests swap in a clock that is advanced by hand.
"""

import asyncio
from datetime import datetime, tzinfo
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime:
        """Current instant, timezone-aware."""
        ...

    async def sleep(self, seconds: float) -> None: ...


class SystemClock:
    """Wall clock in a fixed zone."""

    def __init__(self, zone: tzinfo):
        self._zone = zone

    @property
    def zone(self) -> tzinfo:
        return self._zone

    def now(self) -> datetime:
        return datetime.now(self._zone)

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)
