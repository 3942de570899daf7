"""Delivery scheduler: one polling waiter per accepted request.

Each waiter sleeps one poll interval, checks whether its request is due and,
once it is, delivers exactly once and exits. Nothing is persisted; deliveries
still waiting when the process exits are lost.
"""

import asyncio
import logging
from datetime import UTC
from uuid import uuid4

from sendlater.scheduling.clock import Clock
from sendlater.scheduling.types import (
    AttachmentPayload,
    DeliveryState,
    DeliveryTransport,
    ScheduleRequest,
    TextPayload,
)

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 60.0


class PendingDelivery:
    """Handle for one scheduled request and its waiter."""

    def __init__(self, request: ScheduleRequest):
        self.id = uuid4().hex[:8]
        self.request = request
        self.state = DeliveryState.SCHEDULED
        self.error: BaseException | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def done(self) -> bool:
        return self.state is DeliveryState.DONE

    @property
    def delivered(self) -> bool:
        return self.done and self.error is None

    async def wait(self) -> None:
        """Wait until the waiter has finished (delivered or failed)."""
        if self._task is not None:
            await asyncio.shield(self._task)

    def __repr__(self) -> str:
        return (
            f"PendingDelivery(id={self.id!r}, state={self.state.value}, "
            f"due_at={self.request.due_at.isoformat()})"
        )


class DeliveryScheduler:
    """Schedules requests and delivers them through a transport when due.

    Example:
        scheduler = DeliveryScheduler(provider, SystemClock(zone))
        pending = scheduler.schedule(request)  # returns immediately
        await pending.wait()  # optional, tests only
    """

    def __init__(
        self,
        transport: DeliveryTransport,
        clock: Clock,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self._transport = transport
        self._clock = clock
        self._poll_interval = poll_interval
        # Strong references so the loop does not collect running waiters
        self._waiters: set[asyncio.Task[None]] = set()

    @property
    def poll_interval(self) -> float:
        return self._poll_interval

    @property
    def pending_count(self) -> int:
        """Number of waiters that have not finished yet."""
        return len(self._waiters)

    def schedule(self, request: ScheduleRequest) -> PendingDelivery:
        """Start a waiter for ``request`` and return without blocking.

        Must be called from a running event loop. Never fails: only the
        later delivery can.
        """
        pending = PendingDelivery(request)
        task = asyncio.create_task(
            self._run_waiter(pending), name=f"delivery-{pending.id}"
        )
        pending._task = task
        self._waiters.add(task)
        task.add_done_callback(self._waiters.discard)

        logger.info(
            "delivery_scheduled",
            extra={
                "schedule.delivery_id": pending.id,
                "schedule.due_at": request.due_at.isoformat(),
                "schedule.payload_preview": request.payload.preview,
                "messaging.chat_id": request.destination.chat_id,
            },
        )
        return pending

    async def _run_waiter(self, pending: PendingDelivery) -> None:
        request = pending.request
        pending.state = DeliveryState.WAITING
        # Compared as instants: same-zone datetimes compare by wall clock
        due_utc = request.due_at.astimezone(UTC)

        # A request that is already due still waits for the first tick
        while True:
            await self._clock.sleep(self._poll_interval)
            now = self._clock.now()
            if now.astimezone(UTC) >= due_utc:
                break
            logger.debug(
                "delivery_not_due",
                extra={
                    "schedule.delivery_id": pending.id,
                    "schedule.due_at": request.due_at.isoformat(),
                    "schedule.now": now.isoformat(),
                },
            )

        pending.state = DeliveryState.DELIVERING
        try:
            await self._deliver(request)
        except Exception as e:
            # Terminal: a failed delivery is never retried
            pending.error = e
            logger.error(
                "delivery_failed",
                extra={
                    "schedule.delivery_id": pending.id,
                    "messaging.chat_id": request.destination.chat_id,
                    "error.type": type(e).__name__,
                    "error.message": str(e),
                },
            )
        else:
            logger.info(
                "delivery_sent",
                extra={
                    "schedule.delivery_id": pending.id,
                    "schedule.payload_preview": request.payload.preview,
                    "messaging.chat_id": request.destination.chat_id,
                    "messaging.chat_title": request.destination.title,
                },
            )
        finally:
            pending.state = DeliveryState.DONE

    async def _deliver(self, request: ScheduleRequest) -> None:
        payload = request.payload
        if isinstance(payload, TextPayload):
            await self._transport.send_text(request.destination, payload.text)
        elif isinstance(payload, AttachmentPayload):
            await self._transport.send_attachment(
                request.destination,
                payload.name,
                payload.content_type,
                payload.data,
            )
        else:
            raise TypeError(f"Unsupported payload: {type(payload).__name__}")
