"""The ``sendlater`` command: validate options, build a request, schedule it."""

import logging
from dataclasses import dataclass
from typing import Protocol

from sendlater.scheduling.clock import Clock
from sendlater.scheduling.scheduler import DeliveryScheduler, PendingDelivery
from sendlater.scheduling.timeparse import TimeResolver, format_instant
from sendlater.scheduling.types import (
    AttachmentPayload,
    AttachmentRef,
    Destination,
    ScheduleRequest,
    ScheduleValidationError,
    TransportError,
)

logger = logging.getLogger(__name__)

COMMAND_NAME = "sendlater"
COMMAND_DESCRIPTION = (
    "Schedules a message (one line) or an attachment to be sent at a later "
    "time. If the time is in the past, the message is sent after one poll "
    "interval."
)


@dataclass(frozen=True)
class SendLaterOptions:
    """Options of one ``sendlater`` invocation, as typed by the user."""

    time: str
    message: str | None = None
    attachment: AttachmentRef | None = None
    date: str | None = None
    channel: str | None = None


class CommandTransport(Protocol):
    """Lookups the command needs from the chat platform before scheduling."""

    async def resolve_destination(self, chat_id: str) -> Destination: ...

    async def fetch_attachment(self, ref: AttachmentRef) -> AttachmentPayload: ...


@dataclass
class CommandResult:
    reply: str
    pending: PendingDelivery | None = None

    @property
    def ok(self) -> bool:
        return self.pending is not None


class SendLaterCommand:
    """Turns validated options into a scheduled delivery.

    Every request-time failure is turned into a reply for the requester and
    nothing is scheduled. Failures after scheduling are only logged by the
    scheduler.
    """

    def __init__(
        self,
        scheduler: DeliveryScheduler,
        resolver: TimeResolver,
        clock: Clock,
        transport: CommandTransport,
    ):
        self._scheduler = scheduler
        self._resolver = resolver
        self._clock = clock
        self._transport = transport

    async def handle(self, options: SendLaterOptions, chat_id: str) -> CommandResult:
        """Schedule a message for the chat the command was sent from.

        Args:
            options: Parsed command options.
            chat_id: The invoking chat, used when no channel is given.
        """
        try:
            request = await self._build_request(options, chat_id)
        except (ScheduleValidationError, TransportError) as e:
            logger.warning(
                "schedule_rejected",
                extra={
                    "messaging.chat_id": chat_id,
                    "error.type": type(e).__name__,
                    "error.message": str(e),
                },
            )
            return CommandResult(reply=f"Error scheduling message: {e}")

        pending = self._scheduler.schedule(request)
        when = format_instant(request.due_at, self._resolver.zone)
        reply = f"Message scheduled for {when}"
        if request.destination.chat_id != chat_id:
            reply += f" in {request.destination.label}"
        return CommandResult(reply=reply, pending=pending)

    async def _build_request(
        self, options: SendLaterOptions, chat_id: str
    ) -> ScheduleRequest:
        # Payload options are checked before anything is downloaded
        if not options.message and options.attachment is None:
            raise ScheduleValidationError("message and attachment cannot be empty")
        if options.message and options.attachment is not None:
            raise ScheduleValidationError("message and attachment cannot be both set")
        if not options.time:
            raise ScheduleValidationError("time is required (HH:MM)")

        date_text = options.date or self._resolver.today(self._clock.now())
        due_at = self._resolver.resolve(date_text, options.time)

        destination = await self._transport.resolve_destination(
            options.channel or chat_id
        )

        attachment: AttachmentPayload | None = None
        if options.attachment is not None:
            attachment = await self._transport.fetch_attachment(options.attachment)

        return ScheduleRequest.create(
            due_at,
            destination,
            text=options.message,
            attachment=attachment,
        )
