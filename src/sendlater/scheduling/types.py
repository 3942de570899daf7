"""Schedule types.

Public types:
- ScheduleRequest: A validated, immutable unit of work for the scheduler
- TextPayload / AttachmentPayload: The two mutually exclusive payload variants
- Destination: Where a payload is delivered
- DeliveryState: Lifecycle of a pending delivery
- DeliveryTransport: Protocol the scheduler delivers through
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Protocol


class ScheduleValidationError(ValueError):
    """A request was rejected before scheduling (bad time, bad payload, bad option)."""


class TransportError(Exception):
    """Talking to the chat platform failed (fetch, lookup or delivery)."""


@dataclass(frozen=True)
class Destination:
    """Opaque delivery target. ``chat_id`` is a numeric id or an ``@username``."""

    chat_id: str
    title: str | None = None

    @property
    def label(self) -> str:
        return self.title or self.chat_id


@dataclass(frozen=True)
class TextPayload:
    text: str

    @property
    def preview(self) -> str:
        first_line = self.text.split("\n", 1)[0]
        return first_line[:50]


@dataclass(frozen=True, repr=False)
class AttachmentPayload:
    """A single downloaded attachment."""

    name: str
    content_type: str
    data: bytes

    @property
    def preview(self) -> str:
        return f"{self.name} ({self.content_type}, {len(self.data)} bytes)"

    def __repr__(self) -> str:
        return f"AttachmentPayload({self.preview})"


Payload = TextPayload | AttachmentPayload


@dataclass(frozen=True)
class AttachmentRef:
    """Reference to an attachment the transport still has to download."""

    file_id: str
    name: str | None = None
    content_type: str | None = None
    size: int | None = None


@dataclass(frozen=True)
class ScheduleRequest:
    """A message to deliver at or after ``due_at``.

    Build instances with ``create`` so the payload invariant holds: exactly one
    non-empty variant. The scheduler trusts it and does not re-check.
    """

    due_at: datetime
    payload: Payload
    destination: Destination

    @classmethod
    def create(
        cls,
        due_at: datetime,
        destination: Destination,
        *,
        text: str | None = None,
        attachment: AttachmentPayload | None = None,
    ) -> "ScheduleRequest":
        """Validate the payload options and build a request.

        Raises:
            ScheduleValidationError: If both or neither of text/attachment are
                given, or the given one is empty, or due_at is naive.
        """
        if due_at.tzinfo is None:
            raise ScheduleValidationError("due time must be timezone-aware")

        has_text = bool(text)
        has_attachment = attachment is not None
        if not has_text and not has_attachment:
            raise ScheduleValidationError("message and attachment cannot be empty")
        if has_text and has_attachment:
            raise ScheduleValidationError("message and attachment cannot be both set")

        payload: Payload
        if attachment is not None:
            if not attachment.data:
                raise ScheduleValidationError(f"attachment {attachment.name} is empty")
            payload = attachment
        else:
            payload = TextPayload(text or "")

        return cls(due_at=due_at, payload=payload, destination=destination)


class DeliveryState(str, Enum):
    """Lifecycle of a pending delivery. DONE covers success and failure."""

    SCHEDULED = "scheduled"
    WAITING = "waiting"
    DELIVERING = "delivering"
    DONE = "done"


class DeliveryTransport(Protocol):
    """What the scheduler needs to deliver a payload."""

    async def send_text(self, destination: Destination, text: str) -> str: ...

    async def send_attachment(
        self,
        destination: Destination,
        name: str,
        content_type: str,
        data: bytes,
    ) -> str: ...
