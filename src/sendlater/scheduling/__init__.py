"""Scheduling subsystem: deferred, exactly-once message delivery.

Public API:
- TimeResolver: Parses DD/MM/YYYY + HH:MM in the process zone
- DeliveryScheduler: Starts one polling waiter per request
- SendLaterCommand: Validates command options and schedules them

Types:
- ScheduleRequest: Immutable request (due time, payload, destination)
- PendingDelivery: Handle for a scheduled request
"""

from sendlater.scheduling.clock import Clock, SystemClock
from sendlater.scheduling.command import (
    COMMAND_DESCRIPTION,
    COMMAND_NAME,
    CommandResult,
    SendLaterCommand,
    SendLaterOptions,
)
from sendlater.scheduling.scheduler import DeliveryScheduler, PendingDelivery
from sendlater.scheduling.timeparse import TimeResolver, format_instant, load_timezone
from sendlater.scheduling.types import (
    AttachmentPayload,
    AttachmentRef,
    DeliveryState,
    DeliveryTransport,
    Destination,
    ScheduleRequest,
    ScheduleValidationError,
    TextPayload,
    TransportError,
)

__all__ = [
    "COMMAND_DESCRIPTION",
    "COMMAND_NAME",
    "AttachmentPayload",
    "AttachmentRef",
    "Clock",
    "CommandResult",
    "DeliveryScheduler",
    "DeliveryState",
    "DeliveryTransport",
    "Destination",
    "PendingDelivery",
    "ScheduleRequest",
    "ScheduleValidationError",
    "SendLaterCommand",
    "SendLaterOptions",
    "SystemClock",
    "TextPayload",
    "TimeResolver",
    "TransportError",
    "format_instant",
    "load_timezone",
]
