"""Parsing of ``/sendlater`` arguments.

Arguments are ``name=value`` tokens separated by whitespace. ``message=``
must come last and takes the rest of the text verbatim, so it needs no
quoting:

    /sendlater time=09:30 date=25/12/2025 channel=@news message=Happy holidays!
"""

import re

from sendlater.scheduling.command import COMMAND_NAME, SendLaterOptions
from sendlater.scheduling.types import AttachmentRef, ScheduleValidationError

OPTION_NAMES = ("time", "date", "channel", "message")

USAGE = (
    f"/{COMMAND_NAME} time=HH:MM [date=DD/MM/YYYY] [channel=CHAT] message=TEXT\n\n"
    "- time: when to send it (24-hour clock)\n"
    "- date: day to send it, default today\n"
    "- channel: chat id or @username to post to, default this chat\n"
    "- message: the text to send, everything after message= is kept\n\n"
    f"To send a file instead, attach it as a document with the /{COMMAND_NAME} "
    "command as caption and leave out message=. A time in the past is sent "
    "within a minute."
)

_WHITESPACE = re.compile(r"\s+")


def parse_command_args(args: str | None) -> dict[str, str]:
    """Split command arguments into a name -> value mapping.

    Raises:
        ScheduleValidationError: On tokens without ``=``, unknown or repeated
            option names, or empty values.
    """
    options: dict[str, str] = {}
    rest = (args or "").strip()

    while rest:
        token = _WHITESPACE.split(rest, maxsplit=1)[0]
        name, sep, _ = token.partition("=")
        if not sep or not name:
            raise ScheduleValidationError(f"expected name=value, got {token!r}")
        name = name.lower()
        if name not in OPTION_NAMES:
            raise ScheduleValidationError(f"unknown option {name!r}")
        if name in options:
            raise ScheduleValidationError(f"option {name!r} given twice")

        tail = rest[rest.index("=") + 1 :]
        if name == "message":
            value, rest = tail.strip(), ""
        else:
            value, *remainder = _WHITESPACE.split(tail, maxsplit=1)
            rest = remainder[0].strip() if remainder else ""

        if not value:
            raise ScheduleValidationError(f"option {name!r} has no value")
        options[name] = value

    return options


def parse_sendlater_command(
    args: str | None, attachment: AttachmentRef | None = None
) -> SendLaterOptions:
    """Build typed options from command arguments and an optional attachment.

    Raises:
        ScheduleValidationError: If the arguments are malformed or time is missing.
    """
    options = parse_command_args(args)
    if "time" not in options:
        raise ScheduleValidationError("time is required (HH:MM)")
    return SendLaterOptions(
        time=options["time"],
        message=options.get("message"),
        attachment=attachment,
        date=options.get("date"),
        channel=options.get("channel"),
    )
