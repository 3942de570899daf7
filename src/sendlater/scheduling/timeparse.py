"""Resolve user supplied ``DD/MM/YYYY`` + ``HH:MM`` pairs into instants."""

import logging
import re
from datetime import datetime, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sendlater.config.models import ConfigError
from sendlater.config.paths import get_system_timezone
from sendlater.scheduling.types import ScheduleValidationError

logger = logging.getLogger(__name__)

DATE_FORMAT = "%d/%m/%Y"
TIME_FORMAT = "%H:%M"
DATE_HINT = "DD/MM/YYYY"
TIME_HINT = "HH:MM"

# Every field has a fixed width, so formatting a parsed value gives back the input
_LAYOUT = re.compile(
    r"(?P<day>\d{2})/(?P<month>\d{2})/(?P<year>\d{4}) (?P<hour>\d{2}):(?P<minute>\d{2})",
    re.ASCII,
)


def load_timezone(name: str | None = None) -> ZoneInfo:
    """Load the process-wide zone, from config or the host setting.

    Raises:
        ConfigError: If the zone is unknown or the tz database is unavailable.
    """
    zone_name = name or get_system_timezone()
    try:
        zone = ZoneInfo(zone_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigError(f"Cannot load time zone {zone_name!r}: {e}") from e
    logger.debug("timezone_loaded", extra={"schedule.timezone": zone_name})
    return zone


def format_instant(instant: datetime, zone: tzinfo) -> str:
    """Render an instant as ``DD/MM/YYYY HH:MM`` in ``zone``."""
    return instant.astimezone(zone).strftime(f"{DATE_FORMAT} {TIME_FORMAT}")


class TimeResolver:
    """Parses date/time text in a single, fixed zone.

    Example:
        resolver = TimeResolver(load_timezone("Europe/Paris"))
        due_at = resolver.resolve("25/12/2025", "09:30")
    """

    def __init__(self, zone: tzinfo):
        self._zone = zone

    @property
    def zone(self) -> tzinfo:
        return self._zone

    def today(self, now: datetime) -> str:
        """Today's date in the resolver zone, formatted like user input."""
        return now.astimezone(self._zone).strftime(DATE_FORMAT)

    def resolve(self, date_text: str, time_text: str) -> datetime:
        """Parse a date and a time of day into an aware datetime.

        The date is never defaulted here; callers substitute ``today()`` for an
        empty date. Past instants are accepted.

        Raises:
            ScheduleValidationError: If the text does not match the layout or is
                not a valid calendar date/time.
        """
        text = f"{date_text} {time_text}"
        match = _LAYOUT.fullmatch(text)
        if match is None:
            raise ScheduleValidationError(
                f'cannot parse "{text}" as "{DATE_HINT} {TIME_HINT}"'
            )

        fields = {name: int(value) for name, value in match.groupdict().items()}
        try:
            return datetime(
                fields["year"],
                fields["month"],
                fields["day"],
                fields["hour"],
                fields["minute"],
                tzinfo=self._zone,
            )
        except ValueError as e:
            raise ScheduleValidationError(f'cannot parse "{text}": {e}') from e
