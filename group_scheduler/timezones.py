"""Conversion between wire-format UTC instants and the display zone.

The backend speaks UTC: full ISO-8601 instants for most fields, and bare
``HH:MM`` UTC clock times paired with a date in parts of the availability
payload. Everything shown to the user is in a single display zone. The
display helpers never raise; malformed input is returned unchanged and a
warning is logged.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from group_scheduler.models import FetchWindow

logger = logging.getLogger(__name__)

UTC = ZoneInfo("UTC")


def load_zone(name: Optional[str]) -> ZoneInfo:
    zone_name = name or "UTC"
    try:
        return ZoneInfo(zone_name)
    except ZoneInfoNotFoundError:
        logger.warning("Unknown timezone %s; defaulting to UTC", zone_name)
    except Exception:
        logger.warning("Failed to load timezone %s; defaulting to UTC", zone_name)
    return UTC


def parse_instant(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 instant. Naive values are taken as UTC."""
    if not value or not isinstance(value, str):
        return None
    try:
        dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


def compose_utc_instant(time_of_day: str, day: str) -> str:
    """Pair a bare UTC clock time with a date into a wire instant string."""
    return f"{day}T{time_of_day}:00+00:00"


def to_display(instant: str, tz: ZoneInfo) -> str:
    """Render a wire instant as ``HH:MM`` in the display zone."""
    dt = parse_instant(instant)
    if dt is None:
        logger.warning(f"Could not convert instant to display time: {instant!r}")
        return instant
    return dt.astimezone(tz).strftime("%H:%M")


def utc_time_to_display(time_of_day: str, day: str, tz: ZoneInfo) -> str:
    """Render a bare UTC ``HH:MM`` on ``day`` as ``HH:MM`` in the display zone."""
    if not isinstance(time_of_day, str) or not isinstance(day, str):
        logger.warning(
            f"Could not convert UTC clock time {time_of_day!r} on {day!r}"
        )
        return time_of_day
    dt = parse_instant(compose_utc_instant(time_of_day, day))
    if dt is None:
        logger.warning(
            f"Could not convert UTC clock time {time_of_day!r} on {day!r}"
        )
        return time_of_day
    return dt.astimezone(tz).strftime("%H:%M")


def to_wire_instant(display_time: str, day: date, tz: ZoneInfo) -> str:
    """Local wall-clock ``HH:MM`` on ``day`` as a UTC wire instant."""
    hours, minutes = (int(part) for part in display_time.split(":")[:2])
    local = datetime.combine(day, time(hour=hours, minute=minutes), tzinfo=tz)
    return format_wire_instant(local)


def format_wire_instant(dt: datetime) -> str:
    return dt.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def to_local(instant: datetime, tz: ZoneInfo) -> datetime:
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=UTC)
    return instant.astimezone(tz)


def display_date(instant: datetime, tz: ZoneInfo) -> date:
    """Calendar date of ``instant`` as seen in the display zone."""
    return to_local(instant, tz).date()


def local_midnight(day: date, tz: ZoneInfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def day_bounds(day: date, tz: ZoneInfo) -> Tuple[datetime, datetime]:
    return local_midnight(day, tz), local_midnight(day + timedelta(days=1), tz)


def window_to_wire(window: FetchWindow, tz: ZoneInfo) -> Tuple[str, str]:
    """UTC query bounds for a window of local calendar dates."""
    start = local_midnight(window.start, tz)
    end = local_midnight(window.end, tz)
    return format_wire_instant(start), format_wire_instant(end)
