# etiket-backend/events/datetime_utils.py
"""
Centralized datetime handling for eTiket.

Events store a civil date + optional time with no zone. They are always
interpreted at a fixed offset from UTC (LOCAL_UTC_OFFSET_HOURS, WIB by
default), and check-in times are rendered at the same offset.
"""
from datetime import datetime, time, timedelta, timezone as dt_timezone
from typing import Optional

from django.conf import settings
from django.utils import timezone


def now() -> datetime:
    """
    Get current datetime (timezone-aware).

    This is the single source of truth for "now" in eTiket.
    """
    return timezone.now()


def local_tz() -> dt_timezone:
    return dt_timezone(timedelta(hours=settings.LOCAL_UTC_OFFSET_HOURS))


def to_local(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    return dt.astimezone(local_tz())


def event_start(event) -> datetime:
    """Start instant: event_date + event_time (00:00 when unset) at the local offset."""
    start_time = event.event_time or time(0, 0)
    return datetime.combine(event.event_date, start_time, tzinfo=local_tz())


def check_in_opens_at(event) -> datetime:
    return event_start(event) - timedelta(minutes=settings.CHECK_IN_OPENS_MINUTES_BEFORE)


def is_check_in_open(event, current: Optional[datetime] = None) -> bool:
    current = current or now()
    return current >= check_in_opens_at(event)


def is_auto_closed(event, current: Optional[datetime] = None) -> bool:
    """True once now is past start + EVENT_AUTO_CLOSE_AFTER_MINUTES."""
    if event.event_date is None:
        return False
    current = current or now()
    cutoff = event_start(event) + timedelta(minutes=settings.EVENT_AUTO_CLOSE_AFTER_MINUTES)
    return current > cutoff


def format_for_api(dt: Optional[datetime]) -> Optional[str]:
    """
    Format datetime for API responses (ISO 8601, local offset).

    Returns None if input is None.
    """
    if dt is None:
        return None
    return to_local(dt).isoformat()


def format_for_display(dt: Optional[datetime], format_str: str = "%d %b %Y %H:%M") -> Optional[str]:
    """
    Format datetime for human-readable display at the local offset.

    Default format: "01 Jan 2026 14:30"
    """
    if dt is None:
        return None
    return to_local(dt).strftime(format_str)
