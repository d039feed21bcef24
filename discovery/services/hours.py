"""Open/closed evaluation against a weekly schedule.

Times are compared as zero-padded ``HH:MM`` strings, inclusive at both ends.
A range whose close time sorts before its open time (an overnight range such
as 22:00-02:00) never matches, so such businesses read as closed.
"""

from datetime import datetime, timezone
from typing import Iterable, Optional, Tuple
from zoneinfo import ZoneInfo

from discovery.models.business import BusinessHoursEntry, Weekday

WEEKDAYS = [day.value for day in Weekday]


def local_day_and_time(at: datetime, tz: Optional[ZoneInfo] = None) -> Tuple[str, str]:
    """
    Weekday name and HH:MM for an instant, in the reporting timezone.

    Naive instants are taken to be UTC.
    """
    if at.tzinfo is None:
        at = at.replace(tzinfo=timezone.utc)
    local = at.astimezone(tz or timezone.utc)
    return WEEKDAYS[local.weekday()], local.strftime("%H:%M")


def hours_for_day(business_hours: Iterable[BusinessHoursEntry], day: str) -> Optional[BusinessHoursEntry]:
    for entry in business_hours:
        if entry.day == day:
            return entry
    return None


def is_open_at(
    business_hours: Iterable[BusinessHoursEntry],
    at: datetime,
    tz: Optional[ZoneInfo] = None,
) -> bool:
    """
    Whether a business with the given schedule is open at an instant.

    Args:
        business_hours: Weekly schedule, at most one entry per weekday
        at: Reference instant
        tz: Reporting timezone used to decide the weekday and time of day

    Returns:
        True if today's entry exists, is not closed, and open <= now <= close
    """
    day, current_time = local_day_and_time(at, tz)
    today = hours_for_day(business_hours or [], day)

    if today is None or today.isClosed:
        return False
    if not today.open or not today.close:
        return False

    return today.open <= current_time <= today.close
