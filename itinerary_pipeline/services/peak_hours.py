"""
Peak hours handling in Manila time.

Parses free-text peak hour ranges such as ``"10 am - 11 am / 4 pm - 6 pm"``
and derives the peak-hours guidance that is passed to the model.
"""

import re
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from pydantic import BaseModel

from itinerary_pipeline.utils.logging import get_logger

logger = get_logger(__name__)

MANILA_TZ = ZoneInfo("Asia/Manila")

_RANGE_PATTERN = re.compile(
    r"(\d{1,2}):?(\d{0,2})\s*(am|pm)\s*-\s*(\d{1,2}):?(\d{0,2})\s*(am|pm)",
    re.IGNORECASE,
)
_TIME_PATTERN = re.compile(r"(\d{1,2}):(\d{2})\s*(AM|PM)", re.IGNORECASE)
_DAY_SPECIFIC = ("saturday", "sunday", "weekday")


class PeakHoursPeriod(BaseModel):
    """A single peak range, e.g. ``start="10:00 AM", end="11:00 AM"``."""

    start: str
    end: str


def get_manila_time(now: datetime | None = None) -> datetime:
    """Return ``now`` (or the current time) in Manila time."""
    if now is None:
        return datetime.now(MANILA_TZ)
    if now.tzinfo is None:
        return now.replace(tzinfo=MANILA_TZ)
    return now.astimezone(MANILA_TZ)


def parse_peak_hours(peak_hours: str | None) -> list[PeakHoursPeriod]:
    """
    Parse a peak hours string into periods.

    Day-specific ranges ("Saturday & Sunday 6 am - 5 pm") are skipped.

    Args:
        peak_hours: Ranges separated by ``/``

    Returns:
        Parsed periods, in input order
    """
    if not peak_hours:
        return []

    periods = []
    for part in peak_hours.split("/"):
        part = part.strip()
        if any(day in part.lower() for day in _DAY_SPECIFIC):
            continue
        match = _RANGE_PATTERN.search(part)
        if not match:
            continue
        start_hour, start_min, start_period, end_hour, end_min, end_period = match.groups()
        periods.append(
            PeakHoursPeriod(
                start=f"{start_hour}:{(start_min or '00').zfill(2)} {start_period.upper()}",
                end=f"{end_hour}:{(end_min or '00').zfill(2)} {end_period.upper()}",
            )
        )
    return periods


def convert_to_24_hour(time_str: str) -> int:
    """Convert ``"4:30 PM"`` to ``1630``; returns -1 when unparseable."""
    match = _TIME_PATTERN.search(time_str)
    if not match:
        return -1

    hour, minute, period = int(match.group(1)), int(match.group(2)), match.group(3).upper()
    if period == "PM" and hour != 12:
        hour += 12
    elif period == "AM" and hour == 12:
        hour = 0
    return hour * 100 + minute


def is_currently_peak_hours(peak_hours: str | None, now: datetime | None = None) -> bool:
    """
    Check whether the current Manila time falls inside any peak range.

    Args:
        peak_hours: Peak hours string
        now: Override for the current time

    Returns:
        True if the time is inside a range (ranges may cross midnight)
    """
    manila = get_manila_time(now)
    current = manila.hour * 100 + manila.minute

    for period in parse_peak_hours(peak_hours):
        start = convert_to_24_hour(period.start)
        end = convert_to_24_hour(period.end)
        if start == -1 or end == -1:
            continue
        if start <= end:
            if start <= current <= end:
                return True
        elif current >= start or current <= end:
            return True
    return False


def get_next_low_traffic_time(peak_hours: str | None, now: datetime | None = None) -> str:
    """Describe when an activity leaves its current peak range."""
    periods = parse_peak_hours(peak_hours)
    if not periods:
        return "Available now"

    manila = get_manila_time(now)
    current = manila.hour * 100 + manila.minute
    for period in periods:
        end = convert_to_24_hour(period.end)
        if end != -1 and current < end:
            end_hour, end_minute = divmod(end, 100)
            display_hour = end_hour - 12 if end_hour > 12 else end_hour
            suffix = "PM" if end_hour >= 12 else "AM"
            return f"Best to visit after {display_hour}:{end_minute:02d} {suffix}"
    return "Available now"


def filter_low_traffic_activities(
    activities: list[dict[str, Any]], now: datetime | None = None
) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    """
    Split activities into those outside and inside their peak hours.

    Activities without ``peakHours`` data are treated as low traffic.

    Returns:
        ``(low_traffic, currently_peak)``
    """
    low_traffic: list[dict[str, Any]] = []
    currently_peak: list[dict[str, Any]] = []
    for activity in activities:
        if is_currently_peak_hours(activity.get("peakHours"), now):
            currently_peak.append(activity)
        else:
            low_traffic.append(activity)

    logger.debug(
        f"Peak hours filter: {len(low_traffic)} allowed, {len(currently_peak)} blocked"
    )
    return low_traffic, currently_peak


def get_peak_hours_context(now: datetime | None = None) -> str:
    """
    Build the peak-hours guidance block for the generation prompt.

    Args:
        now: Override for the current time

    Returns:
        Multi-line context naming the current Manila time and day
    """
    manila = get_manila_time(now)
    hour = manila.hour % 12 or 12
    time_str = f"{hour}:{manila.minute:02d} {'PM' if manila.hour >= 12 else 'AM'}"
    day_str = manila.strftime("%A")

    return (
        "CURRENT MANILA TIME CONTEXT:\n"
        f"Current time: {time_str} on {day_str}\n"
        "\n"
        "STRICT PEAK HOURS ENFORCEMENT:\n"
        "- ABSOLUTE RULE: NO activities currently in peak hours are allowed in the itinerary\n"
        "- The system has already filtered out all peak hour activities from the database\n"
        "- Only suggest activities that are guaranteed to be in low-traffic periods right now\n"
        "- Every recommended activity is currently experiencing optimal (low) traffic conditions\n"
        "\n"
        "PEAK HOURS REFERENCE (for context only - these activities are already excluded):\n"
        "- Tourist attractions: Usually busiest 10 AM - 12 PM and 4 PM - 6 PM\n"
        "- Restaurants: Lunch (12 PM - 2 PM) and Dinner (6 PM - 8 PM) rush\n"
        "- Markets: Early morning (5 AM - 8 AM) and evening (5 PM - 7 PM)\n"
        "- Shopping malls: Weekends and evenings\n"
        "\n"
        "TRAFFIC-AWARE MESSAGING:\n"
        "- Emphasize that all suggested activities are currently in their optimal "
        "(low-traffic) periods\n"
        "- Mention specific benefits of visiting during current low-traffic times\n"
        "- Highlight the perfect timing for crowd-free experiences"
    )
