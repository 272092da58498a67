"""
Wall-clock arithmetic for the stock tracker.

Computes the aligned wake-up time for the next fetch cycle and the
countdowns to each shop category's next restock. All functions take the
current time explicitly so callers decide the timezone.
"""

import math
from datetime import datetime, timedelta
from typing import Any, Dict

# Restock cadence per category, as shown by `nextstock`
RESTOCK_FREQUENCIES: Dict[str, str] = {
    "gear": "Every 5 minutes",
    "seed": "Every 3 minutes",
    "egg": "Every 30 minutes",
    "honey": "Every hour",
    "cosmetics": "Every 7 hours",
}


def now_in(tz: Any) -> datetime:
    """Current time as an aware datetime in ``tz`` (a pytz timezone)."""
    return datetime.now(tz)


def next_scheduled_time(
    now: datetime, interval_minutes: int = 5, offset_seconds: int = 30
) -> datetime:
    """
    Next wake-up on the ``interval_minutes`` grid, shifted by ``offset_seconds``.

    The current minute is floored to the grid, one interval is added and the
    offset applied, so 10:02:10 wakes at 10:05:30 and 10:04:50 also wakes at
    10:05:30. A result that is not strictly after ``now`` moves one more
    interval ahead.
    """
    floored = now.replace(
        minute=(now.minute // interval_minutes) * interval_minutes,
        second=0,
        microsecond=0,
    )
    target = floored + timedelta(minutes=interval_minutes, seconds=offset_seconds)
    if target <= now:
        target += timedelta(minutes=interval_minutes)
    return target


def seconds_until(target: datetime, now: datetime, minimum: float = 1.0) -> float:
    return max((target - now).total_seconds(), minimum)


def format_countdown(target: datetime, now: datetime) -> str:
    """Render the time left until ``target`` as ``HHh MMm SSs``."""
    ms_left = int((target - now).total_seconds() * 1000)
    if ms_left <= 0:
        return "00h 00m 00s"
    hours = ms_left // 3_600_000
    minutes = (ms_left % 3_600_000) // 60_000
    seconds = (ms_left % 60_000) // 1000
    return f"{hours:02d}h {minutes:02d}m {seconds:02d}s"


def _next_on_minute_grid(now: datetime, step: int) -> datetime:
    # A partial minute counts as a full one
    minutes = now.minute + (1 if now.second > 0 else 0)
    aligned = math.ceil(minutes / step) * step
    return now.replace(minute=0, second=0, microsecond=0) + timedelta(minutes=aligned)


def next_restock_times(now: datetime) -> Dict[str, datetime]:
    """Moment of the next restock for every shop category."""
    hour_start = now.replace(minute=0, second=0, microsecond=0)
    day_start = hour_start.replace(hour=0)

    if now.minute < 30:
        next_egg = hour_start + timedelta(minutes=30)
    else:
        next_egg = hour_start + timedelta(hours=1)

    total_hours = now.hour + now.minute / 60 + now.second / 3600
    next_cosmetics = day_start + timedelta(hours=math.ceil(total_hours / 7) * 7)

    return {
        "gear": _next_on_minute_grid(now, 5),
        "seed": _next_on_minute_grid(now, 3),
        "egg": next_egg,
        "honey": hour_start + timedelta(hours=1),
        "cosmetics": next_cosmetics,
    }


def next_restocks(now: datetime) -> Dict[str, str]:
    """Countdown strings to the next restock for every shop category."""
    return {
        category: format_countdown(moment, now)
        for category, moment in next_restock_times(now).items()
    }
