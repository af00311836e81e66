"""
fsrs_lite.formatting
--------------------

Short display labels for intervals, as shown next to each answer button.
"""

from __future__ import annotations
from collections.abc import Mapping
from fsrs_lite.rating import Rating
from fsrs_lite.scheduler import round_half_up

MINUTES_PER_DAY = 1440
HOURS_PER_DAY = 24
DAYS_PER_MONTH = 30
DAYS_PER_YEAR = 365


def format_interval(days: float) -> str:
    """
    Converts a number of days into a short label such as "10m", "5d" or "1.1y".

    Breakpoints are one minute, one hour, one day, 30 days and 365 days.
    Anything below a minute, including negative values, reads "<1m".
    """

    if not days >= 1 / MINUTES_PER_DAY:
        return "<1m"
    elif days < 1 / HOURS_PER_DAY:
        return f"{round_half_up(days * MINUTES_PER_DAY)}m"
    elif days < 1:
        return f"{round_half_up(days * HOURS_PER_DAY)}h"
    elif days < DAYS_PER_MONTH:
        return f"{round_half_up(days)}d"
    elif days < DAYS_PER_YEAR:
        return f"{round_half_up(days / DAYS_PER_MONTH)}mo"
    else:
        return f"{days / DAYS_PER_YEAR:.1f}y"


def format_preview(preview: Mapping[Rating, float]) -> dict[Rating, str]:
    """
    Labels every interval of a `Scheduler.preview_schedule` result.
    """

    return {rating: format_interval(days) for rating, days in preview.items()}


__all__ = ["format_interval", "format_preview"]
