import math
from datetime import date, timedelta
from typing import Any

from coachtrend.domain.models import WeekKey, coerce_timestamp


def week_key_of(timestamp: Any) -> WeekKey:
    """
    Maps a timestamp to its ISO-8601 calendar week.

    The timestamp is converted to its UTC calendar date first, so the week
    never depends on the host timezone. The date is moved to the Thursday of
    its week (weeks start on Monday); that Thursday's year is the ISO year and
    its ordinal day decides the week number.

    Raises:
        InvalidInput: the timestamp cannot be parsed.
    """
    day = coerce_timestamp(timestamp).date()
    thursday = day + timedelta(days=4 - day.isoweekday())
    day_of_year = (thursday - date(thursday.year, 1, 1)).days + 1
    return WeekKey(thursday.year, math.ceil(day_of_year / 7))


def week_range(first: WeekKey, last: WeekKey) -> list[WeekKey]:
    """All weeks from first to last, both included."""
    weeks = []
    current = first
    while current <= last:
        weeks.append(current)
        current = current.next()
    return weeks
