"""
Time helpers shared by the test modules.
"""

import pendulum

from bookingengine.domain.models import TimeRange

TZ = "Europe/Berlin"
DAY = pendulum.date(2024, 11, 25)  # Monday
FIXED_NOW = pendulum.datetime(2024, 11, 20, 12, 0, tz="UTC")


def at(hhmm: str, day: str = "2024-11-25") -> pendulum.DateTime:
    return pendulum.parse(f"{day} {hhmm}", tz=TZ)


def window(start: str, end: str, day: str = "2024-11-25") -> TimeRange:
    return TimeRange(start=at(start, day), end=at(end, day))
