from __future__ import annotations
from datetime import datetime, time, timedelta, timezone as dt_tz
from typing import Callable
from zoneinfo import ZoneInfo

Window = Callable[[datetime], datetime]


def end_of_day(now: datetime, tz_name: str = "UTC") -> datetime:
    """
    Last second (23:59:59) of the local day containing `now` in `tz_name`, as UTC.

    Examples:
        >>> end_of_day(datetime(2025, 1, 10, 15, 0, tzinfo=dt_tz.utc))
        datetime.datetime(2025, 1, 10, 23, 59, 59, tzinfo=datetime.timezone.utc)
    """
    tz = ZoneInfo(tz_name)
    local = now.astimezone(tz)
    last = datetime.combine(local.date(), time(23, 59, 59), tzinfo=tz)
    return last.astimezone(dt_tz.utc)


def end_of_day_window(tz_name: str) -> Window:
    return lambda now: end_of_day(now, tz_name)


def fixed_window(hours: int) -> Window:
    if hours <= 0:
        raise ValueError("window must be at least one hour")
    return lambda now: now + timedelta(hours=hours)
