"""Market calendar — IST clock, trading days and time-of-day windows.

Pure functions, no I/O. Weekends are the only non-trading days known here;
exchange holidays show up as empty candle fetches instead.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone

IST = timezone(timedelta(hours=5, minutes=30), name="IST")

MARKET_OPEN = time(9, 15)
MARKET_CLOSE = time(15, 30)


@dataclass(frozen=True)
class TimeWindow:
    """Daily time-of-day window, inclusive start and exclusive end."""

    start: time
    end: time

    def contains(self, moment: time) -> bool:
        return self.start <= moment < self.end

    def __str__(self) -> str:
        return f"{self.start:%H:%M}-{self.end:%H:%M}"


MARKET_HOURS = TimeWindow(MARKET_OPEN, MARKET_CLOSE)


def now_ist() -> datetime:
    """Current wall-clock time in IST."""
    return datetime.now(IST)


def at(day: date, hour: int, minute: int = 0) -> datetime:
    """Build an IST datetime on *day* at ``hour:minute``."""
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=IST)


def is_trading_day(day: date) -> bool:
    return day.weekday() < 5


def is_market_open(moment: datetime) -> bool:
    return is_trading_day(moment.date()) and MARKET_HOURS.contains(moment.time())


def is_expiry_day(day: date, expiry_weekday: int = 3) -> bool:
    """Weekly index options expire on *expiry_weekday* (Thursday by default)."""
    return day.weekday() == expiry_weekday


def previous_trading_day(day: date) -> date:
    """Most recent weekday strictly before *day*."""
    prev = day - timedelta(days=1)
    while not is_trading_day(prev):
        prev -= timedelta(days=1)
    return prev


def trading_days_ago(day: date, count: int) -> date:
    """The weekday *count* trading days before *day*."""
    current = day
    for _ in range(count):
        current = previous_trading_day(current)
    return current
