"""Market data models — candles and option-chain quotes.

Plain frozen dataclasses; no I/O.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta

# Candle intervals understood by every market-data feed.
INTERVAL_5MIN = "5minute"
INTERVAL_15MIN = "15minute"
INTERVAL_DAY = "day"

INTERVAL_LENGTHS: dict[str, timedelta] = {
    INTERVAL_5MIN: timedelta(minutes=5),
    INTERVAL_15MIN: timedelta(minutes=15),
    INTERVAL_DAY: timedelta(days=1),
}


@dataclass(frozen=True)
class Candle:
    """Single OHLCV candle. ``time`` is the candle's open time (IST)."""

    time: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    @property
    def range(self) -> float:
        return self.high - self.low

    @property
    def body(self) -> float:
        return abs(self.close - self.open)

    @property
    def body_ratio(self) -> float:
        """Body as a fraction of range; 0 for a zero-range candle."""
        if self.range <= 0:
            return 0.0
        return self.body / self.range

    @property
    def is_bullish(self) -> bool:
        return self.close > self.open

    @property
    def is_bearish(self) -> bool:
        return self.close < self.open


@dataclass(frozen=True)
class OptionQuote:
    """One strike of one side of the option chain."""

    strike: float
    option_type: str  # "CE" or "PE"
    oi: float = 0.0
    ltp: float = 0.0


@dataclass(frozen=True)
class OptionChain:
    """Calls and puts for a single expiry."""

    ce: list[OptionQuote] = field(default_factory=list)
    pe: list[OptionQuote] = field(default_factory=list)


def completed_candles(
    candles: list[Candle],
    interval: str,
    now: datetime,
) -> list[Candle]:
    """Drop candles that are still forming at *now*.

    A candle is complete once ``time + interval`` is at or before *now*.
    """
    length = INTERVAL_LENGTHS[interval]
    return [c for c in candles if c.time + length <= now]
