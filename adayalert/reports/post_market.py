"""Post-market report — how the session traded and what to watch tomorrow."""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from adayalert.market.feed import MarketDataFeed
from adayalert.market.models import INTERVAL_5MIN, INTERVAL_15MIN, Candle, completed_candles
from adayalert.reports.morning import A_DAY, CONSOLIDATION, VOLATILE, classify_day_type
from adayalert.strategy.indicators import calculate_pivots

logger = logging.getLogger("adayalert")

CHOPPY_REVERSAL_COUNT = 3


@dataclass(frozen=True)
class SessionSummary:
    """Today's OHLC built from the intraday candles."""

    session_date: date
    open: float
    high: float
    low: float
    close: float
    change: float
    change_pct: float
    volume: float

    @property
    def range(self) -> float:
        return self.high - self.low

    def as_candle(self, time: datetime) -> Candle:
        return Candle(time, self.open, self.high, self.low, self.close, self.volume)


def summarize_session(
    candles: list[Candle],
    prev_close: Optional[float] = None,
) -> Optional[SessionSummary]:
    """Fold intraday *candles* into one session.

    Change is measured against *prev_close*, or the open when it is unknown.
    """
    if not candles:
        return None
    open_ = candles[0].open
    close = candles[-1].close
    base = prev_close or open_
    return SessionSummary(
        session_date=candles[0].time.date(),
        open=open_,
        high=max(c.high for c in candles),
        low=min(c.low for c in candles),
        close=close,
        change=round(close - base, 2),
        change_pct=round((close - base) / base * 100, 2) if base else 0.0,
        volume=sum(c.volume for c in candles),
    )


def session_day_type(summary: SessionSummary, first_candle: Candle) -> str:
    day_type, direction = classify_day_type(summary.as_candle(first_candle.time))
    return f"{day_type} ({direction})" if direction else day_type


@dataclass(frozen=True)
class TomorrowLevels:
    pdh: float
    pdl: float
    pdc: float
    pivot: int
    r1: int
    r2: int
    s1: int
    s2: int


def tomorrow_levels(summary: SessionSummary) -> TomorrowLevels:
    pivots = calculate_pivots(summary.high, summary.low, summary.close)
    return TomorrowLevels(
        pdh=summary.high,
        pdl=summary.low,
        pdc=summary.close,
        pivot=round(pivots["pivot"]),
        r1=round(pivots["r1"]),
        r2=round(pivots["r2"]),
        s1=round(pivots["s1"]),
        s2=round(pivots["s2"]),
    )


def generate_outlook(summary: SessionSummary, day_type: str, reversal_count: int = 0) -> str:
    """Plain-language outlook for the next session."""
    parts = []
    if day_type.startswith(A_DAY):
        direction = "bullish" if "BULLISH" in day_type else "bearish"
        parts.append(f"Today was an A-Day ({direction}), expect follow-through tomorrow.")
        parts.append(f"Watch for continuation patterns in the {direction} direction.")
    elif day_type == CONSOLIDATION:
        parts.append("Consolidation day, range-bound action.")
        parts.append("Wait for a break of today's range before taking positions.")
    elif day_type == VOLATILE:
        parts.append("Volatile day with a wide range.")
        parts.append("Be cautious and consider smaller position sizes.")
    else:
        parts.append("Regular trading day, no strong trend established.")
        parts.append("Watch for A-Day formation tomorrow.")

    if reversal_count >= CHOPPY_REVERSAL_COUNT:
        parts.append(f"Multiple reversals ({reversal_count}) suggest choppy conditions may continue.")

    if summary.close > (summary.high + summary.low) / 2:
        parts.append(f"Closed in upper half, PDH ({summary.high:.0f}) is key resistance.")
    else:
        parts.append(f"Closed in lower half, PDL ({summary.low:.0f}) is key support.")
    return " ".join(parts)


def strategy_performance(sent: list[dict]) -> dict:
    """Per-strategy signal counts and directions for the session."""
    by_strategy: dict[str, dict] = {}
    for item in sent:
        entry = by_strategy.setdefault(item.get("strategy") or "Unknown", {"count": 0, "directions": []})
        entry["count"] += 1
        entry["directions"].append(item["direction"])
    return {
        "total_signals": len(sent),
        "by_strategy": by_strategy,
        "avg_confidence": (
            round(sum(item.get("confidence", 0) for item in sent) / len(sent), 1) if sent else 0
        ),
    }


async def build_post_market(
    feed: MarketDataFeed,
    symbol: str,
    session_date: date,
    now: datetime,
    prev_close: Optional[float] = None,
    reversal_count: int = 0,
) -> dict:
    """Session summary, day type, next-day levels and outlook.

    Returns an empty dict when no intraday candles are available.
    """
    candles: list[Candle] = []
    for interval in (INTERVAL_5MIN, INTERVAL_15MIN):
        fetched = await feed.fetch_candles(symbol, interval, session_date, session_date)
        candles = completed_candles(fetched, interval, now)
        if candles:
            break

    summary = summarize_session(candles, prev_close)
    if summary is None:
        logger.warning("Post-market summary skipped: no intraday candles for %s", session_date)
        return {}

    day_type = session_day_type(summary, candles[0])
    logger.info(
        "Post-market %s: %s close %.2f (%+.2f%%)",
        session_date, day_type, summary.close, summary.change_pct,
    )
    return {
        "session": summary,
        "session_type": day_type,
        "tomorrow_levels": tomorrow_levels(summary),
        "outlook": generate_outlook(summary, day_type, reversal_count),
    }
