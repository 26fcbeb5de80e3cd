"""Reversal analyzer — intraday swings that retrace off their extreme."""

from datetime import datetime
from typing import Optional

from adayalert.analysis.models import Reversal, ReversalAnalysis
from adayalert.market.feed import MarketDataFeed
from adayalert.market.models import INTERVAL_5MIN, Candle, completed_candles

BULLISH_REVERSAL = "BULLISH_REVERSAL"
BEARISH_REVERSAL = "BEARISH_REVERSAL"

MIN_REVERSAL_POINTS = 30.0
MIN_CANDLES = 5
RECENT_CANDLES = 6
ZONE_POINTS = 20.0


def detect_reversals(
    candles: list[Candle],
    min_magnitude: float = MIN_REVERSAL_POINTS,
) -> list[Reversal]:
    """Walk the session and record every swing of at least *min_magnitude*.

    The second candle seeds the swing direction from its colour. While the
    swing runs, its extreme (high for up, low for down) is extended. A close
    more than *min_magnitude* beyond the extreme in the opposite direction
    records a reversal and flips the swing, re-seeding the extreme from the
    reversing candle.
    """
    if len(candles) < MIN_CANDLES:
        return []

    reversals: list[Reversal] = []
    swing: Optional[str] = None
    extreme = 0.0

    for index in range(1, len(candles)):
        candle = candles[index]
        if swing is None:
            swing = "UP" if candle.close > candle.open else "DOWN"
            extreme = candle.high if swing == "UP" else candle.low
            continue

        if swing == "UP":
            extreme = max(extreme, candle.high)
            if candle.close >= extreme - min_magnitude:
                continue
            kind, magnitude = BEARISH_REVERSAL, extreme - candle.close
        else:
            extreme = min(extreme, candle.low)
            if candle.close <= extreme + min_magnitude:
                continue
            kind, magnitude = BULLISH_REVERSAL, candle.close - extreme

        reversals.append(Reversal(
            kind=kind,
            from_price=extreme,
            to_price=candle.close,
            magnitude=round(magnitude),
            time=candle.time,
            candle_index=index,
        ))
        swing = "DOWN" if swing == "UP" else "UP"
        extreme = candle.high if swing == "UP" else candle.low

    return reversals


def analyze_reversals(
    candles: list[Candle],
    min_magnitude: float = MIN_REVERSAL_POINTS,
) -> Optional[ReversalAnalysis]:
    """Reversals plus where price now sits in the day's range.

    Returns ``None`` with fewer than five candles.
    """
    if len(candles) < MIN_CANDLES:
        return None

    reversals = detect_reversals(candles, min_magnitude)
    day_high = max(c.high for c in candles)
    day_low = min(c.low for c in candles)
    price = candles[-1].close

    zone = None
    if day_high - price < ZONE_POINTS:
        zone = "NEAR_HIGH"
    elif price - day_low < ZONE_POINTS:
        zone = "NEAR_LOW"

    return ReversalAnalysis(
        reversals=reversals,
        has_recent_reversal=any(
            r.candle_index >= len(candles) - RECENT_CANDLES for r in reversals
        ),
        significant=max(reversals, key=lambda r: r.magnitude) if reversals else None,
        day_high=day_high,
        day_low=day_low,
        current_price=price,
        zone=zone,
    )


def summarize_reversals(reversals: list[Reversal]) -> dict:
    total_magnitude = sum(r.magnitude for r in reversals)
    return {
        "total": len(reversals),
        "bullish": sum(1 for r in reversals if r.kind == BULLISH_REVERSAL),
        "bearish": sum(1 for r in reversals if r.kind == BEARISH_REVERSAL),
        "total_magnitude": total_magnitude,
        "average_magnitude": round(total_magnitude / len(reversals)) if reversals else 0,
        "reversals": [
            {"kind": r.kind, "magnitude": r.magnitude, "time": r.time.strftime("%H:%M")}
            for r in reversals
        ],
    }


class ReversalAnalyzer:
    """Tracks the session's reversals; the latest list feeds the daily summary."""

    def __init__(self, symbol: str) -> None:
        self._symbol = symbol
        self._reversals: list[Reversal] = []

    def reset(self) -> None:
        self._reversals = []

    async def analyze(self, feed: MarketDataFeed, now: datetime) -> Optional[ReversalAnalysis]:
        today = now.date()
        candles = await feed.fetch_candles(self._symbol, INTERVAL_5MIN, today, today)
        result = analyze_reversals(completed_candles(candles, INTERVAL_5MIN, now))
        if result is not None:
            self._reversals = result.reversals
        return result

    def daily_summary(self) -> dict:
        return summarize_reversals(self._reversals)
