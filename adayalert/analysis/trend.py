"""Trend analyzer — EMA(20) position and slope over the session."""

from datetime import datetime
from typing import Optional

from adayalert.analysis.models import TrendAnalysis
from adayalert.market.feed import MarketDataFeed
from adayalert.market.models import INTERVAL_5MIN, Candle, completed_candles
from adayalert.strategy.indicators import calculate_ema

EMA_PERIOD = 20
SLOPE_LOOKBACK = 5


def determine_trend(candles: list[Candle], period: int = EMA_PERIOD) -> Optional[TrendAnalysis]:
    """Classify the trend from price vs EMA and the EMA's recent slope.

    Returns ``None`` when there are fewer than *period* candles.
    """
    if len(candles) < period:
        return None
    ema = calculate_ema(candles, period)
    defined = [v for v in ema[-SLOPE_LOOKBACK:] if v == v]  # drop NaN
    current = ema[-1]
    price = candles[-1].close

    slope = 0.0
    if len(defined) >= 2 and defined[0]:
        slope = (defined[-1] - defined[0]) / defined[0] * 100

    if price > current and slope > 0:
        direction = "BULLISH"
    elif price < current and slope < 0:
        direction = "BEARISH"
    elif price > current:
        direction = "BULLISH_WEAK"
    elif price < current:
        direction = "BEARISH_WEAK"
    else:
        direction = "NEUTRAL"

    return TrendAnalysis(
        direction=direction,
        ema=round(current, 2),
        slope_pct=round(slope, 3),
        price_above_ema=price > current,
    )


class TrendAnalyzer:
    def __init__(self, symbol: str) -> None:
        self._symbol = symbol

    def reset(self) -> None:
        pass

    async def analyze(self, feed: MarketDataFeed, now: datetime) -> Optional[TrendAnalysis]:
        today = now.date()
        candles = await feed.fetch_candles(self._symbol, INTERVAL_5MIN, today, today)
        return determine_trend(completed_candles(candles, INTERVAL_5MIN, now))
