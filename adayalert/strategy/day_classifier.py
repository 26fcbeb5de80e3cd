"""Day classifier — decides whether the prior session was a trend day (A-Day).

A-Day criteria (all required):
    1. Body ratio ≥ 60 % of the day's range
    2. Range ≥ 100 points
    3. Volume ≥ the trailing 20-day average

Anything else is a C-Day (choppy / consolidation).
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from adayalert.errors import DataUnavailableError
from adayalert.market.calendar import previous_trading_day, trading_days_ago
from adayalert.market.feed import MarketDataFeed
from adayalert.market.models import INTERVAL_DAY, Candle
from adayalert.strategy.indicators import average_volume
from adayalert.strategy.models import BEARISH, BULLISH, DayClassification

logger = logging.getLogger("adayalert")

BODY_RATIO_THRESHOLD = 0.6
RANGE_THRESHOLD = 100.0
VOLUME_RATIO_THRESHOLD = 1.0
AVERAGE_VOLUME_DAYS = 20
HISTORY_FETCH_DAYS = 25


def classify_day(
    candle: Candle,
    avg_volume: float,
    history_days: int = AVERAGE_VOLUME_DAYS,
) -> DayClassification:
    """Classify a completed daily candle against its trailing average volume.

    Args:
        candle: The prior session's daily candle.
        avg_volume: Mean daily volume of the trailing window.
        history_days: How many days went into *avg_volume*; fewer than 20
            marks the result as degraded.
    """
    body_ratio = candle.body_ratio
    volume_ratio = candle.volume / avg_volume if avg_volume > 0 else 0.0

    is_trend_day = (
        body_ratio >= BODY_RATIO_THRESHOLD
        and candle.range >= RANGE_THRESHOLD
        and volume_ratio >= VOLUME_RATIO_THRESHOLD
    )
    direction = None
    if is_trend_day:
        direction = BULLISH if candle.close > candle.open else BEARISH

    return DayClassification(
        is_trend_day=is_trend_day,
        direction=direction,
        body_ratio_pct=round(body_ratio * 100, 1),
        range_points=round(candle.range, 2),
        volume_ratio_pct=round(volume_ratio * 100, 1),
        trade_date=candle.time.date(),
        prior_candle=candle,
        history_days=history_days,
        degraded=history_days < AVERAGE_VOLUME_DAYS or avg_volume <= 0,
    )


class DayClassifier:
    """Fetches the prior session and memoizes its classification per day.

    Args:
        symbol: Index symbol to classify.
    """

    def __init__(self, symbol: str) -> None:
        self._symbol = symbol
        self._cached: Optional[DayClassification] = None
        self._cached_for: Optional[date] = None
        self.compute_count: int = 0

    def invalidate(self) -> None:
        """Forget the cached result so the next call recomputes."""
        self._cached = None
        self._cached_for = None

    @property
    def cached(self) -> Optional[DayClassification]:
        return self._cached

    async def classify(self, feed: MarketDataFeed, today: date) -> DayClassification:
        """Return today's classification, computing it at most once per day.

        Raises ``DataUnavailableError`` when the prior session has no candle.
        """
        if self._cached is not None and self._cached_for == today:
            return self._cached

        prior_day = previous_trading_day(today)
        prior = await feed.fetch_candles(self._symbol, INTERVAL_DAY, prior_day, prior_day)
        if not prior:
            raise DataUnavailableError(f"No daily candle for {prior_day}")
        candle = prior[-1]

        history = await feed.fetch_candles(
            self._symbol,
            INTERVAL_DAY,
            trading_days_ago(today, HISTORY_FETCH_DAYS),
            prior_day,
        )
        window = history[-AVERAGE_VOLUME_DAYS:]
        if len(window) < AVERAGE_VOLUME_DAYS:
            logger.warning(
                "Only %d day(s) of volume history available (wanted %d) — "
                "day classification confidence is degraded",
                len(window), AVERAGE_VOLUME_DAYS,
            )
        avg_volume = average_volume(window)

        result = classify_day(candle, avg_volume, history_days=len(window))
        self.compute_count += 1
        self._cached = result
        self._cached_for = today

        logger.info(
            "%s for %s: body %.1f%%, range %.0fpts, volume %.0f%% of avg",
            f"A-DAY ({result.direction})" if result.is_trend_day else "C-DAY",
            prior_day,
            result.body_ratio_pct,
            result.range_points,
            result.volume_ratio_pct,
        )
        return result
