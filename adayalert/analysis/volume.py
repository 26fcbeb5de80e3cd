"""Volume analyzer — recent 5-minute volume against a 5-session baseline."""

import logging
from datetime import datetime
from typing import Optional

from adayalert.analysis.models import VolumeAnalysis
from adayalert.market.calendar import previous_trading_day, trading_days_ago
from adayalert.market.feed import MarketDataFeed
from adayalert.market.models import INTERVAL_5MIN, Candle, completed_candles
from adayalert.strategy.indicators import average_volume

logger = logging.getLogger("adayalert")

BASELINE_DAYS = 5
RECENT_CANDLES = 3


def spike_level(volume_ratio: float) -> str:
    if volume_ratio >= 2.5:
        return "EXTREME"
    if volume_ratio >= 2.0:
        return "VERY_HIGH"
    if volume_ratio >= 1.5:
        return "HIGH"
    if volume_ratio >= 1.0:
        return "NORMAL"
    return "LOW"


def analyze_volume(candles: list[Candle], baseline: float) -> Optional[VolumeAnalysis]:
    """Compare the last three candles' average volume with *baseline*."""
    if not candles or baseline <= 0:
        return None
    current = average_volume(candles[-RECENT_CANDLES:])
    ratio = current / baseline
    return VolumeAnalysis(
        current_volume=current,
        baseline_volume=baseline,
        volume_ratio=round(ratio, 2),
        spike_level=spike_level(ratio),
        percent_of_avg=round(ratio * 100, 1),
    )


class VolumeAnalyzer:
    """Keeps the per-session baseline; re-reads today's candles each call."""

    def __init__(self, symbol: str) -> None:
        self._symbol = symbol
        self._baseline: Optional[float] = None

    def reset(self) -> None:
        self._baseline = None

    @property
    def baseline(self) -> Optional[float]:
        return self._baseline

    async def analyze(self, feed: MarketDataFeed, now: datetime) -> Optional[VolumeAnalysis]:
        today = now.date()
        if not self._baseline:
            history = await feed.fetch_candles(
                self._symbol,
                INTERVAL_5MIN,
                trading_days_ago(today, BASELINE_DAYS),
                previous_trading_day(today),
            )
            self._baseline = average_volume(history)
            logger.info("Volume baseline: %.0f from %d candles", self._baseline, len(history))
            if not self._baseline:
                return None

        candles = await feed.fetch_candles(self._symbol, INTERVAL_5MIN, today, today)
        return analyze_volume(completed_candles(candles, INTERVAL_5MIN, now), self._baseline)
