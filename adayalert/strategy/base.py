"""Detector protocol and the read-only context handed to every detector.

Defines the interface that all strategy detectors must implement.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Protocol, runtime_checkable

from adayalert.analysis.models import MarketSnapshot
from adayalert.market.calendar import TimeWindow
from adayalert.market.feed import MarketDataFeed
from adayalert.market.models import Candle, completed_candles
from adayalert.strategy.models import (
    FAIL,
    NEUTRAL_STATUS,
    DayClassification,
    DetectorResult,
    Reason,
)


@dataclass(frozen=True)
class StrategyContext:
    """Shared, read-only inputs for one evaluation tick."""

    now: datetime
    symbol: str
    feed: MarketDataFeed
    day: DayClassification
    market: MarketSnapshot = field(default_factory=MarketSnapshot)

    @property
    def today(self) -> date:
        return self.now.date()

    async def session_candles(self, interval: str) -> list[Candle]:
        """Today's completed candles at *interval*."""
        candles = await self.feed.fetch_candles(
            self.symbol, interval, self.today, self.today,
        )
        return completed_candles(candles, interval, self.now)


@runtime_checkable
class DetectorProtocol(Protocol):
    """Interface that all strategy detectors must satisfy."""

    name: str
    window: TimeWindow
    max_score: float

    async def analyze(self, context: StrategyContext) -> DetectorResult:
        """Evaluate the current tick and return a (possibly null) signal."""
        ...

    def reset(self) -> None:
        """Drop all day-scoped state."""
        ...

    def is_active(self, now: datetime) -> bool:
        ...

    def get_state(self) -> dict:
        ...


# ── Result helpers ───────────────────────────────────────────────────────


def no_signal(
    detector: DetectorProtocol,
    factor: str,
    detail: str,
    status: str = FAIL,
    reasons: Optional[list[Reason]] = None,
    score: float = 0.0,
    data: Optional[dict] = None,
) -> DetectorResult:
    """Null-signal result carrying the reason it was withheld."""
    return DetectorResult(
        strategy_name=detector.name,
        signal=None,
        score=score,
        reasons=[*(reasons or []), Reason(factor, status, detail)],
        data=data or {},
        max_score=detector.max_score,
    )


def data_unavailable(detector: DetectorProtocol, detail: str) -> DetectorResult:
    """Neutral null-signal result for missing upstream data."""
    return no_signal(detector, "Data", detail, status=NEUTRAL_STATUS)


def guard_window(detector: DetectorProtocol, now: datetime) -> Optional[DetectorResult]:
    """Return a null result when *now* is outside the detector's window."""
    if detector.is_active(now):
        return None
    return no_signal(
        detector,
        "Time Window",
        f"Outside {detector.name} window ({detector.window})",
    )


def guard_already_fired(detector: DetectorProtocol, fired: bool) -> Optional[DetectorResult]:
    """Return a null result once a detector has signalled this session."""
    if not fired:
        return None
    return no_signal(
        detector,
        "Already Signaled",
        f"{detector.name} already fired this session",
        status=NEUTRAL_STATUS,
    )
