"""Morning briefing — the last five sessions, a weekly tally and today's setup.

Labels here are descriptive and price-only. Whether detectors run today is
still decided by the volume-aware day classifier.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from adayalert.market.calendar import previous_trading_day, trading_days_ago
from adayalert.market.feed import MarketDataFeed
from adayalert.market.models import INTERVAL_DAY, Candle
from adayalert.strategy.indicators import calculate_pivots
from adayalert.strategy.models import BEARISH, BULLISH, DayClassification

logger = logging.getLogger("adayalert")

A_DAY = "A-DAY"
C_DAY = "C-DAY"
CONSOLIDATION = "CONSOLIDATION"
VOLATILE = "VOLATILE"

REPORT_DAYS = 5
GAP_POINTS = 30.0


# ── Per-day review ───────────────────────────────────────────────────────


def classify_day_type(candle: Candle) -> tuple[str, Optional[str]]:
    """Price-only day label and, for an A-Day, its direction."""
    if candle.body_ratio >= 0.6 and candle.range >= 100:
        return A_DAY, BULLISH if candle.close > candle.open else BEARISH
    if candle.body_ratio < 0.3 and candle.range < 80:
        return CONSOLIDATION, None
    if candle.range > 150:
        return VOLATILE, None
    return C_DAY, None


@dataclass(frozen=True)
class KeyLevels:
    pdh: int
    pdl: int
    pivot: int
    r1: int
    s1: int


def key_levels(candle: Candle) -> KeyLevels:
    pivots = calculate_pivots(candle.high, candle.low, candle.close)
    return KeyLevels(
        pdh=round(candle.high),
        pdl=round(candle.low),
        pivot=round(pivots["pivot"]),
        r1=round(pivots["r1"]),
        s1=round(pivots["s1"]),
    )


@dataclass(frozen=True)
class DayReview:
    """One past session seen against the close before it."""

    session_date: date
    candle: Candle
    change: float
    change_pct: float
    day_type: str
    direction: Optional[str]
    gap: float
    close_position: float
    levels: KeyLevels

    @property
    def label(self) -> str:
        return f"{self.day_type} ({self.direction})" if self.direction else self.day_type

    @property
    def gap_text(self) -> str:
        if self.gap > GAP_POINTS:
            return f"Gap up (+{self.gap:.0f} pts)"
        if self.gap < -GAP_POINTS:
            return f"Gap down ({self.gap:.0f} pts)"
        return f"Flat open ({self.gap:+.0f} pts)"

    @property
    def close_text(self) -> str:
        if self.close_position >= 0.7:
            return "Closed near day high"
        if self.close_position <= 0.3:
            return "Closed near day low"
        return "Closed mid-range"

    @property
    def pattern_text(self) -> str:
        if self.candle.body_ratio >= 0.6:
            return "Strong trend, minimal pullbacks"
        if self.candle.body_ratio >= 0.4:
            return "Moderate trend with some chop"
        return "Choppy, range-bound"


def review_day(candle: Candle, prev_close: float) -> DayReview:
    day_type, direction = classify_day_type(candle)
    change = candle.close - prev_close
    return DayReview(
        session_date=candle.time.date(),
        candle=candle,
        change=round(change),
        change_pct=round(change / prev_close * 100, 2) if prev_close > 0 else 0.0,
        day_type=day_type,
        direction=direction,
        gap=candle.open - prev_close,
        close_position=(candle.close - candle.low) / candle.range if candle.range > 0 else 0.5,
        levels=key_levels(candle),
    )


# ── Weekly tally and today's setup ───────────────────────────────────────


@dataclass(frozen=True)
class WeeklySummary:
    a_days: int
    a_days_bullish: int
    a_days_bearish: int
    c_days: int
    volatile: int
    consolidation: int
    net_change: float
    net_change_pct: float
    avg_range: float


def weekly_summary(days: list[DayReview]) -> WeeklySummary:
    a_days = [d for d in days if d.day_type == A_DAY]
    return WeeklySummary(
        a_days=len(a_days),
        a_days_bullish=sum(1 for d in a_days if d.direction == BULLISH),
        a_days_bearish=sum(1 for d in a_days if d.direction == BEARISH),
        c_days=sum(1 for d in days if d.day_type == C_DAY),
        volatile=sum(1 for d in days if d.day_type == VOLATILE),
        consolidation=sum(1 for d in days if d.day_type == CONSOLIDATION),
        net_change=round(sum(d.change for d in days)),
        net_change_pct=round(sum(d.change_pct for d in days), 2),
        avg_range=round(sum(d.candle.range for d in days) / len(days)) if days else 0,
    )


@dataclass(frozen=True)
class TodaySetup:
    system_active: bool
    direction: Optional[str]
    expectation: str
    watch_levels: str
    levels: KeyLevels


def today_setup(prev: DayReview, day: Optional[DayClassification] = None) -> TodaySetup:
    """What to expect today given the prior session.

    When the volume-aware classification *day* is known it decides whether
    the system is active; otherwise the price-only label does.
    """
    if day is not None:
        active, direction = day.is_trend_day, day.direction
    else:
        active, direction = prev.day_type == A_DAY, prev.direction

    levels = prev.levels
    if active and direction == BULLISH:
        expectation = "Follow-through in bullish direction expected"
        watch = f"PDH {levels.pdh} for breakout, PDL {levels.pdl} for support"
    elif active:
        expectation = "Follow-through in bearish direction expected"
        watch = f"PDL {levels.pdl} for breakdown, PDH {levels.pdh} for resistance"
    else:
        expectation = "No A-Day setup, detectors idle unless force analyze is on"
        watch = f"Range {levels.pdl}-{levels.pdh}"
    return TodaySetup(active, direction if active else None, expectation, watch, levels)


# ── Report ───────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class MorningReport:
    session_date: date
    days: list[DayReview]  # most recent first
    weekly: WeeklySummary
    setup: TodaySetup


def build_morning_report(
    candles: list[Candle],
    session_date: date,
    day: Optional[DayClassification] = None,
) -> Optional[MorningReport]:
    """Review up to five sessions from oldest-first daily *candles*.

    The first candle only supplies the previous close. Returns ``None`` with
    fewer than two candles.
    """
    if len(candles) < 2:
        return None
    reviews = [
        review_day(candle, prev.close)
        for prev, candle in zip(candles, candles[1:])
    ][-REPORT_DAYS:]
    reviews.reverse()
    return MorningReport(
        session_date=session_date,
        days=reviews,
        weekly=weekly_summary(reviews),
        setup=today_setup(reviews[0], day),
    )


async def fetch_morning_report(
    feed: MarketDataFeed,
    symbol: str,
    session_date: date,
    day: Optional[DayClassification] = None,
) -> Optional[MorningReport]:
    """Fetch the last five sessions (plus one for the previous close) and review them."""
    start = trading_days_ago(session_date, REPORT_DAYS + 1)
    end = previous_trading_day(session_date)
    candles = await feed.fetch_candles(symbol, INTERVAL_DAY, start, end)
    candles = sorted(candles, key=lambda c: c.time)
    report = build_morning_report(candles, session_date, day)
    if report is None:
        logger.warning("Morning report skipped: %d daily candle(s) for %s", len(candles), session_date)
    else:
        logger.info(
            "Morning report for %s: %d day(s), %d A-Day(s)",
            session_date, len(report.days), report.weekly.a_days,
        )
    return report
