"""Tests for the morning briefing and the post-market report."""

from datetime import date, timedelta

import pytest

from adayalert.market.calendar import at
from adayalert.market.feed import ReplayFeed
from adayalert.market.models import INTERVAL_5MIN, INTERVAL_DAY, Candle
from adayalert.reports.morning import (
    A_DAY,
    C_DAY,
    CONSOLIDATION,
    VOLATILE,
    build_morning_report,
    classify_day_type,
    fetch_morning_report,
    key_levels,
    review_day,
    today_setup,
)
from adayalert.reports.post_market import (
    build_post_market,
    generate_outlook,
    strategy_performance,
    summarize_session,
    tomorrow_levels,
)
from adayalert.strategy.models import BEARISH, BULLISH, BUY_CALL, BUY_PUT, DayClassification

TODAY = date(2024, 1, 10)  # Wednesday


def _day(day: date, o, h, l, c, volume=1000.0) -> Candle:
    return Candle(at(day, 9, 15), o, h, l, c, volume)


def _week() -> list[Candle]:
    """Six sessions, oldest first: the first only supplies a previous close."""
    return [
        _day(date(2024, 1, 2), 18000, 18050, 17950, 18000),
        _day(date(2024, 1, 3), 18000, 18160, 17990, 18150),  # A-Day up
        _day(date(2024, 1, 4), 18150, 18180, 18120, 18160),  # consolidation
        _day(date(2024, 1, 5), 18160, 18260, 18060, 18100),  # volatile
        _day(date(2024, 1, 8), 18100, 18180, 18060, 18150),  # C-Day
        _day(date(2024, 1, 9), 18200, 18210, 18040, 18060),  # A-Day down, gap up
    ]


# ── Morning report ───────────────────────────────────────────────────────


class TestDayType:
    @pytest.mark.parametrize("candle,expected", [
        (_day(TODAY, 18000, 18160, 17990, 18150), (A_DAY, BULLISH)),
        (_day(TODAY, 18150, 18160, 18000, 18010), (A_DAY, BEARISH)),
        (_day(TODAY, 18150, 18180, 18120, 18160), (CONSOLIDATION, None)),
        (_day(TODAY, 18160, 18260, 18060, 18100), (VOLATILE, None)),
        (_day(TODAY, 18100, 18180, 18060, 18150), (C_DAY, None)),
    ])
    def test_price_only_labels(self, candle, expected):
        assert classify_day_type(candle) == expected

    def test_key_levels(self):
        levels = key_levels(_day(TODAY, 18000, 18150, 17950, 18100))
        assert (levels.pdh, levels.pdl) == (18150, 17950)
        assert levels.pivot == 18067
        assert levels.r1 == 18183
        assert levels.s1 == 17983


class TestDayReview:
    def test_gap_and_close_position(self):
        review = review_day(_day(TODAY, 18200, 18210, 18040, 18060), prev_close=18150)
        assert review.change == -90
        assert review.change_pct == pytest.approx(-0.5, abs=0.01)
        assert review.gap_text == "Gap up (+50 pts)"
        assert review.close_text == "Closed near day low"
        assert review.label == "A-DAY (BEARISH)"

    def test_flat_open(self):
        review = review_day(_day(TODAY, 18010, 18100, 17990, 18050), prev_close=18000)
        assert review.gap_text == "Flat open (+10 pts)"
        assert review.close_text == "Closed mid-range"


class TestMorningReport:
    def test_five_days_most_recent_first(self):
        report = build_morning_report(_week(), TODAY)
        assert [d.session_date for d in report.days] == [
            date(2024, 1, 9), date(2024, 1, 8), date(2024, 1, 5), date(2024, 1, 4), date(2024, 1, 3),
        ]

    def test_weekly_summary(self):
        weekly = build_morning_report(_week(), TODAY).weekly
        assert weekly.a_days == 2
        assert (weekly.a_days_bullish, weekly.a_days_bearish) == (1, 1)
        assert weekly.c_days == 1
        assert weekly.volatile == 1
        assert weekly.consolidation == 1
        assert weekly.net_change == 60
        assert weekly.avg_range == 144

    def test_setup_follows_price_label_without_classification(self):
        setup = build_morning_report(_week(), TODAY).setup
        assert setup.system_active is True
        assert setup.direction == BEARISH
        assert setup.watch_levels == "PDL 18040 for breakdown, PDH 18210 for resistance"

    def test_setup_defers_to_volume_aware_classification(self):
        review = review_day(_week()[-1], prev_close=18150)
        quiet = DayClassification(False, None, 82.4, 170, 80)
        setup = today_setup(review, quiet)
        assert setup.system_active is False
        assert setup.direction is None
        assert setup.watch_levels == "Range 18040-18210"

    def test_needs_two_candles(self):
        assert build_morning_report(_week()[:1], TODAY) is None

    @pytest.mark.asyncio
    async def test_fetch_reads_prior_sessions_only(self):
        candles = _week() + [_day(TODAY, 18060, 18100, 18000, 18090)]
        report = await fetch_morning_report(ReplayFeed({INTERVAL_DAY: candles}), "NIFTY 50", TODAY)
        assert report.days[0].session_date == date(2024, 1, 9)
        assert len(report.days) == 5


# ── Post-market report ───────────────────────────────────────────────────


def _intraday(closes: list[float]) -> list[Candle]:
    return [
        Candle(at(TODAY, 9, 15) + timedelta(minutes=5 * i), c - 10, c + 10, c - 15, c, 50)
        for i, c in enumerate(closes)
    ]


class TestPostMarket:
    def test_session_summary_against_previous_close(self):
        summary = summarize_session(_intraday([18010, 18060, 18120]), prev_close=18000)
        assert (summary.open, summary.high, summary.low, summary.close) == (18000, 18130, 17995, 18120)
        assert summary.change == 120
        assert summary.change_pct == pytest.approx(0.67, abs=0.01)
        assert summary.volume == 150

    def test_session_summary_without_previous_close(self):
        summary = summarize_session(_intraday([18010, 18060]))
        assert summary.change == 60
        assert summarize_session([]) is None

    def test_tomorrow_levels(self):
        summary = summarize_session([_day(TODAY, 18000, 18150, 17950, 18100)])
        levels = tomorrow_levels(summary)
        assert (levels.pdh, levels.pdl, levels.pdc) == (18150, 17950, 18100)
        assert levels.pivot == 18067
        assert (levels.r1, levels.r2) == (18183, 18267)
        assert (levels.s1, levels.s2) == (17983, 17867)

    def test_outlook_after_bullish_aday(self):
        summary = summarize_session([_day(TODAY, 18000, 18160, 17990, 18150)])
        text = generate_outlook(summary, "A-DAY (BULLISH)")
        assert "A-Day (bullish)" in text
        assert "PDH (18160) is key resistance" in text

    def test_outlook_flags_choppy_sessions(self):
        summary = summarize_session([_day(TODAY, 18100, 18180, 18060, 18070)])
        text = generate_outlook(summary, "C-DAY", reversal_count=4)
        assert "Multiple reversals (4)" in text
        assert "PDL (18060) is key support" in text

    def test_strategy_performance(self):
        sent = [
            {"strategy": "ORB BREAKOUT", "direction": BUY_CALL, "confidence": 70},
            {"strategy": "VWAP RECLAIM", "direction": BUY_PUT, "confidence": 50},
            {"strategy": "ORB BREAKOUT", "direction": BUY_PUT, "confidence": 45},
        ]
        performance = strategy_performance(sent)
        assert performance["total_signals"] == 3
        assert performance["by_strategy"]["ORB BREAKOUT"] == {
            "count": 2, "directions": [BUY_CALL, BUY_PUT],
        }
        assert performance["avg_confidence"] == 55

    def test_no_signals(self):
        assert strategy_performance([]) == {"total_signals": 0, "by_strategy": {}, "avg_confidence": 0}

    @pytest.mark.asyncio
    async def test_build_uses_completed_candles(self):
        feed = ReplayFeed({INTERVAL_5MIN: _intraday([18010, 18060, 18120, 18200])})
        report = await build_post_market(feed, "NIFTY 50", TODAY, at(TODAY, 9, 30), prev_close=18000)
        # The 09:30 candle is still forming
        assert report["session"].close == 18120
        assert report["tomorrow_levels"].pdh == 18130
        assert report["outlook"]

    @pytest.mark.asyncio
    async def test_build_without_candles(self):
        assert await build_post_market(ReplayFeed(), "NIFTY 50", TODAY, at(TODAY, 15, 30)) == {}
