"""Tests for the volume, trend, open-interest and reversal analyzers."""

from datetime import date, timedelta

import pytest

from adayalert.analysis.open_interest import (
    OIAnalyzer,
    analyze_chain,
    atm_strike,
    calculate_max_pain,
    calculate_pcr,
    detect_oi_buildup,
    find_oi_levels,
)
from adayalert.analysis.reversal import (
    BEARISH_REVERSAL,
    BULLISH_REVERSAL,
    ReversalAnalyzer,
    analyze_reversals,
    detect_reversals,
    summarize_reversals,
)
from adayalert.analysis.trend import determine_trend
from adayalert.analysis.volume import VolumeAnalyzer, analyze_volume, spike_level
from adayalert.market.calendar import at
from adayalert.market.feed import ReplayFeed
from adayalert.market.models import INTERVAL_5MIN, Candle, OptionChain, OptionQuote

DAY = date(2024, 1, 3)


# ── Helpers ──────────────────────────────────────────────────────────────


def _candles(day: date, closes: list[float], volume: float = 100.0) -> list[Candle]:
    return [
        Candle(at(day, 9, 15) + timedelta(minutes=5 * i), c, c + 2, c - 2, c, volume)
        for i, c in enumerate(closes)
    ]


def _chain() -> OptionChain:
    strikes = [17900, 17950, 18000, 18050, 18100]
    ce_oi = [100, 120, 500, 150, 300]
    pe_oi = [400, 200, 600, 80, 50]
    return OptionChain(
        ce=[OptionQuote(s, "CE", oi) for s, oi in zip(strikes, ce_oi)],
        pe=[OptionQuote(s, "PE", oi) for s, oi in zip(strikes, pe_oi)],
    )


# ── Volume ───────────────────────────────────────────────────────────────


class TestVolume:
    @pytest.mark.parametrize("ratio,level", [
        (0.5, "LOW"), (1.0, "NORMAL"), (1.5, "HIGH"), (2.0, "VERY_HIGH"), (3.0, "EXTREME"),
    ])
    def test_spike_levels(self, ratio, level):
        assert spike_level(ratio) == level

    def test_recent_average_against_baseline(self):
        candles = _candles(DAY, [18000] * 5, volume=100) + _candles(DAY, [18000] * 3, volume=300)
        result = analyze_volume(candles, baseline=150)
        assert result.volume_ratio == 2.0
        assert result.is_spike is True

    def test_no_baseline(self):
        assert analyze_volume(_candles(DAY, [18000]), baseline=0) is None

    @pytest.mark.asyncio
    async def test_analyzer_uses_prior_sessions_for_baseline(self):
        prior = _candles(date(2024, 1, 2), [18000] * 10, volume=100)
        today = _candles(DAY, [18000] * 6, volume=250)
        feed = ReplayFeed({INTERVAL_5MIN: prior + today})
        analyzer = VolumeAnalyzer("NIFTY 50")
        result = await analyzer.analyze(feed, at(DAY, 9, 45))
        assert analyzer.baseline == 100
        assert result.volume_ratio == 2.5
        analyzer.reset()
        assert analyzer.baseline is None


# ── Trend ────────────────────────────────────────────────────────────────


class TestTrend:
    def test_rising_is_bullish(self):
        trend = determine_trend(_candles(DAY, [18000 + 5 * i for i in range(25)]))
        assert trend.direction == "BULLISH"
        assert trend.is_bullish and trend.price_above_ema

    def test_falling_is_bearish(self):
        trend = determine_trend(_candles(DAY, [18200 - 5 * i for i in range(25)]))
        assert trend.direction == "BEARISH"
        assert trend.is_bearish

    def test_short_history(self):
        assert determine_trend(_candles(DAY, [18000] * 10)) is None


# ── Open interest ────────────────────────────────────────────────────────


class TestOpenInterest:
    def test_atm_strike(self):
        assert atm_strike(18024) == 18000
        assert atm_strike(18026) == 18050

    def test_pcr(self):
        assert calculate_pcr(_chain()) == pytest.approx(1330 / 1170)
        assert calculate_pcr(OptionChain()) is None

    def test_max_pain(self):
        assert calculate_max_pain(_chain()) == 18000

    def test_buildup_at_atm(self):
        assert detect_oi_buildup(_chain(), 18010) == 18000
        assert detect_oi_buildup(_chain(), 18090) is None

    def test_oi_walls(self):
        support, resistance = find_oi_levels(_chain(), 18020)
        assert support == [18000, 17900, 17950]
        assert resistance == [18100, 18050]

    def test_analyze_empty_chain(self):
        assert analyze_chain(OptionChain(), 18000) is None

    @pytest.mark.asyncio
    async def test_analyzer_caches_for_a_minute(self):
        feed = ReplayFeed({INTERVAL_5MIN: _candles(DAY, [18010])}, option_chain=_chain())
        analyzer = OIAnalyzer()
        first = await analyzer.analyze(feed, at(DAY, 10, 0))
        assert first.spot_price == 18010
        assert first.oi_buildup is True
        count = feed.fetch_count
        await analyzer.analyze(feed, at(DAY, 10, 0) + timedelta(seconds=30))
        assert feed.fetch_count == count


# ── Reversals ────────────────────────────────────────────────────────────


def _swing_session() -> list[Candle]:
    """Rally to 18060, drop to 17990, recover to 18045."""
    bars = [
        (18000, 18010, 17990, 18005),
        (18005, 18030, 18000, 18025),
        (18025, 18060, 18020, 18055),
        (18055, 18058, 18010, 18015),
        (18015, 18020, 17990, 17995),
        (17995, 18040, 17992, 18035),
        (18035, 18050, 18030, 18045),
    ]
    return [
        Candle(at(DAY, 9, 15) + timedelta(minutes=5 * i), o, h, l, c, 100)
        for i, (o, h, l, c) in enumerate(bars)
    ]


class TestReversals:
    def test_swings_past_threshold_are_recorded(self):
        reversals = detect_reversals(_swing_session())
        assert [r.kind for r in reversals] == [BEARISH_REVERSAL, BULLISH_REVERSAL]

        top, bottom = reversals
        assert (top.from_price, top.to_price, top.magnitude) == (18060, 18015, 45)
        assert top.candle_index == 3
        assert top.time == at(DAY, 9, 30)
        assert (bottom.from_price, bottom.to_price, bottom.magnitude) == (17990, 18035, 45)

    def test_small_pullbacks_are_ignored(self):
        assert detect_reversals(_candles(DAY, [18000, 18010, 18000, 18012, 18004, 18015])) == []

    def test_higher_threshold_filters_swings(self):
        assert detect_reversals(_swing_session(), min_magnitude=70) == []

    def test_too_few_candles(self):
        assert detect_reversals(_swing_session()[:4]) == []
        assert analyze_reversals(_swing_session()[:4]) is None

    def test_analysis_context(self):
        result = analyze_reversals(_swing_session())
        assert result.count == 2
        assert result.has_recent_reversal is True
        # Ties keep the earlier swing
        assert result.significant.kind == BEARISH_REVERSAL
        assert (result.day_high, result.day_low) == (18060, 17990)
        assert result.zone == "NEAR_HIGH"

    def test_summary(self):
        summary = summarize_reversals(detect_reversals(_swing_session()))
        assert summary["total"] == 2
        assert summary["bullish"] == 1
        assert summary["bearish"] == 1
        assert summary["total_magnitude"] == 90
        assert summary["average_magnitude"] == 45
        assert [r["time"] for r in summary["reversals"]] == ["09:30", "09:40"]

    def test_empty_summary(self):
        summary = summarize_reversals([])
        assert summary["total"] == 0
        assert summary["average_magnitude"] == 0

    @pytest.mark.asyncio
    async def test_analyzer_tracks_completed_candles_until_reset(self):
        feed = ReplayFeed({INTERVAL_5MIN: _swing_session()})
        analyzer = ReversalAnalyzer("NIFTY 50")

        # At 09:40 the recovery candle is still forming
        early = await analyzer.analyze(feed, at(DAY, 9, 40))
        assert early.count == 1
        assert analyzer.daily_summary()["total"] == 1

        await analyzer.analyze(feed, at(DAY, 9, 50))
        assert analyzer.daily_summary()["total"] == 2

        analyzer.reset()
        assert analyzer.daily_summary()["total"] == 0
