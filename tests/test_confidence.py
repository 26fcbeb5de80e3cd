"""Tests for the confidence scorer."""

import pytest

from adayalert.analysis.models import OIAnalysis, VolumeAnalysis
from adayalert.signals.confidence import (
    category_for,
    dedupe_reasons,
    score_confidence,
    score_day_alignment,
    score_greeks,
    score_oi_support,
    score_volume_spike,
)
from adayalert.strategy.models import (
    BEARISH,
    BULLISH,
    BUY_CALL,
    BUY_PUT,
    NEUTRAL_STATUS,
    PASS,
    DayClassification,
    DetectorResult,
    Reason,
)


# ── Helpers ──────────────────────────────────────────────────────────────


def _day(trend=True, direction=BULLISH, history_days=20) -> DayClassification:
    return DayClassification(
        is_trend_day=trend,
        direction=direction if trend else None,
        body_ratio_pct=76.5,
        range_points=170,
        volume_ratio_pct=120,
        history_days=history_days,
        degraded=history_days < 20,
    )


def _volume(ratio: float) -> VolumeAnalysis:
    return VolumeAnalysis(ratio * 100, 100, ratio, "X", ratio * 100)


def _result(name, score, signal=BUY_CALL, max_score=15, reasons=None) -> DetectorResult:
    return DetectorResult(name, signal, score, reasons or [Reason(name, PASS, "fired")], {}, max_score)


# ── Categories ───────────────────────────────────────────────────────────


class TestCategories:
    def test_category_lookup(self):
        assert category_for("ORB BREAKOUT") == "orb_breakout"
        assert category_for("VWAP CROSSOVER") == "vwap_confirmation"
        assert category_for("S/R BREAKOUT") == "sr_breakout"
        assert category_for("DAY BEHAVIOR") == "day_behavior"
        assert category_for("PULLBACK CONTINUATION") == "pullback_continuation"
        assert category_for("EXPIRY MOMENTUM") == "expiry_momentum"
        assert category_for("SOMETHING ELSE") is None

    def test_day_alignment(self):
        assert score_day_alignment(_day(), BUY_CALL)[0] == 20
        assert score_day_alignment(_day(), BUY_PUT)[0] == 10
        assert score_day_alignment(_day(trend=False), BUY_CALL)[0] == 0
        assert score_day_alignment(None, BUY_CALL)[0] == 0

    @pytest.mark.parametrize("ratio,expected", [(2.4, 15), (1.5, 10), (1.0, 4), (0.9, 0)])
    def test_volume_tiers(self, ratio, expected):
        assert score_volume_spike(_volume(ratio))[0] == expected

    def test_oi_full_support(self):
        oi = OIAnalysis(pcr=1.3, max_pain=18100, spot_price=18120, oi_buildup=True, buildup_strike=18100)
        score, reasons = score_oi_support(oi, BUY_CALL)
        assert score == 15
        assert [r.status for r in reasons] == [PASS, PASS, PASS]

    def test_oi_bearish_pcr(self):
        oi = OIAnalysis(pcr=0.7, max_pain=17000, spot_price=18120)
        score, _ = score_oi_support(oi, BUY_PUT)
        assert score == 5

    def test_oi_missing(self):
        score, reasons = score_oi_support(None, BUY_CALL)
        assert score == 0
        assert reasons[0].status == NEUTRAL_STATUS

    def test_greeks_placeholder_is_flagged(self):
        category, reasons = score_greeks(5)
        assert category.score == 5
        assert category.implemented is False
        assert "not analysed" in reasons[0].detail
        assert score_greeks(50)[0].score == 10

    def test_dedupe_keeps_first(self):
        reasons = [
            Reason("Volume", PASS, "first"),
            Reason("Volume", PASS, "second"),
            Reason("Volume", NEUTRAL_STATUS, "other status"),
        ]
        assert [r.detail for r in dedupe_reasons(reasons)] == ["first", "other status"]


# ── Composite ────────────────────────────────────────────────────────────


class TestScoreConfidence:
    def test_sums_categories(self):
        result = score_confidence(
            BUY_CALL,
            [_result("ORB BREAKOUT", 13), _result("VWAP CROSSOVER", 13)],
            day=_day(),
            volume=_volume(2.0),
        )
        # 20 day + 13 ORB + 13 VWAP + 0 OI + 15 volume + 5 greeks
        assert result.total_score == 66
        assert result.meets_threshold is True
        assert result.breakdown["orb_breakout"].score == 13
        assert result.breakdown["option_greeks"].implemented is False

    def test_total_clamped_to_100(self):
        results = [
            _result("ORB BREAKOUT", 15),
            _result("PULLBACK CONTINUATION", 15),
            _result("EXPIRY MOMENTUM", 15),
            _result("VWAP CROSSOVER", 15),
            _result("S/R BREAKOUT", 15),
            _result("DAY BEHAVIOR", 10, max_score=10),
        ]
        oi = OIAnalysis(pcr=1.5, max_pain=18100, spot_price=18100, oi_buildup=True)
        result = score_confidence(BUY_CALL, results, day=_day(), oi=oi, volume=_volume(3.0))
        assert result.total_score == 100
        assert 0 <= result.total_score <= 100

    def test_native_score_capped_at_detector_max(self):
        result = score_confidence(BUY_CALL, [_result("DAY BEHAVIOR", 14, max_score=10)])
        assert result.breakdown["day_behavior"].score == 10

    def test_first_result_per_category_wins(self):
        result = score_confidence(
            BUY_CALL, [_result("ORB BREAKOUT", 12), _result("ORB BREAKOUT", 15)],
        )
        assert result.breakdown["orb_breakout"].score == 12

    def test_threshold_is_configurable(self):
        result = score_confidence(BUY_CALL, [_result("ORB BREAKOUT", 10)], day=_day(), min_score=30)
        assert result.total_score == 35
        assert result.meets_threshold is True

    def test_degraded_history_adds_neutral_reason(self):
        result = score_confidence(BUY_CALL, [_result("ORB BREAKOUT", 10)], day=_day(history_days=7))
        history = [r for r in result.reasons if r.factor == "Volume History"]
        assert history and history[0].status == NEUTRAL_STATUS
        assert "7 of 20" in history[0].detail

    def test_unknown_direction_raises(self):
        with pytest.raises(ValueError, match="direction"):
            score_confidence("BUY_STRADDLE", [])

    def test_bearish_alignment(self):
        result = score_confidence(BUY_PUT, [_result("S/R BREAKOUT", 10, BUY_PUT)], day=_day(direction=BEARISH))
        assert result.breakdown["day_alignment"].score == 20
