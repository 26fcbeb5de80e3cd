"""Tests for the signal aggregator — direction choice, threshold, primary pick."""

from datetime import date

import pytest

from adayalert.analysis.models import VolumeAnalysis
from adayalert.market.calendar import at
from adayalert.signals.aggregator import aggregate, choose_direction
from adayalert.strategy.models import (
    BULLISH,
    BUY_CALL,
    BUY_PUT,
    PASS,
    DayClassification,
    DetectorResult,
    Reason,
)

NOW = at(date(2024, 1, 3), 10, 5)


# ── Helpers ──────────────────────────────────────────────────────────────


def _result(name, signal, score, stop=None, spot=18100.0) -> DetectorResult:
    return DetectorResult(
        strategy_name=name,
        signal=signal,
        score=score,
        reasons=[Reason(name, PASS, f"{name} fired")],
        data={"spot_price": spot, "stop_loss": stop},
        max_score=15,
    )


def _bullish_day() -> DayClassification:
    return DayClassification(True, BULLISH, 76.5, 170, 120, history_days=20)


def _volume(ratio: float) -> VolumeAnalysis:
    return VolumeAnalysis(ratio * 100, 100, ratio, "X", ratio * 100)


# ── Direction ────────────────────────────────────────────────────────────


class TestChooseDirection:
    def test_higher_summed_score_wins(self):
        results = [
            _result("ORB BREAKOUT", BUY_CALL, 8),
            _result("VWAP CROSSOVER", BUY_CALL, 5),
            _result("S/R BREAKOUT", BUY_PUT, 20),
        ]
        assert choose_direction(results) == BUY_PUT

    def test_score_tie_falls_back_to_count(self):
        results = [
            _result("ORB BREAKOUT", BUY_PUT, 6),
            _result("VWAP CROSSOVER", BUY_PUT, 6),
            _result("S/R BREAKOUT", BUY_CALL, 12),
        ]
        assert choose_direction(results) == BUY_PUT

    def test_full_tie_prefers_call(self):
        results = [_result("ORB BREAKOUT", BUY_PUT, 10), _result("S/R BREAKOUT", BUY_CALL, 10)]
        assert choose_direction(results) == BUY_CALL

    def test_no_signals(self):
        assert choose_direction([_result("ORB BREAKOUT", None, 5)]) is None


# ── Aggregate ────────────────────────────────────────────────────────────


class TestAggregate:
    def test_below_threshold_yields_none(self):
        # 20 day + 10 ORB + 10 VWAP + 5 greeks = 45
        results = [_result("ORB BREAKOUT", BUY_CALL, 10), _result("VWAP CROSSOVER", BUY_CALL, 10)]
        assert aggregate(results, day=_bullish_day(), now=NOW) is None

    def test_signal_above_threshold(self):
        results = [
            _result("ORB BREAKOUT", BUY_CALL, 13, stop=18000),
            _result("VWAP CROSSOVER", BUY_CALL, 13, stop=18050),
        ]
        signal = aggregate(results, day=_bullish_day(), volume=_volume(2.0), now=NOW)
        assert signal is not None
        assert signal.direction == BUY_CALL
        assert signal.confidence_score == 66
        # Tie on score: first registered wins
        assert signal.primary_strategy == "ORB BREAKOUT"
        assert signal.stop_loss_hint == 18000
        assert signal.spot_price_hint == 18100
        assert signal.contributing_strategies == ["ORB BREAKOUT", "VWAP CROSSOVER"]
        assert signal.strategy_scores == {"ORB BREAKOUT": 13, "VWAP CROSSOVER": 13}
        assert signal.timestamp == NOW

    def test_primary_is_highest_scoring(self):
        results = [
            _result("VWAP CROSSOVER", BUY_CALL, 10, stop=18050),
            _result("S/R BREAKOUT", BUY_CALL, 13, stop=18020),
            _result("ORB BREAKOUT", BUY_CALL, 15, stop=18000),
        ]
        signal = aggregate(results, day=_bullish_day(), now=NOW)
        assert signal.primary_strategy == "ORB BREAKOUT"
        assert signal.stop_loss_hint == 18000

    def test_opposing_signals_are_dropped(self):
        results = [
            _result("ORB BREAKOUT", BUY_CALL, 15),
            _result("S/R BREAKOUT", BUY_CALL, 13),
            _result("VWAP CROSSOVER", BUY_PUT, 8),
        ]
        signal = aggregate(results, day=_bullish_day(), volume=_volume(2.0), now=NOW)
        assert "VWAP CROSSOVER" not in signal.contributing_strategies
        assert "vwap_confirmation" not in signal.confidence_breakdown

    def test_unknown_signal_raises(self):
        with pytest.raises(ValueError, match="unknown signal"):
            aggregate([_result("ORB BREAKOUT", "SELL_FUTURES", 10)], now=NOW)

    def test_nothing_to_aggregate(self):
        assert aggregate([_result("ORB BREAKOUT", None, 3)], now=NOW) is None
        assert aggregate([], now=NOW) is None

    def test_threshold_from_caller(self):
        results = [_result("ORB BREAKOUT", BUY_CALL, 10)]
        signal = aggregate(results, day=_bullish_day(), min_score=30, now=NOW)
        assert signal is not None
        assert signal.confidence_score == 35
