"""Tests for the session simulator and candle-file loading."""

import json
from datetime import date

import pytest

from adayalert.backtest.simulation import DaySimulator, SimulationResult, load_candles
from adayalert.cli.dashboard import print_simulation, print_status
from adayalert.config import Config
from adayalert.market.calendar import IST, at, previous_trading_day
from adayalert.market.feed import ReplayFeed
from adayalert.market.models import INTERVAL_15MIN, INTERVAL_DAY, Candle
from adayalert.strategy.engine import StrategyEngine
from adayalert.strategy.orb import OpeningRangeBreakout

DAY = date(2024, 1, 3)


def _make_config() -> Config:
    return Config(
        telegram_bot_token="123:abc",
        telegram_chat_id="-1001",
        symbol="NIFTY 50",
        min_confidence_score=30,
        greeks_placeholder_score=5,
        max_session_loss=300000,
        min_signal_gap_minutes=5,
        expiry_weekday=3,
        lot_size=25,
        premium_min=80,
        premium_max=150,
        detector_timeout_seconds=5,
        force_analyze=False,
        poll_interval_seconds=60,
        log_level="INFO",
        health_port=8080,
    )


def _feed() -> ReplayFeed:
    daily = [Candle(at(date(2024, 1, 2), 9, 15), 18000, 18180, 17990, 18160, 2000)]
    current = date(2024, 1, 2)
    for _ in range(19):
        current = previous_trading_day(current)
        daily.append(Candle(at(current, 9, 15), 18000, 18040, 17970, 18010, 1000))
    session = [
        Candle(at(DAY, 9, 15), 18100, 18120, 18090, 18110, 500),
        Candle(at(DAY, 9, 30), 18110, 18135, 18105, 18130, 600),
        Candle(at(DAY, 9, 45), 18130, 18150, 18120, 18145, 550),
    ]
    return ReplayFeed({INTERVAL_DAY: daily, INTERVAL_15MIN: session})


def _orb_only() -> StrategyEngine:
    return StrategyEngine([OpeningRangeBreakout()], timeout_seconds=5)


# ── Simulator ────────────────────────────────────────────────────────────


class TestDaySimulator:
    @pytest.mark.asyncio
    async def test_replays_full_session(self):
        feed = _feed()
        result = await DaySimulator(_make_config(), feed, engine_factory=_orb_only).run(DAY)

        assert result.day.is_trend_day is True
        # One tick per minute from 09:15 up to (not including) 15:30
        assert len(result.actions) == 375
        assert result.actions[0]["time"] == "09:15"
        assert result.actions[-1]["time"] == "15:29"

    @pytest.mark.asyncio
    async def test_alert_fires_when_candle_completes(self):
        result = await DaySimulator(_make_config(), _feed(), engine_factory=_orb_only).run(DAY)

        # The 09:30 candle only completes at 09:45
        assert result.signal_count == 1
        assert result.alerts[0]["time"] == "09:45"
        assert result.alerts[0]["strategy"] == "ORB BREAKOUT"
        assert result.action_counts()["signal_sent"] == 1

    @pytest.mark.asyncio
    async def test_messages_and_report(self):
        feed = _feed()
        result = await DaySimulator(_make_config(), feed, engine_factory=_orb_only).run(DAY)

        assert len(result.messages) == 3
        assert "Session start" in result.messages[0]
        assert "BUY CE" in result.messages[1]
        assert "Session report" in result.messages[2]
        assert result.report["ticks"] == 375
        assert len(result.report["signals_sent"]) == 1
        assert "Morning report" in result.messages[0]
        assert "Tomorrow's levels" in result.messages[2]
        assert result.report["tomorrow_levels"].pdh == 18150
        assert result.report["session"].close == 18145

    @pytest.mark.asyncio
    async def test_clock_cleared_afterwards(self):
        feed = _feed()
        await DaySimulator(_make_config(), feed, engine_factory=_orb_only).run(DAY)
        candles = await feed.fetch_candles("NIFTY 50", INTERVAL_15MIN, DAY, DAY)
        assert len(candles) == 3

    @pytest.mark.asyncio
    async def test_default_detector_set(self):
        result = await DaySimulator(_make_config(), _feed(), step_minutes=15).run(DAY)
        assert len(result.actions) == 25
        assert result.report["ticks"] == 25
        assert result.report["day_type"] == "A-DAY BULLISH"


# ── Candle files ─────────────────────────────────────────────────────────


class TestLoadCandles:
    def test_loads_intervals(self, tmp_path):
        path = tmp_path / "candles.json"
        path.write_text(json.dumps({
            "day": [{"time": "2024-01-02T09:15:00", "open": 18000, "high": 18180,
                     "low": 17990, "close": 18160, "volume": 2000}],
            "15minute": [{"time": "2024-01-03T09:15:00+05:30", "open": 18100,
                          "high": 18120, "low": 18090, "close": 18110}],
        }))

        candles = load_candles(path)
        daily = candles[INTERVAL_DAY][0]
        assert daily.time.tzinfo == IST
        assert daily.close == 18160
        assert candles[INTERVAL_15MIN][0].time == at(DAY, 9, 15)
        assert candles[INTERVAL_15MIN][0].volume == 0

    def test_unknown_interval(self, tmp_path):
        path = tmp_path / "candles.json"
        path.write_text(json.dumps({"1minute": []}))
        with pytest.raises(ValueError, match="1minute"):
            load_candles(path)


# ── Console output ───────────────────────────────────────────────────────


class TestDashboard:
    def test_print_simulation(self, capsys):
        result = SimulationResult(
            session_date=DAY,
            day=None,
            actions=[{"action": "skipped"}, {"action": "signal_sent"}],
            alerts=[{"time": "09:45", "direction": "BUY_CALL", "strategy": "ORB BREAKOUT", "confidence": 38}],
        )
        output = print_simulation(result)
        assert "unavailable" in output
        assert "ORB BREAKOUT" in output
        assert "38/100" in output
        assert capsys.readouterr().out.strip() == output.strip()

    def test_print_simulation_with_post_market_outlook(self):
        result = SimulationResult(
            session_date=DAY,
            day=None,
            report={
                "reversals": {"total": 3},
                "outlook": "Volatile day with a wide range.",
            },
        )
        output = print_simulation(result)
        assert "Reversals:       3" in output
        assert "Outlook:         Volatile day with a wide range." in output

    def test_print_status(self):
        output = print_status({
            "symbol": "NIFTY 50",
            "running": True,
            "market_open": True,
            "session_date": "2024-01-03",
            "force_analyze": False,
            "day": {"is_trend_day": True, "direction": "BEARISH", "degraded": True},
            "safety": {"state": "OPEN", "signals_sent": {"BUY_PUT": True}, "cumulative_loss": 1500.0},
        })
        assert "A-DAY BEARISH (degraded history)" in output
        assert "1,500" in output
