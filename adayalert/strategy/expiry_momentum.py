"""Expiry-Day Momentum detector.

On the weekly expiry weekday, three consecutive same-colour 5-minute
candles on ≥ 1.5× baseline volume moving ≥ 50 points signal momentum.
"""

import logging
from typing import Optional

from adayalert.market.calendar import is_expiry_day, previous_trading_day, trading_days_ago
from adayalert.market.models import INTERVAL_5MIN
from adayalert.strategy.base import (
    StrategyContext,
    data_unavailable,
    guard_already_fired,
    guard_window,
    no_signal,
)
from adayalert.strategy.indicators import average_volume
from adayalert.strategy.models import (
    BUY_CALL,
    BUY_PUT,
    NEUTRAL_STATUS,
    PASS,
    DetectorResult,
    Reason,
)
from adayalert.strategy.windows import STRATEGY_WINDOWS

logger = logging.getLogger("adayalert")

BASELINE_DAYS = 5
MIN_SESSION_CANDLES = 10
MOMENTUM_CANDLES = 3
VOLUME_SPIKE_RATIO = 1.5
MIN_MOVE_POINTS = 50.0

EXPIRY_SCORE = 3
VOLUME_SCORE = 4
DIRECTION_SCORE = 4
MOVE_SCORE = 4

_WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


class ExpiryMomentum:
    """Implements ``DetectorProtocol``.

    Args:
        expiry_weekday: Weekday index (Monday=0) of the weekly expiry.
    """

    name = "EXPIRY MOMENTUM"
    window = STRATEGY_WINDOWS["EXPIRY"]
    max_score = 15

    def __init__(self, expiry_weekday: int = 3) -> None:
        self._expiry_weekday = expiry_weekday
        self._baseline: Optional[float] = None
        self._signal_sent = False

    def reset(self) -> None:
        self._baseline = None
        self._signal_sent = False

    def is_active(self, now) -> bool:
        return self.window.contains(now.time())

    def get_state(self) -> dict:
        return {
            "expiry_weekday": _WEEKDAYS[self._expiry_weekday],
            "volume_baseline": self._baseline,
            "signal_sent": self._signal_sent,
        }

    def set_baseline(self, baseline: float) -> None:
        """Pin the 5-day volume baseline explicitly (replay and tests)."""
        self._baseline = baseline

    async def _load_baseline(self, context: StrategyContext) -> float:
        candles = await context.feed.fetch_candles(
            context.symbol,
            INTERVAL_5MIN,
            trading_days_ago(context.today, BASELINE_DAYS),
            previous_trading_day(context.today),
        )
        baseline = average_volume(candles)
        logger.info(
            "Expiry volume baseline: %.0f over %d candles", baseline, len(candles),
        )
        return baseline

    async def analyze(self, context: StrategyContext) -> DetectorResult:
        if not is_expiry_day(context.today, self._expiry_weekday):
            return no_signal(
                self, "Expiry Day",
                f"Not an expiry day ({_WEEKDAYS[self._expiry_weekday]})",
            )
        blocked = guard_window(self, context.now) or guard_already_fired(self, self._signal_sent)
        if blocked:
            return blocked

        if not self._baseline:
            self._baseline = await self._load_baseline(context)
        if not self._baseline:
            self._baseline = None
            return data_unavailable(self, "No volume baseline from prior sessions")

        candles = await context.session_candles(INTERVAL_5MIN)
        if len(candles) < MIN_SESSION_CANDLES:
            return data_unavailable(
                self, f"Need {MIN_SESSION_CANDLES} session candles, have {len(candles)}",
            )

        score = EXPIRY_SCORE
        reasons = [Reason("Expiry Day", PASS, f"{_WEEKDAYS[self._expiry_weekday]} weekly expiry")]
        recent = candles[-MOMENTUM_CANDLES:]
        latest = recent[-1]

        volume_ratio = average_volume(recent) / self._baseline
        data = {"volume_ratio": round(volume_ratio, 2), "is_expiry": True, "spot_price": latest.close}
        if volume_ratio < VOLUME_SPIKE_RATIO:
            return no_signal(
                self, "Volume",
                f"Volume {volume_ratio * 100:.0f}% of baseline, need {VOLUME_SPIKE_RATIO * 100:.0f}%",
                reasons=reasons, score=score, data=data,
            )
        score += VOLUME_SCORE
        reasons.append(Reason("Volume", PASS, f"{volume_ratio * 100:.0f}% of baseline"))

        all_bullish = all(c.is_bullish for c in recent)
        all_bearish = all(c.is_bearish for c in recent)
        if not (all_bullish or all_bearish):
            return no_signal(
                self, "Direction", "Mixed candle direction, no clear momentum",
                reasons=reasons, score=score, data=data,
            )
        score += DIRECTION_SCORE
        bias = "BULLISH" if all_bullish else "BEARISH"
        reasons.append(Reason("Direction", PASS, f"{bias} momentum ({MOMENTUM_CANDLES} consecutive candles)"))

        move = abs(latest.close - recent[0].open)
        data["move_points"] = round(move, 2)
        if move < MIN_MOVE_POINTS:
            return no_signal(
                self, "Move Size", f"Move only {move:.0f} points (need {MIN_MOVE_POINTS:.0f}+)",
                reasons=reasons, score=score, data=data,
            )
        score += MOVE_SCORE
        reasons.append(Reason("Move Size", PASS, f"{move:.0f} point move"))

        signal = BUY_CALL if all_bullish else BUY_PUT
        aday_direction = context.day.signal_direction
        if aday_direction == signal:
            reasons.append(Reason("A-Day Alignment", PASS, f"Aligns with {context.day.direction} A-Day"))
        elif aday_direction is not None:
            reasons.append(Reason("A-Day Alignment", NEUTRAL_STATUS, "Opposite to A-Day direction"))

        stop = min(c.low for c in recent) if all_bullish else max(c.high for c in recent)
        self._signal_sent = True
        logger.info("Expiry momentum signal: %s, %.0f pts on %.1fx volume", signal, move, volume_ratio)
        return DetectorResult(
            strategy_name=self.name,
            signal=signal,
            score=min(score, self.max_score),
            reasons=reasons,
            data={**data, "stop_loss": stop},
            max_score=self.max_score,
        )
