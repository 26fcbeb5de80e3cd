"""Pullback Continuation detector.

1. First hour (12 × 5-minute candles) sets the day's trend.
2. Price pulls back to the 20 EMA; the pullback extreme is remembered.
3. A candle closing back past the pre-pullback swing, with matching
   colour, continues the trend.
"""

import logging
from typing import Optional

from adayalert.market.models import INTERVAL_5MIN, Candle
from adayalert.strategy.base import (
    StrategyContext,
    data_unavailable,
    guard_already_fired,
    guard_window,
    no_signal,
)
from adayalert.strategy.indicators import latest_ema
from adayalert.strategy.models import (
    BEARISH,
    BULLISH,
    BUY_CALL,
    BUY_PUT,
    NEUTRAL,
    NEUTRAL_STATUS,
    PASS,
    DetectorResult,
    Reason,
)
from adayalert.strategy.windows import STRATEGY_WINDOWS

logger = logging.getLogger("adayalert")

FIRST_HOUR_CANDLES = 12
TREND_THRESHOLD = 0.3  # fraction of the first-hour range
EMA_PERIOD = 20
EMA_TOUCH_PCT = 0.002
RECENT_CANDLES = 5

BASE_SCORE = 10
ALIGNMENT_BONUS = 3
VOLUME_BONUS = 2


def first_hour_trend(candles: list[Candle]) -> str:
    """BULLISH / BEARISH when the first hour's net move beats 30 % of its range."""
    first_hour = candles[:FIRST_HOUR_CANDLES]
    change = first_hour[-1].close - first_hour[0].open
    span = max(c.high for c in first_hour) - min(c.low for c in first_hour)
    threshold = span * TREND_THRESHOLD
    if change > threshold:
        return BULLISH
    if change < -threshold:
        return BEARISH
    return NEUTRAL


class PullbackContinuation:
    """Implements ``DetectorProtocol``."""

    name = "PULLBACK CONTINUATION"
    window = STRATEGY_WINDOWS["PULLBACK"]
    max_score = 15

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self._trend: Optional[str] = None
        self._pullback_extreme: Optional[float] = None
        self._pullback_ema: Optional[float] = None
        self._signal_sent = False

    def is_active(self, now) -> bool:
        return self.window.contains(now.time())

    def get_state(self) -> dict:
        return {
            "first_hour_trend": self._trend,
            "pullback_detected": self._pullback_extreme is not None,
            "pullback_extreme": self._pullback_extreme,
            "pullback_ema": self._pullback_ema,
            "signal_sent": self._signal_sent,
        }

    async def analyze(self, context: StrategyContext) -> DetectorResult:
        blocked = guard_window(self, context.now) or guard_already_fired(self, self._signal_sent)
        if blocked:
            return blocked

        candles = await context.session_candles(INTERVAL_5MIN)

        if self._trend is None:
            if len(candles) < FIRST_HOUR_CANDLES:
                return data_unavailable(
                    self, f"First hour incomplete ({len(candles)}/{FIRST_HOUR_CANDLES} candles)",
                )
            self._trend = first_hour_trend(candles)
            logger.info("Pullback: first-hour trend is %s", self._trend)

        if self._trend == NEUTRAL:
            return no_signal(
                self, "First Hour Trend",
                "First hour was range-bound; no trend to continue",
            )

        try:
            ema = latest_ema(candles, EMA_PERIOD)
        except ValueError:
            return data_unavailable(self, f"Not enough candles for EMA{EMA_PERIOD} ({len(candles)})")

        recent = candles[-RECENT_CANDLES:]
        latest = recent[-1]
        bullish = self._trend == BULLISH
        trend_reason = Reason("First Hour Trend", PASS, f"{self._trend} first hour")

        if self._pullback_extreme is None:
            if bullish:
                touched = any(c.low <= ema * (1 + EMA_TOUCH_PCT) for c in recent)
            else:
                touched = any(c.high >= ema * (1 - EMA_TOUCH_PCT) for c in recent)
            if touched:
                self._pullback_extreme = (
                    min(c.low for c in recent) if bullish else max(c.high for c in recent)
                )
                self._pullback_ema = ema
                logger.info(
                    "Pullback to EMA%d detected at %.2f (EMA %.2f)",
                    EMA_PERIOD, self._pullback_extreme, ema,
                )

        data = {"trend": self._trend, "ema20": round(ema, 2), "spot_price": latest.close}
        if self._pullback_extreme is None:
            return no_signal(
                self, "EMA Pullback", f"Waiting for pullback to EMA{EMA_PERIOD} ({ema:.2f})",
                status=NEUTRAL_STATUS, reasons=[trend_reason], data=data,
            )

        prior = recent[:-1]
        if bullish:
            swing = max(c.high for c in prior) if prior else latest.high
            broke = latest.close > swing and latest.is_bullish
        else:
            swing = min(c.low for c in prior) if prior else latest.low
            broke = latest.close < swing and latest.is_bearish

        pullback_reason = Reason(
            "EMA Pullback", PASS,
            f"Pulled back to EMA{EMA_PERIOD}, extreme {self._pullback_extreme:.2f}",
        )
        if not broke:
            return no_signal(
                self, "Continuation",
                f"Close {latest.close:.2f} has not cleared swing {swing:.2f}",
                status=NEUTRAL_STATUS,
                reasons=[trend_reason, pullback_reason],
                data=data,
            )

        signal = BUY_CALL if bullish else BUY_PUT
        score = BASE_SCORE
        reasons = [
            trend_reason,
            pullback_reason,
            Reason("Continuation", PASS, f"Close {latest.close:.2f} cleared swing {swing:.2f}"),
        ]
        if context.day.signal_direction == signal:
            score += ALIGNMENT_BONUS
            reasons.append(Reason("A-Day Alignment", PASS, f"Trend agrees with {context.day.direction} A-Day"))
        volume = context.market.volume
        if volume is not None and volume.is_spike:
            score += VOLUME_BONUS
            reasons.append(Reason("Volume", PASS, f"Volume spike {volume.volume_ratio:.1f}x average"))

        self._signal_sent = True
        logger.info("Pullback continuation signal: %s at %.2f", signal, latest.close)
        return DetectorResult(
            strategy_name=self.name,
            signal=signal,
            score=min(score, self.max_score),
            reasons=reasons,
            data={**data, "swing": swing, "stop_loss": self._pullback_extreme},
            max_score=self.max_score,
        )
