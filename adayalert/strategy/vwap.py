"""VWAP Crossover detector.

Session VWAP from typical price; a close crossing it, confirmed by
volume, is the signal. Weak setups (score < 10) are suppressed.
"""

import logging
from typing import Optional

from adayalert.market.models import INTERVAL_5MIN, Candle
from adayalert.strategy.base import (
    StrategyContext,
    data_unavailable,
    guard_already_fired,
    guard_window,
)
from adayalert.strategy.indicators import average_volume, calculate_vwap
from adayalert.strategy.models import (
    BEARISH,
    BULLISH,
    BUY_CALL,
    BUY_PUT,
    FAIL,
    NEUTRAL_STATUS,
    PASS,
    DetectorResult,
    Reason,
)
from adayalert.strategy.windows import STRATEGY_WINDOWS

logger = logging.getLogger("adayalert")

MIN_SESSION_CANDLES = 10
CROSSOVER_LOOKBACK = 5
CONFIRM_CANDLES = 3
CROSSOVER_SCORE = 8
STRONG_VOLUME_SCORE = 5
WEAK_VOLUME_SCORE = 2
POSITION_SCORE = 5
MIN_SIGNAL_SCORE = 10


def detect_crossover(candles: list[Candle], vwap: float) -> Optional[str]:
    """BULLISH / BEARISH when the last close crossed *vwap*, else ``None``."""
    if len(candles) < 2:
        return None
    prev, curr = candles[-2], candles[-1]
    if prev.close < vwap < curr.close:
        return BULLISH
    if prev.close > vwap > curr.close:
        return BEARISH
    return None


class VWAPCrossover:
    """Implements ``DetectorProtocol``."""

    name = "VWAP CROSSOVER"
    window = STRATEGY_WINDOWS["VWAP"]
    max_score = 15

    def __init__(self) -> None:
        self._vwap: Optional[float] = None
        self._last_crossover: Optional[str] = None
        self._signal_sent = False

    def reset(self) -> None:
        self._vwap = None
        self._last_crossover = None
        self._signal_sent = False

    def is_active(self, now) -> bool:
        return self.window.contains(now.time())

    def get_state(self) -> dict:
        return {
            "vwap": self._vwap,
            "last_crossover": self._last_crossover,
            "signal_sent": self._signal_sent,
        }

    async def analyze(self, context: StrategyContext) -> DetectorResult:
        blocked = guard_window(self, context.now) or guard_already_fired(self, self._signal_sent)
        if blocked:
            return blocked

        candles = await context.session_candles(INTERVAL_5MIN)
        if len(candles) < MIN_SESSION_CANDLES:
            return data_unavailable(self, f"Need {MIN_SESSION_CANDLES} candles for VWAP, have {len(candles)}")

        vwap = calculate_vwap(candles)
        if vwap is None:
            return data_unavailable(self, "No volume to weight VWAP")
        self._vwap = vwap

        price = candles[-1].close
        data = {"vwap": round(vwap, 2), "current_price": price, "spot_price": price}
        reasons: list[Reason] = []
        score = 0
        aday = context.day.direction if context.day.is_trend_day else None

        crossover = detect_crossover(candles[-CROSSOVER_LOOKBACK:], vwap)
        if crossover is None:
            side = "above" if price > vwap else "below"
            distance = abs(price - vwap) / vwap * 100
            reasons.append(Reason("VWAP Position", NEUTRAL_STATUS, f"Price {side} VWAP by {distance:.2f}%, no crossover"))
            if (aday == BULLISH and price > vwap) or (aday == BEARISH and price < vwap):
                score = POSITION_SCORE
                reasons.append(Reason("A-Day Alignment", PASS, "Price position aligns with A-Day direction"))
            return DetectorResult(self.name, None, score, reasons, data, self.max_score)

        score += CROSSOVER_SCORE
        reasons.append(Reason("VWAP Crossover", PASS, f"{crossover} crossover at {vwap:.2f}"))

        recent = candles[-CONFIRM_CANDLES:]
        rest_avg = average_volume(candles[:-CONFIRM_CANDLES])
        volume_ratio = average_volume(recent) / rest_avg if rest_avg > 0 else 0.0
        data["volume_ratio"] = round(volume_ratio, 2)
        if volume_ratio >= 1.5:
            score += STRONG_VOLUME_SCORE
            reasons.append(Reason("Volume", PASS, f"Volume spike {volume_ratio * 100:.0f}%"))
        elif volume_ratio >= 1.0:
            score += WEAK_VOLUME_SCORE
            reasons.append(Reason("Volume", NEUTRAL_STATUS, f"Volume at {volume_ratio * 100:.0f}% of average"))
        else:
            reasons.append(Reason("Volume", FAIL, f"Low volume {volume_ratio * 100:.0f}%"))

        if aday is not None:
            if aday == crossover:
                reasons.append(Reason("A-Day Alignment", PASS, f"Crossover aligns with {aday} A-Day"))
            else:
                reasons.append(Reason("A-Day Alignment", NEUTRAL_STATUS, "Crossover opposite to A-Day direction"))

        bullish = crossover == BULLISH
        data["stop_loss"] = min(c.low for c in recent) if bullish else max(c.high for c in recent)

        if score < MIN_SIGNAL_SCORE:
            reasons.append(Reason("Signal Strength", FAIL, f"Score {score} below {MIN_SIGNAL_SCORE}"))
            return DetectorResult(self.name, None, score, reasons, data, self.max_score)

        signal = BUY_CALL if bullish else BUY_PUT
        self._last_crossover = crossover
        self._signal_sent = True
        logger.info("VWAP crossover signal: %s, price %.2f vs VWAP %.2f (score %d)", signal, price, vwap, score)
        return DetectorResult(self.name, signal, min(score, self.max_score), reasons, data, self.max_score)
