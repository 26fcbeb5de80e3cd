"""Opening-Range Breakout detector.

The first 15-minute candle of the session defines the range. A later
15-minute candle *closing* outside it is the breakout; wicks do not count.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from adayalert.market.models import INTERVAL_15MIN
from adayalert.strategy.base import (
    StrategyContext,
    data_unavailable,
    guard_already_fired,
    guard_window,
    no_signal,
)
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

BASE_SCORE = 10
ALIGNMENT_BONUS = 3
VOLUME_BONUS = 2


@dataclass(frozen=True)
class OpeningRange:
    high: float
    low: float

    @property
    def size(self) -> float:
        return self.high - self.low


class OpeningRangeBreakout:
    """Implements ``DetectorProtocol``."""

    name = "ORB BREAKOUT"
    window = STRATEGY_WINDOWS["ORB"]
    max_score = 15

    def __init__(self) -> None:
        self._range: Optional[OpeningRange] = None
        self._signal_sent = False

    def reset(self) -> None:
        self._range = None
        self._signal_sent = False

    def is_active(self, now) -> bool:
        return self.window.contains(now.time())

    def get_state(self) -> dict:
        return {
            "range_high": self._range.high if self._range else None,
            "range_low": self._range.low if self._range else None,
            "signal_sent": self._signal_sent,
        }

    @property
    def opening_range(self) -> Optional[OpeningRange]:
        return self._range

    def set_range(self, high: float, low: float) -> None:
        """Pin the opening range explicitly (replay and tests)."""
        self._range = OpeningRange(high=high, low=low)

    async def analyze(self, context: StrategyContext) -> DetectorResult:
        blocked = guard_window(self, context.now) or guard_already_fired(self, self._signal_sent)
        if blocked:
            return blocked

        candles = await context.session_candles(INTERVAL_15MIN)
        if self._range is None:
            if not candles:
                return data_unavailable(self, "Opening 15-minute candle not available yet")
            first = candles[0]
            self._range = OpeningRange(high=first.high, low=first.low)
            logger.info(
                "ORB range captured: %.2f - %.2f (%.2f pts)",
                first.low, first.high, self._range.size,
            )

        if len(candles) < 2:
            return data_unavailable(self, "No completed candle after the opening range")

        latest = candles[-1]
        rng = self._range
        data = {
            "range_high": rng.high,
            "range_low": rng.low,
            "range_size": rng.size,
            "spot_price": latest.close,
        }

        if latest.close > rng.high:
            signal, stop = BUY_CALL, rng.low
            breakout = Reason(
                "ORB Breakout", PASS,
                f"Close {latest.close:.2f} above range high {rng.high:.2f}",
            )
        elif latest.close < rng.low:
            signal, stop = BUY_PUT, rng.high
            breakout = Reason(
                "ORB Breakout", PASS,
                f"Close {latest.close:.2f} below range low {rng.low:.2f}",
            )
        else:
            return no_signal(
                self, "ORB Breakout",
                f"Close {latest.close:.2f} inside range {rng.low:.2f}-{rng.high:.2f}",
                status=NEUTRAL_STATUS,
                data=data,
            )

        score = BASE_SCORE
        reasons = [breakout]

        aday_direction = context.day.signal_direction
        if aday_direction == signal:
            score += ALIGNMENT_BONUS
            reasons.append(Reason("A-Day Alignment", PASS, f"Breakout agrees with {context.day.direction} A-Day"))
        elif aday_direction is not None:
            reasons.append(Reason("A-Day Alignment", NEUTRAL_STATUS, f"Breakout against {context.day.direction} A-Day"))

        volume = context.market.volume
        if volume is not None and volume.is_spike:
            score += VOLUME_BONUS
            reasons.append(Reason("Volume", PASS, f"Volume spike {volume.volume_ratio:.1f}x average"))

        self._signal_sent = True
        logger.info("ORB signal: %s at %.2f (score %d)", signal, latest.close, score)
        return DetectorResult(
            strategy_name=self.name,
            signal=signal,
            score=min(score, self.max_score),
            reasons=reasons,
            data={**data, "stop_loss": stop},
            max_score=self.max_score,
        )
