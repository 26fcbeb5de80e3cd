"""Day-Behavior Alignment detector.

On the session after an A-Day, checks whether today is behaving like a
continuation: direction from the open, unfilled gap, trading beyond the
prior day's extreme and recent momentum, all in the A-Day direction.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Optional

from adayalert.market.models import INTERVAL_5MIN, Candle
from adayalert.strategy.base import (
    StrategyContext,
    data_unavailable,
    guard_already_fired,
    guard_window,
    no_signal,
)
from adayalert.strategy.indicators import candle_momentum
from adayalert.strategy.models import (
    BEARISH,
    BULLISH,
    BUY_CALL,
    BUY_PUT,
    FAIL,
    NEUTRAL,
    NEUTRAL_STATUS,
    PASS,
    DetectorResult,
    Reason,
)
from adayalert.strategy.windows import STRATEGY_WINDOWS

logger = logging.getLogger("adayalert")

MIN_SESSION_CANDLES = 12
GAP_POINTS = 20.0
DIRECTION_POINTS = 20.0
RANGE_EXPANSION_RATIO = 0.7
MOMENTUM_CANDLES = 6
STOP_CANDLES = 5

DIRECTION_SCORE = 3
GAP_SCORE = 2
LEVEL_SCORE = 3
MOMENTUM_SCORE = 2
MIN_SIGNAL_SCORE = 7


@dataclass(frozen=True)
class DayMetrics:
    today_open: float
    current_price: float
    today_high: float
    today_low: float
    prev_high: float
    prev_low: float
    prev_close: float
    gap: float
    gap_type: str  # GAP_UP | GAP_DOWN | NO_GAP
    gap_filled: bool
    range_ratio: float
    range_expanding: bool
    day_change: float
    day_direction: str
    momentum_direction: str
    momentum_strength: float
    above_pdh: bool
    below_pdl: bool

    @property
    def in_prev_range(self) -> bool:
        return self.prev_low <= self.current_price <= self.prev_high


def day_metrics(candles: list[Candle], prior: Candle) -> DayMetrics:
    """Compare today's session so far with the prior day."""
    today_open = candles[0].open
    price = candles[-1].close
    today_high = max(c.high for c in candles)
    today_low = min(c.low for c in candles)

    gap = today_open - prior.close
    gap_type = "GAP_UP" if gap > GAP_POINTS else "GAP_DOWN" if gap < -GAP_POINTS else "NO_GAP"
    gap_filled = (
        (gap_type == "GAP_UP" and today_low <= prior.close)
        or (gap_type == "GAP_DOWN" and today_high >= prior.close)
    )
    range_ratio = (today_high - today_low) / prior.range if prior.range > 0 else 0.0

    change = price - today_open
    direction = BULLISH if change > DIRECTION_POINTS else BEARISH if change < -DIRECTION_POINTS else NEUTRAL

    momentum = candle_momentum(candles[-MOMENTUM_CANDLES:])
    strength = momentum["bullish_pct"] if momentum["direction"] == BULLISH else momentum["bearish_pct"]

    return DayMetrics(
        today_open=today_open,
        current_price=price,
        today_high=today_high,
        today_low=today_low,
        prev_high=prior.high,
        prev_low=prior.low,
        prev_close=prior.close,
        gap=gap,
        gap_type=gap_type,
        gap_filled=gap_filled,
        range_ratio=round(range_ratio, 2),
        range_expanding=range_ratio > RANGE_EXPANSION_RATIO,
        day_change=change,
        day_direction=direction,
        momentum_direction=momentum["direction"],
        momentum_strength=strength,
        above_pdh=price > prior.high,
        below_pdl=price < prior.low,
    )


class DayBehavior:
    """Implements ``DetectorProtocol``."""

    name = "DAY BEHAVIOR"
    window = STRATEGY_WINDOWS["DAY"]
    max_score = 10

    def __init__(self) -> None:
        self._metrics: Optional[DayMetrics] = None
        self._signal_sent = False

    def reset(self) -> None:
        self._metrics = None
        self._signal_sent = False

    def is_active(self, now) -> bool:
        return self.window.contains(now.time())

    def get_state(self) -> dict:
        return {
            "metrics": asdict(self._metrics) if self._metrics else None,
            "signal_sent": self._signal_sent,
        }

    async def analyze(self, context: StrategyContext) -> DetectorResult:
        blocked = guard_window(self, context.now) or guard_already_fired(self, self._signal_sent)
        if blocked:
            return blocked

        day = context.day
        if not day.is_trend_day:
            return no_signal(self, "A-Day Status", "Not an A-Day follow-through session", status=NEUTRAL_STATUS)
        if day.prior_candle is None:
            return data_unavailable(self, "Prior-day candle unavailable")

        candles = await context.session_candles(INTERVAL_5MIN)
        if len(candles) < MIN_SESSION_CANDLES:
            return data_unavailable(self, f"Need {MIN_SESSION_CANDLES} candles, have {len(candles)}")

        m = day_metrics(candles, day.prior_candle)
        self._metrics = m
        bullish = day.direction == BULLISH
        score = 0
        reasons: list[Reason] = []

        if m.day_direction == day.direction:
            score += DIRECTION_SCORE
            reasons.append(Reason("Day Direction", PASS, f"Day is {m.day_direction} ({m.day_change:+.0f} pts), aligns with A-Day"))
        elif m.day_direction == NEUTRAL:
            reasons.append(Reason("Day Direction", NEUTRAL_STATUS, "Day direction unclear"))
        else:
            reasons.append(Reason("Day Direction", FAIL, f"Day is {m.day_direction}, opposite to {day.direction} A-Day"))

        wanted_gap = "GAP_UP" if bullish else "GAP_DOWN"
        if m.gap_type == wanted_gap and not m.gap_filled:
            score += GAP_SCORE
            reasons.append(Reason("Gap Analysis", PASS, f"{wanted_gap.replace('_', ' ').title()} unfilled, continuation"))
        elif m.gap_filled:
            reasons.append(Reason("Gap Analysis", NEUTRAL_STATUS, "Gap has been filled"))

        if bullish and m.above_pdh:
            score += LEVEL_SCORE
            reasons.append(Reason("PDH Break", PASS, f"Trading above PDH ({m.prev_high:.2f})"))
        elif not bullish and m.below_pdl:
            score += LEVEL_SCORE
            reasons.append(Reason("PDL Break", PASS, f"Trading below PDL ({m.prev_low:.2f})"))
        elif m.in_prev_range:
            reasons.append(Reason("Range Position", NEUTRAL_STATUS, "Within previous day range"))

        if m.range_expanding:
            reasons.append(Reason("Range Expansion", NEUTRAL_STATUS, f"Today's range at {m.range_ratio * 100:.0f}% of prior day"))

        if m.momentum_direction == day.direction:
            score += MOMENTUM_SCORE
            reasons.append(Reason("Momentum", PASS, f"{m.momentum_direction} momentum ({m.momentum_strength:.0f}%)"))
        else:
            status = NEUTRAL_STATUS if m.momentum_direction == NEUTRAL else FAIL
            reasons.append(Reason("Momentum", status, f"Recent momentum: {m.momentum_direction}"))

        recent = candles[-STOP_CANDLES:]
        data = {
            "spot_price": m.current_price,
            "aday_direction": day.direction,
            "gap_type": m.gap_type,
            "range_ratio": m.range_ratio,
            "stop_loss": min(c.low for c in recent) if bullish else max(c.high for c in recent),
        }

        if score < MIN_SIGNAL_SCORE:
            return DetectorResult(self.name, None, score, reasons, data, self.max_score)

        signal = BUY_CALL if bullish else BUY_PUT
        self._signal_sent = True
        logger.info("Day behavior signal: %s (alignment %d/%d)", signal, score, self.max_score)
        return DetectorResult(self.name, signal, score, reasons, data, self.max_score)
