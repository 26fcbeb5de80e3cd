"""Support/Resistance detector — breakouts and rejections at key levels.

Levels are fixed once per session from the prior day (PDH/PDL/PDC and
floor pivots), today's open and the round hundreds around price.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from adayalert.market.models import INTERVAL_5MIN, INTERVAL_15MIN, Candle
from adayalert.strategy.base import (
    StrategyContext,
    data_unavailable,
    guard_already_fired,
    guard_window,
)
from adayalert.strategy.indicators import calculate_pivots, round_number_levels
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

MIN_SESSION_CANDLES = 5
BREAKOUT_CONFIRM_POINTS = 5.0
REJECTION_TOUCH_POINTS = 15.0
REJECTION_BOUNCE_POINTS = 20.0
PROXIMITY_POINTS = 20.0

BREAKOUT_SCORE = 10
REJECTION_SCORE = 8
ALIGNMENT_BONUS = 3
TREND_BONUS = 2
PROXIMITY_SCORE = 3
MIN_SIGNAL_SCORE = 10

RESISTANCE = "resistance"
SUPPORT = "support"
PIVOT = "pivot"  # acts as either side depending on where price comes from


@dataclass(frozen=True)
class KeyLevel:
    name: str
    price: float
    kind: str


@dataclass(frozen=True)
class LevelInteraction:
    kind: str  # BREAKOUT | REJECTION
    direction: str  # BULLISH | BEARISH
    level: KeyLevel


def build_levels(
    prior: Candle,
    today_open: Optional[float],
    current_price: float,
) -> list[KeyLevel]:
    """Key levels for the session, most significant first."""
    pivots = calculate_pivots(prior.high, prior.low, prior.close)
    round_below, round_above = round_number_levels(current_price)
    levels = [
        KeyLevel("PDH", prior.high, RESISTANCE),
        KeyLevel("PDL", prior.low, SUPPORT),
        KeyLevel("R1", pivots["r1"], RESISTANCE),
        KeyLevel("R2", pivots["r2"], RESISTANCE),
        KeyLevel("S1", pivots["s1"], SUPPORT),
        KeyLevel("S2", pivots["s2"], SUPPORT),
        KeyLevel("Pivot", pivots["pivot"], PIVOT),
        KeyLevel("PDC", prior.close, PIVOT),
    ]
    if today_open is not None:
        levels.append(KeyLevel("Today Open", today_open, PIVOT))
    levels.append(KeyLevel("Round Number", round_above, RESISTANCE))
    levels.append(KeyLevel("Round Number", round_below, SUPPORT))
    return levels


def detect_interaction(candles: list[Candle], levels: list[KeyLevel]) -> Optional[LevelInteraction]:
    """First breakout or rejection of *levels* by the latest candle."""
    if len(candles) < 3:
        return None
    prev, latest = candles[-2], candles[-1]
    price = latest.close

    for level in levels:
        acts_resistance = level.kind in (RESISTANCE, PIVOT)
        acts_support = level.kind in (SUPPORT, PIVOT)
        at = level.price

        if acts_resistance and prev.close < at and price > at + BREAKOUT_CONFIRM_POINTS:
            return LevelInteraction("BREAKOUT", BULLISH, level)
        if acts_support and prev.close > at and price < at - BREAKOUT_CONFIRM_POINTS:
            return LevelInteraction("BREAKOUT", BEARISH, level)
        if (
            acts_support
            and abs(latest.low - at) <= REJECTION_TOUCH_POINTS
            and price >= latest.low + REJECTION_BOUNCE_POINTS
            and price > prev.close
        ):
            return LevelInteraction("REJECTION", BULLISH, level)
        if (
            acts_resistance
            and abs(latest.high - at) <= REJECTION_TOUCH_POINTS
            and price <= latest.high - REJECTION_BOUNCE_POINTS
            and price < prev.close
        ):
            return LevelInteraction("REJECTION", BEARISH, level)
    return None


class SupportResistance:
    """Implements ``DetectorProtocol``."""

    name = "S/R BREAKOUT"
    window = STRATEGY_WINDOWS["S/R"]
    max_score = 15

    def __init__(self) -> None:
        self._levels: Optional[list[KeyLevel]] = None
        self._last_interaction: Optional[LevelInteraction] = None
        self._signal_sent = False

    def reset(self) -> None:
        self._levels = None
        self._last_interaction = None
        self._signal_sent = False

    def is_active(self, now) -> bool:
        return self.window.contains(now.time())

    def get_state(self) -> dict:
        return {
            "levels": {
                f"{lvl.name} ({lvl.kind})": round(lvl.price, 2) for lvl in self._levels or []
            },
            "last_interaction": (
                f"{self._last_interaction.direction} {self._last_interaction.kind} "
                f"at {self._last_interaction.level.name}"
                if self._last_interaction else None
            ),
            "signal_sent": self._signal_sent,
        }

    @property
    def levels(self) -> Optional[list[KeyLevel]]:
        return self._levels

    async def _init_levels(self, context: StrategyContext) -> Optional[list[KeyLevel]]:
        prior = context.day.prior_candle
        if prior is None:
            return None
        opening = await context.session_candles(INTERVAL_15MIN)
        today_open = opening[0].open if opening else None
        current = opening[-1].close if opening else prior.close
        levels = build_levels(prior, today_open, current)
        logger.info(
            "S/R levels: %s",
            ", ".join(f"{lvl.name}={lvl.price:.2f}" for lvl in levels),
        )
        return levels

    async def analyze(self, context: StrategyContext) -> DetectorResult:
        blocked = guard_window(self, context.now) or guard_already_fired(self, self._signal_sent)
        if blocked:
            return blocked

        if self._levels is None:
            self._levels = await self._init_levels(context)
        if self._levels is None:
            return data_unavailable(self, "Prior-day candle unavailable for S/R levels")

        candles = await context.session_candles(INTERVAL_5MIN)
        if len(candles) < MIN_SESSION_CANDLES:
            return data_unavailable(self, f"Need {MIN_SESSION_CANDLES} candles, have {len(candles)}")

        recent = candles[-MIN_SESSION_CANDLES:]
        price = recent[-1].close
        data = {"current_price": price, "spot_price": price}
        interaction = detect_interaction(recent, self._levels)

        if interaction is None:
            named = {lvl.name: lvl.price for lvl in self._levels}
            near = next(
                (n for n in ("PDH", "PDL", "Pivot") if abs(price - named[n]) <= PROXIMITY_POINTS),
                None,
            )
            if near:
                reason = Reason("Level Proximity", NEUTRAL_STATUS, f"Price near {near}, watching for breakout")
                return DetectorResult(self.name, None, PROXIMITY_SCORE, [reason], data, self.max_score)
            reason = Reason("S/R Levels", NEUTRAL_STATUS, "No significant level interaction")
            return DetectorResult(self.name, None, 0, [reason], data, self.max_score)

        self._last_interaction = interaction
        level = interaction.level
        if interaction.kind == "BREAKOUT":
            score = BREAKOUT_SCORE
            reasons = [Reason(f"{level.name} Breakout", PASS, f"{interaction.direction} breakout of {level.name} ({level.price:.2f})")]
        else:
            score = REJECTION_SCORE
            reasons = [Reason(f"{level.name} Rejection", PASS, f"{interaction.direction} rejection at {level.name} ({level.price:.2f})")]

        if context.day.is_trend_day:
            if context.day.direction == interaction.direction:
                score += ALIGNMENT_BONUS
                reasons.append(Reason("A-Day Alignment", PASS, f"Aligns with {context.day.direction} A-Day"))
            else:
                reasons.append(Reason("A-Day Alignment", NEUTRAL_STATUS, "Opposite to A-Day direction"))

        trend = context.market.trend
        if trend is not None and (
            (trend.is_bullish and interaction.direction == BULLISH)
            or (trend.is_bearish and interaction.direction == BEARISH)
        ):
            score += TREND_BONUS
            reasons.append(Reason("Trend Confirmation", PASS, f"Aligns with {trend.direction} trend"))

        bullish = interaction.direction == BULLISH
        data.update(
            level=level.name,
            level_price=round(level.price, 2),
            interaction=interaction.kind,
            stop_loss=min(c.low for c in recent) if bullish else max(c.high for c in recent),
        )

        if score < MIN_SIGNAL_SCORE:
            reasons.append(Reason("Signal Strength", FAIL, f"Score {score} below {MIN_SIGNAL_SCORE}"))
            return DetectorResult(self.name, None, score, reasons, data, self.max_score)

        signal = BUY_CALL if bullish else BUY_PUT
        self._signal_sent = True
        logger.info("S/R signal: %s %s at %s (score %d)", signal, interaction.kind, level.name, score)
        return DetectorResult(self.name, signal, min(score, self.max_score), reasons, data, self.max_score)
