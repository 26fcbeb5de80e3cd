"""Technical indicators — EMA, VWAP, pivots, momentum. Pure functions, no I/O."""

import math
from typing import Optional

from adayalert.market.models import Candle


def calculate_ema(candles: list[Candle], period: int) -> list[float]:
    """Calculate an Exponential Moving Average series over closes.

    ``EMA_today = close × k + EMA_yesterday × (1 - k)`` with
    ``k = 2 / (period + 1)``, seeded with the SMA of the first *period*
    closes. Entries before the seed are ``float('nan')``.

    Raises ``ValueError`` if fewer than *period* candles are provided.
    """
    if len(candles) < period:
        raise ValueError(
            f"Need at least {period} candles for EMA({period}), "
            f"got {len(candles)}"
        )

    k = 2.0 / (period + 1)
    closes = [c.close for c in candles]
    ema: list[float] = [float("nan")] * len(closes)

    ema[period - 1] = sum(closes[:period]) / period
    for i in range(period, len(closes)):
        ema[i] = closes[i] * k + ema[i - 1] * (1 - k)

    return ema


def latest_ema(candles: list[Candle], period: int = 20) -> float:
    """Most recent EMA value. Raises ``ValueError`` on short history."""
    value = calculate_ema(candles, period)[-1]
    if math.isnan(value):
        raise ValueError(f"EMA({period}) undefined for {len(candles)} candles")
    return value


# ── VWAP ─────────────────────────────────────────────────────────────────


def typical_price(candle: Candle) -> float:
    return (candle.high + candle.low + candle.close) / 3


def calculate_vwap(candles: list[Candle]) -> Optional[float]:
    """Session VWAP: Σ(typical price × volume) / Σ volume.

    Returns ``None`` when there is no volume to weight by.
    """
    total_volume = sum(c.volume for c in candles)
    if total_volume <= 0:
        return None
    weighted = sum(typical_price(c) * c.volume for c in candles)
    return weighted / total_volume


# ── Volume ───────────────────────────────────────────────────────────────


def average_volume(candles: list[Candle]) -> float:
    if not candles:
        return 0.0
    return sum(c.volume for c in candles) / len(candles)


# ── Levels ───────────────────────────────────────────────────────────────


def calculate_pivots(high: float, low: float, close: float) -> dict[str, float]:
    """Classic floor pivots from the prior session's high, low and close."""
    pivot = (high + low + close) / 3
    span = high - low
    return {
        "pivot": pivot,
        "r1": 2 * pivot - low,
        "r2": pivot + span,
        "r3": high + 2 * (pivot - low),
        "s1": 2 * pivot - high,
        "s2": pivot - span,
        "s3": low - 2 * (high - pivot),
    }


def round_number_levels(price: float, step: float = 100.0) -> tuple[float, float]:
    """Nearest multiples of *step* at or below and strictly above *price*."""
    below = math.floor(price / step) * step
    return below, below + step


# ── Momentum ─────────────────────────────────────────────────────────────


def candle_momentum(candles: list[Candle], threshold: float = 0.7) -> dict:
    """Share of bullish vs bearish candles and the resulting bias.

    Direction is BULLISH / BEARISH only when at least *threshold* of the
    candles agree, otherwise NEUTRAL.
    """
    if not candles:
        return {"direction": "NEUTRAL", "bullish_pct": 0.0, "bearish_pct": 0.0}
    bullish = sum(1 for c in candles if c.is_bullish)
    bearish = sum(1 for c in candles if c.is_bearish)
    bullish_pct = bullish / len(candles)
    bearish_pct = bearish / len(candles)
    direction = "NEUTRAL"
    if bullish_pct >= threshold:
        direction = "BULLISH"
    elif bearish_pct >= threshold:
        direction = "BEARISH"
    return {
        "direction": direction,
        "bullish_pct": round(bullish_pct * 100, 1),
        "bearish_pct": round(bearish_pct * 100, 1),
    }
