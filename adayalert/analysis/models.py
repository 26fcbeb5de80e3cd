"""Ancillary analyzer snapshots shared by detectors and the scorer."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class VolumeAnalysis:
    """Latest completed 5-minute volume against the multi-day baseline."""

    current_volume: float
    baseline_volume: float
    volume_ratio: float
    spike_level: str  # NORMAL | HIGH | VERY_HIGH | EXTREME
    percent_of_avg: float

    @property
    def is_spike(self) -> bool:
        return self.volume_ratio >= 1.5


@dataclass(frozen=True)
class TrendAnalysis:
    """EMA-slope trend of the session so far."""

    direction: str  # BULLISH | BULLISH_WEAK | BEARISH | BEARISH_WEAK | NEUTRAL
    ema: float
    slope_pct: float
    price_above_ema: bool

    @property
    def is_bullish(self) -> bool:
        return self.direction.startswith("BULLISH")

    @property
    def is_bearish(self) -> bool:
        return self.direction.startswith("BEARISH")


@dataclass(frozen=True)
class OIAnalysis:
    """Open-interest picture of the nearest expiry."""

    pcr: Optional[float]
    max_pain: Optional[float]
    spot_price: Optional[float]
    oi_buildup: bool = False
    buildup_strike: Optional[float] = None
    support_levels: list[float] = field(default_factory=list)
    resistance_levels: list[float] = field(default_factory=list)

    @property
    def max_pain_distance_pct(self) -> Optional[float]:
        if not self.max_pain or not self.spot_price:
            return None
        return abs(self.spot_price - self.max_pain) / self.spot_price * 100


@dataclass(frozen=True)
class Reversal:
    """One swing that retraced at least the minimum magnitude off its extreme."""

    kind: str  # BULLISH_REVERSAL | BEARISH_REVERSAL
    from_price: float
    to_price: float
    magnitude: float
    time: datetime
    candle_index: int


@dataclass(frozen=True)
class ReversalAnalysis:
    """Intraday swings of the session so far."""

    reversals: list[Reversal]
    has_recent_reversal: bool
    significant: Optional[Reversal]
    day_high: float
    day_low: float
    current_price: float
    zone: Optional[str] = None  # NEAR_HIGH | NEAR_LOW

    @property
    def count(self) -> int:
        return len(self.reversals)


@dataclass(frozen=True)
class MarketSnapshot:
    """Everything the analyzers produced for one tick. Any part may be None."""

    volume: Optional[VolumeAnalysis] = None
    trend: Optional[TrendAnalysis] = None
    oi: Optional[OIAnalysis] = None
    reversal: Optional[ReversalAnalysis] = None
