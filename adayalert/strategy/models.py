"""Strategy data models — plain dataclasses, no I/O."""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from adayalert.market.models import Candle

# Signal directions
BUY_CALL = "BUY_CALL"
BUY_PUT = "BUY_PUT"
DIRECTIONS = (BUY_CALL, BUY_PUT)

# Trend / day directions
BULLISH = "BULLISH"
BEARISH = "BEARISH"
NEUTRAL = "NEUTRAL"

# Reason statuses
PASS = "pass"
FAIL = "fail"
NEUTRAL_STATUS = "neutral"


def direction_for(trend: Optional[str]) -> Optional[str]:
    """Map a BULLISH/BEARISH trend to the option direction that trades it."""
    if trend == BULLISH:
        return BUY_CALL
    if trend == BEARISH:
        return BUY_PUT
    return None


@dataclass(frozen=True)
class Reason:
    """One factor that argued for or against a signal."""

    factor: str
    status: str  # "pass" | "fail" | "neutral"
    detail: str


@dataclass(frozen=True)
class DayClassification:
    """Whether the prior session was a trend day (A-Day), and which way."""

    is_trend_day: bool
    direction: Optional[str]
    body_ratio_pct: float
    range_points: float
    volume_ratio_pct: float
    trade_date: Optional[date] = None
    prior_candle: Optional[Candle] = None
    history_days: int = 0
    degraded: bool = False

    @property
    def signal_direction(self) -> Optional[str]:
        """BUY_CALL / BUY_PUT matching the A-Day, or None on other days."""
        return direction_for(self.direction) if self.is_trend_day else None


@dataclass
class DetectorResult:
    """Output of one detector for one tick."""

    strategy_name: str
    signal: Optional[str] = None
    score: float = 0.0
    reasons: list[Reason] = field(default_factory=list)
    data: dict = field(default_factory=dict)
    max_score: float = 0.0


@dataclass(frozen=True)
class CategoryScore:
    """Points earned in one confidence category."""

    score: float
    max_score: float
    implemented: bool = True


@dataclass(frozen=True)
class ConfidenceResult:
    total_score: float
    breakdown: dict[str, CategoryScore]
    meets_threshold: bool
    reasons: list[Reason]


@dataclass(frozen=True)
class AggregatedSignal:
    """Merged, scored recommendation ready for the safety gate."""

    direction: str
    primary_strategy: str
    contributing_strategies: list[str]
    confidence_score: float
    confidence_breakdown: dict[str, CategoryScore]
    reasons: list[Reason]
    spot_price_hint: Optional[float]
    stop_loss_hint: Optional[float]
    timestamp: datetime
    strategy_scores: dict[str, float] = field(default_factory=dict)
