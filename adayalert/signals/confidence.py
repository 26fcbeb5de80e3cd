"""Confidence scorer — turns aligned detector results into a 0–100 score.

Scoring breakdown (each category capped independently):
    - A-Day alignment:        20
    - Detector native scores: each detector's own max (10–15)
    - OI support:             15
    - Volume spike:           15
    - Option Greeks:          10 (fixed placeholder credit, flagged)

The total is clamped to 100; categories draw on overlapping evidence so
their sum can exceed it.
"""

import logging
import math
from typing import Iterable, Optional

from adayalert.analysis.models import OIAnalysis, VolumeAnalysis
from adayalert.strategy.models import (
    BUY_CALL,
    DIRECTIONS,
    FAIL,
    NEUTRAL_STATUS,
    PASS,
    CategoryScore,
    ConfidenceResult,
    DayClassification,
    DetectorResult,
    Reason,
    direction_for,
)

logger = logging.getLogger("adayalert")

DAY_ALIGNMENT_MAX = 20
OI_SUPPORT_MAX = 15
VOLUME_SPIKE_MAX = 15
GREEKS_MAX = 10
DEFAULT_MIN_SCORE = 60

PCR_BULLISH = 1.2
PCR_BEARISH = 0.8
MAX_PAIN_NEAR_PCT = 1.0

_CATEGORY_KEYWORDS = [
    ("VWAP", "vwap_confirmation"),
    ("S/R", "sr_breakout"),
    ("SUPPORT", "sr_breakout"),
    ("RESISTANCE", "sr_breakout"),
    ("DAY BEHAVIOR", "day_behavior"),
    ("ORB", "orb_breakout"),
    ("PULLBACK", "pullback_continuation"),
    ("EXPIRY", "expiry_momentum"),
]


def category_for(strategy_name: str) -> Optional[str]:
    """Scoring category a detector's native score lands in."""
    name = strategy_name.upper()
    for keyword, key in _CATEGORY_KEYWORDS:
        if keyword in name:
            return key
    return None


def dedupe_reasons(reasons: Iterable[Reason]) -> list[Reason]:
    """Keep the first reason for each ``(factor, status)`` pair."""
    seen: set[tuple[str, str]] = set()
    unique = []
    for reason in reasons:
        key = (reason.factor, reason.status)
        if key not in seen:
            seen.add(key)
            unique.append(reason)
    return unique


# ── Category scorers ─────────────────────────────────────────────────────


def score_day_alignment(day: Optional[DayClassification], direction: str) -> tuple[float, list[Reason]]:
    if day is None or not day.is_trend_day:
        return 0, [Reason("A-Day Status", FAIL, "Previous day was NOT an A-Day")]
    if direction_for(day.direction) == direction:
        return DAY_ALIGNMENT_MAX, [
            Reason("A-Day Alignment", PASS, f"Signal aligns with A-Day direction ({day.direction})")
        ]
    return math.floor(DAY_ALIGNMENT_MAX * 0.5), [
        Reason("A-Day Alignment", NEUTRAL_STATUS, f"Signal opposite to A-Day direction (A-Day: {day.direction})")
    ]


def score_oi_support(oi: Optional[OIAnalysis], direction: str) -> tuple[float, list[Reason]]:
    if oi is None:
        return 0, [Reason("OI Analysis", NEUTRAL_STATUS, "OI data not available")]

    score = 0
    reasons: list[Reason] = []
    bullish = direction == BUY_CALL

    if oi.pcr is not None:
        if bullish and oi.pcr > PCR_BULLISH:
            score += 5
            reasons.append(Reason("PCR Ratio", PASS, f"PCR {oi.pcr:.2f} > {PCR_BULLISH} supports bullish move"))
        elif not bullish and oi.pcr < PCR_BEARISH:
            score += 5
            reasons.append(Reason("PCR Ratio", PASS, f"PCR {oi.pcr:.2f} < {PCR_BEARISH} supports bearish move"))
        else:
            reasons.append(Reason("PCR Ratio", NEUTRAL_STATUS, f"PCR {oi.pcr:.2f} is neutral"))

    distance = oi.max_pain_distance_pct
    if distance is not None:
        if distance < MAX_PAIN_NEAR_PCT:
            score += 5
            reasons.append(Reason("Max Pain", PASS, f"Spot near Max Pain ({oi.max_pain:g}), high probability zone"))
        else:
            reasons.append(Reason("Max Pain", NEUTRAL_STATUS, f"Spot {distance:.1f}% from Max Pain"))

    if oi.oi_buildup:
        score += 5
        strike = f" at {oi.buildup_strike:g}" if oi.buildup_strike else ""
        reasons.append(Reason("OI Build-up", PASS, f"Fresh OI build-up{strike}"))

    return min(score, OI_SUPPORT_MAX), reasons


def score_volume_spike(volume: Optional[VolumeAnalysis]) -> tuple[float, list[Reason]]:
    if volume is None:
        return 0, [Reason("Volume", NEUTRAL_STATUS, "Volume data not available")]
    ratio = volume.volume_ratio
    pct = f"{ratio * 100:.0f}% of average"
    if ratio >= 2.0:
        return VOLUME_SPIKE_MAX, [Reason("Volume Spike", PASS, f"Strong volume spike ({pct})")]
    if ratio >= 1.5:
        return math.floor(VOLUME_SPIKE_MAX * 0.7), [Reason("Volume Spike", PASS, f"Moderate volume spike ({pct})")]
    if ratio >= 1.0:
        return math.floor(VOLUME_SPIKE_MAX * 0.3), [Reason("Volume", NEUTRAL_STATUS, f"Volume at average ({pct})")]
    return 0, [Reason("Volume", FAIL, f"Volume below average ({pct})")]


def score_greeks(placeholder_score: float) -> tuple[CategoryScore, list[Reason]]:
    """Option Greeks are not analysed; a fixed, visibly flagged credit."""
    credit = max(0.0, min(placeholder_score, GREEKS_MAX))
    reason = Reason(
        "Option Greeks", NEUTRAL_STATUS,
        f"Greeks not analysed, fixed credit {credit:g}/{GREEKS_MAX}",
    )
    return CategoryScore(credit, GREEKS_MAX, implemented=False), [reason]


# ── Composite ────────────────────────────────────────────────────────────


def score_confidence(
    direction: str,
    results: list[DetectorResult],
    day: Optional[DayClassification] = None,
    oi: Optional[OIAnalysis] = None,
    volume: Optional[VolumeAnalysis] = None,
    min_score: float = DEFAULT_MIN_SCORE,
    greeks_placeholder: float = GREEKS_MAX / 2,
) -> ConfidenceResult:
    """Score results that share *direction*.

    Raises ``ValueError`` for an unknown direction.
    """
    if direction not in DIRECTIONS:
        raise ValueError(f"Unknown signal direction {direction!r}")

    breakdown: dict[str, CategoryScore] = {}
    reasons: list[Reason] = []

    day_score, day_reasons = score_day_alignment(day, direction)
    breakdown["day_alignment"] = CategoryScore(day_score, DAY_ALIGNMENT_MAX)
    reasons.extend(day_reasons)
    if day is not None and day.degraded:
        reasons.append(Reason(
            "Volume History", NEUTRAL_STATUS,
            f"Day classification used {day.history_days} of 20 days of volume history",
        ))

    for result in results:
        if result.score <= 0:
            continue
        key = category_for(result.strategy_name)
        if key is None or key in breakdown:
            continue
        cap = result.max_score or 15
        breakdown[key] = CategoryScore(min(result.score, cap), cap)
        reasons.extend(result.reasons)

    oi_score, oi_reasons = score_oi_support(oi, direction)
    breakdown["oi_support"] = CategoryScore(oi_score, OI_SUPPORT_MAX)
    reasons.extend(oi_reasons)

    volume_score, volume_reasons = score_volume_spike(volume)
    breakdown["volume_spike"] = CategoryScore(volume_score, VOLUME_SPIKE_MAX)
    reasons.extend(volume_reasons)

    breakdown["option_greeks"], greek_reasons = score_greeks(greeks_placeholder)
    reasons.extend(greek_reasons)

    raw = sum(c.score for c in breakdown.values())
    total = max(0.0, min(100.0, raw))
    meets = total >= min_score

    logger.info(
        "Confidence %s: %g/100 (raw %g, threshold %g) %s",
        direction, total, raw, min_score, "PASS" if meets else "below threshold",
    )
    return ConfidenceResult(
        total_score=total,
        breakdown=breakdown,
        meets_threshold=meets,
        reasons=dedupe_reasons(reasons),
    )
