"""Signal aggregator — merges one tick's detector signals into one decision.

Confluence rule: the direction with the larger summed native score wins,
then the larger detector count, then BUY_CALL. Only results agreeing with
the winner are scored; a score below threshold yields no signal at all.
"""

import logging
from datetime import datetime
from typing import Optional

from adayalert.analysis.models import OIAnalysis, VolumeAnalysis
from adayalert.signals.confidence import DEFAULT_MIN_SCORE, GREEKS_MAX, score_confidence
from adayalert.strategy.models import (
    BUY_CALL,
    BUY_PUT,
    DIRECTIONS,
    AggregatedSignal,
    DayClassification,
    DetectorResult,
)

logger = logging.getLogger("adayalert")


def choose_direction(results: list[DetectorResult]) -> Optional[str]:
    """Dominant direction among signalled results, or ``None`` if none."""
    counts = {BUY_CALL: 0, BUY_PUT: 0}
    scores = {BUY_CALL: 0.0, BUY_PUT: 0.0}
    for result in results:
        if result.signal not in DIRECTIONS:
            continue
        counts[result.signal] += 1
        scores[result.signal] += result.score

    if counts[BUY_CALL] == 0 and counts[BUY_PUT] == 0:
        return None
    if scores[BUY_CALL] != scores[BUY_PUT]:
        return BUY_CALL if scores[BUY_CALL] > scores[BUY_PUT] else BUY_PUT
    # Tie on score falls back to count, then to BUY_CALL.
    return BUY_CALL if counts[BUY_CALL] >= counts[BUY_PUT] else BUY_PUT


def aggregate(
    results: list[DetectorResult],
    day: Optional[DayClassification] = None,
    oi: Optional[OIAnalysis] = None,
    volume: Optional[VolumeAnalysis] = None,
    min_score: float = DEFAULT_MIN_SCORE,
    now: Optional[datetime] = None,
    greeks_placeholder: float = GREEKS_MAX / 2,
) -> Optional[AggregatedSignal]:
    """Merge one tick's detector results.

    Args:
        results: Every ``DetectorResult`` from this tick (null signals are
            ignored).
        day: Today's day classification.
        oi: Open-interest snapshot, if available.
        volume: Volume snapshot, if available.
        min_score: Confidence threshold.
        now: Timestamp for the signal; defaults to the current time.

    Returns:
        The ``AggregatedSignal``, or ``None`` when nothing fired or the
        confidence threshold was not met.

    Raises:
        ValueError: If a result carries an unknown signal value.
    """
    signalled = [r for r in results if r.signal is not None]
    for result in signalled:
        if result.signal not in DIRECTIONS:
            raise ValueError(
                f"{result.strategy_name} returned unknown signal {result.signal!r}"
            )

    direction = choose_direction(signalled)
    if direction is None:
        logger.debug("No signals to aggregate")
        return None

    aligned = [r for r in signalled if r.signal == direction]
    dropped = len(signalled) - len(aligned)
    if dropped:
        logger.info("Discarding %d signal(s) opposing %s", dropped, direction)

    confidence = score_confidence(
        direction,
        aligned,
        day=day,
        oi=oi,
        volume=volume,
        min_score=min_score,
        greeks_placeholder=greeks_placeholder,
    )
    if not confidence.meets_threshold:
        logger.info(
            "Signal below confidence threshold: %s %g < %g",
            direction, confidence.total_score, min_score,
        )
        return None

    primary = aligned[0]
    for result in aligned[1:]:
        if result.score > primary.score:
            primary = result

    signal = AggregatedSignal(
        direction=direction,
        primary_strategy=primary.strategy_name,
        contributing_strategies=[r.strategy_name for r in aligned],
        confidence_score=confidence.total_score,
        confidence_breakdown=confidence.breakdown,
        reasons=confidence.reasons,
        spot_price_hint=primary.data.get("spot_price"),
        stop_loss_hint=primary.data.get("stop_loss"),
        timestamp=now or datetime.now().astimezone(),
        strategy_scores={r.strategy_name: r.score for r in aligned},
    )
    logger.info(
        "Signal aggregated: %s confidence %g from %s (primary %s)",
        direction, signal.confidence_score,
        ", ".join(signal.contributing_strategies), signal.primary_strategy,
    )
    return signal
