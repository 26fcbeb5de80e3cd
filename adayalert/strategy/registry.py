"""Detector registry — builds the standard detector set by name."""

from adayalert.strategy.base import DetectorProtocol
from adayalert.strategy.day_behavior import DayBehavior
from adayalert.strategy.expiry_momentum import ExpiryMomentum
from adayalert.strategy.orb import OpeningRangeBreakout
from adayalert.strategy.pullback import PullbackContinuation
from adayalert.strategy.sr_levels import SupportResistance
from adayalert.strategy.vwap import VWAPCrossover

DETECTOR_REGISTRY: dict[str, type] = {
    OpeningRangeBreakout.name: OpeningRangeBreakout,
    PullbackContinuation.name: PullbackContinuation,
    ExpiryMomentum.name: ExpiryMomentum,
    VWAPCrossover.name: VWAPCrossover,
    SupportResistance.name: SupportResistance,
    DayBehavior.name: DayBehavior,
}


def get_detector(name: str, expiry_weekday: int = 3) -> DetectorProtocol:
    """Instantiate a detector by its display name.

    Raises ``KeyError`` if *name* is not registered.
    """
    cls = DETECTOR_REGISTRY.get(name)
    if cls is None:
        raise KeyError(
            f"Unknown detector '{name}'. "
            f"Available: {', '.join(sorted(DETECTOR_REGISTRY))}"
        )
    if cls is ExpiryMomentum:
        return cls(expiry_weekday=expiry_weekday)
    return cls()


def build_default_detectors(expiry_weekday: int = 3) -> list[DetectorProtocol]:
    """One fresh instance of every registered detector."""
    return [get_detector(name, expiry_weekday) for name in DETECTOR_REGISTRY]
