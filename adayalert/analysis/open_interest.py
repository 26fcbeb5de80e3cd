"""Open-interest analyzer — PCR, max pain, ATM build-up and OI walls.

Pure functions over an ``OptionChain`` plus a small time-based cache, since
the chain changes slowly relative to the 1-minute tick.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from adayalert.analysis.models import OIAnalysis
from adayalert.market.feed import MarketDataFeed
from adayalert.market.models import OptionChain

logger = logging.getLogger("adayalert")

STRIKE_STEP = 50
BUILDUP_FACTOR = 1.5
CACHE_TTL = timedelta(seconds=60)


def atm_strike(spot: float) -> float:
    return round(spot / STRIKE_STEP) * STRIKE_STEP


def calculate_pcr(chain: OptionChain) -> Optional[float]:
    """Total put OI / total call OI; ``None`` without call OI."""
    call_oi = sum(o.oi for o in chain.ce)
    put_oi = sum(o.oi for o in chain.pe)
    if call_oi == 0:
        return None
    return put_oi / call_oi


def calculate_max_pain(chain: OptionChain) -> Optional[float]:
    """Strike at which total payout to option buyers is smallest."""
    strikes = sorted({o.strike for o in chain.ce} | {o.strike for o in chain.pe})
    if not strikes:
        return None

    best_strike, best_pain = None, float("inf")
    for expiry_price in strikes:
        pain = sum((expiry_price - c.strike) * c.oi for c in chain.ce if expiry_price > c.strike)
        pain += sum((p.strike - expiry_price) * p.oi for p in chain.pe if expiry_price < p.strike)
        if pain < best_pain:
            best_strike, best_pain = expiry_price, pain
    return best_strike


def detect_oi_buildup(chain: OptionChain, spot: float) -> Optional[float]:
    """ATM strike when its call or put OI exceeds 1.5× the side's average."""
    strike = atm_strike(spot)
    for side in (chain.ce, chain.pe):
        if not side:
            continue
        avg = sum(o.oi for o in side) / len(side)
        atm = next((o for o in side if o.strike == strike), None)
        if atm is not None and atm.oi > avg * BUILDUP_FACTOR:
            return strike
    return None


def find_oi_levels(chain: OptionChain, spot: float) -> tuple[list[float], list[float]]:
    """Put-OI walls below spot (support) and call-OI walls above (resistance).

    Each list holds up to three strikes, heaviest OI first.
    """
    puts_below = sorted((o for o in chain.pe if o.strike < spot), key=lambda o: o.oi, reverse=True)
    calls_above = sorted((o for o in chain.ce if o.strike > spot), key=lambda o: o.oi, reverse=True)
    return [o.strike for o in puts_below[:3]], [o.strike for o in calls_above[:3]]


def analyze_chain(chain: OptionChain, spot: float) -> Optional[OIAnalysis]:
    if not chain.ce and not chain.pe:
        return None
    buildup = detect_oi_buildup(chain, spot)
    support, resistance = find_oi_levels(chain, spot)
    return OIAnalysis(
        pcr=calculate_pcr(chain),
        max_pain=calculate_max_pain(chain),
        spot_price=spot,
        oi_buildup=buildup is not None,
        buildup_strike=buildup,
        support_levels=support,
        resistance_levels=resistance,
    )


class OIAnalyzer:
    """Fetches the chain and spot, caching the analysis for a minute."""

    def __init__(self) -> None:
        self._cached: Optional[OIAnalysis] = None
        self._cached_at: Optional[datetime] = None

    def reset(self) -> None:
        self._cached = None
        self._cached_at = None

    async def analyze(self, feed: MarketDataFeed, now: datetime) -> Optional[OIAnalysis]:
        if self._cached_at is not None and now - self._cached_at < CACHE_TTL:
            return self._cached
        chain = await feed.fetch_option_chain()
        spot = await feed.fetch_spot_price()
        result = analyze_chain(chain, spot)
        if result is None:
            logger.debug("Option chain empty; OI analysis unavailable")
        self._cached, self._cached_at = result, now
        return result
