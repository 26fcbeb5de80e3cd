"""Strike selection — pick the option whose premium fits the configured band."""

import logging
from dataclasses import dataclass
from typing import Optional

from adayalert.market.models import OptionChain, OptionQuote
from adayalert.strategy.models import BUY_CALL

logger = logging.getLogger("adayalert")

# OTM strikes closer than this are preferred, furthest first.
OTM_PREFERENCE_LIMIT = 200.0


@dataclass(frozen=True)
class StrikeSelection:
    strike: float
    option_type: str
    premium: float
    otm_points: float
    in_band: bool = True


def _otm_points(quote: OptionQuote, direction: str, spot: float) -> float:
    return quote.strike - spot if direction == BUY_CALL else spot - quote.strike


def _preference(otm: float) -> float:
    return otm if 0 < otm < OTM_PREFERENCE_LIMIT else -abs(otm)


def select_strike(
    chain: OptionChain,
    direction: str,
    spot: float,
    premium_min: float,
    premium_max: float,
) -> Optional[StrikeSelection]:
    """Choose a strike for *direction* from the option chain.

    Among quotes with a premium inside ``[premium_min, premium_max]`` the
    furthest OTM strike within 200 points wins; past that, strikes nearer
    the money rank higher. With nothing in the band, the quote whose premium
    is closest to the band's midpoint is returned flagged ``in_band=False``.
    Returns ``None`` when the chain carries no premiums for that side.
    """
    option_type = "CE" if direction == BUY_CALL else "PE"
    quotes = [q for q in (chain.ce if direction == BUY_CALL else chain.pe) if q.ltp > 0]
    if not quotes:
        return None

    in_band = [q for q in quotes if premium_min <= q.ltp <= premium_max]
    if in_band:
        best = max(in_band, key=lambda q: _preference(_otm_points(q, direction, spot)))
        return StrikeSelection(
            strike=best.strike,
            option_type=option_type,
            premium=best.ltp,
            otm_points=_otm_points(best, direction, spot),
        )

    midpoint = (premium_min + premium_max) / 2
    best = min(quotes, key=lambda q: abs(q.ltp - midpoint))
    logger.warning(
        "No %s premium in Rs %g-%g; closest is %g at strike %g",
        option_type, premium_min, premium_max, best.ltp, best.strike,
    )
    return StrikeSelection(
        strike=best.strike,
        option_type=option_type,
        premium=best.ltp,
        otm_points=_otm_points(best, direction, spot),
        in_band=False,
    )
