"""Per-strategy activation windows (IST), keyed by strategy-name prefix."""

from datetime import time
from typing import Optional

from adayalert.market.calendar import TimeWindow

STRATEGY_WINDOWS: dict[str, TimeWindow] = {
    "ORB": TimeWindow(time(9, 30), time(10, 30)),
    "PULLBACK": TimeWindow(time(10, 15), time(13, 30)),
    "EXPIRY": TimeWindow(time(11, 0), time(14, 0)),
    "VWAP": TimeWindow(time(10, 0), time(14, 30)),
    "S/R": TimeWindow(time(9, 45), time(14, 30)),
    "DAY": TimeWindow(time(10, 15), time(14, 0)),
}


def window_for(strategy_name: str) -> Optional[TimeWindow]:
    """Look up a window from the first word of *strategy_name*.

    ``"ORB BREAKOUT"`` → ORB window; unknown prefixes → ``None``.
    """
    parts = strategy_name.strip().upper().split()
    if not parts:
        return None
    return STRATEGY_WINDOWS.get(parts[0])
