"""Market-data feed interface and an in-memory replay implementation.

The live data provider sits outside this package; anything satisfying
``MarketDataFeed`` can drive the pipeline.
"""

from __future__ import annotations

from bisect import insort
from datetime import date, datetime
from typing import Optional, Protocol, runtime_checkable

from adayalert.market.models import (
    INTERVAL_5MIN,
    INTERVAL_LENGTHS,
    Candle,
    OptionChain,
)


@runtime_checkable
class MarketDataFeed(Protocol):
    """Capabilities the pipeline consumes from a data provider."""

    async def fetch_candles(
        self,
        symbol: str,
        interval: str,
        from_date: date,
        to_date: date,
    ) -> list[Candle]:
        """Return candles oldest-first; an empty list means no data."""
        ...

    async def fetch_option_chain(self, expiry: Optional[date] = None) -> OptionChain:
        """Return the option chain for *expiry* (nearest weekly by default)."""
        ...

    async def fetch_spot_price(self) -> float:
        """Return the latest index price."""
        ...


class ReplayFeed:
    """Serves stored candles clipped to a movable clock.

    With no clock set every stored candle is visible. Once ``set_clock`` is
    called, only candles that had completed by that moment are returned, so a
    replayed session never sees the future.

    Args:
        candles: Mapping of interval → candles (any order).
        option_chain: Optional static option chain to serve.
    """

    def __init__(
        self,
        candles: Optional[dict[str, list[Candle]]] = None,
        option_chain: Optional[OptionChain] = None,
    ) -> None:
        self._candles: dict[str, list[Candle]] = {}
        for interval, items in (candles or {}).items():
            self._candles[interval] = sorted(items, key=lambda c: c.time)
        self._option_chain = option_chain
        self._clock: Optional[datetime] = None
        self.fetch_count: int = 0

    def set_clock(self, moment: Optional[datetime]) -> None:
        self._clock = moment

    def add_candle(self, interval: str, candle: Candle) -> None:
        insort(self._candles.setdefault(interval, []), candle, key=lambda c: c.time)

    # ── MarketDataFeed ───────────────────────────────────────────────────

    async def fetch_candles(
        self,
        symbol: str,
        interval: str,
        from_date: date,
        to_date: date,
    ) -> list[Candle]:
        self.fetch_count += 1
        length = INTERVAL_LENGTHS[interval]
        result = []
        for candle in self._candles.get(interval, []):
            if not from_date <= candle.time.date() <= to_date:
                continue
            if self._clock is not None and candle.time + length > self._clock:
                continue
            result.append(candle)
        return result

    async def fetch_option_chain(self, expiry: Optional[date] = None) -> OptionChain:
        if self._option_chain is None:
            return OptionChain()
        return self._option_chain

    async def fetch_spot_price(self) -> float:
        visible = [
            c for c in self._candles.get(INTERVAL_5MIN, [])
            if self._clock is None
            or c.time + INTERVAL_LENGTHS[INTERVAL_5MIN] <= self._clock
        ]
        if not visible:
            return 0.0
        return visible[-1].close
