"""Strategy engine — runs the active detectors concurrently for one tick.

Owns the detector and analyzer registries and the once-per-day reset.
A failing or stuck detector becomes a single fail-reason result; it never
cancels its siblings or the tick.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime
from typing import Optional

from adayalert.analysis.models import MarketSnapshot
from adayalert.analysis.open_interest import OIAnalyzer
from adayalert.analysis.reversal import ReversalAnalyzer
from adayalert.analysis.trend import TrendAnalyzer
from adayalert.analysis.volume import VolumeAnalyzer
from adayalert.errors import DataUnavailableError, DetectorTimeoutError
from adayalert.market.feed import MarketDataFeed
from adayalert.strategy.base import DetectorProtocol, StrategyContext, data_unavailable
from adayalert.strategy.models import FAIL, DetectorResult, Reason

logger = logging.getLogger("adayalert")


class StrategyEngine:
    """Registry plus concurrent runner for strategy detectors.

    Args:
        detectors: Detector instances to register.
        symbol: Index symbol the analyzers fetch.
        timeout_seconds: Per-detector (and per-analyzer) time budget.
    """

    def __init__(
        self,
        detectors: list[DetectorProtocol],
        symbol: str = "NIFTY 50",
        timeout_seconds: float = 20.0,
    ) -> None:
        self._detectors: dict[str, DetectorProtocol] = {}
        for detector in detectors:
            self.register(detector)
        self._timeout = timeout_seconds
        self._volume = VolumeAnalyzer(symbol)
        self._trend = TrendAnalyzer(symbol)
        self._oi = OIAnalyzer()
        self._reversal = ReversalAnalyzer(symbol)
        self._session_date: Optional[date] = None
        self._last_results: list[DetectorResult] = []

    # ── Registry ─────────────────────────────────────────────────────────

    def register(self, detector: DetectorProtocol) -> None:
        if not isinstance(detector, DetectorProtocol):
            raise TypeError(f"{detector!r} does not implement DetectorProtocol")
        if detector.name in self._detectors:
            raise ValueError(f"Detector '{detector.name}' already registered")
        self._detectors[detector.name] = detector

    def get(self, name: str) -> DetectorProtocol:
        return self._detectors[name]

    @property
    def names(self) -> list[str]:
        return list(self._detectors)

    @property
    def session_date(self) -> Optional[date]:
        return self._session_date

    # ── Lifecycle ────────────────────────────────────────────────────────

    def reset_for_session(self, day: date) -> bool:
        """Reset every detector and analyzer once per calendar day.

        Returns ``True`` if a reset happened, ``False`` if *day* was already
        reset.
        """
        if self._session_date == day:
            return False
        for detector in self._detectors.values():
            detector.reset()
        for analyzer in (self._volume, self._trend, self._oi, self._reversal):
            analyzer.reset()
        self._session_date = day
        self._last_results = []
        logger.info("Strategy state reset for session %s (%d detectors)", day, len(self._detectors))
        return True

    # ── Evaluation ───────────────────────────────────────────────────────

    async def _run_analyzer(self, label: str, analyzer, feed: MarketDataFeed, now: datetime):
        try:
            return await asyncio.wait_for(analyzer.analyze(feed, now), timeout=self._timeout)
        except Exception as exc:
            logger.warning("%s analyzer failed: %s", label, exc)
            return None

    async def collect_analysis(self, feed: MarketDataFeed, now: datetime) -> MarketSnapshot:
        """Run every ancillary analyzer concurrently."""
        volume, trend, oi, reversal = await asyncio.gather(
            self._run_analyzer("Volume", self._volume, feed, now),
            self._run_analyzer("Trend", self._trend, feed, now),
            self._run_analyzer("OI", self._oi, feed, now),
            self._run_analyzer("Reversal", self._reversal, feed, now),
        )
        return MarketSnapshot(volume=volume, trend=trend, oi=oi, reversal=reversal)

    async def track_reversals(self, feed: MarketDataFeed, now: datetime) -> dict:
        """Refresh the reversal analyzer alone and return the day's summary.

        Used at the close, when no tick may have run the analyzers recently.
        """
        await self._run_analyzer("Reversal", self._reversal, feed, now)
        return self._reversal.daily_summary()

    def reversal_summary(self) -> dict:
        return self._reversal.daily_summary()

    async def _run_detector(
        self,
        detector: DetectorProtocol,
        context: StrategyContext,
    ) -> DetectorResult:
        try:
            try:
                return await asyncio.wait_for(detector.analyze(context), timeout=self._timeout)
            except asyncio.TimeoutError as exc:
                raise DetectorTimeoutError(
                    f"timed out after {self._timeout:.0f}s"
                ) from exc
        except DataUnavailableError as exc:
            return data_unavailable(detector, str(exc))
        except Exception as exc:
            logger.error("Detector %s failed: %s", detector.name, exc)
            return DetectorResult(
                strategy_name=detector.name,
                reasons=[Reason("Error", FAIL, f"{type(exc).__name__}: {exc}")],
                max_score=detector.max_score,
            )

    async def run(self, context: StrategyContext) -> list[DetectorResult]:
        """Evaluate every detector whose window contains ``context.now``.

        Results come back in registration order.
        """
        active = [d for d in self._detectors.values() if d.is_active(context.now)]
        if not active:
            logger.debug("No detectors active at %s", context.now.strftime("%H:%M"))
            self._last_results = []
            return []

        results = await asyncio.gather(
            *(self._run_detector(d, context) for d in active)
        )
        self._last_results = list(results)

        fired = [r for r in results if r.signal]
        logger.info(
            "Ran %d detector(s) at %s: %d signal(s)%s",
            len(active),
            context.now.strftime("%H:%M"),
            len(fired),
            "".join(f" [{r.strategy_name} {r.signal} {r.score:g}]" for r in fired),
        )
        return self._last_results

    # ── Queries ──────────────────────────────────────────────────────────

    def status(self, now: datetime) -> dict:
        """Read-only snapshot of every detector."""
        return {
            "session_date": self._session_date.isoformat() if self._session_date else None,
            "detectors": {
                name: {
                    "active": detector.is_active(now),
                    "window": str(detector.window),
                    "max_score": detector.max_score,
                    "state": detector.get_state(),
                }
                for name, detector in self._detectors.items()
            },
            "last_results": [
                {"strategy": r.strategy_name, "signal": r.signal, "score": r.score}
                for r in self._last_results
            ],
        }
