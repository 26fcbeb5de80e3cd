"""A-Day Alert — alert engine (orchestration loop).

Connects the day classifier, strategy engine, aggregator, safety filter and
notifier into a single polling loop. Every tick either ends in a skip, a
safety rejection, or one delivered alert. Nothing is ever auto-executed.
"""

import asyncio
import logging
from datetime import date, datetime
from typing import Optional

from adayalert.config import Config
from adayalert.delivery.formatting import (
    compact_reason,
    format_alert,
    format_morning_report,
    format_session_report,
    format_session_start,
)
from adayalert.delivery.telegram_client import NotifierProtocol
from adayalert.errors import DataUnavailableError
from adayalert.market.calendar import MARKET_CLOSE, MARKET_HOURS, is_trading_day, now_ist
from adayalert.market.feed import MarketDataFeed
from adayalert.reports.morning import MorningReport, fetch_morning_report
from adayalert.reports.post_market import build_post_market, strategy_performance
from adayalert.risk.safety_filter import SafetyFilter
from adayalert.signals.aggregator import aggregate
from adayalert.signals.strike_selector import StrikeSelection, select_strike
from adayalert.strategy.base import StrategyContext
from adayalert.strategy.day_classifier import DayClassifier
from adayalert.strategy.engine import StrategyEngine
from adayalert.strategy.models import AggregatedSignal, DayClassification
from adayalert.strategy.registry import build_default_detectors

logger = logging.getLogger("adayalert")


class AlertEngine:
    """Drives one trading session per day, one evaluation per tick.

    Args:
        config: Application configuration.
        feed: Market data source implementing ``MarketDataFeed``.
        notifier: Delivery channel implementing ``NotifierProtocol``.
        strategy_engine: Detector runner. Defaults to every known detector.
        classifier: Prior-day classifier. Defaults to one for ``config.symbol``.
        safety: Safety filter. Defaults to one built from config limits.
    """

    def __init__(
        self,
        config: Config,
        feed: MarketDataFeed,
        notifier: NotifierProtocol,
        strategy_engine: Optional[StrategyEngine] = None,
        classifier: Optional[DayClassifier] = None,
        safety: Optional[SafetyFilter] = None,
    ) -> None:
        self._config = config
        self._feed = feed
        self._notifier = notifier
        self._strategies = strategy_engine or StrategyEngine(
            build_default_detectors(config.expiry_weekday),
            symbol=config.symbol,
            timeout_seconds=config.detector_timeout_seconds,
        )
        self._classifier = classifier or DayClassifier(config.symbol)
        self._safety = safety or SafetyFilter(
            max_session_loss=config.max_session_loss,
            min_signal_gap_minutes=config.min_signal_gap_minutes,
        )
        self._force_analyze = config.force_analyze
        self._running: bool = False
        self._cycle_count: int = 0

        self._session_date: Optional[date] = None
        self._session_ended: bool = False
        self._day: Optional[DayClassification] = None
        self._morning: Optional[MorningReport] = None
        self._tick_count: int = 0
        self._sent: list[dict] = []
        self._filtered: list[dict] = []
        self._last_action: Optional[dict] = None

    # ── Accessors ────────────────────────────────────────────────────────

    @property
    def safety(self) -> SafetyFilter:
        return self._safety

    @property
    def strategies(self) -> StrategyEngine:
        return self._strategies

    @property
    def day(self) -> Optional[DayClassification]:
        return self._day

    @property
    def morning_report(self) -> Optional[MorningReport]:
        return self._morning

    @property
    def force_analyze(self) -> bool:
        return self._force_analyze

    @property
    def running(self) -> bool:
        return self._running

    def set_force_analyze(self, enabled: bool) -> None:
        """Toggle running detectors on non-trend days."""
        self._force_analyze = enabled
        logger.warning("Force analyze mode %s", "ON" if enabled else "OFF")

    # ── Session lifecycle ────────────────────────────────────────────────

    async def on_session_start(self, now: Optional[datetime] = None) -> Optional[DayClassification]:
        """Reset every day-scoped component and classify the prior session.

        Returns the classification, or ``None`` if it could not be computed
        (the engine then stays idle for the day).
        """
        if now is None:
            now = now_ist()
        today = now.date()

        self._session_date = today
        self._session_ended = False
        self._tick_count = 0
        self._sent = []
        self._filtered = []
        self._safety.reset(today)
        self._strategies.reset_for_session(today)
        self._classifier.invalidate()

        try:
            self._day = await self._classifier.classify(self._feed, today)
        except DataUnavailableError as exc:
            logger.error("Day classification failed for %s: %s", today, exc)
            self._day = None
        except Exception as exc:
            logger.error("Day classification error for %s: %s", today, exc)
            self._day = None

        self._morning = None
        try:
            self._morning = await fetch_morning_report(
                self._feed, self._config.symbol, today, self._day,
            )
        except Exception as exc:
            logger.warning("Morning report unavailable for %s: %s", today, exc)

        message = format_session_start(today, self._day, self._force_analyze)
        if self._morning is not None:
            message += "\n\n" + format_morning_report(self._morning)
        await self._notify(message)
        return self._day

    async def on_session_end(self, now: Optional[datetime] = None) -> dict:
        """Build and deliver the session report. Reporting only.

        Adds the session's OHLC, day type, next-day levels and outlook to
        ``session_report()`` when intraday candles are available.
        """
        if now is None:
            now = now_ist()
        session_date = self._session_date or now.date()
        reversals = await self._strategies.track_reversals(self._feed, now)
        report = self.session_report()
        prior = self._day.prior_candle if self._day is not None else None
        try:
            report.update(await build_post_market(
                self._feed,
                self._config.symbol,
                session_date,
                now,
                prev_close=prior.close if prior is not None else None,
                reversal_count=reversals["total"],
            ))
        except Exception as exc:
            logger.warning("Post-market summary failed for %s: %s", session_date, exc)
        self._session_ended = True
        logger.info(
            "Session %s ended: %d sent, %d filtered over %d tick(s)",
            report["date"], len(self._sent), len(self._filtered), self._tick_count,
        )
        await self._notify(format_session_report(report))
        return report

    def session_report(self) -> dict:
        if self._day is None:
            day_type = "UNKNOWN"
        elif self._day.is_trend_day:
            day_type = f"A-DAY {self._day.direction}"
        else:
            day_type = "C-DAY"
        return {
            "date": self._session_date.isoformat() if self._session_date else None,
            "day_type": day_type,
            "ticks": self._tick_count,
            "signals_sent": list(self._sent),
            "signals_filtered": list(self._filtered),
            "safety": self._safety.summary(),
            "strategy_performance": strategy_performance(self._sent),
            "reversals": self._strategies.reversal_summary(),
        }

    # ── Single tick ──────────────────────────────────────────────────────

    async def on_tick(self, now: Optional[datetime] = None) -> dict:
        """Evaluate one tick.

        Returns a dict describing the action taken:

        - ``{"action": "skipped", "reason": "..."}``
        - ``{"action": "filtered", "reason": "...", "check": "..."}``
        - ``{"action": "signal_sent", ...}``
        - ``{"action": "error", "reason": "..."}``

        Args:
            now: Current IST datetime.  Defaults to the wall clock.
        """
        if now is None:
            now = now_ist()
        result = await self._evaluate(now)
        self._last_action = {**result, "evaluated_at": now.isoformat()}
        return result

    async def _evaluate(self, now: datetime) -> dict:
        # 1 ── Market hours
        if not is_trading_day(now.date()) or not MARKET_HOURS.contains(now.time()):
            return {"action": "skipped", "reason": "outside_market_hours"}

        # 2 ── Session bookkeeping
        if self._session_date != now.date():
            await self.on_session_start(now)
        self._tick_count += 1

        # 3 ── Day gate
        if self._day is None:
            return {"action": "skipped", "reason": "no_day_classification"}
        if not self._day.is_trend_day and not self._force_analyze:
            return {"action": "skipped", "reason": "not_trend_day"}

        # 4 ── Detectors + analyzers
        market = await self._strategies.collect_analysis(self._feed, now)
        context = StrategyContext(
            now=now,
            symbol=self._config.symbol,
            feed=self._feed,
            day=self._day,
            market=market,
        )
        results = await self._strategies.run(context)
        if not any(r.signal for r in results):
            return {"action": "skipped", "reason": "no_signal"}

        # 5 ── Aggregation + confidence
        try:
            signal = aggregate(
                results,
                day=self._day,
                oi=market.oi,
                volume=market.volume,
                min_score=self._config.min_confidence_score,
                now=now,
                greeks_placeholder=self._config.greeks_placeholder_score,
            )
        except Exception as exc:
            logger.error("Aggregation failed at %s: %s", now.strftime("%H:%M"), exc)
            return {"action": "error", "reason": str(exc)}
        if signal is None:
            return {"action": "skipped", "reason": "below_threshold"}

        # 6 ── Safety gate
        verdict = self._safety.validate_signal(signal.direction, signal.primary_strategy, now)
        if not verdict.allowed:
            logger.info(
                "Signal filtered: %s %s (%s)",
                signal.direction, signal.primary_strategy, verdict.reason,
            )
            self._filtered.append({
                "time": now.strftime("%H:%M"),
                "direction": signal.direction,
                "strategy": signal.primary_strategy,
                "reason": verdict.reason,
            })
            return {
                "action": "filtered",
                "reason": verdict.reason,
                "check": verdict.check,
                "direction": signal.direction,
            }

        # 7 ── Delivery
        self._safety.mark_signal_sent(signal.direction, now)
        delivered = await self._deliver_signal(signal)
        self._sent.append({
            "time": now.strftime("%H:%M"),
            "direction": signal.direction,
            "strategy": signal.primary_strategy,
            "confidence": signal.confidence_score,
            "delivered": delivered,
        })
        return {
            "action": "signal_sent",
            "direction": signal.direction,
            "strategy": signal.primary_strategy,
            "contributing": list(signal.contributing_strategies),
            "confidence": signal.confidence_score,
            "stop_loss": signal.stop_loss_hint,
            "delivered": delivered,
        }

    async def _select_strike(self, signal: AggregatedSignal) -> Optional[StrikeSelection]:
        if not signal.spot_price_hint:
            return None
        try:
            chain = await self._feed.fetch_option_chain()
        except Exception as exc:
            logger.warning("Option chain unavailable, alerting ATM strike: %s", exc)
            return None
        return select_strike(
            chain,
            signal.direction,
            signal.spot_price_hint,
            self._config.premium_min,
            self._config.premium_max,
        )

    async def _deliver_signal(self, signal: AggregatedSignal) -> bool:
        forced = self._day is not None and not self._day.is_trend_day
        selection = await self._select_strike(signal)
        message = format_alert(
            signal,
            lot_size=self._config.lot_size,
            premium_min=self._config.premium_min,
            premium_max=self._config.premium_max,
            force_mode=forced,
            symbol=self._config.symbol,
            selection=selection,
        )
        logger.info(
            "ALERT %s via %s, confidence %g: %s",
            signal.direction, signal.primary_strategy,
            signal.confidence_score, compact_reason(signal.reasons),
        )
        return await self._notify(message)

    async def _notify(self, message: str) -> bool:
        try:
            delivered = await self._notifier.deliver(message, self._config.telegram_chat_id)
        except Exception as exc:
            logger.error("Delivery raised: %s", exc)
            return False
        if not delivered:
            logger.warning("Delivery failed; alert will not be re-sent")
        return delivered

    # ── Polling loop ─────────────────────────────────────────────────────

    def stop(self) -> None:
        """Signal the engine to stop after the current cycle."""
        self._running = False

    async def run(
        self,
        poll_interval: int | None = None,
        max_cycles: int = 0,
    ) -> list[dict]:
        """Run the alert loop until stopped.

        Args:
            poll_interval: Seconds between cycles. Defaults to config.
            max_cycles: Stop after this many cycles (0 = unlimited).

        Returns:
            List of per-cycle result dicts.
        """
        if poll_interval is None:
            poll_interval = self._config.poll_interval_seconds
        self._running = True
        results: list[dict] = []
        cycle = 0

        while self._running:
            cycle += 1
            self._cycle_count += 1
            now = now_ist()
            try:
                if (
                    self._session_date == now.date()
                    and not self._session_ended
                    and now.time() >= MARKET_CLOSE
                ):
                    await self.on_session_end(now)
                    result = {"action": "session_ended"}
                else:
                    result = await self.on_tick(now)
                results.append(result)
                logger.debug("Cycle %d: %s", cycle, result.get("action", "unknown"))
            except Exception as exc:
                logger.error("Cycle %d error: %s", cycle, exc)
                results.append({"action": "error", "reason": str(exc)})

            if max_cycles > 0 and cycle >= max_cycles:
                break

            # Interruptible sleep, checks _running every second
            for _ in range(poll_interval):
                if not self._running:
                    break
                await asyncio.sleep(1)

        self._running = False
        return results

    # ── Status ───────────────────────────────────────────────────────────

    def status(self, now: Optional[datetime] = None) -> dict:
        if now is None:
            now = now_ist()
        day = self._day
        return {
            "running": self._running,
            "symbol": self._config.symbol,
            "cycle_count": self._cycle_count,
            "session_date": self._session_date.isoformat() if self._session_date else None,
            "market_open": is_trading_day(now.date()) and MARKET_HOURS.contains(now.time()),
            "force_analyze": self._force_analyze,
            "day": None if day is None else {
                "is_trend_day": day.is_trend_day,
                "direction": day.direction,
                "body_ratio_pct": day.body_ratio_pct,
                "range_points": day.range_points,
                "volume_ratio_pct": day.volume_ratio_pct,
                "degraded": day.degraded,
            },
            "ticks": self._tick_count,
            "signals_sent": len(self._sent),
            "signals_filtered": len(self._filtered),
            "last_action": self._last_action,
            "safety": self._safety.summary(),
        }
