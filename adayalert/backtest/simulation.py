"""Session simulator — replays one stored trading day through the alert engine.

Drives a fresh ``AlertEngine`` minute by minute from market open to close
against a ``ReplayFeed`` whose clock follows the simulated time, so no
detector ever sees a candle that had not completed yet. Alerts are
captured by a recording notifier; nothing is sent and no P&L is tracked.
"""

import json
import logging
import pathlib
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from adayalert.config import Config
from adayalert.delivery.telegram_client import RecordingNotifier
from adayalert.engine import AlertEngine
from adayalert.market.calendar import IST, MARKET_CLOSE, MARKET_OPEN, at
from adayalert.market.feed import ReplayFeed
from adayalert.market.models import INTERVAL_LENGTHS, Candle
from adayalert.strategy.engine import StrategyEngine
from adayalert.strategy.models import DayClassification

logger = logging.getLogger("adayalert")


@dataclass
class SimulationResult:
    """Outcome of one replayed session."""

    session_date: date
    day: Optional[DayClassification]
    alerts: list[dict] = field(default_factory=list)
    actions: list[dict] = field(default_factory=list)
    messages: list[str] = field(default_factory=list)
    report: dict = field(default_factory=dict)

    @property
    def signal_count(self) -> int:
        return len(self.alerts)

    def action_counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for action in self.actions:
            counts[action["action"]] = counts.get(action["action"], 0) + 1
        return counts


class DaySimulator:
    """Replays stored candles for a session through the full alert pipeline.

    Args:
        config: Application configuration.
        feed: A ``ReplayFeed`` holding the day's candles plus history.
        engine_factory: Optional callable building the ``StrategyEngine``
            (defaults to every registered detector).
        step_minutes: Simulated minutes between ticks.
    """

    def __init__(
        self,
        config: Config,
        feed: ReplayFeed,
        engine_factory: Optional[Callable[[], StrategyEngine]] = None,
        step_minutes: int = 1,
    ) -> None:
        self._config = config
        self._feed = feed
        self._engine_factory = engine_factory
        self._step = timedelta(minutes=step_minutes)

    async def run(self, session_date: date) -> SimulationResult:
        """Replay *session_date* from open to close."""
        notifier = RecordingNotifier()
        engine = AlertEngine(
            self._config,
            self._feed,
            notifier,
            strategy_engine=self._engine_factory() if self._engine_factory else None,
        )

        start = at(session_date, MARKET_OPEN.hour, MARKET_OPEN.minute)
        end = at(session_date, MARKET_CLOSE.hour, MARKET_CLOSE.minute)

        self._feed.set_clock(start)
        day = await engine.on_session_start(start)
        result = SimulationResult(session_date=session_date, day=day)

        moment = start
        while moment < end:
            self._feed.set_clock(moment)
            action = await engine.on_tick(moment)
            result.actions.append({**action, "time": moment.strftime("%H:%M")})
            if action["action"] == "signal_sent":
                result.alerts.append({**action, "time": moment.strftime("%H:%M")})
            moment += self._step

        self._feed.set_clock(end)
        result.report = await engine.on_session_end(end)
        self._feed.set_clock(None)

        result.messages = [message for _, message in notifier.messages]
        logger.info(
            "Simulated %s: %d alert(s), actions %s",
            session_date, result.signal_count, result.action_counts(),
        )
        return result


# ── Candle files ─────────────────────────────────────────────────────────


def _parse_time(raw: str) -> datetime:
    moment = datetime.fromisoformat(raw)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=IST)
    return moment


def load_candles(path: pathlib.Path) -> dict[str, list[Candle]]:
    """Load ``{"5minute": [{"time": ..., "open": ...}, ...], ...}`` from JSON.

    Naive timestamps are read as IST.

    Raises:
        ValueError: On an unknown interval key.
    """
    data = json.loads(pathlib.Path(path).read_text(encoding="utf-8"))
    candles: dict[str, list[Candle]] = {}
    for interval, rows in data.items():
        if interval not in INTERVAL_LENGTHS:
            raise ValueError(
                f"Unknown candle interval '{interval}'. "
                f"Available: {', '.join(INTERVAL_LENGTHS)}"
            )
        candles[interval] = [
            Candle(
                time=_parse_time(row["time"]),
                open=float(row["open"]),
                high=float(row["high"]),
                low=float(row["low"]),
                close=float(row["close"]),
                volume=float(row.get("volume", 0)),
            )
            for row in rows
        ]
    logger.info(
        "Loaded candles from %s: %s", path,
        ", ".join(f"{k}={len(v)}" for k, v in candles.items()),
    )
    return candles
