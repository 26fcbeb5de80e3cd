"""Safety filter — day-scoped rate limiter and circuit breaker. No I/O.

States: OPEN and LOCKED. Trading locks on a manual call or once the
session's cumulative recorded loss reaches the cap; only a manual unlock
reopens it. While open, a signal still has to pass, in order:

    1. duplicate direction (one CALL and one PUT per session at most)
    2. the originating strategy's own time window
    3. a minimum gap since the last signal of either direction
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional

from adayalert.strategy.models import BUY_CALL, BUY_PUT, DIRECTIONS
from adayalert.strategy.windows import window_for

logger = logging.getLogger("adayalert")

OPEN = "OPEN"
LOCKED = "LOCKED"


@dataclass
class SafetyState:
    """Everything the filter remembers for one session."""

    session_date: Optional[date] = None
    signals_sent: dict[str, bool] = field(
        default_factory=lambda: {BUY_CALL: False, BUY_PUT: False}
    )
    cumulative_loss: float = 0.0
    last_signal_time: Optional[datetime] = None
    is_manually_locked: bool = False
    loss_locked: bool = False
    trades: list[dict] = field(default_factory=list)


@dataclass(frozen=True)
class ValidationResult:
    allowed: bool
    reason: str
    check: Optional[str] = None  # name of the failing check


class SafetyFilter:
    """Gate between an aggregated signal and delivery.

    Args:
        max_session_loss: Cumulative loss that locks the session.
        min_signal_gap_minutes: Minimum spacing between any two signals.
    """

    def __init__(
        self,
        max_session_loss: float = 300000.0,
        min_signal_gap_minutes: int = 5,
    ) -> None:
        self._max_loss = max_session_loss
        self._min_gap = timedelta(minutes=min_signal_gap_minutes)
        self._state = SafetyState()

    # ── Mutation ─────────────────────────────────────────────────────────

    def reset(self, session_date: Optional[date] = None) -> None:
        """Start a fresh session state."""
        self._state = SafetyState(session_date=session_date)
        logger.info("Safety state reset for %s", session_date)

    def mark_signal_sent(self, direction: str, now: datetime) -> None:
        if direction not in DIRECTIONS:
            raise ValueError(f"Unknown signal direction {direction!r}")
        self._state.signals_sent[direction] = True
        self._state.last_signal_time = now
        logger.info("Signal marked as sent: %s at %s", direction, now.strftime("%H:%M"))

    def record_trade(
        self,
        pnl: float,
        direction: Optional[str] = None,
        strategy: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> None:
        """Record a manually reported trade result; losses count toward the cap."""
        self._state.trades.append(
            {"pnl": pnl, "direction": direction, "strategy": strategy, "time": now}
        )
        if pnl < 0:
            self._state.cumulative_loss += abs(pnl)
        logger.info(
            "Trade recorded: pnl %.2f, session loss %.2f / %.2f",
            pnl, self._state.cumulative_loss, self._max_loss,
        )
        if self._state.cumulative_loss >= self._max_loss and not self._state.loss_locked:
            self._state.loss_locked = True
            logger.warning(
                "Session loss cap reached (%.2f >= %.2f) — trading locked",
                self._state.cumulative_loss, self._max_loss,
            )

    def lock_trading(self) -> None:
        self._state.is_manually_locked = True
        logger.warning("Trading locked for the session")

    def unlock_trading(self) -> None:
        """Manual unlock; clears both the manual and the loss lock."""
        self._state.is_manually_locked = False
        self._state.loss_locked = False
        logger.info("Trading unlocked")

    # ── Queries ──────────────────────────────────────────────────────────

    @property
    def state(self) -> str:
        return LOCKED if self.is_locked else OPEN

    @property
    def is_locked(self) -> bool:
        return self._state.is_manually_locked or self._state.loss_locked

    @property
    def cumulative_loss(self) -> float:
        return self._state.cumulative_loss

    def has_signal_been_sent(self, direction: str) -> bool:
        return self._state.signals_sent.get(direction, False)

    def validate_signal(
        self,
        direction: str,
        strategy_name: str,
        now: datetime,
    ) -> ValidationResult:
        """Run every check in order and return the first failure, or success."""
        if self._state.loss_locked:
            return ValidationResult(False, "Session loss cap hit, trading locked", "lock")
        if self._state.is_manually_locked:
            return ValidationResult(False, "Trading is locked for the session", "lock")

        if self.has_signal_been_sent(direction):
            return ValidationResult(False, f"Signal already sent for {direction}", "duplicate")

        window = window_for(strategy_name)
        prefix = strategy_name.split(" ")[0].upper() if strategy_name else ""
        if window is None:
            logger.warning("No time window known for strategy %r", strategy_name)
            return ValidationResult(False, f"Unknown strategy window for {prefix or '?'}", "window")
        if not window.contains(now.time()):
            return ValidationResult(False, f"Outside time window for {prefix} ({window})", "window")

        last = self._state.last_signal_time
        if last is not None and now - last < self._min_gap:
            return ValidationResult(False, "Too soon after last signal", "gap")

        return ValidationResult(True, "Signal validated")

    def summary(self) -> dict:
        """Day's safety state for status endpoints and the session report."""
        s = self._state
        return {
            "date": s.session_date.isoformat() if s.session_date else None,
            "state": self.state,
            "signals_sent": dict(s.signals_sent),
            "cumulative_loss": s.cumulative_loss,
            "max_session_loss": self._max_loss,
            "trade_count": len(s.trades),
            "is_manually_locked": s.is_manually_locked,
            "loss_locked": s.loss_locked,
            "last_signal_time": s.last_signal_time.isoformat() if s.last_signal_time else None,
        }
