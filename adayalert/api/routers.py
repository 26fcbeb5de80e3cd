"""Internal API routers — /status, /detectors, /safety and /control endpoints.

No business logic. Delegates to the alert engine set at startup.
"""

import logging

from fastapi import APIRouter

from adayalert.market.calendar import now_ist

logger = logging.getLogger("adayalert")
router = APIRouter()

# ── Shared state (set during app startup) ────────────────────────────────

_engine = None  # Set via configure_routers()


def configure_routers(engine=None) -> None:
    """Inject dependencies from the application startup.

    Args:
        engine: An ``AlertEngine`` instance (or duck-type for tests).
    """
    global _engine  # noqa: PLW0603
    _engine = engine


# ── Endpoints ────────────────────────────────────────────────────────────


@router.get("/status")
async def get_status():
    """Engine, day classification and safety overview."""
    if _engine is None:
        return {"error": "No engine configured"}
    return _engine.status(now_ist())


@router.get("/detectors")
async def get_detectors():
    """Per-detector window, activity and day-scoped state."""
    if _engine is None:
        return {"error": "No engine configured"}
    return _engine.strategies.status(now_ist())


@router.get("/safety")
async def get_safety():
    if _engine is None:
        return {"error": "No engine configured"}
    return _engine.safety.summary()


@router.post("/control/lock")
async def lock_trading():
    """Manual kill-switch for the rest of the session."""
    if _engine is None:
        return {"error": "No engine configured"}
    _engine.safety.lock_trading()
    logger.warning("Trading locked via API.")
    return {"status": "locked"}


@router.post("/control/unlock")
async def unlock_trading():
    if _engine is None:
        return {"error": "No engine configured"}
    _engine.safety.unlock_trading()
    logger.info("Trading unlocked via API.")
    return {"status": "unlocked"}


@router.post("/control/force-analyze")
async def set_force_analyze(body: dict):
    """Run detectors on non-trend days (alerts are tagged as such)."""
    if _engine is None:
        return {"error": "No engine configured"}
    enabled = bool(body.get("enabled", not _engine.force_analyze))
    _engine.set_force_analyze(enabled)
    return {"status": "ok", "force_analyze": enabled}


@router.post("/control/trade")
async def record_trade(body: dict):
    """Report a manually taken trade's result; losses count toward the lockout."""
    if _engine is None:
        return {"error": "No engine configured"}
    if "pnl" not in body:
        return {"error": "Missing pnl"}
    _engine.safety.record_trade(
        float(body["pnl"]), body.get("direction"), body.get("strategy"), now_ist(),
    )
    return {
        "status": "recorded",
        "cumulative_loss": _engine.safety.cumulative_loss,
        "locked": _engine.safety.is_locked,
    }
