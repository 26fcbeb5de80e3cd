"""A-Day Alert — application entry point.

Boots the FastAPI internal server and provides the CLI entry point for
live, simulate and status modes.
"""

import logging

from fastapi import FastAPI

from adayalert.api.routers import router

app = FastAPI(title="A-Day Alert Internal API", version="0.1.0")
app.include_router(router)

logger = logging.getLogger("adayalert")


@app.get("/health")
async def health():
    """Liveness check; served even when configuration is invalid."""
    return {"status": "ok"}


# ── CLI ──────────────────────────────────────────────────────────────────


def _run_cli() -> None:
    """Parse CLI arguments and dispatch to the appropriate mode."""
    import argparse
    import asyncio
    import pathlib
    from datetime import date

    from adayalert.config import load_config

    parser = argparse.ArgumentParser(description="NIFTY A-Day intraday alert system")
    parser.add_argument(
        "--mode",
        choices=["live", "simulate", "status"],
        default="live",
        help="Run mode (default: live)",
    )
    parser.add_argument("--date", help="Session to simulate (YYYY-MM-DD)")
    parser.add_argument(
        "--candles",
        help="JSON candle file: replayed in simulate mode, served as the feed in live mode",
    )
    parser.add_argument("--env", help="Path to a .env file")
    parser.add_argument(
        "--port",
        type=int,
        default=8080,
        help="Port of the running engine's API, used by status mode (default: 8080)",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if args.mode == "status":
        _print_remote_status(args.port)
        return

    try:
        config = load_config(args.env)
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        logger.warning("Starting in health-check-only mode.")
        asyncio.run(_serve_health_only())
        return

    logging.getLogger("adayalert").setLevel(config.log_level.upper())

    if not args.candles:
        parser.error("--candles is required (no broker feed is configured)")
    candles_path = pathlib.Path(args.candles)

    if args.mode == "simulate":
        if not args.date:
            parser.error("--date is required in simulate mode")
        _run_simulation(config, candles_path, date.fromisoformat(args.date))
    else:
        asyncio.run(_run_live(config, candles_path))


def _print_remote_status(port: int) -> str | None:
    """Fetch ``/status`` from a running engine and print the dashboard."""
    import httpx

    from adayalert.cli.dashboard import print_status

    url = f"http://127.0.0.1:{port}/status"
    try:
        resp = httpx.get(url, timeout=5.0)
        resp.raise_for_status()
    except httpx.HTTPError as exc:
        logger.error("Engine API not reachable at %s: %s", url, exc)
        return None
    return print_status(resp.json())


async def _serve_health_only(port: int = 8080) -> None:
    import uvicorn

    server = uvicorn.Server(uvicorn.Config(app, host="0.0.0.0", port=port, log_level="info"))
    await server.serve()


async def _run_live(config, candles_path) -> None:
    """Start the API server and the alert loop concurrently."""
    import asyncio
    import signal

    import uvicorn

    from adayalert.api.routers import configure_routers
    from adayalert.backtest.simulation import load_candles
    from adayalert.delivery.telegram_client import TelegramNotifier
    from adayalert.engine import AlertEngine
    from adayalert.market.feed import ReplayFeed

    feed = ReplayFeed(load_candles(candles_path))
    engine = AlertEngine(config, feed, TelegramNotifier(config))
    configure_routers(engine=engine)

    uvi_config = uvicorn.Config(
        app,
        host="0.0.0.0",
        port=config.health_port,
        log_level="info",
    )
    server = uvicorn.Server(uvi_config)

    def handle_shutdown(signum, frame):
        logger.info("Shutdown signal received — stopping gracefully.")
        engine.stop()
        server.should_exit = True

    signal.signal(signal.SIGTERM, handle_shutdown)

    logger.info(
        "Starting A-Day Alert for %s, API on port %d",
        config.symbol, config.health_port,
    )
    results = await asyncio.gather(
        server.serve(),
        engine.run(),
        return_exceptions=True,
    )
    logger.info("A-Day Alert stopped. Results: %d", len(results))


def _run_simulation(config, candles_path, session_date) -> None:
    """Replay one stored session and print the outcome."""
    import asyncio

    from adayalert.backtest.simulation import DaySimulator, load_candles
    from adayalert.cli.dashboard import print_simulation
    from adayalert.market.feed import ReplayFeed

    feed = ReplayFeed(load_candles(candles_path))
    result = asyncio.run(DaySimulator(config, feed).run(session_date))
    print_simulation(result)


if __name__ == "__main__":
    _run_cli()
