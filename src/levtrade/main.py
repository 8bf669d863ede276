"""Entry point for levtrade.

Wires all components together, optionally serves the HTTP surface, and
starts the orchestrator. When the service is enabled (default), the
orchestrator and the FastAPI app share a single asyncio event loop via
uvicorn's programmatic API and FastAPI's lifespan context manager.

Handles SIGINT/SIGTERM for graceful shutdown.

Component wiring order (in _build_components):
1. AppSettings (configuration)
2. Logging setup
3. HyperliquidClient (public market data via ccxt)
4. LevtradeDatabase + LevtradeStore (SQLite persistence)
5. MarketFeed (per-coin snapshots)
6. Orchestrator (tick loop)
"""

import asyncio
import signal
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from levtrade.config import AppSettings
from levtrade.data.database import LevtradeDatabase
from levtrade.data.store import LevtradeStore
from levtrade.exchange.hyperliquid_client import HyperliquidClient
from levtrade.logging import get_logger, setup_logging
from levtrade.market.feed import MarketFeed
from levtrade.orchestrator import Orchestrator


def _build_components(settings: AppSettings) -> dict[str, Any]:
    """Build all components from settings.

    Does NOT connect the client or the database; that happens in the
    lifespan (service mode) or run() (headless mode).
    """
    logger = get_logger("levtrade.main")

    client = HyperliquidClient(settings.exchange)
    database = LevtradeDatabase(settings.service.db_path)
    store = LevtradeStore(database)
    feed = MarketFeed(client, settings)
    orchestrator = Orchestrator(settings=settings, feed=feed, store=store)

    missing = settings.service.missing_configuration()
    if settings.service.enabled and missing is not None:
        logger.warning("service_not_configured", reason=missing, note="HTTP routes will answer 503")

    return {
        "client": client,
        "database": database,
        "store": store,
        "feed": feed,
        "orchestrator": orchestrator,
    }


def _setup_signal_handlers(orchestrator: Orchestrator) -> None:
    """Register SIGINT/SIGTERM to stop the orchestrator gracefully.

    Must be called after the asyncio event loop is running.
    """
    logger = get_logger("levtrade.main")
    loop = asyncio.get_running_loop()

    def _graceful_handler() -> None:
        logger.info("graceful_shutdown_signal")
        asyncio.create_task(orchestrator.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _graceful_handler)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage component lifecycle within the FastAPI application.

    On startup: connects the database and the exchange client, then starts
    the orchestrator as a background task. On shutdown: stops and cancels
    it, then closes the client and the database.
    """
    logger = get_logger("levtrade.main")
    components = app.state.components

    await components["database"].connect()
    await components["client"].connect()

    orchestrator: Orchestrator = components["orchestrator"]
    _setup_signal_handlers(orchestrator)
    tick_task = asyncio.create_task(orchestrator.start())
    logger.info("lifespan_started", coins=list(app.state.settings.coins))

    yield

    await orchestrator.stop()
    tick_task.cancel()
    try:
        await tick_task
    except asyncio.CancelledError:
        pass

    await components["client"].close()
    await components["database"].close()
    logger.info("levtrade_stopped")


async def run() -> None:
    """Run levtrade, with or without the HTTP surface (SERVICE_ENABLED)."""
    settings = AppSettings()
    setup_logging(settings.log_level)
    logger = get_logger("levtrade.main")

    components = _build_components(settings)

    if settings.service.enabled:
        from levtrade.service.app import create_app

        app = create_app(
            settings,
            components["store"],
            components["client"],
            lifespan=lifespan,
        )
        app.state.components = components

        logger.info("starting_with_service", host=settings.service.host, port=settings.service.port)
        config = uvicorn.Config(
            app,
            host=settings.service.host,
            port=settings.service.port,
            log_level="warning",
        )
        server = uvicorn.Server(config)
        await server.serve()
    else:
        _setup_signal_handlers(components["orchestrator"])
        logger.info("starting_without_service", coins=list(settings.coins))
        try:
            await components["database"].connect()
            await components["client"].connect()
            await components["orchestrator"].start()
        finally:
            await components["client"].close()
            await components["database"].close()
            logger.info("levtrade_stopped")


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
