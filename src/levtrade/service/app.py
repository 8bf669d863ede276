"""FastAPI application factory for the job, server-setup and sync surface."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from levtrade.config import AppSettings
from levtrade.data.store import LevtradeStore
from levtrade.exchange.client import MarketDataClient
from levtrade.service.auth import error_response
from levtrade.service.routes import jobs, setups, sync

log = structlog.get_logger(__name__)

_STATUS_MESSAGES = {
    404: "Not found",
    405: "Method not allowed",
}


async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    response = error_response(exc.status_code, _STATUS_MESSAGES.get(exc.status_code, str(exc.detail)))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def _unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    log.error("request_failed", path=request.url.path, error=str(exc), exc_info=exc)
    return error_response(500, str(exc) or "Unexpected error")


def create_app(
    settings: AppSettings,
    store: LevtradeStore,
    client: MarketDataClient,
    lifespan: Any = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Application settings (secrets, limits, coins).
        store: Persistence for setups, OI history and state rows.
        client: Upstream market data client used by the scheduled job.
        lifespan: Optional async context manager for startup/shutdown,
                  injected by main.py.

    Returns:
        Configured FastAPI application with all routes under ``/api``.
    """
    app = FastAPI(title="levtrade", lifespan=lifespan)

    app.state.settings = settings
    app.state.store = store
    app.state.client = client

    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(Exception, _unexpected_error)

    app.include_router(jobs.router, prefix="/api")
    app.include_router(setups.router, prefix="/api")
    app.include_router(sync.router, prefix="/api")

    return app
