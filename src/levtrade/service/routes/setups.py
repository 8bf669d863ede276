"""Read-only feed of server-generated setups: GET /api/server-setups."""

from __future__ import annotations

import time

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from levtrade.service.auth import SecretKind, check_access

log = structlog.get_logger(__name__)

router = APIRouter()

_MS_PER_DAY = 24 * 60 * 60 * 1000


def parse_days(raw: str | None, default: int, maximum: int) -> int:
    """Lookback in days: invalid or non-positive input uses ``default``; capped at ``maximum``."""
    try:
        days = int(raw) if raw is not None else default
    except ValueError:
        days = default
    if days <= 0:
        days = default
    return min(maximum, days)


@router.get("/server-setups")
async def get_server_setups(request: Request) -> JSONResponse:
    """Recent server setups, newest first, with pending placeholders for open windows."""
    settings = request.app.state.settings
    refused = check_access(request, settings.service, SecretKind.SYNC)
    if refused is not None:
        return refused

    service = settings.service
    days = parse_days(
        request.query_params.get("days"),
        service.server_setup_days,
        service.max_server_setup_days,
    )
    since = int(time.time() * 1000) - days * _MS_PER_DAY
    tracked = await request.app.state.store.get_server_setups(since, service.server_setup_limit)
    setups = [t.to_dict() for t in tracked]
    log.debug("server_setups_served", days=days, count=len(setups))
    return JSONResponse(content={"ok": True, "setups": setups, "count": len(setups)})
