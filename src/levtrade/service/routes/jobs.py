"""Scheduled job trigger: POST /api/compute-signals."""

from __future__ import annotations

import time
from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from levtrade.exceptions import LevtradeError
from levtrade.service.auth import SecretKind, check_access, error_response
from levtrade.service.compute_job import ComputeSignalsJob

log = structlog.get_logger(__name__)

router = APIRouter()


@router.post("/compute-signals")
async def compute_signals(request: Request) -> JSONResponse:
    """Run the server signal job for every coin and report per-coin results."""
    settings = request.app.state.settings
    refused = check_access(request, settings.service, SecretKind.CRON)
    if refused is not None:
        return refused

    now = int(time.time() * 1000)
    job = ComputeSignalsJob(request.app.state.client, request.app.state.store, settings)
    try:
        results = await job.run(now)
    except LevtradeError as e:
        log.error("compute_job_failed", error=str(e))
        return error_response(500, str(e) or "Unexpected error")

    return JSONResponse(
        content={
            "ok": True,
            "processedAt": datetime.fromtimestamp(now / 1000, tz=timezone.utc).isoformat(),
            "results": [r.to_dict() for r in results],
        }
    )
