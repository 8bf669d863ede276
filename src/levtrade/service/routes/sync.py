"""Shared workspace state: GET and POST /api/sync."""

from __future__ import annotations

import json
import time
from dataclasses import replace

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from levtrade.data.store import SHARED_SCOPE
from levtrade.exceptions import StateDecodeError
from levtrade.service.auth import SecretKind, check_access, error_response
from levtrade.state import AppState
from levtrade.sync.codec import SCHEMA_VERSION, state_from_dict, state_to_dict
from levtrade.sync.merge import merge_states

log = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/sync")
async def get_sync_state(request: Request) -> JSONResponse:
    """Return the stored shared state (``null`` when never pushed)."""
    refused = check_access(request, request.app.state.settings.service, SecretKind.SYNC)
    if refused is not None:
        return refused

    stored = await request.app.state.store.load_state(SHARED_SCOPE)
    return JSONResponse(
        content={
            "ok": True,
            "state": state_to_dict(stored.state) if stored else None,
            "updatedAt": stored.updated_at if stored else None,
            "schemaVersion": stored.schema_version if stored else SCHEMA_VERSION,
        }
    )


@router.post("/sync")
async def push_sync_state(request: Request) -> JSONResponse:
    """Merge the pushed state into the stored one and return the accepted result."""
    store = request.app.state.store
    refused = check_access(request, request.app.state.settings.service, SecretKind.SYNC)
    if refused is not None:
        return refused

    try:
        payload = json.loads(await request.body())
        if not isinstance(payload, dict):
            raise StateDecodeError("sync payload must be an object")
        incoming = state_from_dict(payload.get("state"))
    except (json.JSONDecodeError, UnicodeDecodeError, StateDecodeError) as e:
        log.warning("sync_payload_invalid", error=str(e))
        return error_response(400, "Invalid sync payload.")

    stored = await store.load_state(SHARED_SCOPE)
    base = stored.state if stored else AppState()
    now = int(time.time() * 1000)
    merged = replace(merge_states(base, incoming), updated_at=now, last_signal_computed_at=None)
    saved = await store.save_state(SHARED_SCOPE, merged, now)
    log.info(
        "sync_state_merged",
        setups=len(merged.tracked_setups),
        signals=len(merged.tracked_signals),
    )
    return JSONResponse(
        content={
            "ok": True,
            "acceptedState": state_to_dict(saved.state),
            "updatedAt": saved.updated_at,
            "schemaVersion": saved.schema_version,
        }
    )
