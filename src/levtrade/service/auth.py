"""Shared-secret access checks for the job and sync endpoints.

Configuration is checked before credentials: a misconfigured service
answers 503 regardless of what the caller sent.
"""

from __future__ import annotations

import secrets
from enum import Enum

from fastapi import Request
from fastapi.responses import JSONResponse

from levtrade.config import ServiceSettings

CRON_SECRET_HEADER = "x-cron-secret"
SYNC_SECRET_HEADER = "x-levtrade-sync-secret"


class SecretKind(str, Enum):
    CRON = "cron"
    SYNC = "sync"


def error_response(status_code: int, message: str) -> JSONResponse:
    """The uniform error body: ``{"ok": false, "error": message}``."""
    return JSONResponse(status_code=status_code, content={"ok": False, "error": message})


def _bearer_token(request: Request) -> str | None:
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


def presented_secret(request: Request, kind: SecretKind) -> str | None:
    """The secret the caller sent for ``kind``, if any.

    The job accepts ``Authorization: Bearer`` (scheduler style) or the
    ``x-cron-secret`` header; sync uses its own header only.
    """
    if kind is SecretKind.CRON:
        return _bearer_token(request) or request.headers.get(CRON_SECRET_HEADER)
    return request.headers.get(SYNC_SECRET_HEADER)


def check_access(
    request: Request,
    settings: ServiceSettings,
    kind: SecretKind,
) -> JSONResponse | None:
    """Return an error response when the request must be refused, else None."""
    missing = settings.missing_configuration()
    if missing is not None:
        return error_response(503, missing)

    expected = (
        settings.cron_secret if kind is SecretKind.CRON else settings.sync_secret
    ).get_secret_value()
    presented = presented_secret(request, kind)
    if not presented or not secrets.compare_digest(presented.encode(), expected.encode()):
        return error_response(401, "Unauthorized")
    return None
