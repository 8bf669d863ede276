"""Shared test fixtures for levtrade."""

import pytest

from levtrade.config import AppSettings, ExchangeSettings, ServiceSettings


@pytest.fixture
def settings() -> AppSettings:
    """Return AppSettings with test defaults (in-memory DB, dummy secrets, no request delay)."""
    return AppSettings(
        log_level="DEBUG",
        coins=("BTC", "ETH"),
        exchange=ExchangeSettings(request_delay=0),
        service=ServiceSettings(
            cron_secret="test-cron-secret",  # type: ignore[arg-type]
            sync_secret="test-sync-secret",  # type: ignore[arg-type]
            db_path=":memory:",
        ),
    )
