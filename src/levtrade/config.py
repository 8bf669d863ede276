"""Configuration system using pydantic-settings with environment variable loading."""

from decimal import Decimal
from typing import Literal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

_HOUR_MS = 60 * 60 * 1000
_DAY_MS = 24 * _HOUR_MS


class SignalSettings(BaseSettings):
    """Signal primitive parameters.

    Window lengths are counts of hourly samples. Thresholds on percentage
    change are fractions (0.005 = 0.5%). All fields configurable via the
    SIGNAL_ environment variable prefix.
    """

    model_config = SettingsConfigDict(env_prefix="SIGNAL_")

    # Regime (Hurst approximation)
    regime_period: int = 100
    regime_veto_threshold: Decimal = Decimal("0.6")  # trending above this vetoes entries

    # Price and funding z-scores
    zscore_period: int = 20
    funding_window: int = 30
    funding_min_entries: int = 8

    # OI / price divergence
    oi_window: int = 5
    oi_min_entries: int = 6  # backfill falls back to neutral below this
    oi_change_threshold: Decimal = Decimal("0.005")
    oi_price_threshold: Decimal = Decimal("0.002")

    # Volatility
    volatility_period: int = 20
    atr_period: int = 14
    periods_per_year: int = 8760  # hourly candles, 24/7 market

    # Feed health
    warmup_candles: int = 100
    stale_after_ms: int = 3 * 60 * 1000  # since the last live price update
    candle_stale_after_ms: int = 2 * _HOUR_MS  # since the latest candle (scheduled job)
    min_candles: int = 3  # below this no signals are computed at all


class ResolutionSettings(BaseSettings):
    """Outcome resolution tolerances and the same-bar tie-break policy."""

    model_config = SettingsConfigDict(env_prefix="RESOLUTION_")

    grace_period_ms: int = _DAY_MS
    close_enough_ms: int = 2 * _HOUR_MS
    tie_break: Literal["nearest_to_open", "stop_first", "target_first"] = "nearest_to_open"


class TrackerSettings(BaseSettings):
    """Ledger maintenance: dedupe, retention and backfill triggers."""

    model_config = SettingsConfigDict(env_prefix="TRACKER_")

    dedupe_window_ms: int = 4 * _HOUR_MS
    entry_similarity_threshold: Decimal = Decimal("0.02")  # 2% entry drift
    retention_ms: int = 90 * _DAY_MS
    backfill_min_gap_ms: int = 2 * _HOUR_MS  # shorter gaps are covered live


class RiskSettings(BaseSettings):
    """Risk calculator constants."""

    model_config = SettingsConfigDict(env_prefix="RISK_")

    maintenance_margin_rate: Decimal = Decimal("0.005")  # 0.5% typical
    default_account_size: Decimal = Decimal("10000")  # used for generated setups
    account_risk_fraction: Decimal = Decimal("0.01")  # 1% of account at stop
    atr_stop_multiple: Decimal = Decimal("1.5")
    fallback_stop_fraction: Decimal = Decimal("0.02")  # when ATR is unavailable
    target_multiple: Decimal = Decimal("2")
    max_scan_leverage: Decimal = Decimal("100")


class ExchangeSettings(BaseSettings):
    """Upstream market data source (public endpoints only)."""

    model_config = SettingsConfigDict(env_prefix="EXCHANGE_")

    quote: str = "USDC"
    candle_interval: str = "1h"
    candle_count: int = 120
    funding_lookback_hours: int = 30
    oi_history_limit: int = 24
    request_delay: float = 0.3  # seconds between per-coin requests


class ServiceSettings(BaseSettings):
    """HTTP job / sync surface configuration.

    The shared secrets and database path are required; the service answers
    503 until they are present.
    """

    model_config = SettingsConfigDict(env_prefix="SERVICE_")

    cron_secret: SecretStr = SecretStr("")
    sync_secret: SecretStr = SecretStr("")
    db_path: str = "data/levtrade.db"
    host: str = "0.0.0.0"
    port: int = 8080
    enabled: bool = True
    server_setup_days: int = 7
    max_server_setup_days: int = 30
    server_setup_limit: int = 200
    resolve_lookback_days: int = 7
    resolve_batch_limit: int = 50

    def missing_configuration(self) -> str | None:
        """Return a description of the first missing required value, or None."""
        if not self.db_path:
            return "SERVICE_DB_PATH not configured"
        if not self.cron_secret.get_secret_value():
            return "SERVICE_CRON_SECRET not configured"
        if not self.sync_secret.get_secret_value():
            return "SERVICE_SYNC_SECRET not configured"
        return None


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    coins: tuple[str, ...] = ("BTC", "ETH", "SOL", "HYPE")
    tick_interval: int = 60  # seconds between orchestrator ticks
    signal: SignalSettings = SignalSettings()
    resolution: ResolutionSettings = ResolutionSettings()
    tracker: TrackerSettings = TrackerSettings()
    risk: RiskSettings = RiskSettings()
    exchange: ExchangeSettings = ExchangeSettings()
    service: ServiceSettings = ServiceSettings()
