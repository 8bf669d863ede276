"""Risk calculator data models.

CRITICAL: All monetary values use Decimal. Never use float.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from levtrade.models import (
    ZERO,
    SignalColor,
    TradeDirection,
    optional_decimal,
    optional_str,
    to_decimal,
)


@dataclass(frozen=True)
class RiskInputs:
    """User-entered position parameters (position size is USD notional)."""

    coin: str
    direction: TradeDirection
    entry_price: Decimal
    account_size: Decimal
    position_size: Decimal
    leverage: Decimal
    stop_price: Decimal | None = None
    target_price: Decimal | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "coin": self.coin,
            "direction": self.direction.value,
            "entryPrice": str(self.entry_price),
            "accountSize": str(self.account_size),
            "positionSize": str(self.position_size),
            "leverage": str(self.leverage),
            "stopPrice": optional_str(self.stop_price),
            "targetPrice": optional_str(self.target_price),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RiskInputs":
        return cls(
            coin=str(data["coin"]),
            direction=TradeDirection(data["direction"]),
            entry_price=to_decimal(data["entryPrice"]),
            account_size=to_decimal(data["accountSize"]),
            position_size=to_decimal(data["positionSize"]),
            leverage=to_decimal(data["leverage"]),
            stop_price=optional_decimal(data.get("stopPrice")),
            target_price=optional_decimal(data.get("targetPrice")),
        )


DEFAULT_RISK_INPUTS = RiskInputs(
    coin="BTC",
    direction=TradeDirection.LONG,
    entry_price=ZERO,
    account_size=Decimal("1000"),
    position_size=Decimal("100"),
    leverage=Decimal("5"),
)


@dataclass(frozen=True)
class LiquidationScenario:
    """Lowest scanned leverage at which a liquidation level first exists."""

    leverage: Decimal
    price: Decimal
    distance_pct: Decimal
    explanation: str


@dataclass(frozen=True)
class RiskOutputs:
    """Result of ``compute_risk``.

    ``liquidation_price`` is ``Decimal("Infinity")`` for a short whose
    margin buffer covers the whole position; such a position is
    ``effective_immune``.
    """

    # Liquidation
    liquidation_price: Decimal = ZERO
    liquidation_distance: Decimal = ZERO  # % from entry
    has_liquidation: bool = False
    effective_immune: bool = True
    min_leverage_for_liquidation: Decimal | None = None
    liquidation_price_at_min_leverage: Decimal | None = None
    liquidation_distance_at_min_leverage: Decimal | None = None
    liquidation_fallback_explanation: str | None = None

    has_input_error: bool = False
    input_error_message: str | None = None

    # Stop
    suggested_stop_price: Decimal = ZERO
    effective_stop_price: Decimal = ZERO
    used_custom_stop: bool = False
    stop_validation_message: str | None = None
    loss_at_stop: Decimal = ZERO  # USD
    loss_at_stop_percent: Decimal = ZERO  # % of account

    # Target
    suggested_target_price: Decimal = ZERO
    effective_target_price: Decimal = ZERO
    used_custom_target: bool = False
    target_validation_message: str | None = None
    profit_at_target: Decimal = ZERO
    profit_at_target_percent: Decimal = ZERO

    rr_ratio: Decimal = ZERO
    suggested_position_size: Decimal = ZERO
    suggested_leverage: Decimal = ZERO

    trade_grade: SignalColor = SignalColor.YELLOW
    trade_grade_label: str = "ENTER PARAMETERS"
    trade_grade_explanation: str = "Fill in the form to see your risk analysis."
