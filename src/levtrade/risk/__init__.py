"""Position risk: liquidation estimate, ATR stop, sizing and trade grade."""

from levtrade.risk.calculator import (
    compute_liquidation_price,
    compute_risk,
    find_minimum_liquidation_scenario,
    grade_trade,
    risk_status_for,
)
from levtrade.risk.models import DEFAULT_RISK_INPUTS, LiquidationScenario, RiskInputs, RiskOutputs

__all__ = [
    "DEFAULT_RISK_INPUTS",
    "LiquidationScenario",
    "RiskInputs",
    "RiskOutputs",
    "compute_liquidation_price",
    "compute_risk",
    "find_minimum_liquidation_scenario",
    "grade_trade",
    "risk_status_for",
]
