"""Position risk calculator.

Estimates the liquidation level under cross margin (the whole account
balance backs the position) with a flat maintenance margin rate, derives
an ATR-based stop and a 2:1 target, sizes a position for a fixed fraction
of the account at the stop, and grades the whole setup green / yellow / red.

CRITICAL: All computations use Decimal. Never use float for prices or sizes.
"""

from decimal import Decimal

from levtrade.config import RiskSettings
from levtrade.models import HUNDRED, ONE, ZERO, SignalColor, TradeDirection
from levtrade.risk.models import LiquidationScenario, RiskInputs, RiskOutputs
from levtrade.signals.models import RiskStatus

INFINITY = Decimal("Infinity")
_SCAN_STEP = Decimal("0.5")

_GRADE_STATUS: dict[SignalColor, RiskStatus] = {
    SignalColor.GREEN: RiskStatus.SAFE,
    SignalColor.YELLOW: RiskStatus.BORDERLINE,
    SignalColor.RED: RiskStatus.DANGER,
}

_STOP_ERRORS: dict[TradeDirection, str] = {
    TradeDirection.LONG: "Long stops must stay below entry, so auto stop is being used instead.",
    TradeDirection.SHORT: "Short stops must stay above entry, so auto stop is being used instead.",
}

_TARGET_ERRORS: dict[TradeDirection, str] = {
    TradeDirection.LONG: "Long targets must stay above entry, so auto target is being used instead.",
    TradeDirection.SHORT: "Short targets must stay below entry, so auto target is being used instead.",
}


def risk_status_for(outputs: RiskOutputs | None) -> RiskStatus:
    """Map a trade grade onto the decision's risk status (unknown without outputs)."""
    if outputs is None:
        return RiskStatus.UNKNOWN
    return _GRADE_STATUS[outputs.trade_grade]


def compute_liquidation_price(
    direction: TradeDirection,
    entry_price: Decimal,
    account_size: Decimal,
    position_size: Decimal,
    leverage: Decimal,
    maintenance_margin_rate: Decimal = Decimal("0.005"),
) -> Decimal:
    """Estimate the liquidation price.

    The margin buffer is the free margin left after posting initial margin,
    minus maintenance margin. A buffer that covers the whole notional means
    a long liquidates only at 0 and a short never (Infinity).
    """
    margin_used = position_size / leverage
    buffer = (account_size - margin_used) - position_size * maintenance_margin_rate
    if buffer <= 0:
        price = entry_price
    elif buffer >= position_size:
        price = ZERO if direction is TradeDirection.LONG else INFINITY
    elif direction is TradeDirection.LONG:
        price = entry_price * (ONE - buffer / position_size)
    else:
        price = entry_price * (ONE + buffer / position_size)
    if direction is TradeDirection.LONG:
        price = max(ZERO, price)
    return price


def _has_liquidation(price: Decimal) -> bool:
    return price.is_finite() and price > 0


def find_minimum_liquidation_scenario(
    inputs: RiskInputs,
    settings: RiskSettings,
) -> LiquidationScenario | None:
    """Scan leverage upward from 1x in 0.5x steps for the first liquidation level.

    Without a position size the notional is ``account * leverage``.
    """
    leverage = ONE
    while leverage <= settings.max_scan_leverage:
        position = inputs.position_size if inputs.position_size > 0 else inputs.account_size * leverage
        price = compute_liquidation_price(
            inputs.direction,
            inputs.entry_price,
            inputs.account_size,
            position,
            leverage,
            settings.maintenance_margin_rate,
        )
        if _has_liquidation(price):
            return LiquidationScenario(
                leverage=leverage,
                price=price,
                distance_pct=abs(price - inputs.entry_price) / inputs.entry_price * HUNDRED,
                explanation=(
                    f"Liquidation first appears around {leverage:.1f}x, where the "
                    f"liquidation level would be {price:.2f}."
                ),
            )
        leverage += _SCAN_STEP
    return None


def _validate_stop(direction: TradeDirection, entry: Decimal, stop: Decimal | None) -> str | None:
    if stop is None:
        return None
    wrong_side = stop >= entry if direction is TradeDirection.LONG else stop <= entry
    return _STOP_ERRORS[direction] if wrong_side else None


def _validate_target(direction: TradeDirection, entry: Decimal, target: Decimal | None) -> str | None:
    if target is None:
        return None
    wrong_side = target <= entry if direction is TradeDirection.LONG else target >= entry
    return _TARGET_ERRORS[direction] if wrong_side else None


def _format_leverage(leverage: Decimal) -> str:
    return format(leverage.normalize(), "f")


def grade_trade(
    liquidation_distance: Decimal,
    loss_at_stop_percent: Decimal,
    rr_ratio: Decimal,
    leverage: Decimal,
    stop_distance: Decimal,
    atr: Decimal,
) -> tuple[SignalColor, str, str]:
    """Score a setup and return (grade, label, explanation)."""
    issues: list[str] = []
    score = 0

    if liquidation_distance > 20:
        score += 2
    elif liquidation_distance > 10:
        score += 1
    else:
        issues.append(f"Liquidation is only {liquidation_distance:.1f}% away — very tight")

    if loss_at_stop_percent < 1:
        score += 2
    elif loss_at_stop_percent < 2:
        score += 1
    elif loss_at_stop_percent < 5:
        issues.append(
            f"Risking {loss_at_stop_percent:.1f}% of your account — consider reducing size"
        )
    else:
        issues.append(f"Risking {loss_at_stop_percent:.1f}% of your account — that's too much")

    if rr_ratio >= 3:
        score += 2
    elif rr_ratio >= 2:
        score += 1
    elif rr_ratio >= 1:
        issues.append(f"R:R of {rr_ratio:.1f}:1 is borderline — look for 2:1 minimum")
    else:
        issues.append(f"R:R of {rr_ratio:.1f}:1 — the reward doesn't justify the risk")

    if leverage <= 5:
        score += 1
    elif leverage <= 10:
        pass
    elif leverage <= 20:
        issues.append(f"Leverage of {_format_leverage(leverage)}x is aggressive")
    else:
        issues.append(
            f"Leverage of {_format_leverage(leverage)}x is very high — small moves can liquidate you"
        )

    if atr > 0 and stop_distance / atr < 1:
        issues.append("Stop is within normal price noise — it will likely get hit randomly")

    if score >= 5 and not issues:
        grade, label = SignalColor.GREEN, "GOOD SETUP"
    elif score >= 3 and len(issues) <= 1:
        grade, label = SignalColor.YELLOW, "BORDERLINE"
    else:
        grade, label = SignalColor.RED, "TOO RISKY"

    if issues:
        explanation = f"{label} — {'. '.join(issues)}."
    else:
        explanation = (
            f"{label} — R:R is favorable, stop is in a safe zone, and leverage is reasonable."
        )
    return grade, label, explanation


def compute_risk(inputs: RiskInputs, atr: Decimal, settings: RiskSettings) -> RiskOutputs:
    """Full risk analysis for a prospective position.

    Args:
        inputs: Position parameters.
        atr: Current ATR of the coin (0 when unknown).
        settings: Risk constants.

    Returns:
        RiskOutputs. Non-positive entry, account or leverage yields the
        "ENTER PARAMETERS" placeholder; a stop equal to entry yields an
        input error. Neither raises.
    """
    entry = inputs.entry_price
    if entry <= 0 or inputs.account_size <= 0 or inputs.leverage <= 0:
        return RiskOutputs()
    if inputs.stop_price is not None and inputs.stop_price == entry:
        return RiskOutputs(
            has_input_error=True,
            input_error_message="Stop cannot equal entry price.",
            trade_grade=SignalColor.RED,
            trade_grade_label="INVALID INPUT",
            trade_grade_explanation=(
                "Stop cannot equal entry price. Move the stop away from entry to calculate risk."
            ),
        )

    is_long = inputs.direction is TradeDirection.LONG
    account = inputs.account_size

    liquidation_price = ZERO
    liquidation_distance = ZERO
    has_liquidation = False
    immune = False
    fallback: LiquidationScenario | None = None
    fallback_explanation: str | None = None
    if inputs.position_size > 0:
        liquidation_price = compute_liquidation_price(
            inputs.direction,
            entry,
            account,
            inputs.position_size,
            inputs.leverage,
            settings.maintenance_margin_rate,
        )
        has_liquidation = _has_liquidation(liquidation_price)
        immune = not has_liquidation
        if liquidation_price.is_infinite() or liquidation_price <= 0:
            liquidation_distance = HUNDRED
        else:
            liquidation_distance = abs(liquidation_price - entry) / entry * HUNDRED
        if immune:
            fallback = find_minimum_liquidation_scenario(inputs, settings)
            fallback_explanation = fallback.explanation if fallback is not None else None
    else:
        fallback_explanation = "Enter a position size to calculate liquidation."

    atr_stop = atr * settings.atr_stop_multiple if atr > 0 else entry * settings.fallback_stop_fraction
    suggested_stop = entry - atr_stop if is_long else entry + atr_stop
    stop_message = _validate_stop(inputs.direction, entry, inputs.stop_price)
    used_custom_stop = inputs.stop_price is not None and stop_message is None
    effective_stop = inputs.stop_price if used_custom_stop else suggested_stop
    stop_distance = abs(entry - effective_stop)

    effective_position = (
        inputs.position_size if inputs.position_size > 0 else account * inputs.leverage
    )
    loss_at_stop = effective_position * (stop_distance / entry)
    loss_pct = loss_at_stop / account * HUNDRED

    reward = stop_distance * settings.target_multiple
    suggested_target = entry + reward if is_long else entry - reward
    target_message = _validate_target(inputs.direction, entry, inputs.target_price)
    used_custom_target = inputs.target_price is not None and target_message is None
    effective_target = inputs.target_price if used_custom_target else suggested_target
    target_distance = abs(effective_target - entry)
    profit_at_target = effective_position * (target_distance / entry)

    rr_ratio = target_distance / stop_distance if stop_distance > 0 else ZERO
    risk_per_unit = stop_distance / entry
    suggested_size = (
        account * settings.account_risk_fraction / risk_per_unit if risk_per_unit > 0 else ZERO
    )

    grade, label, explanation = grade_trade(
        liquidation_distance, loss_pct, rr_ratio, inputs.leverage, stop_distance, atr
    )

    return RiskOutputs(
        liquidation_price=liquidation_price,
        liquidation_distance=liquidation_distance,
        has_liquidation=has_liquidation,
        effective_immune=immune,
        min_leverage_for_liquidation=fallback.leverage if fallback else None,
        liquidation_price_at_min_leverage=fallback.price if fallback else None,
        liquidation_distance_at_min_leverage=fallback.distance_pct if fallback else None,
        liquidation_fallback_explanation=fallback_explanation,
        suggested_stop_price=suggested_stop,
        effective_stop_price=effective_stop,
        used_custom_stop=used_custom_stop,
        stop_validation_message=stop_message,
        loss_at_stop=loss_at_stop,
        loss_at_stop_percent=loss_pct,
        suggested_target_price=suggested_target,
        effective_target_price=effective_target,
        used_custom_target=used_custom_target,
        target_validation_message=target_message,
        profit_at_target=profit_at_target,
        profit_at_target_percent=profit_at_target / account * HUNDRED,
        rr_ratio=rr_ratio,
        suggested_position_size=suggested_size,
        suggested_leverage=suggested_size / account,
        trade_grade=grade,
        trade_grade_label=label,
        trade_grade_explanation=explanation,
    )
