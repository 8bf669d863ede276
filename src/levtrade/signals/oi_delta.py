"""Open interest vs price divergence (money flow).

Rising OI alongside a price move means fresh positions back the move
(confirmed); falling OI means positions are closing and the move is weak.

CRITICAL: All computations use Decimal. Never use float.
"""

from collections.abc import Sequence
from decimal import Decimal

from levtrade.market.models import OISnapshot
from levtrade.models import ONE, ZERO, SignalColor
from levtrade.signals.models import OIDeltaResult
from levtrade.signals.stats import clamp, mean

_HALF = Decimal("0.5")
_WEAK_SIGNAL = Decimal("0.2")
_OI_SCALE = Decimal("10")


def compute_oi_delta(
    oi_history: Sequence[OISnapshot],
    closes: Sequence[Decimal],
    window: int = 5,
    oi_threshold: Decimal = Decimal("0.005"),
    price_threshold: Decimal = Decimal("0.002"),
) -> OIDeltaResult:
    """Compare the recent average OI and price against the preceding window.

    Args:
        oi_history: Hourly OI snapshots ordered oldest-first.
        closes: Close prices ordered oldest-first.
        window: Number of recent samples averaged.
        oi_threshold: Minimum OI change fraction counted as a move.
        price_threshold: Minimum price change fraction counted as a move.

    Returns:
        OIDeltaResult. Change fractions are only computed against a positive
        baseline (0 otherwise).
    """
    min_required = max(2, window + 1)
    if len(oi_history) < min_required or len(closes) < min_required:
        return OIDeltaResult(
            oi_change_pct=ZERO,
            price_change_pct=ZERO,
            confirmation=False,
            normalized_signal=ZERO,
            label="Insufficient Data",
            color=SignalColor.YELLOW,
            explanation=(
                f"Need at least {min_required} data points to measure money flow. "
                f"Currently have {len(oi_history)}."
            ),
        )

    values = [s.open_interest for s in oi_history]
    recent_oi = mean(values[-window:])
    older = values[-(window * 2):-window]
    older_oi = mean(older) if older else values[-min_required]

    recent_price = mean(list(closes[-window:]))
    older_close = closes[-min_required]

    oi_change = (recent_oi - older_oi) / older_oi if older_oi > 0 else ZERO
    price_change = (recent_price - older_close) / older_close if older_close > 0 else ZERO

    oi_up = oi_change > oi_threshold
    oi_down = oi_change < -oi_threshold
    price_up = price_change > price_threshold
    price_down = price_change < -price_threshold
    confirmed_strength = _HALF + min(_HALF, abs(oi_change) * _OI_SCALE)

    if oi_up and price_up:
        confirmation, signal, label, color = True, confirmed_strength, "Confirmed Bullish", SignalColor.GREEN
        explanation = (
            "New money is flowing IN while price goes UP — the move is backed by real "
            "conviction. This is a strong bullish sign."
        )
    elif oi_up and price_down:
        confirmation, signal, label, color = True, -confirmed_strength, "Confirmed Bearish", SignalColor.GREEN
        explanation = (
            "New money is flowing IN while price goes DOWN — fresh sellers are entering. "
            "This is a strong bearish sign."
        )
    elif oi_down and price_up:
        confirmation, signal, label, color = False, _WEAK_SIGNAL, "Weak Rally", SignalColor.YELLOW
        explanation = (
            "Price is going up but money is LEAVING the market — shorts are closing, not "
            "new buyers entering. The rally looks weak and may reverse."
        )
    elif oi_down and price_down:
        confirmation, signal, label, color = False, -_WEAK_SIGNAL, "Weak Decline", SignalColor.YELLOW
        explanation = (
            "Price is going down but money is LEAVING — longs are closing, not new sellers "
            "entering. The decline looks weak and may bounce."
        )
    else:
        confirmation, signal, label, color = False, ZERO, "No Clear Flow", SignalColor.RED
        explanation = (
            "Neither price nor open interest is moving significantly — no clear money "
            "flow signal."
        )

    return OIDeltaResult(
        oi_change_pct=oi_change,
        price_change_pct=price_change,
        confirmation=confirmation,
        normalized_signal=clamp(signal, -ONE, ONE),
        label=label,
        color=color,
        explanation=explanation,
    )
