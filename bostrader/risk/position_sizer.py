"""Position sizing — pure math, no I/O.

Turns a sizing policy plus market/account context into an order volume
(in lots).  Only ``RiskPercent`` looks at the context; ``FixedLot`` and
``FixedPips`` return their configured volume.
"""

from typing import Optional

from bostrader.strategy.models import (
    FixedLot,
    FixedPips,
    RiskPercent,
    SizingPolicy,
    SymbolMeta,
)


class InvalidSizingInput(ValueError):
    """Raised when risk-based sizing cannot produce a defined volume."""


def calculate_risk_volume(
    balance: float,
    risk_pct: float,
    entry_price: float,
    stop_loss: float,
    symbol: SymbolMeta,
) -> float:
    """Calculate a risk-percentage volume in lots.

    Formula::

        risk_amount   = balance × (risk_pct / 100)
        pips_at_risk  = |entry_price − stop_loss| / pip_size
        volume        = round(risk_amount / (pips_at_risk × pip_value), 2)

    Args:
        balance: Account balance in account currency (e.g. 10_000.0).
        risk_pct: Percentage of balance to risk (e.g. 1.0 for 1 %).
        entry_price: Expected fill price.
        stop_loss: Stop-loss price.
        symbol: Pip size and pip value of the instrument.

    Returns:
        Volume rounded to 2 decimal places.

    Raises:
        InvalidSizingInput: If the balance is non-positive, the stop
            distance is degenerate, or the volume rounds to zero.
    """
    if balance <= 0:
        raise InvalidSizingInput(f"balance must be positive, got {balance}")

    risk_amount = balance * (risk_pct / 100.0)
    pips_at_risk = abs(entry_price - stop_loss) / symbol.pip_size
    risk_per_lot = pips_at_risk * symbol.pip_value
    if risk_per_lot <= 0:
        raise InvalidSizingInput(
            f"stop distance is degenerate: {pips_at_risk} pips at risk "
            f"(entry={entry_price}, stop_loss={stop_loss})"
        )

    volume = round(risk_amount / risk_per_lot, 2)
    if volume <= 0:
        raise InvalidSizingInput(
            f"volume rounds to zero (risk={risk_amount:.2f}, "
            f"pips_at_risk={pips_at_risk:.1f})"
        )
    return volume


def calculate_volume(
    policy: SizingPolicy,
    entry_price: float,
    stop_loss: float,
    symbol: SymbolMeta,
    balance: Optional[float] = None,
) -> float:
    """Return the order volume for *policy*.

    *balance* is required only for ``RiskPercent``.
    """
    if isinstance(policy, (FixedLot, FixedPips)):
        return policy.volume
    if isinstance(policy, RiskPercent):
        if balance is None:
            raise InvalidSizingInput("RiskPercent sizing requires an account balance")
        return calculate_risk_volume(
            balance, policy.percent, entry_price, stop_loss, symbol,
        )
    raise TypeError(f"unknown sizing policy: {policy!r}")
