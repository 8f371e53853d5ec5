"""Break-of-structure detection — pure function, no I/O."""

from typing import Optional

from bostrader.strategy.models import BreakSignal, SwingState
from bostrader.strategy.trend import TrendBias


def detect_break(
    price: float,
    state: SwingState,
    bias: TrendBias,
    break_threshold: float,
) -> Optional[BreakSignal]:
    """Return a break signal when *price* clears a swing extreme.

    - **Bullish**: ``price > highest_high + break_threshold`` and uptrend.
    - **Bearish**: ``price < lowest_low - break_threshold`` and downtrend.

    Bullish is checked first, so at most one signal is returned.

    Args:
        price: Current price (the bid).
        state: Swing statistics for the lookback window.
        bias: Trend bias derived from the same window.
        break_threshold: Threshold in price units (pips × pip size).

    Raises:
        ValueError: If *break_threshold* is negative.
    """
    if break_threshold < 0:
        raise ValueError(
            f"break_threshold must be non-negative, got {break_threshold}"
        )

    if price > state.highest_high + break_threshold and bias.uptrend:
        return BreakSignal(direction="buy", trigger_price=price)
    elif price < state.lowest_low - break_threshold and bias.downtrend:
        return BreakSignal(direction="sell", trigger_price=price)
    return None
