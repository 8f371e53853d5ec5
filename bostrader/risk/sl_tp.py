"""Stop-loss and take-profit calculation — pure math, no I/O.

Structure-relative placement (FixedLot, RiskPercent):
    SL sits 10 pips beyond the two most recent closed bars.
    TP is set at a fixed 1:2 risk:reward from the entry.

Fixed-pip placement (FixedPips):
    SL and TP are fixed pip offsets from the current ask.
"""

from bostrader.strategy.models import Direction, FixedPips, PriceBar, SizingPolicy

STRUCTURE_BUFFER_PIPS = 10.0
RR_RATIO = 2.0


def _check_direction(direction: str) -> None:
    if direction not in ("buy", "sell"):
        raise ValueError(f"direction must be 'buy' or 'sell', got '{direction}'")


def calculate_structure_sl(
    direction: Direction,
    recent_bars: list[PriceBar],
    pip_size: float,
    buffer_pips: float = STRUCTURE_BUFFER_PIPS,
) -> float:
    """Place the stop-loss beyond the two most recent closed bars.

    - **Buy**:  SL = min(low[1], low[2]) − buffer
    - **Sell**: SL = max(high[1], high[2]) + buffer

    Args:
        direction: ``"buy"`` or ``"sell"``.
        recent_bars: Closed bars, most recent first (at least two).
        pip_size: Price distance of one pip.
        buffer_pips: Distance beyond the structure, in pips (default 10).

    Raises:
        ValueError: If *direction* is invalid or fewer than two bars given.
    """
    _check_direction(direction)
    if len(recent_bars) < 2:
        raise ValueError(f"need at least 2 bars, got {len(recent_bars)}")

    last, prev = recent_bars[0], recent_bars[1]
    buffer = buffer_pips * pip_size
    if direction == "buy":
        return min(last.low, prev.low) - buffer
    return max(last.high, prev.high) + buffer


def calculate_rr_tp(
    direction: Direction,
    entry_price: float,
    sl_price: float,
    rr_ratio: float = RR_RATIO,
) -> float:
    """Take-profit at *rr_ratio* times the realised stop distance."""
    _check_direction(direction)
    risk = abs(entry_price - sl_price)
    if direction == "buy":
        return entry_price + rr_ratio * risk
    return entry_price - rr_ratio * risk


def calculate_fixed_pip_levels(
    direction: Direction,
    reference_price: float,
    stop_loss_pips: float,
    take_profit_pips: float,
    pip_size: float,
) -> tuple[float, float]:
    """Return ``(sl, tp)`` at fixed pip offsets from *reference_price*."""
    _check_direction(direction)
    sl_dist = stop_loss_pips * pip_size
    tp_dist = take_profit_pips * pip_size
    if direction == "buy":
        return reference_price - sl_dist, reference_price + tp_dist
    return reference_price + sl_dist, reference_price - tp_dist


def calculate_bracket(
    direction: Direction,
    policy: SizingPolicy,
    bid: float,
    ask: float,
    recent_bars: list[PriceBar],
    pip_size: float,
) -> tuple[float, float, float]:
    """Compute ``(entry_price, stop_loss, take_profit)`` for *policy*.

    Entry is the ask for buys and the bid for sells.  ``FixedPips`` offsets
    both levels from the ask regardless of direction; every other policy
    uses structure-relative placement.  The stop-loss is always computed
    first because the structure take-profit depends on it.
    """
    _check_direction(direction)
    entry_price = ask if direction == "buy" else bid

    if isinstance(policy, FixedPips):
        sl, tp = calculate_fixed_pip_levels(
            direction, ask,
            policy.stop_loss_pips, policy.take_profit_pips,
            pip_size,
        )
        return entry_price, sl, tp

    sl = calculate_structure_sl(direction, recent_bars, pip_size)
    tp = calculate_rr_tp(direction, entry_price, sl)
    return entry_price, sl, tp
