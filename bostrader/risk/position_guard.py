"""Position guard — blocks new entries while a strategy position is open.

The guard checks for *any* strategy-labelled trade on the instrument, not
one in the same direction as the new signal: one position at a time.
"""

from collections.abc import Iterable

from bostrader.strategy.models import STRATEGY_LABELS


async def has_open_strategy_position(
    broker,
    instrument: str,
    labels: Iterable[str] = STRATEGY_LABELS,
) -> bool:
    """Return ``True`` if an open trade on *instrument* carries one of *labels*.

    Args:
        broker: Any object exposing ``async list_open_trades()``.
        instrument: e.g. ``"EUR_USD"``.
        labels: Strategy labels to match (default both BOS labels).
    """
    wanted = set(labels)
    trades = await broker.list_open_trades()
    return any(
        t.instrument == instrument and t.label in wanted
        for t in trades
    )
