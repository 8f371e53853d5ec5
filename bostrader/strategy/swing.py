"""Swing window — rolling highest high / lowest low and trend counters.

Keeps the most recent closed bars in a bounded deque and rescans them on
every evaluation.  The counters are a deliberately simple heuristic that
walks the window from the most recent bar backwards, comparing each bar
with the bar visited just before it (the next-newer one):

- ``higher_lows``: bars whose low is above the low of the next-newer bar.
  The most recent bar is compared against ``+inf`` and never counts.
- ``lower_highs``: bars whose high is below the high of the next-newer bar.
  The most recent bar is compared against ``-inf`` and never counts.
"""

import math
from collections import deque
from typing import Iterable

from bostrader.strategy.models import PriceBar, SwingState


def compute_swing_state(bars: list[PriceBar]) -> SwingState:
    """Compute swing extremes and trend counters for *bars* (oldest-first).

    Raises:
        ValueError: If *bars* is empty.
    """
    if not bars:
        raise ValueError("cannot compute swing state of an empty window")

    highest_high = -math.inf
    lowest_low = math.inf
    higher_lows = 0
    lower_highs = 0
    previous_low = math.inf
    previous_high = -math.inf

    for bar in reversed(bars):
        highest_high = max(highest_high, bar.high)
        lowest_low = min(lowest_low, bar.low)

        if bar.low > previous_low:
            higher_lows += 1
        previous_low = bar.low

        if bar.high < previous_high:
            lower_highs += 1
        previous_high = bar.high

    return SwingState(
        highest_high=highest_high,
        lowest_low=lowest_low,
        higher_lows=higher_lows,
        lower_highs=lower_highs,
    )


class SwingWindow:
    """Bounded window of the most recent closed bars.

    Holds at least two bars even when *lookback* is 1, because the
    structure stop-loss needs the two most recent bars.

    Args:
        lookback: Number of bars the swing statistics cover (>= 1).
    """

    def __init__(self, lookback: int) -> None:
        if lookback < 1:
            raise ValueError(f"lookback must be >= 1, got {lookback}")
        self._lookback = lookback
        self._bars: deque[PriceBar] = deque(maxlen=max(lookback, 2))

    # ── Mutation ─────────────────────────────────────────────────────────

    def push(self, bar: PriceBar) -> None:
        """Append a newly closed bar, evicting the oldest when full."""
        self._bars.append(bar)

    def extend(self, bars: Iterable[PriceBar]) -> None:
        for bar in bars:
            self.push(bar)

    # ── Queries ──────────────────────────────────────────────────────────

    @property
    def lookback(self) -> int:
        return self._lookback

    @property
    def is_ready(self) -> bool:
        """``True`` once the window holds enough bars for a full evaluation."""
        return len(self._bars) >= max(self._lookback, 2)

    @property
    def bars(self) -> list[PriceBar]:
        """All held bars, oldest-first."""
        return list(self._bars)

    def recent(self, count: int) -> list[PriceBar]:
        """Return the *count* most recent bars, most recent first."""
        if count > len(self._bars):
            raise ValueError(
                f"requested {count} bars but window holds {len(self._bars)}"
            )
        return [self._bars[-i] for i in range(1, count + 1)]

    def state(self) -> SwingState:
        """Swing statistics over the last ``lookback`` bars."""
        return compute_swing_state(self.bars[-self._lookback:])

    def __len__(self) -> int:
        return len(self._bars)
