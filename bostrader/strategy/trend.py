"""Trend bias — classifies the swing window as biased up, down, or neither.

Uptrend and downtrend are evaluated independently: a choppy window may
satisfy neither, and in rare cases both can hold at once.
"""

from dataclasses import dataclass

from bostrader.strategy.models import SwingState


@dataclass(frozen=True)
class TrendBias:
    """Independent up/down bias flags for one window."""

    uptrend: bool
    downtrend: bool

    @property
    def direction(self) -> str:
        """Summary label: "bullish", "bearish", "mixed" or "flat"."""
        if self.uptrend and self.downtrend:
            return "mixed"
        if self.uptrend:
            return "bullish"
        if self.downtrend:
            return "bearish"
        return "flat"


def classify_trend(state: SwingState, lookback: int) -> TrendBias:
    """Derive the trend bias from the swing counters.

    Rules:
        - **Uptrend**: ``higher_lows >= lookback // 2``.
        - **Downtrend**: ``lower_highs >= lookback // 2``.

    The threshold uses integer division, so for odd *lookback* it rounds
    down (and for ``lookback == 1`` it is zero, making both flags true).
    """
    threshold = lookback // 2
    return TrendBias(
        uptrend=state.higher_lows >= threshold,
        downtrend=state.lower_highs >= threshold,
    )
