"""Strategy data models — typed representations for strategy inputs and outputs."""

from dataclasses import dataclass
from typing import Literal, Optional, Union

Direction = Literal["buy", "sell"]

LABEL_BUY = "BOS Buy"
LABEL_SELL = "BOS Sell"
STRATEGY_LABELS: tuple[str, str] = (LABEL_BUY, LABEL_SELL)


@dataclass(frozen=True)
class PriceBar:
    """A single closed candlestick bar."""

    time: str
    open: float
    high: float
    low: float
    close: float
    volume: int = 0

    @property
    def is_well_formed(self) -> bool:
        """``False`` for sentinel / not-yet-closed bars (zero close, inverted range)."""
        return self.close > 0 and self.low > 0 and self.high >= self.low


@dataclass(frozen=True)
class Tick:
    """Latest bid/ask quote."""

    bid: float
    ask: float
    time: str = ""


@dataclass(frozen=True)
class SymbolMeta:
    """Instrument metadata used for pip conversions.

    ``pip_size`` is the price distance of one pip; ``pip_value`` is the
    account-currency value of one pip for one lot.
    """

    pip_size: float
    pip_value: float

    def __post_init__(self) -> None:
        if self.pip_size <= 0:
            raise ValueError(f"pip_size must be positive, got {self.pip_size}")
        if self.pip_value <= 0:
            raise ValueError(f"pip_value must be positive, got {self.pip_value}")


@dataclass(frozen=True)
class SwingState:
    """Swing extremes and trend counters over the lookback window."""

    highest_high: float
    lowest_low: float
    higher_lows: int
    lower_highs: int


@dataclass(frozen=True)
class BreakSignal:
    """A break-of-structure signal ("buy" = bullish, "sell" = bearish)."""

    direction: Direction
    trigger_price: float


# ── Sizing policies ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class FixedLot:
    """Constant volume; structure-relative SL/TP."""

    volume: float = 0.01

    def __post_init__(self) -> None:
        if self.volume <= 0:
            raise ValueError(f"volume must be positive, got {self.volume}")


@dataclass(frozen=True)
class RiskPercent:
    """Volume sized to risk a percentage of balance; structure-relative SL/TP."""

    percent: float = 1.0

    def __post_init__(self) -> None:
        if not 0 < self.percent <= 100:
            raise ValueError(f"percent must be in (0, 100], got {self.percent}")


@dataclass(frozen=True)
class FixedPips:
    """Constant volume with fixed pip offsets for SL/TP."""

    volume: float = 0.01
    stop_loss_pips: float = 20.0
    take_profit_pips: float = 40.0

    def __post_init__(self) -> None:
        if self.volume <= 0:
            raise ValueError(f"volume must be positive, got {self.volume}")
        if self.stop_loss_pips <= 0:
            raise ValueError(
                f"stop_loss_pips must be positive, got {self.stop_loss_pips}"
            )
        if self.take_profit_pips <= 0:
            raise ValueError(
                f"take_profit_pips must be positive, got {self.take_profit_pips}"
            )


SizingPolicy = Union[FixedLot, RiskPercent, FixedPips]


@dataclass(frozen=True)
class StrategySettings:
    """Immutable strategy configuration, validated on construction."""

    lookback_periods: int = 10
    break_threshold_pips: float = 2.0
    sizing_policy: SizingPolicy = FixedLot()

    def __post_init__(self) -> None:
        if self.lookback_periods < 1:
            raise ValueError(
                f"lookback_periods must be >= 1, got {self.lookback_periods}"
            )
        if self.break_threshold_pips < 0:
            raise ValueError(
                "break_threshold_pips must be non-negative, "
                f"got {self.break_threshold_pips}"
            )
        if not isinstance(self.sizing_policy, (FixedLot, RiskPercent, FixedPips)):
            raise ValueError(f"unknown sizing policy: {self.sizing_policy!r}")


@dataclass(frozen=True)
class BracketOrder:
    """A fully specified market order with stop-loss and take-profit."""

    direction: Direction
    volume: float
    entry_price: float
    stop_loss: float
    take_profit: float
    label: str


def label_for(direction: Direction) -> str:
    """Return the order label used for *direction*."""
    return LABEL_BUY if direction == "buy" else LABEL_SELL


# ── Instrument metadata ──────────────────────────────────────────────────

INSTRUMENT_PIP_SIZES: dict[str, float] = {
    "EUR_USD": 0.0001,
    "GBP_USD": 0.0001,
    "USD_JPY": 0.01,
    "USD_CHF": 0.0001,
    "AUD_USD": 0.0001,
    "NZD_USD": 0.0001,
    "USD_CAD": 0.0001,
    "XAU_USD": 0.01,
    "XAG_USD": 0.001,
}


def symbol_meta_for(
    instrument: str,
    pip_value: float = 10.0,
    pip_size: Optional[float] = None,
) -> SymbolMeta:
    """Build ``SymbolMeta`` for *instrument*, defaulting the pip size from the table."""
    if pip_size is None:
        pip_size = INSTRUMENT_PIP_SIZES.get(instrument, 0.0001)
    return SymbolMeta(pip_size=pip_size, pip_value=pip_value)
