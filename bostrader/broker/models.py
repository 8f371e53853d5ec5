"""Broker data models — typed representations of OANDA v20 API objects."""

from dataclasses import dataclass


class OrderDispatchError(RuntimeError):
    """Raised when the execution venue rejects or cannot receive an order."""


@dataclass(frozen=True)
class Candle:
    """A single candlestick bar."""

    time: str
    open: float
    high: float
    low: float
    close: float
    volume: int
    complete: bool


@dataclass(frozen=True)
class AccountSummary:
    """Summary of an OANDA account."""

    account_id: str
    balance: float
    currency: str


@dataclass(frozen=True)
class OrderRequest:
    """A market order request payload."""

    instrument: str
    direction: str  # "buy" or "sell"
    volume: float  # lots, always positive
    label: str
    stop_loss_price: float
    take_profit_price: float


@dataclass(frozen=True)
class OrderResponse:
    """Handle returned after an order is accepted."""

    order_id: str
    instrument: str
    units: float
    price: float
    time: str


@dataclass(frozen=True)
class Trade:
    """An open trade and the strategy label it was tagged with."""

    trade_id: str
    instrument: str
    units: float
    price: float
    unrealized_pnl: float
    label: str = ""
