"""Tests for bostrader.broker — OANDA client with mocked HTTP responses."""

import pytest
import httpx

from bostrader.broker.models import (
    AccountSummary,
    Candle,
    OrderDispatchError,
    OrderRequest,
    OrderResponse,
    Trade,
)
from bostrader.broker.oanda_client import OandaClient
from bostrader.config import Config
from bostrader.strategy.models import StrategySettings, Tick


def _make_config(environment: str = "practice") -> Config:
    return Config(
        oanda_account_id="101-001-12345678-001",
        oanda_api_token="test-token",
        oanda_environment=environment,
        instrument="EUR_USD",
        granularity="H1",
        poll_interval_seconds=60,
        units_per_lot=100_000,
        pip_size=0.0001,
        pip_value=10.0,
        log_level="INFO",
        strategy=StrategySettings(),
    )


def _order(direction: str = "buy", volume: float = 0.01) -> OrderRequest:
    return OrderRequest(
        instrument="EUR_USD",
        direction=direction,
        volume=volume,
        label="BOS Buy" if direction == "buy" else "BOS Sell",
        stop_loss_price=1.09980,
        take_profit_price=1.11690,
    )


# ── Mock OANDA responses ────────────────────────────────────────────────

MOCK_CANDLES_RESPONSE = {
    "instrument": "EUR_USD",
    "granularity": "H1",
    "candles": [
        {
            "complete": True,
            "volume": 12345,
            "time": "2025-01-10T00:00:00.000000000Z",
            "mid": {"o": "1.09100", "h": "1.09500", "l": "1.08900", "c": "1.09300"},
        },
        {
            "complete": False,
            "volume": 11000,
            "time": "2025-01-10T01:00:00.000000000Z",
            "mid": {"o": "1.09300", "h": "1.09700", "l": "1.09100", "c": "1.09600"},
        },
    ],
}

MOCK_PRICING_RESPONSE = {
    "prices": [
        {
            "instrument": "EUR_USD",
            "time": "2025-01-10T01:15:00.000000000Z",
            "bids": [{"price": "1.09550", "liquidity": 1000000}],
            "asks": [{"price": "1.09565", "liquidity": 1000000}],
        }
    ]
}

MOCK_ACCOUNT_RESPONSE = {
    "account": {
        "id": "101-001-12345678-001",
        "balance": "10000.00",
        "NAV": "10150.50",
        "openPositionCount": "1",
        "currency": "USD",
    }
}

MOCK_ORDER_FILL_RESPONSE = {
    "orderFillTransaction": {
        "id": "12345",
        "instrument": "EUR_USD",
        "units": "1000",
        "price": "1.09500",
        "time": "2025-01-10T12:00:00.000000000Z",
    }
}

MOCK_ORDER_CANCEL_RESPONSE = {
    "orderCreateTransaction": {"id": "12346"},
    "orderCancelTransaction": {"id": "12347", "reason": "INSUFFICIENT_MARGIN"},
}

MOCK_TRADES_RESPONSE = {
    "trades": [
        {
            "id": "501",
            "instrument": "EUR_USD",
            "currentUnits": "1000",
            "price": "1.09300",
            "unrealizedPL": "2.50",
            "openTime": "2025-01-10T01:00:00.000000000Z",
            "clientExtensions": {"tag": "BOS Buy"},
            "stopLossOrder": {"price": "1.09000"},
            "takeProfitOrder": {"price": "1.09900"},
        },
        {
            "id": "502",
            "instrument": "EUR_USD",
            "currentUnits": "-2000",
            "price": "1.09400",
            "unrealizedPL": "-1.00",
        },
    ]
}


def _get_returning(payload):
    async def _mock_get(self, url, *, headers=None, params=None, timeout=None):
        return httpx.Response(200, json=payload, request=httpx.Request("GET", url))
    return _mock_get


# ── Tests ────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_parse_candles(monkeypatch):
    """Candle dataclass fields populated correctly from mock JSON."""
    client = OandaClient(_make_config())
    monkeypatch.setattr(httpx.AsyncClient, "get", _get_returning(MOCK_CANDLES_RESPONSE))

    candles = await client.fetch_candles("EUR_USD", "H1", count=2)
    assert len(candles) == 2
    c = candles[0]
    assert isinstance(c, Candle)
    assert c.open == pytest.approx(1.091)
    assert c.high == pytest.approx(1.095)
    assert c.low == pytest.approx(1.089)
    assert c.close == pytest.approx(1.093)
    assert c.volume == 12345
    assert c.complete is True
    assert candles[1].complete is False


@pytest.mark.asyncio
async def test_fetch_price(monkeypatch):
    """Top-of-book bid/ask parsed into a Tick."""
    client = OandaClient(_make_config())
    monkeypatch.setattr(httpx.AsyncClient, "get", _get_returning(MOCK_PRICING_RESPONSE))

    tick = await client.fetch_price("EUR_USD")
    assert isinstance(tick, Tick)
    assert tick.bid == pytest.approx(1.0955)
    assert tick.ask == pytest.approx(1.09565)


@pytest.mark.asyncio
async def test_fetch_price_empty(monkeypatch):
    client = OandaClient(_make_config())
    monkeypatch.setattr(httpx.AsyncClient, "get", _get_returning({"prices": []}))

    with pytest.raises(ValueError, match="No price"):
        await client.fetch_price("EUR_USD")


@pytest.mark.asyncio
async def test_account_summary(monkeypatch):
    """Balance and currency parsed from mock response."""
    client = OandaClient(_make_config())
    monkeypatch.setattr(httpx.AsyncClient, "get", _get_returning(MOCK_ACCOUNT_RESPONSE))

    summary = await client.get_account_summary()
    assert isinstance(summary, AccountSummary)
    assert summary.balance == pytest.approx(10000.0)
    assert summary.currency == "USD"


@pytest.mark.asyncio
async def test_order_payload(monkeypatch):
    """Market order JSON carries units, SL, TP and the strategy label."""
    client = OandaClient(_make_config())
    captured_body = {}

    async def _mock_post(self, url, *, headers=None, json=None, timeout=None):
        captured_body.update(json)
        return httpx.Response(201, json=MOCK_ORDER_FILL_RESPONSE, request=httpx.Request("POST", url))

    monkeypatch.setattr(httpx.AsyncClient, "post", _mock_post)

    resp = await client.submit_market_order(_order("buy", volume=0.01))

    assert isinstance(resp, OrderResponse)
    assert resp.order_id == "12345"
    assert resp.price == pytest.approx(1.095)

    order_body = captured_body["order"]
    assert order_body["type"] == "MARKET"
    assert order_body["instrument"] == "EUR_USD"
    assert order_body["units"] == "1000"
    assert order_body["stopLossOnFill"]["price"] == "1.09980"
    assert order_body["takeProfitOnFill"]["price"] == "1.11690"
    assert order_body["tradeClientExtensions"]["tag"] == "BOS Buy"


@pytest.mark.asyncio
async def test_sell_order_has_negative_units(monkeypatch):
    client = OandaClient(_make_config())
    captured_body = {}

    async def _mock_post(self, url, *, headers=None, json=None, timeout=None):
        captured_body.update(json)
        return httpx.Response(201, json=MOCK_ORDER_FILL_RESPONSE, request=httpx.Request("POST", url))

    monkeypatch.setattr(httpx.AsyncClient, "post", _mock_post)

    await client.submit_market_order(_order("sell", volume=0.5))
    assert captured_body["order"]["units"] == "-50000"
    assert captured_body["order"]["tradeClientExtensions"]["tag"] == "BOS Sell"


@pytest.mark.asyncio
async def test_cancelled_order_raises_dispatch_error(monkeypatch):
    client = OandaClient(_make_config())

    async def _mock_post(self, url, *, headers=None, json=None, timeout=None):
        return httpx.Response(201, json=MOCK_ORDER_CANCEL_RESPONSE, request=httpx.Request("POST", url))

    monkeypatch.setattr(httpx.AsyncClient, "post", _mock_post)

    with pytest.raises(OrderDispatchError, match="INSUFFICIENT_MARGIN"):
        await client.submit_market_order(_order())


@pytest.mark.asyncio
async def test_rejected_order_not_retried(monkeypatch):
    """A server error on submission surfaces once; the order is not resent."""
    client = OandaClient(_make_config())
    calls = []

    async def _mock_post(self, url, *, headers=None, json=None, timeout=None):
        calls.append(url)
        return httpx.Response(503, json={}, request=httpx.Request("POST", url))

    monkeypatch.setattr(httpx.AsyncClient, "post", _mock_post)

    with pytest.raises(OrderDispatchError):
        await client.submit_market_order(_order())
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_bad_request_raises_dispatch_error(monkeypatch):
    client = OandaClient(_make_config())

    async def _mock_post(self, url, *, headers=None, json=None, timeout=None):
        return httpx.Response(400, json={"errorMessage": "bad"}, request=httpx.Request("POST", url))

    monkeypatch.setattr(httpx.AsyncClient, "post", _mock_post)

    with pytest.raises(OrderDispatchError, match="EUR_USD"):
        await client.submit_market_order(_order())


@pytest.mark.asyncio
async def test_list_open_trades_reads_label(monkeypatch):
    client = OandaClient(_make_config())
    monkeypatch.setattr(httpx.AsyncClient, "get", _get_returning(MOCK_TRADES_RESPONSE))

    trades = await client.list_open_trades()
    assert len(trades) == 2
    tagged, untagged = trades
    assert isinstance(tagged, Trade)
    assert tagged.label == "BOS Buy"
    assert tagged.trade_id == "501"
    assert tagged.units == pytest.approx(1000.0)
    assert untagged.label == ""
    assert untagged.units == pytest.approx(-2000.0)


def test_environment_switching():
    """Practice URL for practice, live URL for live."""
    client_practice = OandaClient(_make_config("practice"))
    client_live = OandaClient(_make_config("live"))

    assert client_practice._base_url == "https://api-fxpractice.oanda.com"
    assert client_live._base_url == "https://api-fxtrade.oanda.com"
