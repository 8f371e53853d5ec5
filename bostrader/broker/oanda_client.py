"""OANDA v20 REST API async client.

Handles the communication the decision engine needs: candle and price
fetching, account queries, open-trade listing, and market order submission.
"""

import asyncio
import logging
from typing import Optional

import httpx

from bostrader.broker.models import (
    AccountSummary,
    Candle,
    OrderDispatchError,
    OrderRequest,
    OrderResponse,
    Trade,
)
from bostrader.config import Config
from bostrader.strategy.models import Tick

logger = logging.getLogger("bostrader")

# Retry settings
_MAX_RETRIES = 3
_RETRY_BASE_DELAY = 2.0  # seconds; doubles each attempt
_RETRYABLE_STATUS_CODES = {502, 503, 504, 429}


class OandaClient:
    """Async client wrapping OANDA v20 REST API."""

    def __init__(self, config: Config) -> None:
        if config.units_per_lot <= 0:
            raise ValueError(
                f"units_per_lot must be positive, got {config.units_per_lot}"
            )
        self._config = config
        self._base_url = config.oanda_base_url
        self._account_id = config.oanda_account_id
        self._units_per_lot = config.units_per_lot
        self._headers = {
            "Authorization": f"Bearer {config.oanda_api_token}",
            "Content-Type": "application/json",
        }

    # ── Retry helper ─────────────────────────────────────────────────────

    async def _request_with_retry(
        self,
        method: str,
        url: str,
        max_retries: int = _MAX_RETRIES,
        **kwargs,
    ) -> httpx.Response:
        """Execute an HTTP request with exponential-backoff retry.

        Retries on transient server errors (502, 503, 504) and rate-limits
        (429).  Non-retryable errors are raised immediately.
        """
        last_exc: Optional[Exception] = None

        for attempt in range(max_retries):
            try:
                async with httpx.AsyncClient() as client:
                    resp = await getattr(client, method)(
                        url,
                        headers=self._headers,
                        timeout=30.0,
                        **kwargs,
                    )

                if resp.status_code in _RETRYABLE_STATUS_CODES:
                    delay = _RETRY_BASE_DELAY * (2 ** attempt)
                    last_exc = httpx.HTTPStatusError(
                        f"Server error '{resp.status_code}'",
                        request=resp.request,
                        response=resp,
                    )
                    if attempt + 1 >= max_retries:
                        break
                    logger.warning(
                        "OANDA %s %s returned %d — retry %d/%d in %.1fs",
                        method.upper(), url, resp.status_code,
                        attempt + 1, max_retries, delay,
                    )
                    await asyncio.sleep(delay)
                    continue

                resp.raise_for_status()
                return resp

            except httpx.TransportError as exc:
                last_exc = exc
                if attempt + 1 >= max_retries:
                    break
                delay = _RETRY_BASE_DELAY * (2 ** attempt)
                logger.warning(
                    "OANDA %s %s transport error (%s) — retry %d/%d in %.1fs",
                    method.upper(), url, exc,
                    attempt + 1, max_retries, delay,
                )
                await asyncio.sleep(delay)

        # All retries exhausted — raise the last error
        raise last_exc  # type: ignore[misc]

    # ── Market data ──────────────────────────────────────────────────────

    async def fetch_candles(
        self,
        instrument: str,
        granularity: str,
        count: int = 50,
    ) -> list[Candle]:
        """Fetch candlestick data from OANDA.

        Args:
            instrument: e.g. ``"EUR_USD"``
            granularity: e.g. ``"H1"`` (hourly), ``"M15"``
            count: number of candles to request (max 5000)

        Returns:
            List of ``Candle`` objects ordered oldest-first.  The last one
            is usually still forming (``complete=False``).
        """
        url = f"{self._base_url}/v3/instruments/{instrument}/candles"
        params = {
            "granularity": granularity,
            "count": count,
            "price": "M",  # mid prices
        }

        resp = await self._request_with_retry("get", url, params=params)

        candles: list[Candle] = []
        for c in resp.json().get("candles", []):
            mid = c["mid"]
            candles.append(
                Candle(
                    time=c["time"],
                    open=float(mid["o"]),
                    high=float(mid["h"]),
                    low=float(mid["l"]),
                    close=float(mid["c"]),
                    volume=int(c["volume"]),
                    complete=bool(c["complete"]),
                )
            )
        return candles

    async def fetch_price(self, instrument: str) -> Tick:
        """Return the current top-of-book bid/ask for *instrument*."""
        url = f"{self._base_url}/v3/accounts/{self._account_id}/pricing"

        resp = await self._request_with_retry(
            "get", url, params={"instruments": instrument},
        )

        prices = resp.json().get("prices", [])
        if not prices:
            raise ValueError(f"No price returned for {instrument}")
        p = prices[0]
        return Tick(
            bid=float(p["bids"][0]["price"]),
            ask=float(p["asks"][0]["price"]),
            time=p.get("time", ""),
        )

    # ── Account ──────────────────────────────────────────────────────────

    async def get_account_summary(self) -> AccountSummary:
        """Query OANDA for the account balance and currency."""
        url = f"{self._base_url}/v3/accounts/{self._account_id}/summary"

        resp = await self._request_with_retry("get", url)

        acct = resp.json()["account"]
        return AccountSummary(
            account_id=acct["id"],
            balance=float(acct["balance"]),
            currency=acct["currency"],
        )

    # ── Orders ───────────────────────────────────────────────────────────

    def _to_units(self, order: OrderRequest) -> int:
        units = int(round(order.volume * self._units_per_lot))
        return units if order.direction == "buy" else -units

    async def submit_market_order(self, order: OrderRequest) -> OrderResponse:
        """Place a market order with stop-loss, take-profit and label.

        The order is sent once; a failed submission is not retried.

        Args:
            order: ``OrderRequest`` with instrument, direction, volume (lots),
                label, SL, and TP.

        Returns:
            ``OrderResponse`` with the fill details.

        Raises:
            OrderDispatchError: If the request fails or OANDA cancels the
                order instead of filling it.
        """
        url = f"{self._base_url}/v3/accounts/{self._account_id}/orders"
        # Use appropriate price precision per instrument
        _prec = 2 if "XAU" in order.instrument or "XAG" in order.instrument else 5
        if "JPY" in order.instrument:
            _prec = 3
        body = {
            "order": {
                "type": "MARKET",
                "instrument": order.instrument,
                "units": str(self._to_units(order)),
                "stopLossOnFill": {
                    "price": f"{order.stop_loss_price:.{_prec}f}",
                },
                "takeProfitOnFill": {
                    "price": f"{order.take_profit_price:.{_prec}f}",
                },
                "tradeClientExtensions": {
                    "tag": order.label,
                },
            }
        }

        try:
            resp = await self._request_with_retry(
                "post", url, max_retries=1, json=body,
            )
        except httpx.HTTPError as exc:
            raise OrderDispatchError(
                f"Order submission for {order.instrument} failed: {exc}"
            ) from exc

        data = resp.json()
        fill = data.get("orderFillTransaction")
        if fill is None:
            reason = data.get("orderCancelTransaction", {}).get("reason", "unknown")
            raise OrderDispatchError(
                f"Order for {order.instrument} was not filled: {reason}"
            )
        return OrderResponse(
            order_id=fill["id"],
            instrument=fill["instrument"],
            units=float(fill["units"]),
            price=float(fill["price"]),
            time=fill["time"],
        )

    # ── Trades ───────────────────────────────────────────────────────────

    async def list_open_trades(self) -> list[Trade]:
        """Return all open trades with their client-extension label."""
        url = f"{self._base_url}/v3/accounts/{self._account_id}/openTrades"

        resp = await self._request_with_retry("get", url)

        trades: list[Trade] = []
        for t in resp.json().get("trades", []):
            trades.append(
                Trade(
                    trade_id=t["id"],
                    instrument=t["instrument"],
                    units=float(t["currentUnits"]),
                    price=float(t["price"]),
                    unrealized_pnl=float(t.get("unrealizedPL", "0")),
                    label=t.get("clientExtensions", {}).get("tag", ""),
                )
            )
        return trades
