"""BOSTrader — decision engine (per-bar orchestration).

Connects the swing window, trend bias, break detector, position guard,
bracket calculator and position sizer.  Each closed bar is evaluated at
most once; a signal yields at most one submitted order.
"""

import logging
from typing import Literal, Optional

from bostrader.broker.models import OrderDispatchError, OrderRequest
from bostrader.risk.position_guard import has_open_strategy_position
from bostrader.risk.position_sizer import calculate_volume
from bostrader.risk.sl_tp import calculate_bracket
from bostrader.strategy.break_detector import detect_break
from bostrader.strategy.models import (
    BracketOrder,
    BreakSignal,
    PriceBar,
    RiskPercent,
    StrategySettings,
    SymbolMeta,
    Tick,
    label_for,
    symbol_meta_for,
)
from bostrader.strategy.swing import SwingWindow
from bostrader.strategy.trend import TrendBias, classify_trend

logger = logging.getLogger("bostrader")

EngineState = Literal["idle", "evaluating", "suppressed", "submitting"]


class DecisionEngine:
    """Evaluates each newly closed bar and submits at most one bracket order.

    Args:
        settings: Validated strategy settings (lookback, threshold, policy).
        broker: An ``OandaClient`` (or compatible duck-type / mock).
        instrument: Instrument traded, e.g. ``"EUR_USD"``.
        symbol: Pip size / pip value.  Defaults from the instrument table.
    """

    def __init__(
        self,
        settings: StrategySettings,
        broker,
        instrument: str = "EUR_USD",
        symbol: Optional[SymbolMeta] = None,
    ) -> None:
        self._settings = settings
        self._broker = broker
        self._instrument = instrument
        self._symbol = symbol or symbol_meta_for(instrument)
        self._window = SwingWindow(settings.lookback_periods)
        self._last_tick: Optional[Tick] = None
        self._last_bar_index: Optional[int] = None
        self.state: EngineState = "idle"

    # ── Properties ───────────────────────────────────────────────────────

    @property
    def instrument(self) -> str:
        return self._instrument

    @property
    def settings(self) -> StrategySettings:
        return self._settings

    @property
    def symbol(self) -> SymbolMeta:
        return self._symbol

    @property
    def window(self) -> SwingWindow:
        return self._window

    @property
    def last_bar_index(self) -> Optional[int]:
        """Index of the most recently evaluated (or warmed-up) bar."""
        return self._last_bar_index

    @property
    def break_threshold(self) -> float:
        """Break threshold in price units."""
        return self._settings.break_threshold_pips * self._symbol.pip_size

    # ── Feed handlers ────────────────────────────────────────────────────

    def on_tick(self, tick: Tick) -> None:
        """Record the latest quote; evaluation only happens on bar close."""
        self._last_tick = tick

    def warm_up(self, bars: list[PriceBar], last_bar_index: int) -> None:
        """Seed the window with historical bars without evaluating them.

        Args:
            bars: Closed bars, oldest-first.
            last_bar_index: Feed index of the last bar in *bars*.
        """
        self._window.extend(b for b in bars if b.is_well_formed)
        self._last_bar_index = last_bar_index
        logger.info(
            "Warmed up %s with %d bar(s) (last index %d)",
            self._instrument, len(self._window), last_bar_index,
        )

    def skip_bar(self, bar: PriceBar, bar_index: int) -> dict:
        """Record a closed bar without evaluating it.

        Used for backlog bars that closed before the newest one: they join
        the window and advance the bar index, but the current quote says
        nothing about the moment they closed.
        """
        if self._last_bar_index is not None and bar_index <= self._last_bar_index:
            return {"action": "skipped", "reason": "bar_already_evaluated"}
        self._last_bar_index = bar_index

        if not bar.is_well_formed:
            logger.debug("Skipping malformed bar %d: %s", bar_index, bar)
            return {"action": "skipped", "reason": "malformed_bar"}

        self._window.push(bar)
        return {"action": "skipped", "reason": "stale_bar"}

    def trend_bias(self) -> Optional[TrendBias]:
        """Trend bias of the current window, or ``None`` while warming up."""
        if not self._window.is_ready:
            return None
        return classify_trend(self._window.state(), self._settings.lookback_periods)

    def evaluate_signal(self) -> Optional[BreakSignal]:
        """Return the break signal for the current window and tick, if any."""
        bias = self.trend_bias()
        if self._last_tick is None or bias is None:
            return None
        swing = self._window.state()
        return detect_break(
            self._last_tick.bid, swing, bias, self.break_threshold,
        )

    def build_bracket(
        self,
        signal: BreakSignal,
        balance: Optional[float] = None,
    ) -> BracketOrder:
        """Compute SL/TP (first) and volume for *signal*.

        Raises:
            InvalidSizingInput: If risk-based sizing has no defined volume.
        """
        tick = self._last_tick
        if tick is None:
            raise ValueError("cannot build a bracket before the first tick")

        policy = self._settings.sizing_policy
        entry, sl, tp = calculate_bracket(
            signal.direction,
            policy,
            bid=tick.bid,
            ask=tick.ask,
            recent_bars=self._window.recent(2),
            pip_size=self._symbol.pip_size,
        )
        volume = calculate_volume(
            policy, entry, sl, self._symbol, balance=balance,
        )
        return BracketOrder(
            direction=signal.direction,
            volume=volume,
            entry_price=entry,
            stop_loss=sl,
            take_profit=tp,
            label=label_for(signal.direction),
        )

    async def on_bar_close(self, bar: PriceBar, bar_index: int) -> dict:
        """Evaluate one newly closed bar.

        Returns a dict describing the action taken:

        - ``{"action": "skipped", "reason": "..."}``
        - ``{"action": "suppressed", "reason": "position_open", ...}``
        - ``{"action": "order_placed", ...}``

        Raises:
            InvalidSizingInput: Degenerate risk-based sizing inputs.
            OrderDispatchError: The broker did not accept the order.
        """
        # 1 ── Monotonic bar-index gate
        if self._last_bar_index is not None and bar_index <= self._last_bar_index:
            return {"action": "skipped", "reason": "bar_already_evaluated"}
        self._last_bar_index = bar_index

        # 2 ── Sentinel / malformed bar
        if not bar.is_well_formed:
            logger.debug("Skipping malformed bar %d: %s", bar_index, bar)
            return {"action": "skipped", "reason": "malformed_bar"}

        self.state = "evaluating"
        try:
            self._window.push(bar)
            if not self._window.is_ready:
                return {"action": "skipped", "reason": "warming_up"}
            if self._last_tick is None:
                return {"action": "skipped", "reason": "no_tick"}

            # 3 ── Structure, trend, break
            signal = self.evaluate_signal()
            if signal is None:
                return {"action": "skipped", "reason": "no_signal"}

            logger.info(
                "Break of structure: %s %s at %.5f (bar %d, %s bias)",
                signal.direction, self._instrument, signal.trigger_price,
                bar_index, self.trend_bias().direction,
            )

            # 4 ── Position guard
            if await has_open_strategy_position(self._broker, self._instrument):
                self.state = "suppressed"
                logger.info(
                    "Suppressed %s signal — strategy position already open on %s",
                    signal.direction, self._instrument,
                )
                return {
                    "action": "suppressed",
                    "reason": "position_open",
                    "direction": signal.direction,
                }

            # 5 ── Bracket + sizing
            balance = None
            if isinstance(self._settings.sizing_policy, RiskPercent):
                summary = await self._broker.get_account_summary()
                balance = summary.balance
            bracket = self.build_bracket(signal, balance=balance)

            # 6 ── Submit
            self.state = "submitting"
            order_req = OrderRequest(
                instrument=self._instrument,
                direction=bracket.direction,
                volume=bracket.volume,
                label=bracket.label,
                stop_loss_price=bracket.stop_loss,
                take_profit_price=bracket.take_profit,
            )
            try:
                order_resp = await self._broker.submit_market_order(order_req)
            except OrderDispatchError:
                raise
            except Exception as exc:
                raise OrderDispatchError(
                    f"Order submission for {self._instrument} failed: {exc}"
                ) from exc

            logger.info(
                "Submitted %s %.2f lots %s (SL %.5f, TP %.5f) — order %s",
                bracket.label, bracket.volume, self._instrument,
                bracket.stop_loss, bracket.take_profit, order_resp.order_id,
            )
            return {
                "action": "order_placed",
                "order_id": order_resp.order_id,
                "direction": bracket.direction,
                "label": bracket.label,
                "volume": bracket.volume,
                "entry": bracket.entry_price,
                "sl": bracket.stop_loss,
                "tp": bracket.take_profit,
                "bar_index": bar_index,
            }
        finally:
            self.state = "idle"
