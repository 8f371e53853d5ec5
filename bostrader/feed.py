"""Bar feed — polls the broker and drives the decision engine.

Assigns a monotonic index to every newly completed candle (keyed on the
candle time) so that each closed bar reaches the engine exactly once,
even across feed gaps or repeated polls.
"""

import asyncio
import logging
from typing import Optional

from bostrader.broker.models import Candle
from bostrader.engine import DecisionEngine
from bostrader.strategy.models import PriceBar

logger = logging.getLogger("bostrader.feed")


def candle_to_bar(candle: Candle) -> PriceBar:
    return PriceBar(
        time=candle.time,
        open=candle.open,
        high=candle.high,
        low=candle.low,
        close=candle.close,
        volume=candle.volume,
    )


class BarFeed:
    """Polling adapter between an ``OandaClient`` and a ``DecisionEngine``.

    Args:
        broker: An ``OandaClient`` (or compatible duck-type / mock).
        engine: The engine to feed.
        granularity: Candle granularity, e.g. ``"H1"``.
        history: Number of candles requested per poll.  Defaults to a few
                 more than the engine's window.
    """

    def __init__(
        self,
        broker,
        engine: DecisionEngine,
        granularity: str = "H1",
        history: Optional[int] = None,
    ) -> None:
        self._broker = broker
        self._engine = engine
        self._granularity = granularity
        self._history = history or engine.settings.lookback_periods + 5
        self._last_time: Optional[str] = None
        self._next_index: int = 0
        self._running: bool = False
        self._cycle_count: int = 0

    @property
    def cycle_count(self) -> int:
        return self._cycle_count

    def stop(self) -> None:
        """Signal the feed to stop after the current cycle."""
        self._running = False

    # ── Single poll ──────────────────────────────────────────────────────

    async def poll_once(self) -> list[dict]:
        """Fetch candles and price, then evaluate the newest closed bar.

        The first poll only warms the engine up with history.  When several
        bars closed since the last poll, the older ones are added to the
        window as stale bars and only the newest is evaluated.

        Returns:
            One engine result dict per newly closed bar (empty if none).
        """
        instrument = self._engine.instrument
        candles = await self._broker.fetch_candles(
            instrument, self._granularity, count=self._history,
        )
        tick = await self._broker.fetch_price(instrument)
        self._engine.on_tick(tick)

        closed = [c for c in candles if c.complete]
        if not closed:
            return []

        if self._last_time is None:
            bars = [candle_to_bar(c) for c in closed]
            self._next_index = len(bars)
            self._last_time = closed[-1].time
            self._engine.warm_up(bars, last_bar_index=self._next_index - 1)
            return []

        fresh = [c for c in closed if c.time > self._last_time]
        results: list[dict] = []
        for position, candle in enumerate(fresh):
            bar_index = self._next_index
            self._next_index += 1
            self._last_time = candle.time
            bar = candle_to_bar(candle)
            # Only the newest bar is judged against the live quote
            if position < len(fresh) - 1:
                result = self._engine.skip_bar(bar, bar_index)
            else:
                result = await self._engine.on_bar_close(bar, bar_index)
            logger.info(
                "Bar %d (%s): %s %s",
                bar_index, candle.time, result["action"], result.get("reason", ""),
            )
            results.append(result)
        return results

    # ── Polling loop ─────────────────────────────────────────────────────

    async def run(
        self,
        poll_interval: int = 60,
        max_cycles: int = 0,
    ) -> list[dict]:
        """Poll until stopped.

        Args:
            poll_interval: Seconds between polls.
            max_cycles: Stop after this many polls (0 = unlimited).

        Returns:
            Flat list of per-bar result dicts, plus one error dict for each
            failed poll.
        """
        self._running = True
        results: list[dict] = []
        cycle = 0

        while self._running:
            cycle += 1
            self._cycle_count += 1
            try:
                results.extend(await self.poll_once())
            except Exception as exc:
                logger.error("Cycle %d error: %s", cycle, exc)
                results.append({"action": "error", "reason": str(exc)})

            if max_cycles > 0 and cycle >= max_cycles:
                break

            # Interruptible sleep — checks _running every second
            for _ in range(poll_interval):
                if not self._running:
                    break
                await asyncio.sleep(1)

        self._running = False
        return results
