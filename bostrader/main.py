"""BOSTrader — application entry point.

Provides the CLI entry point for paper (OANDA practice) and live modes.
"""

import logging

logger = logging.getLogger("bostrader")


def warn_if_live(mode: str) -> bool:
    """Log a prominent warning when running in live mode.

    Returns ``True`` if *mode* is ``"live"``.
    """
    if mode == "live":
        logger.warning(
            "LIVE TRADING MODE — Real money at risk! Starting in 5 seconds..."
        )
        return True
    return False


def check_mode(mode: str, environment: str) -> None:
    """Refuse to run when the CLI mode and the OANDA environment disagree."""
    expected = "live" if mode == "live" else "practice"
    if environment != expected:
        raise ValueError(
            f"--mode {mode} requires OANDA_ENVIRONMENT={expected}, "
            f"got '{environment}'"
        )


# ── CLI ──────────────────────────────────────────────────────────────────


def _run_cli() -> None:
    """Parse CLI arguments and start the bar feed."""
    import argparse
    import asyncio
    import signal
    import time

    from bostrader.broker.oanda_client import OandaClient
    from bostrader.config import load_config
    from bostrader.engine import DecisionEngine
    from bostrader.feed import BarFeed

    parser = argparse.ArgumentParser(description="BOSTrader break-of-structure bot")
    parser.add_argument(
        "--mode",
        choices=["paper", "live"],
        default="paper",
        help="Trading mode (default: paper)",
    )
    parser.add_argument(
        "--max-cycles",
        type=int,
        default=0,
        help="Stop after this many polls (default: run until interrupted)",
    )
    args = parser.parse_args()

    config = load_config()

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    check_mode(args.mode, config.oanda_environment)
    if warn_if_live(args.mode):
        time.sleep(5)

    broker = OandaClient(config)
    engine = DecisionEngine(
        settings=config.strategy,
        broker=broker,
        instrument=config.instrument,
        symbol=config.symbol,
    )
    feed = BarFeed(broker, engine, granularity=config.granularity)

    def handle_shutdown(signum, frame):
        logger.info("Shutdown signal received — stopping gracefully.")
        feed.stop()

    signal.signal(signal.SIGINT, handle_shutdown)

    logger.info(
        "Starting BOSTrader in %s mode on %s %s (lookback=%d, threshold=%.1f pips, policy=%s)",
        args.mode, config.instrument, config.granularity,
        config.strategy.lookback_periods,
        config.strategy.break_threshold_pips,
        type(config.strategy.sizing_policy).__name__,
    )
    asyncio.run(
        feed.run(
            poll_interval=config.poll_interval_seconds,
            max_cycles=args.max_cycles,
        )
    )
    logger.info("BOSTrader stopped.")


if __name__ == "__main__":
    _run_cli()
