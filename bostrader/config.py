"""BOSTrader — application configuration.

Loads .env variables into a typed config object.
Validates required variables and strategy invariants on startup.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from bostrader.strategy.models import (
    INSTRUMENT_PIP_SIZES,
    FixedLot,
    FixedPips,
    RiskPercent,
    SizingPolicy,
    StrategySettings,
    SymbolMeta,
)


_REQUIRED_VARS = [
    "OANDA_ACCOUNT_ID",
    "OANDA_API_TOKEN",
    "OANDA_ENVIRONMENT",
]

SIZING_POLICIES = ("fixed_lot", "risk_percent", "fixed_pips")


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    oanda_account_id: str
    oanda_api_token: str
    oanda_environment: str  # "practice" or "live"
    instrument: str
    granularity: str
    poll_interval_seconds: int
    units_per_lot: int
    pip_size: float
    pip_value: float
    log_level: str
    strategy: StrategySettings

    @property
    def oanda_base_url(self) -> str:
        """Return the OANDA v20 API base URL based on environment."""
        if self.oanda_environment == "live":
            return "https://api-fxtrade.oanda.com"
        return "https://api-fxpractice.oanda.com"

    @property
    def symbol(self) -> SymbolMeta:
        return SymbolMeta(pip_size=self.pip_size, pip_value=self.pip_value)


def load_sizing_policy() -> SizingPolicy:
    """Build the sizing policy selected by ``SIZING_POLICY``.

    Raises ``ValueError`` for an unknown policy name or invalid values.
    """
    name = os.environ.get("SIZING_POLICY", "fixed_lot").strip().lower()
    if name == "fixed_lot":
        return FixedLot(volume=float(os.environ.get("FIXED_LOT_VOLUME", "0.01")))
    if name == "risk_percent":
        return RiskPercent(percent=float(os.environ.get("RISK_PERCENT", "1.0")))
    if name == "fixed_pips":
        return FixedPips(
            volume=float(os.environ.get("FIXED_PIPS_VOLUME", "0.01")),
            stop_loss_pips=float(os.environ.get("STOP_LOSS_PIPS", "20")),
            take_profit_pips=float(os.environ.get("TAKE_PROFIT_PIPS", "40")),
        )
    raise ValueError(
        f"Unknown SIZING_POLICY '{name}'. Available: {', '.join(SIZING_POLICIES)}"
    )


def load_strategy_settings() -> StrategySettings:
    """Read lookback, break threshold and sizing policy from the environment."""
    return StrategySettings(
        lookback_periods=int(os.environ.get("LOOKBACK_PERIODS", "10")),
        break_threshold_pips=float(os.environ.get("BREAK_THRESHOLD_PIPS", "2.0")),
        sizing_policy=load_sizing_policy(),
    )


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Raises ``ValueError`` with a message naming the missing variable when a
    required variable is absent, or describing the violated constraint when
    a strategy option is out of range.
    """
    load_dotenv(dotenv_path=env_path)

    missing = [v for v in _REQUIRED_VARS if not os.environ.get(v)]
    if missing:
        raise ValueError(
            f"Missing required environment variable(s): {', '.join(missing)}"
        )

    instrument = os.environ.get("TRADE_PAIR", "EUR_USD")
    default_pip_size = INSTRUMENT_PIP_SIZES.get(instrument, 0.0001)

    return Config(
        oanda_account_id=os.environ["OANDA_ACCOUNT_ID"],
        oanda_api_token=os.environ["OANDA_API_TOKEN"],
        oanda_environment=os.environ.get("OANDA_ENVIRONMENT", "practice"),
        instrument=instrument,
        granularity=os.environ.get("GRANULARITY", "H1"),
        poll_interval_seconds=int(os.environ.get("POLL_INTERVAL_SECONDS", "60")),
        units_per_lot=int(os.environ.get("UNITS_PER_LOT", "100000")),
        pip_size=float(os.environ.get("PIP_SIZE", str(default_pip_size))),
        pip_value=float(os.environ.get("PIP_VALUE", "10.0")),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        strategy=load_strategy_settings(),
    )
