"""tradecore: application configuration.

Loads .env variables into a typed config object.
Validates value ranges on startup.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv


_TRUTHY = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    log_level: str
    initial_capital: float
    live_lookback_candles: int
    backtest_prefill_candles: int
    ai_filter_enabled: bool
    ai_min_confidence: float
    price_cache_ttl_seconds: int
    price_api_url: str


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Raises ``ValueError`` with a message naming the variable when
    ``AI_MIN_CONFIDENCE`` lies outside [0, 1].
    """
    load_dotenv(dotenv_path=env_path)

    ai_enabled = os.environ.get("AI_FILTER_ENABLED", "false").strip().lower() in _TRUTHY
    ai_min_confidence = float(os.environ.get("AI_MIN_CONFIDENCE", "0.7"))

    if not 0.0 <= ai_min_confidence <= 1.0:
        raise ValueError(
            f"AI_MIN_CONFIDENCE must be between 0 and 1, got {ai_min_confidence}"
        )

    return Config(
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        initial_capital=float(os.environ.get("INITIAL_CAPITAL", "1000")),
        live_lookback_candles=int(os.environ.get("LIVE_LOOKBACK_CANDLES", "500")),
        backtest_prefill_candles=int(os.environ.get("BACKTEST_PREFILL_CANDLES", "200")),
        ai_filter_enabled=ai_enabled,
        ai_min_confidence=ai_min_confidence,
        price_cache_ttl_seconds=int(os.environ.get("PRICE_CACHE_TTL_SECONDS", "3600")),
        price_api_url=os.environ.get(
            "PRICE_API_URL", "https://api.binance.com/api/v3/ticker/price",
        ),
    )
