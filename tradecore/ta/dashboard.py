"""Dashboard TA batch: indicator snapshots for many symbols and periods.

For every (symbol, period) pair the latest 200 stored candles are loaded,
a fixed set of dashboard indicators is computed together with the
advanced TA score, and the results are folded into one row per symbol.

Library API: the host service supplies the ``CandleRepository`` and calls
``TaDashboard.get_ta_for_periods`` on its own schedule.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from tradecore.errors import InsufficientData
from tradecore.market.source import CandleRepository
from tradecore.models.candle import Candlestick, assert_ascending
from tradecore.strategy.pipeline import (
    DefaultIndicatorPipeline,
    IndicatorDefinition,
    IndicatorPipeline,
    indicator,
)
from tradecore.ta.advanced import AdvancedTA, AdvancedTAResult

logger = logging.getLogger("tradecore.ta")

DASHBOARD_LOOKBACK = 200
_DAY_SECONDS = 24 * 3600
_DAY_TOLERANCE_SECONDS = 35 * 60

# Minutes per index step when reporting "crossed N minutes ago".
_CROSS_MULTIPLIER = {"1h": 60, "15m": 15}

_TRENDED_KEYS = ("ema_200", "ema_55", "cci", "rsi", "mfi")


@dataclass(frozen=True)
class TaSymbol:
    exchange: str
    symbol: str


def _dashboard_basket() -> dict[str, IndicatorDefinition]:
    return {
        "sma_200": indicator.sma(length=200),
        "sma_50": indicator.sma(length=50),
        "ema_55": indicator.ema(length=55),
        "ema_200": indicator.ema(length=200),
        "rsi": indicator.rsi(length=14),
        "cci": indicator.cci(length=20),
        "ao": indicator.ao(),
        "macd": indicator.macd(fast_length=12, slow_length=26, signal_length=9),
        "mfi": indicator.mfi(length=14),
        "bollinger_bands": indicator.bb(length=20, stddev=2),
    }


# ── Series helpers ───────────────────────────────────────────────────────


def trend_direction(values: Sequence[float]) -> Optional[str]:
    """``"down"`` when the mean of the three previous values exceeds the last."""
    if len(values) < 4:
        return None
    previous = (values[-2] + values[-3] + values[-4]) / 3
    return "down" if previous > values[-1] else "up"


def trend_direction_last_item(values: Sequence[float]) -> Optional[str]:
    if len(values) < 2:
        return None
    return "down" if values[-2] > values[-1] else "up"


def crossed_since(values: Sequence[float]) -> Optional[int]:
    """Steps back to the most recent zero-line cross, or ``None``."""
    newest_first = list(reversed(values))
    if not newest_first:
        return None
    current = newest_first[0]
    for i in range(1, len(newest_first) - 1):
        if (current < 0 and newest_first[i] > 0) or (current >= 0 and newest_first[i] < 0):
            return i
    return None


def bollinger_percent(price: float, upper: float, lower: float) -> float:
    return (price - lower) / (upper - lower)


# ── Dashboard ────────────────────────────────────────────────────────────


class TaDashboard:
    """Builds the per-symbol TA overview.

    Args:
        repository: Stored candles (returned newest first).
        pipeline: Indicator pipeline; in-process default when omitted.
    """

    def __init__(
        self,
        repository: CandleRepository,
        pipeline: Optional[IndicatorPipeline] = None,
    ) -> None:
        self._repository = repository
        self._pipeline = pipeline or DefaultIndicatorPipeline()
        self._advanced = AdvancedTA(self._pipeline)

    async def get_ta_for_periods(
        self,
        periods: list[str],
        symbols: list[TaSymbol],
        now: Optional[int] = None,
    ) -> dict[str, Any]:
        """Indicator snapshot per symbol and period.

        A symbol listed on several exchanges is evaluated once, for the
        exchange listed last.  Symbols without candles still get a row.
        """
        if now is None:
            now = int(time.time())

        unique: dict[str, TaSymbol] = {}
        for s in symbols:
            unique[s.symbol] = s

        jobs = [
            self._evaluate(s, period, now)
            for s in unique.values()
            for period in periods
        ]
        results = [r for r in await asyncio.gather(*jobs) if r is not None]

        rows: dict[str, dict[str, Any]] = {
            s.symbol: {
                "symbol": s.symbol,
                "exchange": s.exchange,
                "ticker": {"bid": 0.0, "ask": 0.0},
                "ta": {},
                "percentage_change": None,
            }
            for s in unique.values()
        }

        for result in results:
            row = rows[result["symbol"]]
            row["ticker"] = {"bid": result["price"], "ask": result["price"]}
            row["percentage_change"] = result["percentage_change"]
            row["ta"][result["period"]] = self._flatten(
                result["ta"], result["period"], result["price"],
            )

            advanced: Optional[AdvancedTAResult] = result["advanced_ta"]
            if advanced is not None:
                row["advanced_ta"] = {
                    "score": advanced.score,
                    "signal": advanced.signal,
                    "divergences": advanced.divergences,
                    "squeeze": advanced.squeeze,
                }

        return {"rows": rows, "periods": periods}

    # ── Helpers ──────────────────────────────────────────────────────────

    async def _evaluate(self, s: TaSymbol, period: str, now: int) -> Optional[dict]:
        newest_first = await self._repository.get_lookbacks(
            s.exchange, s.symbol, period, DASHBOARD_LOOKBACK,
        )
        if not newest_first:
            return None

        day_ago = now - _DAY_SECONDS
        day_candle = next(
            (
                c for c in newest_first
                if day_ago - _DAY_TOLERANCE_SECONDS < c.time < day_ago + _DAY_TOLERANCE_SECONDS
            ),
            None,
        )
        change = None
        if day_candle is not None:
            change = 100 * (newest_first[0].close / day_candle.close) - 100

        candles = list(reversed(newest_first))
        ta, advanced = await asyncio.to_thread(self._compute, candles)

        return {
            "symbol": s.symbol,
            "exchange": s.exchange,
            "period": period,
            "ta": ta,
            "price": newest_first[0].close,
            "percentage_change": change,
            "advanced_ta": advanced,
        }

    def _compute(
        self, candles: list[Candlestick],
    ) -> tuple[dict[str, list], Optional[AdvancedTAResult]]:
        assert_ascending(candles)
        raw = self._pipeline.compute(candles, _dashboard_basket())
        ta = {name: [v for v in series if v is not None] for name, series in raw.items()}

        advanced = None
        try:
            advanced = self._advanced.analyze(candles)
        except InsufficientData as exc:
            logger.debug("No advanced TA for %s:%s: %s", candles[-1].symbol, candles[-1].period, exc)
        return ta, advanced

    @staticmethod
    def _flatten(ta: dict[str, list], period: str, price: float) -> dict[str, dict]:
        values: dict[str, dict] = {}
        multiplier = _CROSS_MULTIPLIER.get(period, 1)

        for key, series in ta.items():
            entry: dict[str, Any] = {"value": series[-1] if series else None}

            if key in ("macd", "ao"):
                numbers = [m["histogram"] for m in series] if key == "macd" else list(series)
                entry["trend"] = trend_direction_last_item(numbers[-2:])
                crossed = crossed_since(numbers)
                if crossed:
                    entry["crossed"] = crossed * multiplier
                    entry["crossed_index"] = crossed
            elif key == "bollinger_bands":
                bb = entry["value"]
                entry["percent"] = (
                    bollinger_percent(price, bb["upper"], bb["lower"]) * 100
                    if bb and bb["upper"] and bb["lower"] and bb["upper"] != bb["lower"]
                    else None
                )
            elif key in _TRENDED_KEYS:
                entry["trend"] = trend_direction(series[-5:])

            values[key] = entry

        return values
