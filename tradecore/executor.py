"""tradecore: Strategy executor.

Runs a strategy over an ascending candle series, one step per candle, and
records a ``SignalRow`` for each.  The same loop backs both regimes:

* historical replay: ``execute`` over a full series;
* live evaluation: ``execute_strategy`` sources the latest closed candles,
  runs ``execute`` and returns the signal of the final row, optionally
  cross-checked by the AI filter.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Optional, Sequence

from tradecore.ai.filter import AiAnalysisInput, AiFilter
from tradecore.config import Config
from tradecore.errors import OrderingViolation
from tradecore.market.source import CandleSource
from tradecore.models.candle import Candlestick, assert_ascending
from tradecore.strategy.base import (
    SeriesView,
    SignalCollector,
    StrategyContext,
    StrategyProtocol,
)
from tradecore.strategy.models import Signal, SignalRow, next_last_signal
from tradecore.strategy.pipeline import DefaultIndicatorPipeline, IndicatorPipeline
from tradecore.strategy.registry import get_strategy
from tradecore.utils.periods import current_period_start, last_closed_period_start

logger = logging.getLogger("tradecore.executor")

DEFAULT_LIVE_LOOKBACK = 500
DEFAULT_AI_MIN_CONFIDENCE = 0.7


def _iso(ts: int) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


class StrategyExecutor:
    """Evaluates strategies step by step over candle series.

    Args:
        candle_source: Stream-backed store used on the live path.
        history_source: REST history used when the pair is not streamed.
                        Defaults to *candle_source*.
        pipeline: Indicator pipeline; in-process default when omitted.
        ai_filter: Optional advisory filter for live signals.
        config: Application configuration (live lookback, AI filter
                switch and minimum confidence).
        lookback: Number of candles fetched per live evaluation; overrides
                  ``config.live_lookback_candles``.
    """

    def __init__(
        self,
        candle_source: Optional[CandleSource] = None,
        history_source: Optional[CandleSource] = None,
        pipeline: Optional[IndicatorPipeline] = None,
        ai_filter: Optional[AiFilter] = None,
        config: Optional[Config] = None,
        lookback: Optional[int] = None,
    ) -> None:
        self._candle_source = candle_source
        self._history_source = history_source or candle_source
        self._pipeline = pipeline or DefaultIndicatorPipeline()
        self._ai_filter = ai_filter
        if lookback is None:
            lookback = config.live_lookback_candles if config else DEFAULT_LIVE_LOOKBACK
        self._lookback = lookback
        self._ai_enabled = config.ai_filter_enabled if config else True
        self._ai_min_confidence = (
            config.ai_min_confidence if config else DEFAULT_AI_MIN_CONFIDENCE
        )

    # ── Historical replay ────────────────────────────────────────────────

    def execute(
        self,
        strategy: StrategyProtocol,
        candles: Sequence[Candlestick],
    ) -> list[SignalRow]:
        """Run *strategy* over every candle and return one row per candle.

        Raises ``OrderingViolation`` for a newest-first series.  A step that
        raises is logged and recorded as a row without a signal.
        """
        assert_ascending(candles)
        if not candles:
            return []

        arrays = self._pipeline.compute(candles, strategy.define_indicators())
        closes = [c.close for c in candles]

        rows: list[SignalRow] = []
        last_signal: Optional[Signal] = None

        for i, candle in enumerate(candles):
            end = i + 1
            context = StrategyContext(
                price=candle.close,
                indicators={name: SeriesView(values, end) for name, values in arrays.items()},
                last_signal=last_signal,
                prices=SeriesView(closes, end),
            )
            collector = SignalCollector()

            try:
                strategy.execute(context, collector)
            except Exception as exc:
                logger.error(
                    "Strategy '%s' failed on %s:%s:%s @ %s: %s",
                    strategy.name, candle.exchange, candle.symbol,
                    candle.period, _iso(candle.time), exc,
                )
                rows.append(SignalRow(time=candle.time, price=candle.close))
                continue

            emitted = collector.signal
            rows.append(SignalRow(
                time=candle.time,
                price=candle.close,
                signal=emitted,
                debug=collector.get_debug(),
            ))
            last_signal = next_last_signal(last_signal, emitted)

        return rows

    # ── Live evaluation ──────────────────────────────────────────────────

    async def execute_strategy(
        self,
        strategy_name: str,
        exchange: str,
        symbol: str,
        period: str,
        options: Optional[dict] = None,
        now: Optional[int] = None,
    ) -> Optional[Signal]:
        """Evaluate one live tick and return the latest signal, if any.

        Returns ``None`` when no candles are available, the data is stale,
        the series is misordered, no signal fired, or the AI filter
        rejected the signal.
        """
        if now is None:
            now = int(time.time())

        candles = await self._load_live_candles(exchange, symbol, period, now)
        if not candles:
            return None

        if candles[0].time > candles[-1].time:
            logger.error(
                "Candles for %s:%s:%s are not in ascending order @ %s",
                exchange, symbol, period, _iso(now),
            )
            return None

        strategy = get_strategy(strategy_name, options)

        try:
            rows = self.execute(strategy, candles)
        except OrderingViolation as exc:
            logger.error("%s:%s:%s: %s", exchange, symbol, period, exc)
            return None

        if not rows:
            return None

        last = rows[-1]
        signal = last.signal
        if signal is None:
            return None

        if (
            not self._ai_enabled
            or self._ai_filter is None
            or not self._ai_filter.is_enabled()
        ):
            return signal

        previous_signal = rows[-2].signal if len(rows) > 1 else None
        try:
            verdict = await self._ai_filter.analyze(AiAnalysisInput(
                pair=symbol,
                exchange=exchange,
                signal=signal,
                price=last.price,
                indicators=dict(last.debug),
                last_signal=previous_signal,
                timeframe=period,
            ))
        except Exception as exc:
            logger.warning(
                "AI filter failed for %s:%s:%s @ %s: %s (proceeding unfiltered)",
                exchange, symbol, period, _iso(last.time), exc,
            )
            return signal

        if not verdict.confirmed or verdict.confidence < self._ai_min_confidence:
            logger.info(
                "AI filter rejected %s on %s:%s:%s (action=%s, confidence=%.2f, min=%.2f): %s",
                signal, exchange, symbol, period, verdict.action,
                verdict.confidence, self._ai_min_confidence, verdict.reasoning,
            )
            return None

        logger.info(
            "AI filter confirmed %s on %s:%s:%s (action=%s, confidence=%.2f, risk=%s)",
            signal, exchange, symbol, period, verdict.action,
            verdict.confidence, verdict.risk_level,
        )
        return signal

    async def _load_live_candles(
        self,
        exchange: str,
        symbol: str,
        period: str,
        now: int,
    ) -> list[Candlestick]:
        """Latest closed candles, ascending; empty list on any failure."""
        if self._candle_source is None:
            logger.error("No candle source configured for %s:%s:%s", exchange, symbol, period)
            return []

        # Only closed candles are evaluated, on both paths.
        open_start = current_period_start(period, now)

        try:
            if self._candle_source.is_streaming(exchange, symbol, period):
                newest_first = await self._candle_source.fetch(
                    exchange, symbol, period, self._lookback,
                )
                candles = [c for c in reversed(newest_first) if c.time < open_start]
            else:
                logger.debug(
                    "%s:%s:%s is not streamed, falling back to history",
                    exchange, symbol, period,
                )
                fetched = await self._history_source.fetch(
                    exchange, symbol, period, self._lookback,
                )
                candles = sorted(
                    (c for c in fetched if c.time < open_start),
                    key=lambda c: c.time,
                )
        except Exception as exc:
            logger.error(
                "Candle fetch failed for %s:%s:%s @ %s: %s",
                exchange, symbol, period, _iso(now), exc,
            )
            return []

        if not candles:
            logger.info("No candles for %s:%s:%s @ %s", exchange, symbol, period, _iso(now))
            return []

        expected = last_closed_period_start(period, now)
        newest = max(candles[0].time, candles[-1].time)
        if newest < expected:
            logger.warning(
                "Stale candles for %s:%s:%s: newest %s, expected %s",
                exchange, symbol, period, _iso(newest), _iso(expected),
            )
            return []

        return candles
