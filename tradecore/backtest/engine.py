"""Backtest engine: replays historical candles through a strategy.

Runs the strategy executor over an ascending candle series, then walks the
resulting signal trace with a single virtual position, compounding capital
on every realized trade.  No fills, slippage or fees are simulated.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Optional, Sequence

from tradecore.backtest.models import (
    BacktestRequest,
    BacktestResult,
    BacktestRow,
    BacktestSummary,
    BacktestTrade,
)
from tradecore.backtest.stats import calculate_summary
from tradecore.config import Config
from tradecore.errors import InsufficientData
from tradecore.executor import StrategyExecutor
from tradecore.market.source import CandleSource
from tradecore.models.candle import Candlestick, assert_ascending
from tradecore.risk.drawdown import DrawdownTracker
from tradecore.strategy.base import StrategyProtocol
from tradecore.strategy.models import SignalRow
from tradecore.utils.periods import period_to_seconds

logger = logging.getLogger("tradecore.backtest")

DEFAULT_INITIAL_CAPITAL = 1000.0
DEFAULT_PREFILL_CANDLES = 200


def _unrealized_pct(side: str, entry_price: float, price: float) -> float:
    if side == "long":
        return ((price - entry_price) / entry_price) * 100
    return ((entry_price - price) / entry_price) * 100


class BacktestEngine:
    """Simulates trading a strategy's signals on historical candles.

    Args:
        executor: Strategy executor; a default in-process one when omitted.
        candle_source: History source used by ``run``.
        config: Application configuration (initial capital, prefill size).
    """

    def __init__(
        self,
        executor: Optional[StrategyExecutor] = None,
        candle_source: Optional[CandleSource] = None,
        config: Optional[Config] = None,
    ) -> None:
        self._executor = executor or StrategyExecutor()
        self._candle_source = candle_source
        self._initial_capital = (
            config.initial_capital if config else DEFAULT_INITIAL_CAPITAL
        )
        self._prefill = (
            config.backtest_prefill_candles if config else DEFAULT_PREFILL_CANDLES
        )

    # ── Public API ───────────────────────────────────────────────────────

    def run_with_candles(
        self,
        strategy: StrategyProtocol,
        candles: Sequence[Candlestick],
        initial_capital: Optional[float] = None,
    ) -> BacktestResult:
        """Execute a full backtest over pre-fetched ascending *candles*.

        Raises ``OrderingViolation`` for a newest-first series and
        ``InsufficientData`` for an empty one.
        """
        assert_ascending(candles)
        if not candles:
            raise InsufficientData("Cannot backtest an empty candle series")

        capital = self._initial_capital if initial_capital is None else initial_capital
        first = candles[0]

        signal_rows = self._executor.execute(strategy, candles)
        rows, trades, summary = self.process_signals(signal_rows, capital)

        logger.info(
            "Backtest %s on %s:%s:%s: %d candles, %d trades, %.2f%% profit",
            strategy.name, first.exchange, first.symbol, first.period,
            len(candles), summary.total_trades, summary.total_profit_percent,
        )

        return BacktestResult(
            strategy_name=strategy.name,
            exchange=first.exchange,
            symbol=first.symbol,
            period=first.period,
            start_time=datetime.fromtimestamp(first.time, tz=timezone.utc),
            end_time=datetime.fromtimestamp(candles[-1].time, tz=timezone.utc),
            summary=summary,
            trades=trades,
            rows=rows,
            indicator_keys=list(strategy.define_indicators().keys()),
            candles=list(candles),
        )

    async def run(
        self,
        strategy: StrategyProtocol,
        request: BacktestRequest,
        now: Optional[int] = None,
    ) -> BacktestResult:
        """Fetch candles for *request* (plus warm-up prefill) and backtest.

        Raises ``InsufficientData`` when the source returns no candles.
        """
        if self._candle_source is None:
            raise RuntimeError("BacktestEngine.run needs a candle source")

        if now is None:
            now = int(time.time())

        if request.hours is not None:
            end_ts = now
            start_ts = end_ts - request.hours * 3600
        else:
            start_ts = int(request.start.timestamp())
            end_ts = int(request.end.timestamp()) if request.end else now

        prefill_ts = start_ts - self._prefill * period_to_seconds(request.period)

        newest_first = await self._candle_source.fetch_since(
            request.exchange, request.symbol, request.period, prefill_ts,
        )
        candles = [c for c in reversed(newest_first) if c.time <= end_ts]

        if not candles:
            raise InsufficientData(
                f"No candles found for {request.exchange}:{request.symbol}:{request.period}"
            )

        return self.run_with_candles(strategy, candles, request.initial_capital)

    def process_signals(
        self,
        signal_rows: Sequence[SignalRow],
        initial_capital: float,
    ) -> tuple[list[BacktestRow], list[BacktestTrade], BacktestSummary]:
        """Turn a signal trace into trades and summary statistics.

        One position at a time: entries while positioned and closes while
        flat are ignored.  A position still open after the last row is
        closed at that row's price and compounded like any other trade.
        """
        rows: list[BacktestRow] = []
        trades: list[BacktestTrade] = []

        position: Optional[dict] = None
        capital = initial_capital
        tracker = DrawdownTracker(initial_capital)

        for row in signal_rows:
            profit_pct: Optional[float] = None
            if position is not None:
                profit_pct = _unrealized_pct(position["side"], position["entry_price"], row.price)
                tracker.update(capital * (1 + profit_pct / 100))

            rows.append(BacktestRow(
                time=row.time,
                price=row.price,
                signal=row.signal,
                debug=row.debug,
                position=position["side"] if position else None,
                profit_percent=profit_pct,
            ))

            if row.signal in ("long", "short") and position is None:
                position = {"side": row.signal, "entry_price": row.price, "entry_time": row.time}
            elif row.signal == "close" and position is not None:
                trades.append(self._close(position, row.time, row.price, profit_pct, capital))
                capital *= 1 + profit_pct / 100
                position = None

        if position is not None and rows:
            last = rows[-1]
            profit_pct = _unrealized_pct(position["side"], position["entry_price"], last.price)
            trades.append(self._close(position, last.time, last.price, profit_pct, capital))
            capital *= 1 + profit_pct / 100

        summary = calculate_summary(trades, initial_capital, capital, tracker.max_drawdown_pct)
        return rows, trades, summary

    # ── Helpers ──────────────────────────────────────────────────────────

    @staticmethod
    def _close(
        position: dict,
        exit_time: int,
        exit_price: float,
        profit_pct: float,
        capital: float,
    ) -> BacktestTrade:
        return BacktestTrade(
            entry_time=position["entry_time"],
            exit_time=exit_time,
            entry_price=position["entry_price"],
            exit_price=exit_price,
            side=position["side"],
            profit_percent=profit_pct,
            profit_absolute=capital * (profit_pct / 100),
        )
