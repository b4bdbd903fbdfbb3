"""SignalRunner: evaluates many live pairs concurrently.

Each enabled pair is evaluated through ``StrategyExecutor.execute_strategy``
when a candle of its period has just closed.  Pairs run as concurrent
``asyncio`` tasks; one failing pair never affects the others.

Library API for a long-running host process; the CLI does not start it.
"""

import asyncio
import logging
import time
from typing import Optional

from tradecore.executor import StrategyExecutor
from tradecore.models.pair_config import PairConfig
from tradecore.strategy.models import Signal
from tradecore.utils.periods import period_to_minutes

logger = logging.getLogger("tradecore.runner")

# Seconds after the minute boundary, so the exchange has closed the candle.
_TICK_OFFSET_SECONDS = 8


class SignalRunner:
    """Lifecycle manager for live pair evaluation.

    Args:
        executor: Shared ``StrategyExecutor``.
        pairs:    ``PairConfig`` items; disabled ones are dropped.
    """

    def __init__(self, executor: StrategyExecutor, pairs: list[PairConfig]) -> None:
        self._executor = executor
        self._pairs = [p for p in pairs if p.enabled]
        self._running = False
        self._cycle_count = 0

    # ── Public API ───────────────────────────────────────────────────────

    @property
    def pair_names(self) -> list[str]:
        return [p.name for p in self._pairs]

    def due_pairs(self, now: int) -> list[PairConfig]:
        """Pairs whose period boundary falls on the minute containing *now*."""
        minutes = now // 60
        due = []
        for pair in self._pairs:
            try:
                period_minutes = period_to_minutes(pair.period)
            except ValueError:
                logger.warning(
                    "Pair '%s' has unsupported period '%s', skipping",
                    pair.name, pair.period,
                )
                continue
            if minutes % period_minutes == 0:
                due.append(pair)
        return due

    async def evaluate_all(
        self,
        pairs: Optional[list[PairConfig]] = None,
        now: Optional[int] = None,
    ) -> dict[str, Optional[Signal]]:
        """Evaluate *pairs* (default: all enabled) concurrently.

        Returns:
            ``{pair_name: signal_or_None}``; a crashed pair maps to ``None``.
        """
        targets = self._pairs if pairs is None else pairs

        async def _evaluate(pair: PairConfig) -> Optional[Signal]:
            try:
                signal = await self._executor.execute_strategy(
                    pair.strategy, pair.exchange, pair.symbol, pair.period,
                    pair.options, now=now,
                )
            except Exception as exc:
                logger.error(
                    "Pair '%s' (%s %s:%s %s) failed: %s",
                    pair.name, pair.strategy, pair.exchange, pair.symbol,
                    pair.period, exc,
                )
                return None
            if signal is not None:
                logger.info(
                    "Signal '%s' on %s:%s via '%s'",
                    signal, pair.exchange, pair.symbol, pair.strategy,
                )
            return signal

        results = await asyncio.gather(*(_evaluate(p) for p in targets))
        return {p.name: r for p, r in zip(targets, results)}

    async def tick(self, now: Optional[int] = None) -> dict[str, Optional[Signal]]:
        """Evaluate the pairs that are due at *now*."""
        if now is None:
            now = int(time.time())
        due = self.due_pairs(now)
        if not due:
            return {}
        self._cycle_count += 1
        return await self.evaluate_all(due, now=now)

    async def run(self, max_cycles: int = 0) -> list[dict[str, Optional[Signal]]]:
        """Tick once per minute until stopped or *max_cycles* ticks ran."""
        self._running = True
        results: list[dict[str, Optional[Signal]]] = []
        ticks = 0

        while self._running:
            now = time.time()
            delay = (60 - now % 60) + _TICK_OFFSET_SECONDS
            await asyncio.sleep(delay)
            if not self._running:
                break

            results.append(await self.tick())
            ticks += 1
            if max_cycles and ticks >= max_cycles:
                break

        self._running = False
        return results

    def stop(self) -> None:
        """Signal the runner to stop after the current tick."""
        self._running = False
        logger.info("Stop signal sent to signal runner.")

    def get_status(self) -> dict:
        return {
            "running": self._running,
            "cycle_count": self._cycle_count,
            "pairs": {
                p.name: {
                    "exchange": p.exchange,
                    "symbol": p.symbol,
                    "period": p.period,
                    "strategy": p.strategy,
                }
                for p in self._pairs
            },
        }
