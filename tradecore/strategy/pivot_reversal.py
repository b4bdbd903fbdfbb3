"""Pivot reversal strategy: pivot breakouts in the SMA trend direction.

Long:  price above the SMA and the 7-close average breaks above a recent
       pivot high.
Short: price below the SMA and the 7-close average breaks below a recent
       pivot low.
Only opens positions; closing is left to an external watchdog.
"""

from typing import Optional

from tradecore.strategy.base import SignalCollector, StrategyContext, resolve_options
from tradecore.strategy.pipeline import IndicatorDefinition, indicator


class PivotReversalStrategy:
    """Implements ``StrategyProtocol``."""

    name = "pivot_reversal"

    def __init__(self, options: Optional[dict] = None) -> None:
        self.options = resolve_options(self.default_options(), options)

    def description(self) -> str:
        return "Pivot reversal entries filtered by SMA200 trend direction"

    def default_options(self) -> dict:
        return {"left": 4, "right": 2, "sma_length": 200}

    def define_indicators(self) -> dict[str, IndicatorDefinition]:
        return {
            "pivot_points": indicator.pivot_points_high_low(
                left=self.options["left"], right=self.options["right"],
            ),
            "sma200": indicator.sma(length=self.options["sma_length"]),
        }

    def execute(self, context: StrategyContext, signal: SignalCollector) -> None:
        sma_values = context.get_indicator_values("sma200")
        pivots = context.get_indicator("pivot_points")

        if len(sma_values) < 10 or not len(pivots):
            return

        sma = sma_values[-1]
        signal.debug(sma200=round(sma, 2))

        if context.last_signal is not None:
            return

        is_long = context.price > sma

        last_prices = context.get_last_prices(7)
        if len(last_prices) < 7:
            return
        avg_close = sum(last_prices) / len(last_prices)

        # newest first
        for pivot in reversed(pivots[-3:]):
            if not pivot:
                continue

            if not is_long and "low" in pivot:
                if avg_close < pivot["low"]:
                    signal.debug(pivot_low=pivot["low"], avg_close=round(avg_close, 2))
                    signal.go_short()
                break

            if is_long and "high" in pivot:
                if avg_close > pivot["high"]:
                    signal.debug(pivot_high=pivot["high"], avg_close=round(avg_close, 2))
                    signal.go_long()
                break
