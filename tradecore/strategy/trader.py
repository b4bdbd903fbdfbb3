"""Bollinger squeeze breakout: long only, experimental.

Opens long when price closes above the upper band while the band width is
below ``bb_width_threshold``.  No auto-close.
"""

from typing import Optional

from tradecore.strategy.base import SignalCollector, StrategyContext, resolve_options
from tradecore.strategy.pipeline import IndicatorDefinition, indicator


class TraderStrategy:
    """Implements ``StrategyProtocol``."""

    name = "trader"

    def __init__(self, options: Optional[dict] = None) -> None:
        self.options = resolve_options(self.default_options(), options)

    def description(self) -> str:
        return "Bollinger Bands squeeze breakout: long only (experimental)"

    def default_options(self) -> dict:
        return {"bb_length": 40, "bb_width_threshold": 0.05}

    def define_indicators(self) -> dict[str, IndicatorDefinition]:
        return {"bb": indicator.bb(length=self.options["bb_length"])}

    def execute(self, context: StrategyContext, signal: SignalCollector) -> None:
        bands = context.get_indicator_values("bb")
        if not bands:
            return

        bb = bands[-1]
        signal.debug(bb_upper=round(bb["upper"], 2), bb_width=round(bb["width"], 4))

        if context.price > bb["upper"] and bb["width"] < self.options["bb_width_threshold"]:
            signal.go_long()
