"""OBV pump strategy: long-only OBV surge above an EMA trend filter.

Opens long when price is above the EMA and the average OBV of the last
``trigger_time_windows`` candles is at least ``trigger_multiplier`` times
the average of the highest OBV readings in the 20 candles before that.
Never closes on its own.
"""

from typing import Optional

from tradecore.strategy.base import SignalCollector, StrategyContext, resolve_options
from tradecore.strategy.pipeline import IndicatorDefinition, indicator


class ObvPumpDumpStrategy:
    """Implements ``StrategyProtocol``."""

    name = "obv_pump_dump"

    def __init__(self, options: Optional[dict] = None) -> None:
        self.options = resolve_options(self.default_options(), options)

    def description(self) -> str:
        return "OBV pump/dump detection with EMA200 trend filter (long only)"

    def default_options(self) -> dict:
        return {
            "trigger_multiplier": 2.0,
            "trigger_time_windows": 3,
            "ema_length": 200,
        }

    def define_indicators(self) -> dict[str, IndicatorDefinition]:
        return {
            "obv": indicator.obv(),
            "ema": indicator.ema(length=self.options["ema_length"]),
        }

    def execute(self, context: StrategyContext, signal: SignalCollector) -> None:
        price = context.price
        multiplier = self.options["trigger_multiplier"]
        windows = self.options["trigger_time_windows"]

        obv_values = context.get_indicator_values("obv")
        ema_values = context.get_indicator_values("ema")

        if len(obv_values) <= 20 or not ema_values:
            return

        ema = ema_values[-1]
        signal.debug(obv=obv_values[-1], ema=round(ema, 2))

        if price <= ema:
            signal.debug(trend="down")
            return

        signal.debug(trend="up")

        end = len(obv_values) - windows
        start = max(0, end - 20)
        before = obv_values[start:end]
        if not before:
            return

        highest = sorted(before, reverse=True)[:windows]
        highest_average = sum(highest) / len(highest)

        current = obv_values[-windows:]
        current_average = sum(current) / len(current)

        signal.debug(
            highest_overage=round(highest_average),
            current_average=round(current_average),
        )

        if current_average <= highest_average:
            return

        difference = abs(current_average / highest_average) if highest_average else float("inf")
        signal.debug(difference=round(difference, 2))

        if difference >= multiplier:
            signal.go_long()
