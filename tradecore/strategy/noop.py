"""Noop strategy: random dice-roll entries for testing the pipeline.

Entry: a die is rolled every flat candle; when it shows ``dice`` a random
long/short is opened.  Exit: take profit / stop loss in percent from the
entry price.  Not for production use.
"""

import random
from typing import Optional

from tradecore.strategy.base import SignalCollector, StrategyContext, resolve_options
from tradecore.strategy.pipeline import IndicatorDefinition, indicator


class NoopStrategy:
    """Dice-roll entries with fixed TP/SL exits.

    Implements ``StrategyProtocol``.  Pass ``seed`` to make runs
    reproducible; the entry price is the only state kept between steps.
    """

    name = "noop"

    def __init__(self, options: Optional[dict] = None) -> None:
        self.options = resolve_options(self.default_options(), options)
        self._rng = random.Random(self.options["seed"])
        self._entry_price: Optional[float] = None

    def description(self) -> str:
        return "Random dice-roll entry for testing: not for production use"

    def default_options(self) -> dict:
        return {
            "dice": 6,
            "dice_size": 12,
            "take_profit": 2.0,
            "stop_loss": 2.0,
            "seed": None,
        }

    def define_indicators(self) -> dict[str, IndicatorDefinition]:
        return {
            "bb": indicator.bb(),
            "rsi": indicator.rsi(),
            "mfi": indicator.mfi(),
        }

    def execute(self, context: StrategyContext, signal: SignalCollector) -> None:
        price = context.price
        last_signal = context.last_signal

        if last_signal is None:
            self._entry_price = None
            number = self._rng.randint(1, self.options["dice_size"])
            signal.debug(message=str(number))

            if number == self.options["dice"]:
                if self._rng.random() > 0.5:
                    signal.go_long()
                else:
                    signal.go_short()
                self._entry_price = price
            return

        if self._entry_price is None:
            return

        if last_signal == "long":
            profit = (price - self._entry_price) / self._entry_price * 100
        else:
            profit = (self._entry_price - price) / self._entry_price * 100

        if profit > self.options["take_profit"]:
            signal.debug(message="TP")
            signal.close()
            self._entry_price = None
        elif profit < -self.options["stop_loss"]:
            signal.debug(message="SL")
            signal.close()
            self._entry_price = None
