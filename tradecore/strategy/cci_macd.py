"""CCI/MACD strategy: CCI reversal confirmed by a MACD-histogram pivot.

Long:  histogram forms a low pivot below zero and CCI recently touched
       ``-cci_trigger`` → open if price is above the SMA trend filter.
Short: histogram forms a high pivot above zero and CCI recently touched
       ``+cci_trigger`` → open if price is below the SMA.
Close: the opposite trigger fires against the open position.
Entries are suppressed while the market is sideways (ADX ≤ 25 for the
last 10 bars).
"""

from typing import Optional, Sequence

from tradecore.strategy.base import SignalCollector, StrategyContext, resolve_options
from tradecore.strategy.pipeline import IndicatorDefinition, indicator


def get_pivot_points(values: Sequence[float], left: int, right: int) -> dict:
    """Pivot of the value *right* places from the end of *values*.

    Returns ``{"high": v}`` when no value in the *left* before / *right*
    after is greater, ``{"low": v}`` when none is smaller, both for a flat
    window, or ``{}`` when the window does not fit.
    """
    if left + right + 1 > len(values) or left <= 1 or right < 0:
        return {}

    window = list(values[-(left + right + 1):])
    middle = window[left]
    neighbours = window[:left] + window[left + 1:]

    result: dict = {}
    if not any(v > middle for v in neighbours):
        result["high"] = middle
    if not any(v < middle for v in neighbours):
        result["low"] = middle
    return result


class CciMacdStrategy:
    """CCI reversal with MACD pivot confirmation and SMA trend filter.

    Implements ``StrategyProtocol``.
    """

    name = "cci_macd"

    def __init__(self, options: Optional[dict] = None) -> None:
        self.options = resolve_options(self.default_options(), options)

    def description(self) -> str:
        return "CCI reversal with MACD pivot confirmation and SMA trend filter"

    def default_options(self) -> dict:
        return {
            "macd_pivot_reversal": 5,
            "cci_trigger": 150,
            "cci_cross_lookback_for_macd_trigger": 12,
            "macd_fast_length": 24,
            "macd_slow_length": 52,
            "macd_signal_length": 18,
            "sma_length": 400,
            "cci_length": 40,
            "adx_length": 14,
        }

    def define_indicators(self) -> dict[str, IndicatorDefinition]:
        o = self.options
        return {
            "cci": indicator.cci(length=o["cci_length"]),
            "adx": indicator.adx(length=o["adx_length"]),
            "macd": indicator.macd(
                fast_length=o["macd_fast_length"],
                slow_length=o["macd_slow_length"],
                signal_length=o["macd_signal_length"],
            ),
            "sma": indicator.sma(length=o["sma_length"]),
        }

    def execute(self, context: StrategyContext, signal: SignalCollector) -> None:
        price = context.price

        sma_values = context.get_indicator_values("sma")
        cci_values = context.get_indicator_values("cci")
        adx_values = context.get_indicator_values("adx")
        macd_values = context.get_indicator_values("macd")

        if not sma_values or not cci_values or not adx_values or not macd_values:
            return

        sma = sma_values[-1]
        cci = cci_values[-1]
        pivot_reversal = self.options["macd_pivot_reversal"]
        cci_trigger = self.options["cci_trigger"]
        cci_lookback = self.options["cci_cross_lookback_for_macd_trigger"]

        allowed_direction = "long" if price > sma else "short"

        signal.debug_all({
            "direction": allowed_direction,
            "cci": round(cci, 2),
            "sma": round(sma, 2),
            "adx": round(adx_values[-1], 2),
        })

        macd_slice = macd_values[pivot_reversal * -3:]
        if len(macd_slice) < pivot_reversal * 2 + 1:
            return

        pivot = get_pivot_points(
            [m["histogram"] for m in macd_slice],
            pivot_reversal,
            pivot_reversal,
        )
        if not pivot.get("high") and not pivot.get("low"):
            return

        signal.debug(macd_pivot=pivot)

        recent_cci = cci_values[-cci_lookback:]

        current: Optional[str] = None
        if pivot.get("high") and pivot["high"] > 0 and any(v >= cci_trigger for v in recent_cci):
            current = "short"
            signal.debug(hint="success")
        elif pivot.get("low") and pivot["low"] < 0 and any(v <= -cci_trigger for v in recent_cci):
            current = "long"
            signal.debug(hint="danger")

        if current is None:
            return

        last_signal = context.last_signal
        if last_signal is None:
            adx_recent = adx_values[-10:]
            sideways = len(adx_recent) >= 10 and all(v <= 25 for v in adx_recent)
            if not sideways and allowed_direction == current:
                if current == "long":
                    signal.go_long()
                else:
                    signal.go_short()
        elif (last_signal == "long" and current == "short") or (
            last_signal == "short" and current == "long"
        ):
            signal.close()
