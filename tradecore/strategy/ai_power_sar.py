"""Parabolic SAR flip strategy with EMA / ADX / RSI confirmations.

Meant to run with the AI filter enabled on the live path: the strategy
emits the technical signal and the filter cross-validates it.

Long:  SAR flips below price, price above EMA, ADX above threshold,
       RSI not overbought.
Short: mirror image.
Close: SAR flips against the open position.
"""

from typing import Optional

from tradecore.strategy.base import SignalCollector, StrategyContext, resolve_options
from tradecore.strategy.pipeline import IndicatorDefinition, indicator


class AiPowerSarStrategy:
    """Implements ``StrategyProtocol``."""

    name = "ai_power_sar"

    def __init__(self, options: Optional[dict] = None) -> None:
        self.options = resolve_options(self.default_options(), options)

    def description(self) -> str:
        return "AI-Powered Parabolic SAR with multi-technical filters"

    def default_options(self) -> dict:
        return {
            "psar_step": 0.02,
            "psar_max": 0.2,
            "ema_period": 200,
            "adx_threshold": 25,
            "rsi_low": 30,
            "rsi_high": 70,
        }

    def define_indicators(self) -> dict[str, IndicatorDefinition]:
        return {
            "psar": indicator.psar(step=self.options["psar_step"], max=self.options["psar_max"]),
            "ema": indicator.ema(length=self.options["ema_period"]),
            "adx": indicator.adx(),
            "rsi": indicator.rsi(),
        }

    def execute(self, context: StrategyContext, signal: SignalCollector) -> None:
        psar_values = [v for v in context.get_indicator_slice("psar", 3) if v is not None]
        ema_value = context.get_indicator_slice("ema", 1)
        adx_value = context.get_indicator_slice("adx", 1)
        rsi_value = context.get_indicator_slice("rsi", 1)
        prices = context.get_last_prices(3)

        ema = ema_value[-1] if ema_value else None
        adx = adx_value[-1] if adx_value else None
        rsi = rsi_value[-1] if rsi_value else None

        if len(psar_values) < 2 or len(prices) < 2 or not ema or not adx or not rsi:
            return

        current_hist = prices[-1] - psar_values[-1]
        previous_hist = prices[-2] - psar_values[-2]
        last_signal = context.last_signal

        trend_bullish = prices[-1] > ema
        trend_bearish = prices[-1] < ema
        trend_strong = adx > self.options["adx_threshold"]
        not_overbought = rsi < self.options["rsi_high"]
        not_oversold = rsi > self.options["rsi_low"]

        signal.debug_all({
            "psar": round(psar_values[-1], 2),
            "ema": round(ema, 2),
            "adx": round(adx, 2),
            "rsi": round(rsi, 2),
            "trend_bullish": trend_bullish,
            "trend_strong": trend_strong,
            "momentum_ok": not_overbought if current_hist > 0 else not_oversold,
            "last_signal": last_signal,
        })

        if (last_signal == "long" and current_hist < 0) or (
            last_signal == "short" and current_hist > 0
        ):
            signal.close()
            return

        if previous_hist < 0 < current_hist:
            if trend_bullish and trend_strong and not_overbought:
                signal.go_long()
            else:
                signal.debug(long_rejected_reason=(
                    "against_ema" if not trend_bullish
                    else "weak_trend" if not trend_strong
                    else "overbought"
                ))

        if previous_hist > 0 > current_hist:
            if trend_bearish and trend_strong and not_oversold:
                signal.go_short()
            else:
                signal.debug(short_rejected_reason=(
                    "against_ema" if not trend_bearish
                    else "weak_trend" if not trend_strong
                    else "oversold"
                ))
