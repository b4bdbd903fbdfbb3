"""Strategy registry: maps strategy names to classes.

Used by the executor and the multi-pair runner to instantiate a strategy
from its name plus caller options.
"""

from typing import Optional

from tradecore.strategy.ai_power_sar import AiPowerSarStrategy
from tradecore.strategy.base import StrategyProtocol
from tradecore.strategy.cci_macd import CciMacdStrategy
from tradecore.strategy.noop import NoopStrategy
from tradecore.strategy.obv_pump_dump import ObvPumpDumpStrategy
from tradecore.strategy.pivot_reversal import PivotReversalStrategy
from tradecore.strategy.trader import TraderStrategy


STRATEGY_REGISTRY: dict[str, type] = {
    "noop": NoopStrategy,
    "cci_macd": CciMacdStrategy,
    "obv_pump_dump": ObvPumpDumpStrategy,
    "pivot_reversal": PivotReversalStrategy,
    "trader": TraderStrategy,
    "ai_power_sar": AiPowerSarStrategy,
}


def get_strategy(name: str, options: Optional[dict] = None) -> StrategyProtocol:
    """Look up and instantiate a strategy by registry key.

    Raises ``KeyError`` if the strategy name is not registered.
    """
    if name not in STRATEGY_REGISTRY:
        raise KeyError(
            f"Unknown strategy '{name}'. "
            f"Available: {', '.join(STRATEGY_REGISTRY.keys())}"
        )
    return STRATEGY_REGISTRY[name](options)
