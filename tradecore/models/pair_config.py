"""Pair configuration dataclass.

Represents one live-evaluated pair in the multi-pair runner.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class PairConfig:
    """Configuration for a single live pair.

    Each pair is evaluated with its own strategy and options whenever a
    candle of its period closes.
    """

    name: str
    exchange: str
    symbol: str
    period: str  # e.g. "15m", "1h"
    strategy: str  # strategy registry key, e.g. "cci_macd"
    options: dict = field(default_factory=dict)
    enabled: bool = True
