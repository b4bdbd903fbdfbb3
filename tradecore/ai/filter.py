"""AI advisory filter: contract and the disabled default.

The real filter (model, transport, retries) is an external collaborator.
The executor only needs ``analyze`` and ``is_enabled``; whatever goes wrong
inside the filter, the executor proceeds with the unfiltered signal.
"""

from dataclasses import dataclass, field
from typing import Any, Literal, Optional, Protocol, runtime_checkable

from tradecore.strategy.models import Signal

AiAction = Literal["confirm", "reject", "wait"]
RiskLevel = Literal["low", "medium", "high"]


@dataclass(frozen=True)
class AiAnalysisInput:
    """Everything the filter sees about one fired signal."""

    pair: str
    exchange: str
    signal: Signal
    price: float
    indicators: dict[str, Any] = field(default_factory=dict)
    last_signal: Optional[Signal] = None
    timeframe: str = ""


@dataclass(frozen=True)
class AiAnalysisResult:
    """Filter verdict.

    The executor keeps the signal only when ``confirmed`` is set and
    ``confidence`` reaches the configured minimum.
    """

    confirmed: bool
    confidence: float
    action: AiAction = "confirm"
    reasoning: str = ""
    risk_level: RiskLevel = "medium"
    suggested_stop_loss: Optional[float] = None
    suggested_take_profit: Optional[float] = None


@runtime_checkable
class AiFilter(Protocol):
    async def analyze(self, data: AiAnalysisInput) -> AiAnalysisResult:
        ...

    def is_enabled(self) -> bool:
        ...


class NoopAiFilter:
    """Disabled filter that confirms every signal unchanged."""

    def is_enabled(self) -> bool:
        return False

    async def analyze(self, data: AiAnalysisInput) -> AiAnalysisResult:
        return AiAnalysisResult(
            confirmed=True,
            confidence=1.0,
            reasoning="AI filter disabled",
            action="confirm",
            risk_level="medium",
        )
