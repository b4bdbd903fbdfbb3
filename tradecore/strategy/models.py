"""Strategy data models: signal values and the per-candle signal trace."""

from dataclasses import dataclass, field
from typing import Literal, Optional

Signal = Literal["long", "short", "close"]


@dataclass(frozen=True)
class SignalRow:
    """One executor output row per input candle."""

    time: int
    price: float
    signal: Optional[Signal] = None
    debug: dict = field(default_factory=dict)


def next_last_signal(previous: Optional[Signal], emitted: Optional[Signal]) -> Optional[Signal]:
    """Position state carried into the next step.

    ``close`` clears the state to flat, any other emitted signal replaces
    it, and no emission keeps the previous state.
    """
    if emitted == "close":
        return None
    if emitted is not None:
        return emitted
    return previous
