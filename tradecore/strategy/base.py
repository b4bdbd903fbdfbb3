"""Strategy protocol, per-step context and signal collector.

Defines the interface that all strategies must implement.  A strategy is a
deterministic function of (indicator history to date, current price, last
signal, price history); everything it may look at is handed over in a
``StrategyContext`` and everything it decides goes into a
``SignalCollector``.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Optional, Protocol, runtime_checkable

from tradecore.strategy.models import Signal
from tradecore.strategy.pipeline import IndicatorDefinition


class SeriesView(Sequence):
    """Read-only prefix view over a full-series array.

    Only the first *end* entries are reachable, so a strategy cannot peek
    at values computed for later candles.  Negative indices count back from
    the view's end, not the underlying array's.
    """

    __slots__ = ("_data", "_end")

    def __init__(self, data: Sequence, end: int) -> None:
        self._data = data
        self._end = min(end, len(data))

    def __len__(self) -> int:
        return self._end

    def __getitem__(self, index):
        if isinstance(index, slice):
            return [self._data[i] for i in range(self._end)[index]]
        if index < 0:
            index += self._end
        if not 0 <= index < self._end:
            raise IndexError("SeriesView index out of range")
        return self._data[index]

    def __repr__(self) -> str:
        return f"SeriesView(len={self._end})"


class StrategyContext:
    """Immutable snapshot handed to a strategy for one step."""

    __slots__ = ("_price", "_indicators", "_last_signal", "_prices")

    def __init__(
        self,
        price: float,
        indicators: dict[str, SeriesView],
        last_signal: Optional[Signal],
        prices: SeriesView,
    ) -> None:
        object.__setattr__(self, "_price", price)
        object.__setattr__(self, "_indicators", dict(indicators))
        object.__setattr__(self, "_last_signal", last_signal)
        object.__setattr__(self, "_prices", prices)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("StrategyContext is immutable")

    @property
    def price(self) -> float:
        """Close of the current candle."""
        return self._price

    @property
    def last_signal(self) -> Optional[Signal]:
        """Carried position state: ``"long"``, ``"short"`` or ``None`` (flat)."""
        return self._last_signal

    @property
    def prices(self) -> SeriesView:
        """Close history up to and including the current candle."""
        return self._prices

    def get_indicator(self, name: str) -> SeriesView:
        """Indicator history up to and including the current candle."""
        return self._indicators[name]

    def get_indicator_values(self, name: str) -> list:
        """Indicator history with warm-up ``None`` entries dropped."""
        return [v for v in self._indicators[name] if v is not None]

    def get_indicator_slice(self, name: str, count: int) -> list:
        """The last *count* raw entries of an indicator (may contain ``None``)."""
        return self._indicators[name][-count:]

    def get_last_prices(self, count: int) -> list[float]:
        """The last *count* closes (fewer at the start of a series)."""
        return self._prices[-count:]


class SignalCollector:
    """Step-scoped sink for a strategy's decision and debug annotations.

    A fresh collector is created for every step and dropped afterwards.
    Calling more than one of ``go_long`` / ``go_short`` / ``close`` within a
    step is a strategy bug; the last call wins.
    """

    def __init__(self) -> None:
        self._signal: Optional[Signal] = None
        self._debug: dict[str, Any] = {}

    @property
    def signal(self) -> Optional[Signal]:
        return self._signal

    def go_long(self) -> None:
        self._signal = "long"

    def go_short(self) -> None:
        self._signal = "short"

    def close(self) -> None:
        self._signal = "close"

    def debug(self, **fields: Any) -> None:
        self._debug.update(fields)

    def debug_all(self, fields: dict[str, Any]) -> None:
        self._debug.update(fields)

    def get_debug(self) -> dict[str, Any]:
        return dict(self._debug)


@runtime_checkable
class StrategyProtocol(Protocol):
    """Interface that all trading strategies must satisfy."""

    name: str
    options: dict

    def description(self) -> str:
        ...

    def default_options(self) -> dict:
        ...

    def define_indicators(self) -> dict[str, IndicatorDefinition]:
        """Indicator requests, evaluated once per run."""
        ...

    def execute(self, context: StrategyContext, signal: SignalCollector) -> None:
        """Inspect *context* and emit at most one signal on *signal*."""
        ...


def resolve_options(defaults: dict, overrides: Optional[dict]) -> dict:
    """Merge caller *overrides* over a strategy's *defaults*.

    ``None`` values in *overrides* do not replace a default.
    """
    merged = dict(defaults)
    for key, value in (overrides or {}).items():
        if value is not None:
            merged[key] = value
    return merged
