"""Candle data model and series ordering guards.

Every computation entry point works on *ascending* series (oldest first).
Some sources hand back newest-first lists; those are reversed once at the
boundary with :func:`to_ascending` and never silently reordered later.
"""

from dataclasses import dataclass
from typing import Literal, Sequence

from tradecore.errors import OrderingViolation

# 1990-01-01 (local-time legacy floor); anything at or below is garbage.
MIN_CANDLE_TIME = 631148400

VALID_PERIOD_UNITS = ("m", "h", "d", "y")

SeriesOrder = Literal["ascending", "descending"]


@dataclass(frozen=True)
class Candlestick:
    """A single OHLCV bar for one exchange/symbol/period."""

    exchange: str
    symbol: str
    period: str
    time: int  # unix seconds, candle open
    open: float
    high: float
    low: float
    close: float
    volume: float

    def __post_init__(self) -> None:
        if not self.period or self.period[-1] not in VALID_PERIOD_UNITS:
            raise ValueError(
                f"Invalid candlestick period: {self.period!r} "
                f"({self.exchange}:{self.symbol} @ {self.time})"
            )
        if int(self.time) <= MIN_CANDLE_TIME:
            raise ValueError(
                f"Invalid candlestick time given: {self.time} "
                f"({self.exchange}:{self.symbol}:{self.period})"
            )


def assert_ascending(candles: Sequence[Candlestick]) -> None:
    """Raise ``OrderingViolation`` unless *candles* is oldest-first.

    Only the first two elements are compared; that is enough to catch a
    source adapter that returned newest-first data.
    """
    if len(candles) >= 2 and candles[0].time > candles[1].time:
        raise OrderingViolation(
            "Candles must be in ascending order (oldest first). "
            "Received descending order."
        )


def to_ascending(
    candles: Sequence[Candlestick],
    order: SeriesOrder,
) -> list[Candlestick]:
    """Convert a series with a declared *order* into an ascending list."""
    if order == "descending":
        result = list(reversed(candles))
    elif order == "ascending":
        result = list(candles)
    else:
        raise ValueError(f"Unknown series order: {order!r}")
    assert_ascending(result)
    return result
