"""Candle source contracts.

Exchange connectivity and stream subscriptions live outside this package;
these protocols describe what the executor, the backtest engine and the
dashboard expect from them.  Every fetch returns candles *newest first*.
"""

from typing import Protocol, runtime_checkable

from tradecore.models.candle import Candlestick


@runtime_checkable
class CandleSource(Protocol):
    """Stream-backed store of recent candles plus REST history."""

    async def fetch(
        self, exchange: str, symbol: str, period: str, limit: int,
    ) -> list[Candlestick]:
        """The *limit* most recent candles, newest first."""
        ...

    async def fetch_since(
        self, exchange: str, symbol: str, period: str, since: int,
    ) -> list[Candlestick]:
        """All candles with ``time >= since``, newest first."""
        ...

    def is_streaming(self, exchange: str, symbol: str, period: str) -> bool:
        """``True`` when the pair is kept up to date by a live stream."""
        ...


@runtime_checkable
class CandleRepository(Protocol):
    """Read access to stored candles for dashboard batches."""

    async def get_lookbacks(
        self, exchange: str, symbol: str, period: str, limit: int,
    ) -> list[Candlestick]:
        """The *limit* most recent stored candles, newest first."""
        ...
