"""Backtest data models: requests, trades, summary and results."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Optional

from tradecore.models.candle import Candlestick
from tradecore.strategy.models import Signal

Side = Literal["long", "short"]


@dataclass(frozen=True)
class BacktestRow:
    """A ``SignalRow`` annotated with the position held going into it."""

    time: int
    price: float
    signal: Optional[Signal] = None
    debug: dict = field(default_factory=dict)
    position: Optional[Side] = None
    profit_percent: Optional[float] = None  # unrealized, only while positioned


@dataclass(frozen=True)
class BacktestTrade:
    entry_time: int
    exit_time: int
    entry_price: float
    exit_price: float
    side: Side
    profit_percent: float
    profit_absolute: float


@dataclass(frozen=True)
class BacktestSummary:
    total_trades: int
    profitable_trades: int
    losing_trades: int
    win_rate: float  # percent
    total_profit_percent: float
    average_profit_percent: float
    max_drawdown: float  # percent
    sharpe_ratio: float
    profit_factor: Optional[float]
    final_capital: float


@dataclass(frozen=True)
class BacktestRequest:
    """What to replay: either the last *hours*, or a *start*/*end* window.

    *end* defaults to now when only *start* is given.
    """

    exchange: str
    symbol: str
    period: str
    hours: Optional[int] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    initial_capital: Optional[float] = None

    def __post_init__(self) -> None:
        if self.hours is None and self.start is None:
            raise ValueError("BacktestRequest needs either 'hours' or 'start'")
        if self.hours is not None and self.start is not None:
            raise ValueError("BacktestRequest takes 'hours' or 'start', not both")
        if self.hours is not None and self.hours <= 0:
            raise ValueError(f"hours must be positive, got {self.hours}")
        if self.start is not None and self.end is not None and self.end <= self.start:
            raise ValueError("BacktestRequest 'end' must be after 'start'")


@dataclass(frozen=True)
class BacktestResult:
    strategy_name: str
    exchange: str
    symbol: str
    period: str
    start_time: datetime
    end_time: datetime
    summary: BacktestSummary
    trades: list[BacktestTrade]
    rows: list[BacktestRow]
    indicator_keys: list[str]
    candles: list[Candlestick]
