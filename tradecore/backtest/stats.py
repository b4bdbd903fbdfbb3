"""Backtest statistics: pure functions for trade-series analysis."""

import math
from typing import Optional

from tradecore.backtest.models import BacktestSummary, BacktestTrade

# Return (percent per trade) the risk ratio is measured against.
_REFERENCE_RETURN_PCT = 3.0


def calculate_summary(
    trades: list[BacktestTrade],
    initial_capital: float,
    final_capital: float,
    max_drawdown: float,
) -> BacktestSummary:
    """Compute summary statistics from closed backtest trades.

    ``total_profit_percent`` is measured on compounded capital, so it is
    generally not the sum of the per-trade percentages.
    """
    returns = [t.profit_percent for t in trades]
    total = len(returns)
    profitable = sum(1 for r in returns if r > 0)
    losing = total - profitable

    return BacktestSummary(
        total_trades=total,
        profitable_trades=profitable,
        losing_trades=losing,
        win_rate=(profitable / total) * 100 if total else 0.0,
        total_profit_percent=((final_capital - initial_capital) / initial_capital) * 100,
        average_profit_percent=sum(returns) / total if total else 0.0,
        max_drawdown=max_drawdown,
        sharpe_ratio=_risk_ratio(returns),
        profit_factor=_profit_factor(trades),
        final_capital=final_capital,
    )


# ── Helpers ──────────────────────────────────────────────────────────────


def _risk_ratio(returns: list[float]) -> float:
    """Excess mean return over the reference, per unit of deviation.

    Uses population standard deviation (n).  Returns 0.0 when the series
    has fewer than 2 observations or zero variance.
    """
    n = len(returns)
    if n < 2:
        return 0.0
    mean = sum(returns) / n
    variance = sum((r - mean) ** 2 for r in returns) / n
    std = math.sqrt(variance)
    if std == 0:
        return 0.0
    return (mean - _REFERENCE_RETURN_PCT) / std


def _profit_factor(trades: list[BacktestTrade]) -> Optional[float]:
    """Gross profit over gross loss in capital terms; ``None`` without losses."""
    gross_profit = sum(t.profit_absolute for t in trades if t.profit_absolute > 0)
    gross_loss = abs(sum(t.profit_absolute for t in trades if t.profit_absolute < 0))
    if gross_loss == 0:
        return None
    return gross_profit / gross_loss
