"""Divergence and squeeze detection over indicator series.

All inputs are compact value series (warm-up entries already dropped),
oldest first.
"""

from typing import Literal, Sequence

import numpy as np

DivergenceKind = Literal[
    "BULLISH_DIV", "BEARISH_DIV", "HIDDEN_BULLISH", "HIDDEN_BEARISH", "NONE",
]

SWING_LOOKBACK = 5
DIVERGENCE_LOOKBACK = 20
SQUEEZE_LOOKBACK = 20
SQUEEZE_RATIO = 0.75


def find_swing_lows(values: Sequence[float], lookback: int = 10) -> list[int]:
    """Indices strictly lower than every neighbour within *lookback*."""
    arr = np.asarray(values, dtype=float)
    lows = []
    for i in range(lookback, len(arr) - lookback):
        left = arr[i - lookback:i]
        right = arr[i + 1:i + lookback + 1]
        if (left > arr[i]).all() and (right > arr[i]).all():
            lows.append(i)
    return lows


def find_swing_highs(values: Sequence[float], lookback: int = 10) -> list[int]:
    """Indices strictly higher than every neighbour within *lookback*."""
    arr = np.asarray(values, dtype=float)
    highs = []
    for i in range(lookback, len(arr) - lookback):
        left = arr[i - lookback:i]
        right = arr[i + 1:i + lookback + 1]
        if (left < arr[i]).all() and (right < arr[i]).all():
            highs.append(i)
    return highs


def detect_divergence(
    price: Sequence[float],
    indicator: Sequence[float],
    lookback: int = DIVERGENCE_LOOKBACK,
) -> DivergenceKind:
    """Compare the recent *lookback* window against the one before it.

    The window comparison only runs when the price series lacks two clear
    swing points on that side; lows are checked before highs.
    """
    if len(price) < lookback * 2 or len(indicator) < lookback * 2:
        return "NONE"

    p = np.asarray(price, dtype=float)
    ind = np.asarray(indicator, dtype=float)

    p_recent, p_older = p[-lookback:], p[-lookback * 2:-lookback]
    i_recent, i_older = ind[-lookback:], ind[-lookback * 2:-lookback]

    if len(find_swing_lows(p, SWING_LOOKBACK)) < 2:
        if p_recent.min() < p_older.min() and i_recent.min() > i_older.min():
            return "BULLISH_DIV"
        if p_recent.min() > p_older.min() and i_recent.min() < i_older.min():
            return "HIDDEN_BULLISH"

    if len(find_swing_highs(p, SWING_LOOKBACK)) < 2:
        if p_recent.max() > p_older.max() and i_recent.max() < i_older.max():
            return "BEARISH_DIV"
        if p_recent.max() < p_older.max() and i_recent.max() > i_older.max():
            return "HIDDEN_BEARISH"

    return "NONE"


def detect_squeeze(widths: Sequence[float], lookback: int = SQUEEZE_LOOKBACK) -> bool:
    """``True`` when the last band width is under 75 % of the trailing mean."""
    if len(widths) < lookback:
        return False
    recent = np.asarray(widths[-lookback:], dtype=float)
    return bool(recent[-1] < recent.mean() * SQUEEZE_RATIO)
