"""Candle period codes: "15m", "4h", "1d", "1y". Pure functions, no I/O."""

_UNIT_MINUTES = {
    "m": 1,
    "h": 60,
    "d": 60 * 24,
    "y": 60 * 24 * 365,
}


def period_to_minutes(period: str) -> int:
    """Convert a period code to whole minutes.

    Raises ``ValueError`` for an unknown unit or a non-numeric amount.
    """
    if not period or period[-1] not in _UNIT_MINUTES:
        raise ValueError(f"Unsupported period: {period!r}")
    amount = int(period[:-1] or "1")
    if amount <= 0:
        raise ValueError(f"Unsupported period: {period!r}")
    return amount * _UNIT_MINUTES[period[-1]]


def period_to_seconds(period: str) -> int:
    """Convert a period code to seconds."""
    return period_to_minutes(period) * 60


def current_period_start(period: str, now: int) -> int:
    """Open time of the period that contains *now* (still forming)."""
    seconds = period_to_seconds(period)
    return now - (now % seconds)


def last_closed_period_start(period: str, now: int) -> int:
    """Open time of the most recent fully closed period."""
    return current_period_start(period, now) - period_to_seconds(period)
