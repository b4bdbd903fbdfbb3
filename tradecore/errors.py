"""Error types shared across the decision core."""


class OrderingViolation(ValueError):
    """A candle series was not in ascending (oldest-first) order."""


class InsufficientData(ValueError):
    """Not enough candles to satisfy a warm-up or minimum-length requirement."""


class SourceFetchFailure(RuntimeError):
    """An external data source could not deliver a usable response."""
