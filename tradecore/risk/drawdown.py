"""Drawdown tracking: pure math, no I/O.

Tracks the capital watermark and the deepest percentage decline from it.
"""


class DrawdownTracker:
    """Tracks capital peaks and the maximum drawdown seen so far.

    Args:
        initial_capital: Starting capital; becomes the first peak.
    """

    def __init__(self, initial_capital: float) -> None:
        if initial_capital <= 0:
            raise ValueError(
                f"initial_capital must be positive, got {initial_capital}"
            )
        self._peak: float = initial_capital
        self._current: float = initial_capital
        self._max_drawdown_pct: float = 0.0

    # ── Mutation ─────────────────────────────────────────────────────────

    def update(self, capital: float) -> None:
        """Record a capital curve point.

        If *capital* exceeds the current peak, the peak is raised;
        otherwise the decline from the peak may deepen the maximum.
        """
        self._current = capital
        if capital > self._peak:
            self._peak = capital
        dd = self.drawdown_pct
        if dd > self._max_drawdown_pct:
            self._max_drawdown_pct = dd

    # ── Queries ──────────────────────────────────────────────────────────

    @property
    def peak(self) -> float:
        """Highest capital recorded."""
        return self._peak

    @property
    def current(self) -> float:
        """Most recently recorded capital."""
        return self._current

    @property
    def drawdown_pct(self) -> float:
        """Current drawdown as a percentage of the peak."""
        if self._peak == 0:
            return 0.0
        return ((self._peak - self._current) / self._peak) * 100.0

    @property
    def max_drawdown_pct(self) -> float:
        """Deepest drawdown recorded, as a non-negative percentage."""
        return self._max_drawdown_pct
