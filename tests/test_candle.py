"""Tests for tradecore.models.candle and tradecore.utils.periods."""

import pytest

from tradecore.errors import OrderingViolation
from tradecore.models.candle import Candlestick, assert_ascending, to_ascending
from tradecore.utils.periods import (
    current_period_start,
    last_closed_period_start,
    period_to_minutes,
    period_to_seconds,
)


# ── Helpers ──────────────────────────────────────────────────────────────


def _make_candle(time: int = 1_700_000_000, close: float = 100.0, period: str = "1h") -> Candlestick:
    return Candlestick(
        exchange="binance",
        symbol="BTC/USDT",
        period=period,
        time=time,
        open=close,
        high=close + 1,
        low=close - 1,
        close=close,
        volume=1000.0,
    )


# ── Candlestick ──────────────────────────────────────────────────────────


class TestCandlestick:
    def test_valid_candle(self):
        c = _make_candle()
        assert c.close == 100.0
        assert c.period == "1h"

    @pytest.mark.parametrize("period", ["1m", "15m", "4h", "1d", "1y"])
    def test_accepts_known_units(self, period):
        assert _make_candle(period=period).period == period

    @pytest.mark.parametrize("period", ["1w", "", "15"])
    def test_rejects_unknown_unit(self, period):
        with pytest.raises(ValueError, match="period"):
            _make_candle(period=period)

    def test_rejects_time_before_1990(self):
        with pytest.raises(ValueError, match="time"):
            _make_candle(time=631148400)

    def test_is_immutable(self):
        c = _make_candle()
        with pytest.raises(AttributeError):
            c.close = 1.0  # type: ignore[misc]


# ── Ordering ─────────────────────────────────────────────────────────────


class TestOrdering:
    def test_ascending_passes(self):
        assert_ascending([_make_candle(1_700_000_000), _make_candle(1_700_003_600)])

    def test_descending_raises(self):
        with pytest.raises(OrderingViolation, match="ascending order"):
            assert_ascending([_make_candle(1_700_003_600), _make_candle(1_700_000_000)])

    def test_short_series_pass(self):
        assert_ascending([])
        assert_ascending([_make_candle()])

    def test_ordering_violation_is_value_error(self):
        assert issubclass(OrderingViolation, ValueError)

    def test_to_ascending_reverses_descending(self):
        newest_first = [_make_candle(1_700_007_200), _make_candle(1_700_003_600), _make_candle(1_700_000_000)]
        result = to_ascending(newest_first, "descending")
        assert [c.time for c in result] == [1_700_000_000, 1_700_003_600, 1_700_007_200]

    def test_to_ascending_keeps_ascending(self):
        candles = [_make_candle(1_700_000_000), _make_candle(1_700_003_600)]
        assert to_ascending(candles, "ascending") == candles

    def test_to_ascending_rejects_wrong_declaration(self):
        candles = [_make_candle(1_700_000_000), _make_candle(1_700_003_600)]
        with pytest.raises(OrderingViolation):
            to_ascending(candles, "descending")

    def test_to_ascending_rejects_unknown_order(self):
        with pytest.raises(ValueError, match="order"):
            to_ascending([], "sideways")  # type: ignore[arg-type]


# ── Periods ──────────────────────────────────────────────────────────────


class TestPeriods:
    @pytest.mark.parametrize(
        "period, minutes",
        [("1m", 1), ("15m", 15), ("1h", 60), ("4h", 240), ("1d", 1440), ("1y", 525600)],
    )
    def test_period_to_minutes(self, period, minutes):
        assert period_to_minutes(period) == minutes

    def test_period_to_seconds(self):
        assert period_to_seconds("15m") == 900

    @pytest.mark.parametrize("period", ["", "1w", "xh", "0m"])
    def test_rejects_bad_period(self, period):
        with pytest.raises(ValueError):
            period_to_minutes(period)

    def test_current_period_start(self):
        # 1_699_999_200 is an exact hour boundary
        assert current_period_start("1h", 1_699_999_200 + 600) == 1_699_999_200

    def test_last_closed_period_start(self):
        assert last_closed_period_start("1h", 1_699_999_200 + 600) == 1_699_999_200 - 3600

    def test_on_boundary_previous_period_is_closed(self):
        assert last_closed_period_start("15m", 1_699_999_200) == 1_699_999_200 - 900
