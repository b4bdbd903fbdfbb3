"""Tests for tradecore.backtest: signal processing, statistics and runs."""

from datetime import datetime, timezone

import pytest

from tradecore.backtest.engine import BacktestEngine
from tradecore.backtest.models import BacktestRequest, BacktestTrade
from tradecore.backtest.stats import _profit_factor, _risk_ratio, calculate_summary
from tradecore.config import Config
from tradecore.errors import InsufficientData, OrderingViolation
from tradecore.models.candle import Candlestick
from tradecore.risk.drawdown import DrawdownTracker
from tradecore.strategy.models import SignalRow
from tradecore.strategy.trader import TraderStrategy


# ── Helpers ──────────────────────────────────────────────────────────────


def _make_config(**overrides) -> Config:
    defaults = dict(
        log_level="WARNING",
        initial_capital=1000.0,
        live_lookback_candles=500,
        backtest_prefill_candles=200,
        ai_filter_enabled=False,
        ai_min_confidence=0.7,
        price_cache_ttl_seconds=3600,
        price_api_url="https://example.invalid/prices",
    )
    defaults.update(overrides)
    return Config(**defaults)


def _rows(*items) -> list[SignalRow]:
    """(price, signal) pairs → signal rows one hour apart."""
    return [
        SignalRow(time=1_700_000_000 + i * 3600, price=price, signal=signal)
        for i, (price, signal) in enumerate(items)
    ]


def _make_candles(closes, start: int = 1_700_000_000) -> list[Candlestick]:
    return [
        Candlestick(
            exchange="binance",
            symbol="BTC/USDT",
            period="1h",
            time=start + i * 3600,
            open=c,
            high=c + 0.1,
            low=c - 0.1,
            close=c,
            volume=1000.0,
        )
        for i, c in enumerate(closes)
    ]


def _trade(pct: float, capital: float = 1000.0) -> BacktestTrade:
    return BacktestTrade(
        entry_time=1_700_000_000,
        exit_time=1_700_003_600,
        entry_price=100.0,
        exit_price=100.0 + pct,
        side="long",
        profit_percent=pct,
        profit_absolute=capital * pct / 100,
    )


class FakeSource:
    def __init__(self, candles):
        self._candles = candles
        self.since_calls: list[int] = []

    async def fetch(self, exchange, symbol, period, limit):
        return list(reversed(self._candles))[:limit]

    async def fetch_since(self, exchange, symbol, period, since):
        self.since_calls.append(since)
        return [c for c in reversed(self._candles) if c.time >= since]

    def is_streaming(self, exchange, symbol, period) -> bool:
        return False


# ── Signal processing ────────────────────────────────────────────────────


class TestProcessSignals:
    def test_losing_long_trade(self):
        rows, trades, summary = BacktestEngine().process_signals(
            _rows((100.0, "long"), (105.0, None), (98.0, "close")), 1000.0,
        )
        assert len(trades) == 1
        assert trades[0].side == "long"
        assert trades[0].profit_percent == pytest.approx(-2.0)
        assert trades[0].profit_absolute == pytest.approx(-20.0)
        assert summary.final_capital == pytest.approx(980.0)
        assert summary.total_profit_percent == pytest.approx(-2.0)
        assert summary.losing_trades == 1
        assert summary.win_rate == 0.0

    def test_drawdown_from_unrealized_peak(self):
        _, _, summary = BacktestEngine().process_signals(
            _rows((100.0, "long"), (105.0, None), (98.0, "close")), 1000.0,
        )
        # peak 1050 (unrealized +5 %), trough 980
        assert summary.max_drawdown == pytest.approx((1050 - 980) / 1050 * 100)

    def test_short_trade(self):
        _, trades, summary = BacktestEngine().process_signals(
            _rows((100.0, "short"), (90.0, "close")), 1000.0,
        )
        assert trades[0].profit_percent == pytest.approx(10.0)
        assert summary.final_capital == pytest.approx(1100.0)

    def test_forced_close_is_compounded(self):
        _, trades, summary = BacktestEngine().process_signals(
            _rows((100.0, "long"), (105.0, None), (110.0, None)), 1000.0,
        )
        assert len(trades) == 1
        assert trades[0].exit_price == 110.0
        assert trades[0].exit_time == 1_700_000_000 + 2 * 3600
        assert summary.final_capital == pytest.approx(1100.0)
        assert summary.total_profit_percent == pytest.approx(10.0)

    def test_single_position_at_a_time(self):
        _, trades, _ = BacktestEngine().process_signals(
            _rows((100.0, "long"), (101.0, "short"), (102.0, "long"), (102.0, "close")),
            1000.0,
        )
        assert len(trades) == 1
        assert trades[0].side == "long"
        assert trades[0].entry_price == 100.0

    def test_close_while_flat_ignored(self):
        _, trades, summary = BacktestEngine().process_signals(
            _rows((100.0, "close"), (101.0, None)), 1000.0,
        )
        assert trades == []
        assert summary.final_capital == 1000.0
        assert summary.max_drawdown == 0.0

    def test_capital_compounds(self):
        _, trades, summary = BacktestEngine().process_signals(
            _rows(
                (100.0, "long"), (110.0, "close"),
                (100.0, "long"), (90.0, "close"),
            ),
            1000.0,
        )
        assert len(trades) == 2
        assert trades[1].profit_absolute == pytest.approx(-110.0)
        assert summary.final_capital == pytest.approx(1000.0 * 1.1 * 0.9)
        assert summary.total_profit_percent == pytest.approx(-1.0)
        assert summary.average_profit_percent == pytest.approx(0.0)

    def test_rows_carry_position_entering_the_row(self):
        rows, _, _ = BacktestEngine().process_signals(
            _rows((100.0, "long"), (102.0, None), (104.0, "close"), (105.0, None)),
            1000.0,
        )
        assert [r.position for r in rows] == [None, "long", "long", None]
        assert rows[0].profit_percent is None
        assert rows[1].profit_percent == pytest.approx(2.0)
        assert len(rows) == 4

    def test_no_drawdown_when_curve_never_falls(self):
        _, _, summary = BacktestEngine().process_signals(
            _rows((100.0, "long"), (101.0, None), (103.0, None), (104.0, "close")),
            1000.0,
        )
        assert summary.max_drawdown == 0.0


# ── Statistics ───────────────────────────────────────────────────────────


class TestStats:
    def test_empty(self):
        summary = calculate_summary([], 1000.0, 1000.0, 0.0)
        assert summary.total_trades == 0
        assert summary.win_rate == 0.0
        assert summary.average_profit_percent == 0.0
        assert summary.sharpe_ratio == 0.0
        assert summary.profit_factor is None

    def test_win_rate_is_percent(self):
        summary = calculate_summary([_trade(5.0), _trade(-1.0), _trade(2.0), _trade(0.0)], 1000.0, 1060.0, 1.0)
        assert summary.profitable_trades == 2
        assert summary.losing_trades == 2
        assert summary.win_rate == pytest.approx(50.0)

    def test_risk_ratio_population_deviation(self):
        # mean 0, population std 10 → (0 - 3) / 10
        assert _risk_ratio([10.0, -10.0]) == pytest.approx(-0.3)

    def test_risk_ratio_single_trade_is_zero(self):
        assert _risk_ratio([10.0]) == 0.0

    def test_risk_ratio_zero_variance(self):
        assert _risk_ratio([4.0, 4.0, 4.0]) == 0.0

    def test_profit_factor(self):
        assert _profit_factor([_trade(10.0), _trade(-5.0)]) == pytest.approx(2.0)

    def test_profit_factor_without_losses(self):
        assert _profit_factor([_trade(10.0)]) is None


# ── Drawdown ─────────────────────────────────────────────────────────────


class TestDrawdownTracker:
    def test_tracks_peak_and_max(self):
        tracker = DrawdownTracker(1000.0)
        tracker.update(1100.0)
        tracker.update(990.0)
        tracker.update(1050.0)
        assert tracker.peak == 1100.0
        assert tracker.current == 1050.0
        assert tracker.max_drawdown_pct == pytest.approx(10.0)
        assert tracker.drawdown_pct == pytest.approx((1100 - 1050) / 1100 * 100)

    def test_rejects_non_positive_capital(self):
        with pytest.raises(ValueError, match="initial_capital"):
            DrawdownTracker(0.0)


# ── Runs ─────────────────────────────────────────────────────────────────


class TestRunWithCandles:
    def test_result_shape(self):
        candles = _make_candles([100.0] * 30 + [101.0, 101.5, 102.0])
        result = BacktestEngine(config=_make_config(initial_capital=500.0)).run_with_candles(
            TraderStrategy({"bb_length": 20}), candles,
        )
        assert result.strategy_name == "trader"
        assert result.exchange == "binance"
        assert result.symbol == "BTC/USDT"
        assert result.period == "1h"
        assert result.start_time == datetime.fromtimestamp(candles[0].time, tz=timezone.utc)
        assert result.end_time == datetime.fromtimestamp(candles[-1].time, tz=timezone.utc)
        assert result.indicator_keys == ["bb"]
        assert len(result.rows) == len(candles)
        assert result.candles == candles
        # breakout at 101 opens long, forced close at 102
        assert result.summary.total_trades == 1
        assert result.trades[0].entry_price == 101.0
        assert result.summary.final_capital == pytest.approx(500.0 * 102.0 / 101.0)

    def test_descending_raises(self):
        candles = list(reversed(_make_candles([100.0, 101.0, 102.0])))
        with pytest.raises(OrderingViolation):
            BacktestEngine().run_with_candles(TraderStrategy(), candles)

    def test_empty_raises(self):
        with pytest.raises(InsufficientData):
            BacktestEngine().run_with_candles(TraderStrategy(), [])


class TestRun:
    @pytest.mark.asyncio
    async def test_hours_window_with_prefill(self):
        now = 1_700_000_000 + 300 * 3600
        source = FakeSource(_make_candles([100.0] * 300))
        engine = BacktestEngine(candle_source=source, config=_make_config(backtest_prefill_candles=50))

        request = BacktestRequest(exchange="binance", symbol="BTC/USDT", period="1h", hours=24)
        result = await engine.run(TraderStrategy(), request, now=now)

        assert source.since_calls == [now - 24 * 3600 - 50 * 3600]
        assert len(result.candles) == 74
        assert result.candles[0].time < result.candles[-1].time

    @pytest.mark.asyncio
    async def test_explicit_window_end_is_honoured(self):
        candles = _make_candles([100.0] * 100)
        source = FakeSource(candles)
        engine = BacktestEngine(candle_source=source, config=_make_config(backtest_prefill_candles=10))

        request = BacktestRequest(
            exchange="binance",
            symbol="BTC/USDT",
            period="1h",
            start=datetime.fromtimestamp(candles[40].time, tz=timezone.utc),
            end=datetime.fromtimestamp(candles[60].time, tz=timezone.utc),
        )
        result = await engine.run(TraderStrategy(), request)

        assert result.candles[0].time == candles[30].time
        assert result.candles[-1].time == candles[60].time

    @pytest.mark.asyncio
    async def test_no_candles_raises(self):
        engine = BacktestEngine(candle_source=FakeSource([]))
        request = BacktestRequest(exchange="binance", symbol="BTC/USDT", period="1h", hours=24)
        with pytest.raises(InsufficientData, match="No candles"):
            await engine.run(TraderStrategy(), request, now=1_700_000_000)


class TestBacktestRequest:
    def test_needs_hours_or_start(self):
        with pytest.raises(ValueError, match="hours"):
            BacktestRequest(exchange="binance", symbol="BTC/USDT", period="1h")

    def test_rejects_both(self):
        with pytest.raises(ValueError, match="not both"):
            BacktestRequest(
                exchange="binance", symbol="BTC/USDT", period="1h",
                hours=24, start=datetime(2024, 1, 1, tzinfo=timezone.utc),
            )

    def test_rejects_inverted_window(self):
        with pytest.raises(ValueError, match="after"):
            BacktestRequest(
                exchange="binance", symbol="BTC/USDT", period="1h",
                start=datetime(2024, 1, 2, tzinfo=timezone.utc),
                end=datetime(2024, 1, 1, tzinfo=timezone.utc),
            )
