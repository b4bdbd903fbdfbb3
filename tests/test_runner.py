"""Tests for tradecore.runner: concurrent live pair evaluation."""

import pytest

from tradecore.models.pair_config import PairConfig
from tradecore.runner import SignalRunner

# exact hour boundary; not a 4h boundary
HOUR = 1_699_999_200


# ── Helpers ──────────────────────────────────────────────────────────────


def _make_pair(name: str, period: str = "1h", **overrides) -> PairConfig:
    defaults = dict(
        name=name,
        exchange="binance",
        symbol=f"{name.upper()}/USDT",
        period=period,
        strategy="trader",
    )
    defaults.update(overrides)
    return PairConfig(**defaults)


class FakeExecutor:
    """Returns scripted signals per symbol; raises for symbols in *failing*."""

    def __init__(self, signals: dict | None = None, failing: set | None = None):
        self._signals = signals or {}
        self._failing = failing or set()
        self.calls: list[tuple] = []

    async def execute_strategy(self, name, exchange, symbol, period, options=None, now=None):
        self.calls.append((name, exchange, symbol, period, options, now))
        if symbol in self._failing:
            raise RuntimeError(f"{symbol} exploded")
        return self._signals.get(symbol)


# ── Tests ────────────────────────────────────────────────────────────────


class TestSignalRunner:
    def test_disabled_pairs_dropped(self):
        runner = SignalRunner(FakeExecutor(), [_make_pair("btc"), _make_pair("eth", enabled=False)])
        assert runner.pair_names == ["btc"]

    def test_due_pairs(self):
        runner = SignalRunner(
            FakeExecutor(),
            [_make_pair("btc", "1h"), _make_pair("eth", "15m"), _make_pair("sol", "4h")],
        )
        assert [p.name for p in runner.due_pairs(HOUR)] == ["btc", "eth"]
        assert [p.name for p in runner.due_pairs(HOUR + 15 * 60)] == ["eth"]
        assert runner.due_pairs(HOUR + 60) == []

    def test_unsupported_period_skipped(self):
        runner = SignalRunner(FakeExecutor(), [_make_pair("btc", "1w"), _make_pair("eth", "1h")])
        assert [p.name for p in runner.due_pairs(HOUR)] == ["eth"]

    @pytest.mark.asyncio
    async def test_evaluate_all(self):
        executor = FakeExecutor(signals={"BTC/USDT": "long"})
        pairs = [_make_pair("btc", options={"bb_length": 10}), _make_pair("eth")]
        runner = SignalRunner(executor, pairs)

        result = await runner.evaluate_all(now=HOUR)

        assert result == {"btc": "long", "eth": None}
        assert ("trader", "binance", "BTC/USDT", "1h", {"bb_length": 10}, HOUR) in executor.calls

    @pytest.mark.asyncio
    async def test_failing_pair_isolated(self):
        executor = FakeExecutor(signals={"ETH/USDT": "short"}, failing={"BTC/USDT"})
        runner = SignalRunner(executor, [_make_pair("btc"), _make_pair("eth")])

        result = await runner.evaluate_all(now=HOUR)

        assert result == {"btc": None, "eth": "short"}

    @pytest.mark.asyncio
    async def test_tick_counts_cycles_only_when_due(self):
        executor = FakeExecutor(signals={"BTC/USDT": "close"})
        runner = SignalRunner(executor, [_make_pair("btc")])

        assert await runner.tick(HOUR + 60) == {}
        assert runner.get_status()["cycle_count"] == 0

        assert await runner.tick(HOUR) == {"btc": "close"}
        assert runner.get_status()["cycle_count"] == 1

    def test_status(self):
        runner = SignalRunner(FakeExecutor(), [_make_pair("btc", strategy="cci_macd")])
        status = runner.get_status()
        assert status["running"] is False
        assert status["pairs"]["btc"] == {
            "exchange": "binance",
            "symbol": "BTC/USDT",
            "period": "1h",
            "strategy": "cci_macd",
        }

    @pytest.mark.asyncio
    async def test_run_stops_after_max_cycles(self, monkeypatch):
        async def _no_sleep(_delay):
            return None

        monkeypatch.setattr("tradecore.runner.asyncio.sleep", _no_sleep)
        runner = SignalRunner(FakeExecutor(), [_make_pair("btc")])

        results = await runner.run(max_cycles=2)

        assert len(results) == 2
        assert runner.get_status()["running"] is False
