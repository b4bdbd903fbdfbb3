"""Indicator pipeline: resolves named indicator definitions into arrays.

A strategy declares its indicators once, as a mapping of name →
``IndicatorDefinition``.  Each definition carries the indicator *kind* and a
frozen option structure specific to that kind, so nothing is interpreted
from loose dictionaries at step time.  ``DefaultIndicatorPipeline`` turns a
candle series plus those definitions into per-candle aligned value arrays.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Sequence, Union, runtime_checkable

from tradecore.models.candle import Candlestick, assert_ascending
from tradecore.strategy.indicators import (
    calculate_adx,
    calculate_ao,
    calculate_atr,
    calculate_bollinger,
    calculate_cci,
    calculate_ema,
    calculate_macd,
    calculate_mfi,
    calculate_obv,
    calculate_pivot_points,
    calculate_psar,
    calculate_rsi,
    calculate_sma,
)


# ── Option structures (one per indicator family) ─────────────────────────


@dataclass(frozen=True)
class NoOptions:
    """Indicator without tunable options (OBV, AO)."""


@dataclass(frozen=True)
class LengthOptions:
    length: int


@dataclass(frozen=True)
class MacdOptions:
    fast_length: int = 12
    slow_length: int = 26
    signal_length: int = 9


@dataclass(frozen=True)
class BollingerOptions:
    length: int = 20
    stddev: float = 2.0


@dataclass(frozen=True)
class PsarOptions:
    step: float = 0.02
    max: float = 0.2


@dataclass(frozen=True)
class PivotOptions:
    left: int = 4
    right: int = 2


IndicatorOptions = Union[
    NoOptions, LengthOptions, MacdOptions, BollingerOptions, PsarOptions, PivotOptions,
]


@dataclass(frozen=True)
class IndicatorDefinition:
    """A named indicator kind plus its typed options."""

    kind: str
    options: IndicatorOptions

    @property
    def name(self) -> str:
        return self.kind


def _pick(value, default):
    return default if value is None else value


class _IndicatorFactory:
    """Builders for every supported indicator kind.

    ``None`` arguments fall back to the kind's default, which lets a strategy
    forward optional user options straight through.
    """

    @staticmethod
    def sma(length: Optional[int] = None) -> IndicatorDefinition:
        return IndicatorDefinition("sma", LengthOptions(_pick(length, 14)))

    @staticmethod
    def ema(length: Optional[int] = None) -> IndicatorDefinition:
        return IndicatorDefinition("ema", LengthOptions(_pick(length, 200)))

    @staticmethod
    def rsi(length: Optional[int] = None) -> IndicatorDefinition:
        return IndicatorDefinition("rsi", LengthOptions(_pick(length, 14)))

    @staticmethod
    def atr(length: Optional[int] = None) -> IndicatorDefinition:
        return IndicatorDefinition("atr", LengthOptions(_pick(length, 14)))

    @staticmethod
    def adx(length: Optional[int] = None) -> IndicatorDefinition:
        return IndicatorDefinition("adx", LengthOptions(_pick(length, 14)))

    @staticmethod
    def mfi(length: Optional[int] = None) -> IndicatorDefinition:
        return IndicatorDefinition("mfi", LengthOptions(_pick(length, 14)))

    @staticmethod
    def cci(length: Optional[int] = None) -> IndicatorDefinition:
        return IndicatorDefinition("cci", LengthOptions(_pick(length, 20)))

    @staticmethod
    def obv() -> IndicatorDefinition:
        return IndicatorDefinition("obv", NoOptions())

    @staticmethod
    def ao() -> IndicatorDefinition:
        return IndicatorDefinition("ao", NoOptions())

    @staticmethod
    def macd(
        fast_length: Optional[int] = None,
        slow_length: Optional[int] = None,
        signal_length: Optional[int] = None,
    ) -> IndicatorDefinition:
        return IndicatorDefinition("macd", MacdOptions(
            fast_length=_pick(fast_length, 12),
            slow_length=_pick(slow_length, 26),
            signal_length=_pick(signal_length, 9),
        ))

    @staticmethod
    def bb(length: Optional[int] = None, stddev: Optional[float] = None) -> IndicatorDefinition:
        return IndicatorDefinition("bb", BollingerOptions(
            length=_pick(length, 20), stddev=_pick(stddev, 2.0),
        ))

    @staticmethod
    def psar(step: Optional[float] = None, max: Optional[float] = None) -> IndicatorDefinition:
        return IndicatorDefinition("psar", PsarOptions(
            step=_pick(step, 0.02), max=_pick(max, 0.2),
        ))

    @staticmethod
    def pivot_points_high_low(
        left: Optional[int] = None,
        right: Optional[int] = None,
    ) -> IndicatorDefinition:
        return IndicatorDefinition("pivot_points_high_low", PivotOptions(
            left=_pick(left, 4), right=_pick(right, 2),
        ))


indicator = _IndicatorFactory()


# ── Pipeline ─────────────────────────────────────────────────────────────


@runtime_checkable
class IndicatorPipeline(Protocol):
    """Turns candles + named definitions into candle-aligned arrays."""

    def compute(
        self,
        candles: Sequence[Candlestick],
        definitions: dict[str, IndicatorDefinition],
    ) -> dict[str, list]:
        ...


def compute_indicator(candles: Sequence[Candlestick], definition: IndicatorDefinition) -> list:
    """Compute a single indicator array aligned with *candles*."""
    kind = definition.kind
    opts = definition.options
    closes = [c.close for c in candles]

    if kind == "sma":
        return calculate_sma(closes, opts.length)
    if kind == "ema":
        return calculate_ema(closes, opts.length)
    if kind == "rsi":
        return calculate_rsi(closes, opts.length)
    if kind == "macd":
        return calculate_macd(closes, opts.fast_length, opts.slow_length, opts.signal_length)
    if kind == "bb":
        return calculate_bollinger(closes, opts.length, opts.stddev)
    if kind == "atr":
        return calculate_atr(candles, opts.length)
    if kind == "adx":
        return calculate_adx(candles, opts.length)
    if kind == "mfi":
        return calculate_mfi(candles, opts.length)
    if kind == "cci":
        return calculate_cci(candles, opts.length)
    if kind == "obv":
        return calculate_obv(candles)
    if kind == "ao":
        return calculate_ao(candles)
    if kind == "psar":
        return calculate_psar(candles, opts.step, opts.max)
    if kind == "pivot_points_high_low":
        return calculate_pivot_points(candles, opts.left, opts.right)

    raise KeyError(f"Unknown indicator kind '{kind}'")


class DefaultIndicatorPipeline:
    """In-process implementation of ``IndicatorPipeline``."""

    def compute(
        self,
        candles: Sequence[Candlestick],
        definitions: dict[str, IndicatorDefinition],
    ) -> dict[str, list]:
        assert_ascending(candles)
        return {
            name: compute_indicator(candles, definition)
            for name, definition in definitions.items()
        }
