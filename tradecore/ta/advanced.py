"""Advanced TA scorer: composite score over a fixed indicator basket.

Independent of any strategy: combines weighted indicator votes into a
score in [-1, 1], a confidence in [0, 1], a seven-tier label, divergence
flags and a Bollinger squeeze flag.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Literal, Optional, Sequence

from tradecore.errors import InsufficientData
from tradecore.models.candle import Candlestick, assert_ascending
from tradecore.strategy.models import Signal
from tradecore.strategy.pipeline import (
    DefaultIndicatorPipeline,
    IndicatorDefinition,
    IndicatorPipeline,
    indicator,
)
from tradecore.ta.divergence import DivergenceKind, detect_divergence, detect_squeeze

logger = logging.getLogger("tradecore.ta")

MIN_CANDLES = 100
MIN_SCORE_CLOSES = 50

Tier = Literal[
    "STRONG_BUY", "BUY", "WEAK_BUY", "NEUTRAL", "WEAK_SELL", "SELL", "STRONG_SELL",
]

_EMPTY_MACD = {"macd": 0.0, "signal": 0.0, "histogram": 0.0}
_EMPTY_BB = {"upper": 0.0, "middle": 0.0, "lower": 0.0, "width": 0.0}


def _round_half_up(value: float) -> int:
    """Nearest integer, halves rounded towards +infinity."""
    return int(math.floor(value + 0.5))


def _round2(value: float) -> float:
    """Two decimals, halves rounded towards +infinity."""
    return math.floor(value * 100 + 0.5) / 100


@dataclass(frozen=True)
class TAScore:
    score_total: float
    normalized_score: float  # [-1, 1]
    confidence: float  # [0, 1]
    volume_confirmation: float  # [0, 1]


@dataclass(frozen=True)
class TASignal:
    tier: Tier
    signal: Optional[Signal] = None
    trigger: bool = False


@dataclass(frozen=True)
class Divergences:
    rsi: DivergenceKind = "NONE"
    macd: DivergenceKind = "NONE"
    obv: DivergenceKind = "NONE"


@dataclass(frozen=True)
class AdvancedTAResult:
    score: TAScore
    signal: TASignal
    divergences: Divergences
    squeeze: bool
    current_price: float
    price_change_24h: float
    indicators: dict[str, Any] = field(default_factory=dict)


def _basket() -> dict[str, IndicatorDefinition]:
    return {
        "rsi": indicator.rsi(length=14),
        "macd": indicator.macd(fast_length=12, slow_length=26, signal_length=9),
        "bb": indicator.bb(length=20, stddev=2),
        "ema50": indicator.ema(length=50),
        "ema200": indicator.ema(length=200),
        "adx": indicator.adx(length=14),
        "atr": indicator.atr(length=14),
        "mfi": indicator.mfi(length=14),
        "obv": indicator.obv(),
        "cci": indicator.cci(length=20),
        "ao": indicator.ao(),
        "psar": indicator.psar(step=0.02, max=0.2),
    }


def _last(values: Sequence, fallback):
    return values[-1] if values else fallback


def _previous(values: Sequence, fallback):
    return values[-2] if len(values) > 1 else fallback


def calculate_score(values: dict[str, list], closes: Sequence[float]) -> TAScore:
    """Weighted vote over the basket's latest readings.

    *values* holds compact series (no warm-up ``None``).  Fewer than 50
    closes scores zero across the board.
    """
    if len(closes) < MIN_SCORE_CLOSES:
        return TAScore(0.0, 0.0, 0.0, 0.0)

    total = 0.0
    weights = 0.0

    rsi = _last(values["rsi"], 50.0)
    if 30 <= rsi <= 70:
        total += 1.0
    elif rsi < 30:
        total += 0.8
    else:
        total += 0.2
    weights += 1.0

    macd = _last(values["macd"], _EMPTY_MACD)
    macd_prev = _previous(values["macd"], macd)
    if macd["histogram"] > 0 and macd_prev["histogram"] <= 0:
        total += 1.0
    elif macd["histogram"] > 0:
        total += 0.7
    elif macd["histogram"] < 0 and macd_prev["histogram"] >= 0:
        total -= 1.0
    else:
        total -= 0.7
    weights += 1.0

    bb = _last(values["bb"], _EMPTY_BB)
    if bb["upper"] > bb["lower"]:
        price = _last(closes, 0.0)
        percent_b = (price - bb["lower"]) / (bb["upper"] - bb["lower"])
        if 0.2 < percent_b < 0.8:
            total += 0.8
        elif 0.8 <= percent_b <= 1.0:
            total += 0.5
        elif percent_b > 1.0:
            total -= 0.3
        else:
            total += 0.3
    weights += 1.0

    if _last(values["ema50"], 0.0) > _last(values["ema200"], 0.0):
        total += 1.0
    else:
        total -= 1.0
    weights += 1.0

    adx = _last(values["adx"], 0.0)
    if adx >= 25:
        total += 0.75
    elif adx >= 20:
        total += 0.75 * 0.5
    else:
        total -= 0.75 * 0.3
    weights += 0.75

    mfi = _last(values["mfi"], 50.0)
    if 30 <= mfi <= 70:
        total += 0.75 * 0.8
    elif mfi < 30:
        total += 0.75 * 0.5
    else:
        total -= 0.75 * 0.3
    weights += 0.75

    cci = _last(values["cci"], 0.0)
    if -100 < cci < 100:
        total += 0.5 * 0.8
    elif cci <= -100:
        total += 0.5 * 0.5
    else:
        total -= 0.5 * 0.5
    weights += 0.5

    if _last(values["ao"], 0.0) > 0:
        total += 0.5 * 0.8
    else:
        total -= 0.5 * 0.8
    weights += 0.5

    volume_confirmation = min(1.0, max(0.0, (mfi / 100) * 0.5 + (adx / 50) * 0.5))

    score_total = (total / weights) * 10
    normalized = max(-10.0, min(10.0, score_total)) / 10

    atr = max(_last(values["atr"], 1.0), 1e-9)
    signal_strength = abs(macd["histogram"]) / atr
    rsi_strength = 0.8 if 30 < rsi < 70 else 0.4
    trend_strength = 0.8 if adx >= 25 else 0.4
    confidence = min(1.0, signal_strength * 0.4 + rsi_strength * 0.3 + trend_strength * 0.3)

    return TAScore(
        score_total=_round2(score_total),
        normalized_score=_round2(normalized),
        confidence=_round2(confidence),
        volume_confirmation=_round2(volume_confirmation),
    )


def classify(score: TAScore) -> TASignal:
    """Map a score onto the seven-tier scale; only the outer tiers trigger."""
    s, conf = score.normalized_score, score.confidence

    if s >= 0.5 and conf >= 0.7:
        return TASignal("STRONG_BUY", "long", True)
    if s >= 0.35 and conf >= 0.5:
        return TASignal("BUY", "long", True)
    if s >= 0.2:
        return TASignal("WEAK_BUY")
    if s <= -0.5 and conf >= 0.7:
        return TASignal("STRONG_SELL", "short", True)
    if s <= -0.35 and conf >= 0.5:
        return TASignal("SELL", "short", True)
    if s <= -0.2:
        return TASignal("WEAK_SELL")
    return TASignal("NEUTRAL")


class AdvancedTA:
    """Runs the fixed basket through an indicator pipeline and scores it."""

    def __init__(self, pipeline: Optional[IndicatorPipeline] = None) -> None:
        self._pipeline = pipeline or DefaultIndicatorPipeline()

    def analyze(self, candles: Sequence[Candlestick]) -> AdvancedTAResult:
        """Score an ascending series of at least 100 candles.

        Raises ``InsufficientData`` for shorter series and
        ``OrderingViolation`` for newest-first ones.
        """
        if len(candles) < MIN_CANDLES:
            raise InsufficientData(
                f"Need at least {MIN_CANDLES} candles for analysis, got {len(candles)}"
            )
        assert_ascending(candles)

        closes = [c.close for c in candles]
        raw = self._pipeline.compute(candles, _basket())
        values = {name: [v for v in series if v is not None] for name, series in raw.items()}

        n = len(closes)
        price_change_24h = (
            ((closes[n - 1] - closes[n - 24]) / closes[n - 24]) * 100 if n >= 24 else 0.0
        )

        divergences = Divergences(
            rsi=detect_divergence(closes, values["rsi"]),
            macd=detect_divergence(closes, [m["histogram"] for m in values["macd"]]),
            obv=detect_divergence(values["obv"], values["rsi"]),
        )
        squeeze = detect_squeeze([b["width"] for b in values["bb"]])
        score = calculate_score(values, closes)
        signal = classify(score)

        logger.debug(
            "Advanced TA on %s:%s:%s: %s (score=%.2f, confidence=%.2f)",
            candles[-1].exchange, candles[-1].symbol, candles[-1].period,
            signal.tier, score.normalized_score, score.confidence,
        )

        return AdvancedTAResult(
            score=score,
            signal=signal,
            divergences=divergences,
            squeeze=squeeze,
            current_price=closes[-1],
            price_change_24h=_round2(price_change_24h),
            indicators={
                "rsi": _round2(_last(values["rsi"], 50.0)),
                "macd": dict(_last(values["macd"], _EMPTY_MACD)),
                "bb": dict(_last(values["bb"], _EMPTY_BB)),
                "ema50": _round2(_last(values["ema50"], 0.0)),
                "ema200": _round2(_last(values["ema200"], 0.0)),
                "adx": _round2(_last(values["adx"], 0.0)),
                "atr": _round2(_last(values["atr"], 0.0)),
                "mfi": _round2(_last(values["mfi"], 50.0)),
                "obv": _round_half_up(_last(values["obv"], 0.0)),
                "cci": _round_half_up(_last(values["cci"], 0.0)),
                "ao": _round2(_last(values["ao"], 0.0)),
                "sar": _round2(_last(values["psar"], 0.0)),
            },
        )
