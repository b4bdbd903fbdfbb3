"""Technical indicators: SMA, EMA, RSI, MACD, Bollinger, ATR, ADX, MFI, OBV,
CCI, AO, Parabolic SAR, pivot points. Pure functions, no I/O.

Every function returns a list aligned with its input: one entry per candle,
``None`` until the indicator's warm-up window is satisfied.  A series that
is shorter than the warm-up window yields all ``None`` rather than an error,
so callers can treat it as "no result yet".
"""

import math
from typing import Optional, Sequence

from tradecore.models.candle import Candlestick


def _none_list(n: int) -> list:
    return [None] * n


# ── Moving averages ──────────────────────────────────────────────────────


def calculate_sma(values: Sequence[float], length: int) -> list[Optional[float]]:
    """Simple moving average over *length* values."""
    n = len(values)
    out: list[Optional[float]] = _none_list(n)
    if length <= 0 or n < length:
        return out

    window_sum = sum(values[:length])
    out[length - 1] = window_sum / length
    for i in range(length, n):
        window_sum += values[i] - values[i - length]
        out[i] = window_sum / length
    return out


def calculate_ema(values: Sequence[float], length: int) -> list[Optional[float]]:
    """Exponential moving average.

    Uses the standard EMA formula:
        ``EMA_today = value × k + EMA_yesterday × (1 - k)``
    where ``k = 2 / (length + 1)``.  The first value is seeded with the SMA
    of the first *length* values.
    """
    n = len(values)
    out: list[Optional[float]] = _none_list(n)
    if length <= 0 or n < length:
        return out

    k = 2.0 / (length + 1)
    prev = sum(values[:length]) / length
    out[length - 1] = prev
    for i in range(length, n):
        prev = values[i] * k + prev * (1 - k)
        out[i] = prev
    return out


# ── RSI ──────────────────────────────────────────────────────────────────


def calculate_rsi(closes: Sequence[float], length: int = 14) -> list[Optional[float]]:
    """Wilder's Relative Strength Index.

    Algorithm (Wilder-smoothed):
        1. delta = close[i] - close[i-1]
        2. Separate gains (positive) and losses (|negative|).
        3. Seed average gain/loss = SMA of first *length* deltas.
        4. Subsequent: avg = (prev_avg × (length-1) + current) / length
        5. RSI = 100 - 100 / (1 + avg_gain / avg_loss)

    The first value appears at index *length*.
    """
    n = len(closes)
    rsi: list[Optional[float]] = _none_list(n)
    if n < length + 1:
        return rsi

    deltas = [closes[i] - closes[i - 1] for i in range(1, n)]
    gains = [max(d, 0.0) for d in deltas]
    losses = [abs(min(d, 0.0)) for d in deltas]

    def _rsi_from_avgs(ag: float, al: float) -> float:
        if al == 0:
            return 100.0
        return 100.0 - 100.0 / (1.0 + ag / al)

    avg_gain = sum(gains[:length]) / length
    avg_loss = sum(losses[:length]) / length
    rsi[length] = _rsi_from_avgs(avg_gain, avg_loss)

    for i in range(length, len(deltas)):
        avg_gain = (avg_gain * (length - 1) + gains[i]) / length
        avg_loss = (avg_loss * (length - 1) + losses[i]) / length
        # deltas are offset by one against closes
        rsi[i + 1] = _rsi_from_avgs(avg_gain, avg_loss)

    return rsi


# ── MACD ─────────────────────────────────────────────────────────────────


def calculate_macd(
    closes: Sequence[float],
    fast_length: int = 12,
    slow_length: int = 26,
    signal_length: int = 9,
) -> list[Optional[dict]]:
    """MACD line, signal line and histogram.

    Each ready entry is ``{"macd": ..., "signal": ..., "histogram": ...}``.
    Entries appear once the signal line (an EMA of the MACD line) is seeded.
    """
    n = len(closes)
    out: list[Optional[dict]] = _none_list(n)
    fast = calculate_ema(closes, fast_length)
    slow = calculate_ema(closes, slow_length)

    line_start = None
    line: list[float] = []
    for i in range(n):
        if fast[i] is None or slow[i] is None:
            continue
        if line_start is None:
            line_start = i
        line.append(fast[i] - slow[i])

    if line_start is None:
        return out

    signal = calculate_ema(line, signal_length)
    for j, sig in enumerate(signal):
        if sig is None:
            continue
        out[line_start + j] = {
            "macd": line[j],
            "signal": sig,
            "histogram": line[j] - sig,
        }
    return out


# ── Bollinger Bands ──────────────────────────────────────────────────────


def calculate_bollinger(
    closes: Sequence[float],
    length: int = 20,
    stddev: float = 2.0,
) -> list[Optional[dict]]:
    """Bollinger Bands.

    Middle = SMA(close, *length*)
    Upper  = middle + *stddev* × σ
    Lower  = middle − *stddev* × σ
    Width  = (upper − lower) / middle

    Each ready entry is ``{"upper", "middle", "lower", "width"}``.
    """
    n = len(closes)
    out: list[Optional[dict]] = _none_list(n)
    if length <= 0 or n < length:
        return out

    for i in range(length - 1, n):
        window = closes[i - length + 1 : i + 1]
        sma = sum(window) / length
        variance = sum((x - sma) ** 2 for x in window) / length
        sigma = math.sqrt(variance)
        upper = sma + stddev * sigma
        lower = sma - stddev * sigma
        out[i] = {
            "upper": upper,
            "middle": sma,
            "lower": lower,
            "width": (upper - lower) / sma if sma else 0.0,
        }
    return out


# ── ATR ──────────────────────────────────────────────────────────────────


def _true_ranges(candles: Sequence[Candlestick]) -> list[float]:
    """True range per bar; index 0 has no previous close and uses high - low."""
    trs: list[float] = []
    for i, c in enumerate(candles):
        if i == 0:
            trs.append(c.high - c.low)
            continue
        prev_close = candles[i - 1].close
        trs.append(max(c.high - c.low, abs(c.high - prev_close), abs(c.low - prev_close)))
    return trs


def calculate_atr(candles: Sequence[Candlestick], length: int = 14) -> list[Optional[float]]:
    """Average True Range, Wilder-smoothed.

    Uses the standard True Range definition:
        TR = max(high - low, |high - prev_close|, |low - prev_close|)

    Seeded with the simple average of the first *length* true ranges that
    have a previous close; the first value appears at index *length*.
    """
    n = len(candles)
    out: list[Optional[float]] = _none_list(n)
    if n < length + 1:
        return out

    trs = _true_ranges(candles)
    atr = sum(trs[1 : length + 1]) / length
    out[length] = atr
    for i in range(length + 1, n):
        atr = (atr * (length - 1) + trs[i]) / length
        out[i] = atr
    return out


# ── ADX ──────────────────────────────────────────────────────────────────


def calculate_adx(candles: Sequence[Candlestick], length: int = 14) -> list[Optional[float]]:
    """Average Directional Index (ADX).

    Algorithm:
        1. +DM / -DM directional movement per bar.
        2. Wilder-smooth +DM, -DM, and TR over *length*.
        3. +DI = 100 × smoothed_+DM / smoothed_TR
        4. -DI = 100 × smoothed_-DM / smoothed_TR
        5. DX = 100 × |+DI − −DI| / (+DI + −DI)
        6. ADX = Wilder-smoothed DX over *length*.

    Needs at least ``2 × length`` candles.
    """
    n = len(candles)
    adx: list[Optional[float]] = _none_list(n)
    if n < 2 * length:
        return adx

    plus_dm_raw: list[float] = [0.0]
    minus_dm_raw: list[float] = [0.0]
    tr_raw: list[float] = [0.0]

    for i in range(1, n):
        high = candles[i].high
        low = candles[i].low
        prev_close = candles[i - 1].close

        up_move = high - candles[i - 1].high
        down_move = candles[i - 1].low - low

        plus_dm_raw.append(up_move if (up_move > down_move and up_move > 0) else 0.0)
        minus_dm_raw.append(down_move if (down_move > up_move and down_move > 0) else 0.0)
        tr_raw.append(max(high - low, abs(high - prev_close), abs(low - prev_close)))

    def _compute_dx(s_pdm: float, s_mdm: float, s_tr: float) -> float:
        if s_tr == 0:
            return 0.0
        plus_di = 100.0 * s_pdm / s_tr
        minus_di = 100.0 * s_mdm / s_tr
        di_sum = plus_di + minus_di
        if di_sum == 0:
            return 0.0
        return 100.0 * abs(plus_di - minus_di) / di_sum

    smoothed_plus_dm = sum(plus_dm_raw[1 : length + 1])
    smoothed_minus_dm = sum(minus_dm_raw[1 : length + 1])
    smoothed_tr = sum(tr_raw[1 : length + 1])

    # dx_values[0] belongs to candle index *length*
    dx_values = [_compute_dx(smoothed_plus_dm, smoothed_minus_dm, smoothed_tr)]
    for i in range(length + 1, n):
        smoothed_plus_dm = smoothed_plus_dm - smoothed_plus_dm / length + plus_dm_raw[i]
        smoothed_minus_dm = smoothed_minus_dm - smoothed_minus_dm / length + minus_dm_raw[i]
        smoothed_tr = smoothed_tr - smoothed_tr / length + tr_raw[i]
        dx_values.append(_compute_dx(smoothed_plus_dm, smoothed_minus_dm, smoothed_tr))

    if len(dx_values) < length:
        return adx

    prev = sum(dx_values[:length]) / length
    adx[2 * length - 1] = prev
    for j in range(length, len(dx_values)):
        prev = (prev * (length - 1) + dx_values[j]) / length
        adx[length + j] = prev

    return adx


# ── Volume ───────────────────────────────────────────────────────────────


def calculate_mfi(candles: Sequence[Candlestick], length: int = 14) -> list[Optional[float]]:
    """Money Flow Index over *length* bars (first value at index *length*)."""
    n = len(candles)
    out: list[Optional[float]] = _none_list(n)
    if n < length + 1:
        return out

    typical = [(c.high + c.low + c.close) / 3.0 for c in candles]
    positive = [0.0] * n
    negative = [0.0] * n
    for i in range(1, n):
        flow = typical[i] * candles[i].volume
        if typical[i] > typical[i - 1]:
            positive[i] = flow
        elif typical[i] < typical[i - 1]:
            negative[i] = flow

    for i in range(length, n):
        pos = sum(positive[i - length + 1 : i + 1])
        neg = sum(negative[i - length + 1 : i + 1])
        if neg == 0:
            out[i] = 100.0
        else:
            out[i] = 100.0 - 100.0 / (1.0 + pos / neg)
    return out


def calculate_obv(candles: Sequence[Candlestick]) -> list[Optional[float]]:
    """On-Balance Volume, starting at 0 on the first candle."""
    out: list[Optional[float]] = []
    obv = 0.0
    for i, c in enumerate(candles):
        if i > 0:
            prev = candles[i - 1].close
            if c.close > prev:
                obv += c.volume
            elif c.close < prev:
                obv -= c.volume
        out.append(obv)
    return out


# ── Oscillators ──────────────────────────────────────────────────────────


def calculate_cci(candles: Sequence[Candlestick], length: int = 20) -> list[Optional[float]]:
    """Commodity Channel Index: (TP − SMA(TP)) / (0.015 × mean deviation)."""
    n = len(candles)
    out: list[Optional[float]] = _none_list(n)
    if n < length:
        return out

    typical = [(c.high + c.low + c.close) / 3.0 for c in candles]
    for i in range(length - 1, n):
        window = typical[i - length + 1 : i + 1]
        sma = sum(window) / length
        mean_dev = sum(abs(x - sma) for x in window) / length
        out[i] = 0.0 if mean_dev == 0 else (typical[i] - sma) / (0.015 * mean_dev)
    return out


def calculate_ao(
    candles: Sequence[Candlestick],
    fast_length: int = 5,
    slow_length: int = 34,
) -> list[Optional[float]]:
    """Awesome Oscillator: SMA5 − SMA34 of the bar midpoints."""
    medians = [(c.high + c.low) / 2.0 for c in candles]
    fast = calculate_sma(medians, fast_length)
    slow = calculate_sma(medians, slow_length)
    return [
        f - s if f is not None and s is not None else None
        for f, s in zip(fast, slow)
    ]


def calculate_psar(
    candles: Sequence[Candlestick],
    step: float = 0.02,
    max_step: float = 0.2,
) -> list[Optional[float]]:
    """Wilder's Parabolic SAR. The first candle only seeds the trend."""
    n = len(candles)
    out: list[Optional[float]] = _none_list(n)
    if n < 2:
        return out

    rising = candles[1].close >= candles[0].close
    sar = candles[0].low if rising else candles[0].high
    extreme = candles[0].high if rising else candles[0].low
    accel = step

    for i in range(1, n):
        c = candles[i]
        sar = sar + accel * (extreme - sar)

        if rising:
            sar = min(sar, candles[i - 1].low, candles[i - 2].low if i >= 2 else candles[i - 1].low)
            if c.low < sar:
                rising = False
                sar = extreme
                extreme = c.low
                accel = step
            elif c.high > extreme:
                extreme = c.high
                accel = min(accel + step, max_step)
        else:
            sar = max(sar, candles[i - 1].high, candles[i - 2].high if i >= 2 else candles[i - 1].high)
            if c.high > sar:
                rising = True
                sar = extreme
                extreme = c.high
                accel = step
            elif c.low < extreme:
                extreme = c.low
                accel = min(accel + step, max_step)

        out[i] = sar
    return out


# ── Pivot points ─────────────────────────────────────────────────────────


def calculate_pivot_points(
    candles: Sequence[Candlestick],
    left: int = 4,
    right: int = 2,
) -> list[Optional[dict]]:
    """Confirmed pivot highs/lows.

    At index *i* the candle ``i - right`` is tested: it is a pivot high when
    no candle in the *left* bars before or *right* bars after has a higher
    high (lows likewise).  Entries are ``{"high": price}``, ``{"low": price}``,
    both, or ``None``.
    """
    n = len(candles)
    out: list[Optional[dict]] = _none_list(n)
    for i in range(left + right, n):
        center = i - right
        neighbours = list(candles[center - left : center]) + list(candles[center + 1 : i + 1])
        pivot: dict = {}
        if all(c.high <= candles[center].high for c in neighbours):
            pivot["high"] = candles[center].high
        if all(c.low >= candles[center].low for c in neighbours):
            pivot["low"] = candles[center].low
        if pivot:
            out[i] = pivot
    return out
