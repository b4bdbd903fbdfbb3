"""Candle file loader: CSV / JSON files into ascending candle series.

Files hold one row per candle with ``time, open, high, low, close, volume``
columns.  ``time`` may be unix seconds or any timestamp pandas can parse
(treated as UTC).  The caller declares the file's row order.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from tradecore.models.candle import Candlestick, SeriesOrder, to_ascending

logger = logging.getLogger("tradecore.data")

REQUIRED_COLUMNS = ["time", "open", "high", "low", "close", "volume"]


def read_candle_frame(path: Path) -> pd.DataFrame:
    """Read a candle file into a DataFrame with unix-second ``time``."""
    suffix = path.suffix.lower()
    if suffix == ".csv":
        df = pd.read_csv(path)
    elif suffix == ".json":
        df = pd.read_json(path, orient="records", convert_dates=False)
    else:
        raise ValueError(f"Unsupported candle file type: {path.suffix!r}")

    df.columns = [str(c).strip().lower() for c in df.columns]
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Candle file {path} is missing column(s): {', '.join(missing)}")

    df = df[REQUIRED_COLUMNS].dropna()

    if pd.api.types.is_numeric_dtype(df["time"]):
        df["time"] = df["time"].astype("int64")
    else:
        ts = pd.to_datetime(df["time"], utc=True)
        df["time"] = (ts - pd.Timestamp(0, tz="UTC")) // pd.Timedelta(seconds=1)

    for col in ("open", "high", "low", "close", "volume"):
        df[col] = df[col].astype(float)

    return df.reset_index(drop=True)


def frame_to_candles(
    df: pd.DataFrame,
    exchange: str,
    symbol: str,
    period: str,
) -> list[Candlestick]:
    return [
        Candlestick(
            exchange=exchange,
            symbol=symbol,
            period=period,
            time=int(row.time),
            open=float(row.open),
            high=float(row.high),
            low=float(row.low),
            close=float(row.close),
            volume=float(row.volume),
        )
        for row in df.itertuples(index=False)
    ]


def load_candles(
    path: str | Path,
    exchange: str,
    symbol: str,
    period: str,
    order: SeriesOrder = "ascending",
) -> list[Candlestick]:
    """Load a candle file and return it oldest first.

    Raises ``OrderingViolation`` when the rows contradict the declared
    *order*.
    """
    path = Path(path)
    df = read_candle_frame(path)
    candles = to_ascending(frame_to_candles(df, exchange, symbol, period), order)
    logger.info(
        "Loaded %d candles for %s:%s:%s from %s",
        len(candles), exchange, symbol, period, path,
    )
    return candles
