#!/usr/bin/env python3
"""
DATA LAYER - Boundaries to the outside world and pandas helpers.

Market data and text sentiment come from providers the core never talks to
directly; they plug in behind the two small base classes below. The pandas
helpers turn an OHLC frame into Candles and build the per-timeframe buckets
the multi-timeframe agent reads.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Sequence

import pandas as pd

from .models import Candle

OHLC_COLUMNS = ("open", "high", "low", "close")

# Label -> pandas resample rule
DEFAULT_TIMEFRAMES = {
    "daily": "1D",
    "weekly": "W",
    "monthly": "ME",
}


class MarketDataFeed(ABC):
    """Source of OHLC history for a symbol"""

    @abstractmethod
    def fetch_history(self, symbol: str) -> List[Candle]:
        pass


class SentimentProvider(ABC):
    """Scores free text about a symbol in [-1, +1]"""

    @abstractmethod
    def score(self, symbol: str, text: str) -> float:
        pass


def candles_from_frame(frame: pd.DataFrame) -> List[Candle]:
    """
    Convert an OHLC frame into Candles, oldest first.

    Column names are matched case-insensitively. The timestamp comes from a
    `timestamp`, `date` or `time` column, else from the index. Rows with a
    missing price are dropped.
    """
    df = frame.copy()
    df.columns = [str(c).lower() for c in df.columns]

    missing = [c for c in OHLC_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"OHLC frame is missing columns: {missing}")

    time_col = next((c for c in ("timestamp", "date", "time") if c in df.columns), None)
    if time_col is None:
        df = df.reset_index().rename(columns={df.index.name or "index": "timestamp"})
        time_col = "timestamp"

    df = df.dropna(subset=list(OHLC_COLUMNS))
    df[time_col] = pd.to_datetime(df[time_col])
    df = df.sort_values(time_col)
    if "volume" not in df.columns:
        df["volume"] = 0.0

    return [
        Candle(
            timestamp=row[time_col].isoformat(),
            open=float(row["open"]),
            high=float(row["high"]),
            low=float(row["low"]),
            close=float(row["close"]),
            volume=float(row["volume"]) if pd.notna(row["volume"]) else 0.0,
        )
        for _, row in df.iterrows()
    ]


def candles_to_frame(candles: Sequence[Candle]) -> pd.DataFrame:
    """Candles as a DataFrame indexed by timestamp."""
    frame = pd.DataFrame(
        [(c.timestamp, c.open, c.high, c.low, c.close, c.volume) for c in candles],
        columns=["timestamp", "open", "high", "low", "close", "volume"],
    )
    frame["timestamp"] = pd.to_datetime(frame["timestamp"])
    return frame.set_index("timestamp")


def resample_candles(candles: Sequence[Candle], rule: str) -> List[Candle]:
    """Aggregate candles into coarser bars (first/max/min/last/sum)."""
    if not candles:
        return []
    frame = candles_to_frame(candles)
    bars = frame.resample(rule).agg({
        "open": "first",
        "high": "max",
        "low": "min",
        "close": "last",
        "volume": "sum",
    }).dropna(subset=["close"])
    return candles_from_frame(bars.reset_index())


def build_timeframes(candles: Sequence[Candle],
                     rules: Dict[str, str] = None) -> Dict[str, List[Candle]]:
    """Per-timeframe buckets for the multi-timeframe agent."""
    rules = rules or DEFAULT_TIMEFRAMES
    return {label: resample_candles(candles, rule) for label, rule in rules.items()}
