#!/usr/bin/env python3
"""
INDICATORS - numpy implementations of the technical studies the agents read.

SMA, EMA, Wilder RSI, MACD, Bollinger Bands, ATR and ADX. Every function
takes plain arrays (oldest first) and returns floats or arrays; none of them
raise on short input, they fall back to a neutral value instead.
"""

import numpy as np
from typing import List, Sequence, Tuple

from .models import Candle


def to_arrays(candles: Sequence[Candle]) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Split candles into (highs, lows, closes) float arrays."""
    highs = np.array([c.high for c in candles], dtype=float)
    lows = np.array([c.low for c in candles], dtype=float)
    closes = np.array([c.close for c in candles], dtype=float)
    return highs, lows, closes


def sma(prices: np.ndarray, period: int) -> float:
    """Simple moving average of the last `period` values"""
    if len(prices) == 0:
        return 0.0
    if len(prices) < period:
        return float(np.mean(prices))
    return float(np.mean(prices[-period:]))


def ema(data: np.ndarray, period: int) -> np.ndarray:
    """Calculate Exponential Moving Average"""
    if len(data) < period:
        return np.array(data, dtype=float)

    multiplier = 2.0 / (period + 1)
    out = np.zeros(len(data), dtype=float)
    out[:period] = np.mean(data[:period])

    for i in range(period, len(data)):
        out[i] = (data[i] - out[i - 1]) * multiplier + out[i - 1]

    return out


def rsi(prices: np.ndarray, period: int = 14) -> float:
    """Calculate RSI"""
    if len(prices) < period + 1:
        return 50.0  # Neutral default

    deltas = np.diff(prices)
    gains = np.where(deltas > 0, deltas, 0)
    losses = np.where(deltas < 0, -deltas, 0)

    # Wilder's smoothing (exponential)
    avg_gain = np.mean(gains[:period])
    avg_loss = np.mean(losses[:period])

    for i in range(period, len(gains)):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period

    if avg_loss == 0:
        return 100.0 if avg_gain > 0 else 50.0

    rs = avg_gain / avg_loss
    return float(100 - (100 / (1 + rs)))


def macd_series(prices: np.ndarray, fast: int = 12, slow: int = 26,
                signal: int = 9) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """MACD line, signal line and histogram as full-length arrays"""
    if len(prices) < slow + signal:
        zeros = np.zeros(len(prices), dtype=float)
        return zeros, zeros.copy(), zeros.copy()

    macd_line = ema(prices, fast) - ema(prices, slow)
    signal_line = ema(macd_line, signal)
    return macd_line, signal_line, macd_line - signal_line


def macd(prices: np.ndarray, fast: int = 12, slow: int = 26,
         signal: int = 9) -> Tuple[float, float, float]:
    """Calculate MACD line, signal line, and histogram"""
    line, sig, hist = macd_series(prices, fast, slow, signal)
    if len(line) == 0:
        return 0.0, 0.0, 0.0
    return float(line[-1]), float(sig[-1]), float(hist[-1])


def bollinger(prices: np.ndarray, period: int = 20,
              std_dev: float = 2.0) -> Tuple[float, float, float]:
    """Calculate Bollinger Bands as (upper, middle, lower)"""
    window = prices[-period:] if len(prices) >= period else prices
    if len(window) == 0:
        return 0.0, 0.0, 0.0
    middle = float(np.mean(window))
    std = float(np.std(window))
    return middle + std_dev * std, middle, middle - std_dev * std


def true_range(highs: np.ndarray, lows: np.ndarray, closes: np.ndarray) -> np.ndarray:
    return np.maximum(
        highs[1:] - lows[1:],
        np.maximum(
            np.abs(highs[1:] - closes[:-1]),
            np.abs(lows[1:] - closes[:-1])
        )
    )


def atr(highs: np.ndarray, lows: np.ndarray, closes: np.ndarray,
        period: int = 14) -> float:
    """Calculate Average True Range over the last `period` bars"""
    if len(closes) < period + 1:
        return 0.0
    tr = true_range(highs, lows, closes)
    return float(np.mean(tr[-period:]))


def adx(highs: np.ndarray, lows: np.ndarray, closes: np.ndarray,
        period: int = 14) -> Tuple[float, float, float]:
    """Calculate ADX, +DI, -DI."""
    if len(closes) < period + 1:
        return 0.0, 0.0, 0.0

    tr_list = true_range(highs, lows, closes)
    up_moves = highs[1:] - highs[:-1]
    down_moves = lows[:-1] - lows[1:]
    plus_dm_list = np.where((up_moves > down_moves) & (up_moves > 0), up_moves, 0.0)
    minus_dm_list = np.where((down_moves > up_moves) & (down_moves > 0), down_moves, 0.0)

    tr_avg = np.mean(tr_list[:period])
    plus_dm_smooth = np.mean(plus_dm_list[:period])
    minus_dm_smooth = np.mean(minus_dm_list[:period])

    dx_list: List[float] = []
    for i in range(period, len(tr_list)):
        tr_avg = (tr_avg * (period - 1) + tr_list[i]) / period
        plus_dm_smooth = (plus_dm_smooth * (period - 1) + plus_dm_list[i]) / period
        minus_dm_smooth = (minus_dm_smooth * (period - 1) + minus_dm_list[i]) / period

        plus_di = (plus_dm_smooth / tr_avg * 100) if tr_avg > 0 else 0
        minus_di = (minus_dm_smooth / tr_avg * 100) if tr_avg > 0 else 0

        di_sum = plus_di + minus_di
        dx = abs(plus_di - minus_di) / di_sum * 100 if di_sum > 0 else 0
        dx_list.append(dx)

    if not dx_list:
        return 0.0, 0.0, 0.0

    value = float(np.mean(dx_list[-period:])) if len(dx_list) >= period else float(np.mean(dx_list))

    if tr_avg > 0:
        return value, float(plus_dm_smooth / tr_avg * 100), float(minus_dm_smooth / tr_avg * 100)
    return value, 0.0, 0.0
