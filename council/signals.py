#!/usr/bin/env python3
"""
SIGNAL GENERATOR - The live technical snapshot and its historical replay.

analyze_snapshot() is what the dashboard-side consumer calls on the latest
candles: bull and bear points from trend, momentum and band position, scaled
by how strongly the market is trending (ADX).

generate_historical_signals() replays exactly the same function at every
bar that has enough look-back, so the backtester trades what the live
system would have said at each point in time.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from .indicators import adx, bollinger, macd, rsi, sma, to_arrays
from .models import Candle, Sentiment

logger = logging.getLogger(__name__)

MIN_BARS = 50
TRENDING_ADX = 25


@dataclass(frozen=True)
class HistoricalSignal:
    time: str
    price: float
    confidence: int  # 0 to 100
    sentiment: Sentiment


@dataclass
class MarketSnapshot:
    confidence: int
    sentiment: Sentiment
    bull_points: int = 0
    bear_points: int = 0
    trending: bool = False
    reasons: List[str] = field(default_factory=list)
    stats: Dict[str, float] = field(default_factory=dict)


def analyze_snapshot(candles: Sequence[Candle]) -> MarketSnapshot:
    """Score the latest bar of `candles`."""
    if len(candles) < MIN_BARS:
        return MarketSnapshot(confidence=0, sentiment=Sentiment.NEUTRAL,
                              reasons=[f"Insufficient data ({len(candles)}/{MIN_BARS} bars)"])

    highs, lows, closes = to_arrays(candles)
    price = closes[-1]
    sma20 = sma(closes, 20)
    sma50 = sma(closes, 50)
    rsi_value = rsi(closes, 14)
    macd_line, macd_signal, _ = macd(closes)
    upper, _, lower = bollinger(closes, 20, 2.0)
    adx_value, _, _ = adx(highs, lows, closes, 14)

    bull = 0
    bear = 0
    reasons = []

    if price > sma20:
        bull += 15
        reasons.append("Price above SMA20")
    else:
        bear += 15
        reasons.append("Price below SMA20")

    if sma20 > sma50:
        bull += 15
        reasons.append("SMA20 above SMA50")
    else:
        bear += 15
        reasons.append("SMA20 below SMA50")

    if rsi_value > 50:
        bull += 10
    else:
        bear += 10
    if rsi_value < 35:
        bull += 20
        reasons.append(f"RSI oversold ({rsi_value:.1f})")
    elif rsi_value > 65:
        bear += 20
        reasons.append(f"RSI overbought ({rsi_value:.1f})")

    if macd_line > macd_signal:
        bull += 15
        reasons.append("MACD bullish")
    else:
        bear += 15
        reasons.append("MACD bearish")

    if price > upper:
        bear += 10
        reasons.append("Above upper band")
    elif price < lower:
        bull += 10
        reasons.append("Below lower band")

    trending = adx_value > TRENDING_ADX
    raw = abs(bull - bear) / 50 * 100
    raw *= 1.2 if trending else 0.7
    confidence = int(min(round(raw), 100))

    return MarketSnapshot(
        confidence=confidence,
        sentiment=Sentiment.BULLISH if bull >= bear else Sentiment.BEARISH,
        bull_points=bull,
        bear_points=bear,
        trending=trending,
        reasons=reasons,
        stats={
            "sma20": sma20,
            "sma50": sma50,
            "rsi": rsi_value,
            "macd": macd_line,
            "macd_signal": macd_signal,
            "bb_upper": upper,
            "bb_lower": lower,
            "adx": adx_value,
        },
    )


def generate_historical_signals(candles: Sequence[Candle]) -> List[HistoricalSignal]:
    """One signal per bar once the look-back windows are satisfied."""
    if len(candles) < MIN_BARS:
        return []

    candles = list(candles)
    signals = []
    for i in range(MIN_BARS - 1, len(candles)):
        snap = analyze_snapshot(candles[:i + 1])
        signals.append(HistoricalSignal(
            time=candles[i].timestamp,
            price=candles[i].close,
            confidence=snap.confidence,
            sentiment=snap.sentiment,
        ))

    logger.debug(f"Generated {len(signals)} historical signals from {len(candles)} bars")
    return signals
