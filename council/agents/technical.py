#!/usr/bin/env python3
"""
TECHNICAL AGENTS - Price-only council members.

- TrendAgent: moving-average ordering plus MACD acceleration
- ReversalAgent: RSI and Bollinger extremes (mean reversion)
- VolatilityAgent: ATR expansion read through the regime
"""

from typing import Any, Optional, Sequence

from ..indicators import atr, bollinger, macd_series, rsi, sma, to_arrays
from ..models import AgentCall, AgentRole, Candle, Regime
from .base import Agent


class TrendAgent(Agent):
    """Rewards sustained directional alignment."""

    agent_id = "trend_agent"
    name = "Trend Follower"
    role = AgentRole.TREND
    CUTOFF = 30.0

    ORDER_POINTS = 40
    MACD_POINTS = 20
    MOMENTUM_POINTS = 10

    def evaluate(self, candles: Sequence[Candle], regime: Optional[Regime] = None,
                 aux: Any = None) -> AgentCall:
        short = self.insufficient(candles)
        if short:
            return short

        _, _, closes = to_arrays(candles)
        price = closes[-1]
        sma20 = sma(closes, 20)
        sma50 = sma(closes, 50)
        macd_line, signal_line, hist = macd_series(closes)

        score = 0.0
        reasons = []

        if price > sma20 > sma50:
            score += self.ORDER_POINTS
            reasons.append("Perfect Order (Price > SMA20 > SMA50)")
        elif price < sma20 < sma50:
            score -= self.ORDER_POINTS
            reasons.append("Dead Cross Order (Price < SMA20 < SMA50)")

        if macd_line[-1] > signal_line[-1]:
            score += self.MACD_POINTS
            reasons.append("MACD above signal")
            if hist[-1] > 0 and hist[-1] > hist[-2]:
                score += self.MOMENTUM_POINTS
                reasons.append("MACD Momentum Rising")
        elif macd_line[-1] < signal_line[-1]:
            score -= self.MACD_POINTS
            reasons.append("MACD below signal")

        return self.from_score(score, reasons, "No strong trend")


class ReversalAgent(Agent):
    """Contrarian: buys oversold, sells overbought."""

    agent_id = "reversal_agent"
    name = "Contra (Reversal)"
    role = AgentRole.REVERSAL
    CUTOFF = 40.0

    RSI_OVERSOLD = 30
    RSI_OVERBOUGHT = 70

    def evaluate(self, candles: Sequence[Candle], regime: Optional[Regime] = None,
                 aux: Any = None) -> AgentCall:
        short = self.insufficient(candles)
        if short:
            return short

        _, _, closes = to_arrays(candles)
        price = closes[-1]
        rsi_value = rsi(closes, 14)
        upper, _, lower = bollinger(closes, 20, 2.0)

        score = 0.0
        reasons = []

        if rsi_value < self.RSI_OVERSOLD:
            score += 50
            reasons.append(f"RSI Oversold ({rsi_value:.1f})")
        elif rsi_value > self.RSI_OVERBOUGHT:
            score -= 50
            reasons.append(f"RSI Overbought ({rsi_value:.1f})")

        if price < lower:
            score += 30
            reasons.append("Price below lower Bollinger Band")
        elif price > upper:
            score -= 30
            reasons.append("Price above upper Bollinger Band")

        return self.from_score(score, reasons, "No extremes detected")


class VolatilityAgent(Agent):
    """Trades volatility expansion in the direction of the prevailing regime."""

    agent_id = "volatility_agent"
    name = "Hunter (Volatility)"
    role = AgentRole.VOLATILE
    CUTOFF = 40.0

    EXPANSION_ATR_PCT = 2.0

    def evaluate(self, candles: Sequence[Candle], regime: Optional[Regime] = None,
                 aux: Any = None) -> AgentCall:
        short = self.insufficient(candles)
        if short:
            return short

        if regime == Regime.SQUEEZE:
            return self.neutral("Squeeze Active - Awaiting breakout", confidence=50.0)

        highs, lows, closes = to_arrays(candles)
        price = closes[-1]
        atr_value = atr(highs, lows, closes, 14)
        atr_pct = (atr_value / price * 100) if price > 0 else 0.0

        score = 0.0
        reasons = []

        if atr_pct > self.EXPANSION_ATR_PCT and regime not in (None, Regime.SIDEWAYS):
            if regime == Regime.BULL_TREND:
                score += 40
                reasons.append(f"Volatility expansion in uptrend (ATR {atr_pct:.2f}%)")
            elif regime == Regime.BEAR_TREND:
                score -= 40
                reasons.append(f"Volatility expansion in downtrend (ATR {atr_pct:.2f}%)")

        if atr_pct <= self.EXPANSION_ATR_PCT:
            fallback = f"Low Volatility (ATR {atr_pct:.2f}%)"
        else:
            fallback = f"No directional regime (ATR {atr_pct:.2f}%)"
        return self.from_score(score, reasons, fallback)
