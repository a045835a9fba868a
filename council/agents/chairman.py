#!/usr/bin/env python3
"""
CHAIRMAN - Regime-aware generalist that weighs trend, momentum and context.
"""

from typing import Any, Optional, Sequence

from ..indicators import rsi, sma, to_arrays
from ..models import AgentCall, AgentRole, Candle, Regime
from .base import Agent


class ChairmanAgent(Agent):
    agent_id = "chairman"
    name = "Alpha (Chairman)"
    role = AgentRole.CHAIRMAN
    CUTOFF = 25.0

    HIGH_CONVICTION_SCORE = 50
    HIGH_CONVICTION_CONFIDENCE = 90.0

    def evaluate(self, candles: Sequence[Candle], regime: Optional[Regime] = None,
                 aux: Any = None) -> AgentCall:
        short = self.insufficient(candles)
        if short:
            return short

        _, _, closes = to_arrays(candles)
        price = closes[-1]
        sma20 = sma(closes, 20)
        sma50 = sma(closes, 50)
        rsi_value = rsi(closes, 14)

        score = 0.0
        reasons = []

        if price > sma20 and sma20 > sma50:
            score += 30
            reasons.append("Bullish trend alignment")
        elif price < sma20 and sma20 < sma50:
            score -= 30
            reasons.append("Bearish trend alignment")

        if rsi_value < 30:
            score += 20
            reasons.append(f"RSI Oversold ({rsi_value:.1f})")
        elif rsi_value > 70:
            score -= 20
            reasons.append(f"RSI Overbought ({rsi_value:.1f})")

        if regime == Regime.SQUEEZE and price > sma20:
            score += 10
            reasons.append("Squeeze with upside bias")
        elif regime == Regime.VOLATILE:
            score *= 0.5
            reasons.append("High Volatility (Caution)")

        confidence = None
        if abs(score) > self.HIGH_CONVICTION_SCORE:
            confidence = self.HIGH_CONVICTION_CONFIDENCE

        return self.from_score(score, reasons, "Market indecisive", confidence=confidence)
