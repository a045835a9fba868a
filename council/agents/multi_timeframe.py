#!/usr/bin/env python3
"""
MULTI-TIMEFRAME AGENT - Demands agreement across bar sizes.

Each supplied timeframe bucket is scored on its own (price vs SMA20, RSI
extremes). A directional call is only issued when a clear majority of the
evaluated buckets point the same way.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..indicators import rsi, sma, to_arrays
from ..models import AgentCall, AgentRole, Candle, Regime, Sentiment, Signal
from .base import Agent


class MultiTimeframeAgent(Agent):
    agent_id = "multi_timeframe_agent"
    name = "Multi-Timeframe Analyzer"
    role = AgentRole.MULTI_TIMEFRAME
    aux_key = "timeframes"

    MIN_BUCKET_BARS = 20
    BUCKET_CUTOFF = 30
    AGREEMENT = 0.6

    def score_bucket(self, candles: Sequence[Candle]) -> Tuple[Signal, float]:
        """Score one timeframe bucket; returns (signal, confidence)."""
        _, _, closes = to_arrays(candles)
        price = closes[-1]
        score = 40 if price > sma(closes, 20) else -40

        rsi_value = rsi(closes, 14)
        if rsi_value < 30:
            score += 30
        elif rsi_value > 70:
            score -= 30

        if score >= self.BUCKET_CUTOFF:
            signal = Signal.BUY
        elif score <= -self.BUCKET_CUTOFF:
            signal = Signal.SELL
        else:
            signal = Signal.HOLD
        return signal, float(min(abs(score), 100))

    def evaluate(self, candles: Sequence[Candle], regime: Optional[Regime] = None,
                 aux: Any = None) -> AgentCall:
        short = self.insufficient(candles)
        if short:
            return short
        if not aux:
            return self.neutral("No timeframe data available")

        timeframes: Mapping[str, Sequence[Candle]] = aux
        results: Dict[str, Tuple[Signal, float]] = {}
        for label, bucket in timeframes.items():
            if bucket is not None and len(bucket) >= self.MIN_BUCKET_BARS:
                results[label] = self.score_bucket(bucket)

        if not results:
            return self.neutral(f"Insufficient data in every timeframe (need {self.MIN_BUCKET_BARS} bars)")

        detail = ", ".join(f"{label}: {sig.value} {conf:.0f}" for label, (sig, conf) in results.items())
        total = len(results)
        buys = [conf for sig, conf in results.values() if sig == Signal.BUY]
        sells = [conf for sig, conf in results.values() if sig == Signal.SELL]

        if len(buys) / total >= self.AGREEMENT:
            return self._consensus(Signal.BUY, buys, total, detail)
        if len(sells) / total >= self.AGREEMENT:
            return self._consensus(Signal.SELL, sells, total, detail)

        return self.neutral(
            f"No timeframe consensus (BUY {len(buys)}, SELL {len(sells)}, of {total}) [{detail}]"
        )

    def _consensus(self, signal: Signal, confidences: List[float], total: int,
                   detail: str) -> AgentCall:
        confidence = sum(confidences) / len(confidences)
        return AgentCall(
            agent_id=self.agent_id,
            agent_name=self.name,
            role=self.role,
            signal=signal,
            confidence=max(0.0, min(100.0, confidence)),
            sentiment=Sentiment.BULLISH if signal == Signal.BUY else Sentiment.BEARISH,
            reason=f"Timeframe consensus: {signal.value} {len(confidences)}/{total} [{detail}]",
        )
