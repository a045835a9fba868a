#!/usr/bin/env python3
"""
AGENT BASE - The scoring contract every council member implements.

An agent is a pure function of (candles, regime, auxiliary payload). It adds
up signed points from a handful of rules, then maps the total onto
BUY/SELL/HOLD with symmetric cutoffs. Confidence is the absolute score
clamped to 0-100.
"""

from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence

from ..models import AgentCall, AgentRole, Candle, Regime, Sentiment, Signal, sentiment_for_score


class Agent(ABC):
    """Base class for council agents"""

    agent_id: str = ""
    name: str = ""
    role: AgentRole = AgentRole.TREND
    # Key into the auxiliary bundle this agent needs; None = candles only
    aux_key: Optional[str] = None

    MIN_CANDLES = 50
    CUTOFF = 30.0

    @abstractmethod
    def evaluate(self, candles: Sequence[Candle], regime: Optional[Regime] = None,
                 aux: Any = None) -> AgentCall:
        pass

    def neutral(self, reason: str, confidence: float = 0.0) -> AgentCall:
        return AgentCall(
            agent_id=self.agent_id,
            agent_name=self.name,
            role=self.role,
            signal=Signal.HOLD,
            confidence=confidence,
            sentiment=Sentiment.NEUTRAL,
            reason=reason,
        )

    def insufficient(self, candles: Sequence[Candle]) -> Optional[AgentCall]:
        """Neutral call when there is not enough history, else None."""
        if candles is None or len(candles) < self.MIN_CANDLES:
            count = 0 if candles is None else len(candles)
            return self.neutral(f"Insufficient data ({count}/{self.MIN_CANDLES} candles)")
        return None

    def from_score(self, score: float, reasons: List[str], fallback: str,
                   confidence: Optional[float] = None) -> AgentCall:
        """Map an accumulated score onto a call using this agent's cutoff."""
        if score >= self.CUTOFF:
            signal = Signal.BUY
        elif score <= -self.CUTOFF:
            signal = Signal.SELL
        else:
            signal = Signal.HOLD

        if confidence is None:
            confidence = abs(score)
        confidence = max(0.0, min(100.0, float(confidence)))

        return AgentCall(
            agent_id=self.agent_id,
            agent_name=self.name,
            role=self.role,
            signal=signal,
            confidence=confidence,
            sentiment=sentiment_for_score(score),
            reason=", ".join(reasons) if reasons else fallback,
        )
