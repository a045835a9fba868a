#!/usr/bin/env python3
"""
MODELS - Shared value types for the agent council.

Candles in, AgentCalls out. Every agent, the weighting engine, the ensemble
and the simulators speak in these types.
"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Dict


class Signal(Enum):
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"

    @property
    def vote(self) -> int:
        if self is Signal.BUY:
            return 1
        if self is Signal.SELL:
            return -1
        return 0


class Sentiment(Enum):
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"


class Regime(Enum):
    BULL_TREND = "BULL_TREND"
    BEAR_TREND = "BEAR_TREND"
    SIDEWAYS = "SIDEWAYS"
    VOLATILE = "VOLATILE"
    SQUEEZE = "SQUEEZE"


class Direction(Enum):
    """Realized market move used to grade a past call."""
    UP = "UP"
    DOWN = "DOWN"
    FLAT = "FLAT"


class AgentRole(Enum):
    CHAIRMAN = "CHAIRMAN"
    TREND = "TREND"
    REVERSAL = "REVERSAL"
    VOLATILE = "VOLATILE"
    MACRO = "MACRO"
    SENTIMENT = "SENTIMENT"
    OPTION = "OPTION"
    MULTI_TIMEFRAME = "MULTI_TIMEFRAME"


@dataclass(frozen=True)
class Candle:
    timestamp: str
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0


@dataclass(frozen=True)
class AgentCall:
    """One agent's opinion on one snapshot of market data."""
    agent_id: str
    agent_name: str
    role: AgentRole
    signal: Signal
    confidence: float  # 0 to 100
    sentiment: Sentiment
    reason: str

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["role"] = self.role.value
        data["signal"] = self.signal.value
        data["sentiment"] = self.sentiment.value
        return data


def sentiment_for_score(score: float) -> Sentiment:
    if score > 0:
        return Sentiment.BULLISH
    if score < 0:
        return Sentiment.BEARISH
    return Sentiment.NEUTRAL
