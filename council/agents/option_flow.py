#!/usr/bin/env python3
"""
OPTION FLOW AGENT - Reads positioning from the options tape.

Put/call volume, open-interest skew, implied volatility, institutional
participation and distance from max pain each add or subtract points.
A rolling window of recent flows answers "is volume building?" and
"is this print unusual?" separately from evaluate().
"""

import logging
import math
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Dict, List, Optional, Sequence

from ..models import AgentCall, AgentRole, Candle, Regime
from .base import Agent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OptionFlowSnapshot:
    symbol: str
    call_volume: float
    put_volume: float
    call_oi: float
    put_oi: float
    implied_volatility: float  # percent, e.g. 25.0
    institutional_activity: str = "MEDIUM"  # HIGH / MEDIUM / LOW
    max_pain: Optional[float] = None
    date: str = ""

    @classmethod
    def from_dict(cls, data: Dict) -> "OptionFlowSnapshot":
        return cls(
            symbol=str(data.get("symbol", "")),
            call_volume=data.get("call_volume"),
            put_volume=data.get("put_volume"),
            call_oi=data.get("call_oi"),
            put_oi=data.get("put_oi"),
            implied_volatility=data.get("implied_volatility"),
            institutional_activity=data.get("institutional_activity", "MEDIUM"),
            max_pain=data.get("max_pain"),
            date=str(data.get("date", "")),
        )


class OptionFlowAgent(Agent):
    agent_id = "option_flow_agent"
    name = "Option Flow Analyzer"
    role = AgentRole.OPTION
    aux_key = "option_flow"
    CUTOFF = 50.0

    MAX_HISTORY = 30
    EXTREME_VOLUME = 100_000
    EXTREME_DAMPING = 0.5

    def __init__(self):
        self._flows: Deque[OptionFlowSnapshot] = deque(maxlen=self.MAX_HISTORY)

    def evaluate(self, candles: Sequence[Candle], regime: Optional[Regime] = None,
                 aux: Any = None) -> AgentCall:
        short = self.insufficient(candles)
        if short:
            return short
        if aux is None:
            return self.neutral("No option flow data available")

        flow = OptionFlowSnapshot.from_dict(aux) if isinstance(aux, dict) else aux
        if not isinstance(flow, OptionFlowSnapshot):
            return self.neutral(f"Option flow data invalid (unexpected {type(aux).__name__})")
        numbers = [flow.call_volume, flow.put_volume, flow.call_oi, flow.put_oi,
                   flow.implied_volatility]
        if any(not _valid_number(n) for n in numbers):
            return self.neutral("Option flow data invalid (negative or non-numeric field)")

        total_volume = flow.call_volume + flow.put_volume
        if total_volume == 0:
            return self.neutral("Option flow shows no activity (zero volume)")

        price = candles[-1].close
        score = 0.0
        reasons: List[str] = []

        put_call = flow.put_volume / flow.call_volume if flow.call_volume > 0 else math.inf
        if put_call < 0.6:
            score += 30
            reasons.append(f"Bullish Put/Call ratio ({put_call:.2f})")
        elif put_call > 1.4:
            score -= 30
            reasons.append(f"Bearish Put/Call ratio ({put_call:.2f})")

        if flow.call_oi > 0:
            oi_ratio = flow.put_oi / flow.call_oi
            if oi_ratio < 0.7:
                score += 20
                reasons.append(f"Bullish OI ratio ({oi_ratio:.2f})")
            elif oi_ratio > 1.3:
                score -= 20
                reasons.append(f"Bearish OI ratio ({oi_ratio:.2f})")

        iv = flow.implied_volatility
        if iv > 30:
            score -= 15
            reasons.append(f"High implied volatility ({iv:.1f}%)")
        elif iv < 20:
            score += 10
            reasons.append(f"Low implied volatility ({iv:.1f}%)")

        activity = str(flow.institutional_activity or "").upper()
        if activity == "HIGH":
            score += 15
            reasons.append("High institutional activity")
        elif activity == "LOW":
            score -= 10
            reasons.append("Low institutional activity")

        if flow.max_pain is not None and _valid_number(flow.max_pain) and flow.max_pain > 0 and price > 0:
            distance = (price - flow.max_pain) / flow.max_pain * 100
            if distance > 5:
                score += 10
                reasons.append(f"Price above max pain ({flow.max_pain:.2f})")
            elif distance < -5:
                score -= 10
                reasons.append(f"Price below max pain ({flow.max_pain:.2f})")

        confidence = min(abs(score), 100)
        if total_volume >= self.EXTREME_VOLUME:
            confidence *= self.EXTREME_DAMPING
            reasons.append(f"extreme volume ({total_volume:,.0f}) - confidence reduced")
            logger.debug(f"{flow.symbol}: extreme option volume {total_volume:,.0f}")

        return self.from_score(score, reasons, "Mixed option flow signals", confidence=confidence)

    # === Side channel: rolling flow history ===

    def record_flow(self, flow: OptionFlowSnapshot):
        self._flows.append(flow)

    @property
    def flows(self) -> List[OptionFlowSnapshot]:
        return list(self._flows)

    def flow_trend(self) -> Dict[str, str]:
        """Volume trend and put/call sentiment over the last five flows."""
        if len(self._flows) < 5:
            return {"volume": "STABLE", "sentiment": "NEUTRAL"}

        recent = list(self._flows)[-5:]
        volumes = [f.call_volume + f.put_volume for f in recent]
        avg_volume = sum(volumes) / len(volumes)
        recent_avg = sum(volumes[-3:]) / 3

        volume = "STABLE"
        if recent_avg > avg_volume * 1.2:
            volume = "INCREASING"
        elif recent_avg < avg_volume * 0.8:
            volume = "DECREASING"

        tones = []
        for f in recent:
            ratio = f.put_volume / f.call_volume if f.call_volume > 0 else 1.0
            tones.append("BULLISH" if ratio < 0.8 else "BEARISH" if ratio > 1.2 else "NEUTRAL")

        sentiment = "NEUTRAL"
        if tones.count("BULLISH") >= 3:
            sentiment = "BULLISH"
        elif tones.count("BEARISH") >= 3:
            sentiment = "BEARISH"

        return {"volume": volume, "sentiment": sentiment}

    def unusual_activity(self, threshold: float = 2.5) -> Optional[Dict]:
        """Latest flow if its call or put volume exceeds threshold x the prior average."""
        if len(self._flows) < 10:
            return None

        flows = list(self._flows)
        latest, prior = flows[-1], flows[:-1]
        avg_call = sum(f.call_volume for f in prior) / len(prior)
        avg_put = sum(f.put_volume for f in prior) / len(prior)

        if latest.call_volume > avg_call * threshold or latest.put_volume > avg_put * threshold:
            return {
                "symbol": latest.symbol,
                "call_volume": latest.call_volume,
                "put_volume": latest.put_volume,
                "avg_call_volume": avg_call,
                "avg_put_volume": avg_put,
            }
        return None

    def iv_rising(self) -> bool:
        """True when implied volatility rose across the last three flows."""
        if len(self._flows) < 3:
            return False
        ivs = [f.implied_volatility for f in list(self._flows)[-3:]]
        return ivs[0] < ivs[1] < ivs[2]


def _valid_number(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value >= 0
