#!/usr/bin/env python3
"""
ENSEMBLE PREDICTOR - Combines every agent's call into one decision.

Confidence-weighted voting:
1. Each agent votes +1 / 0 / -1 (BUY / HOLD / SELL)
2. The vote is scaled by the agent's confidence and its current weight
3. The sum is normalized into [-1, +1] and mapped onto BUY / SELL / HOLD

HOLD is reported less confidently than the agents themselves: when the
council cannot agree, that ambiguity is the message.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .agents import Agent, default_agents
from .config import EnsembleConfig, get_config
from .models import AgentCall, AgentRole, Candle, Direction, Regime, Signal
from .weighting import AgentPerformance, DynamicWeightingEngine

logger = logging.getLogger(__name__)


# Used when no weighting engine is attached
STATIC_ROLE_WEIGHTS = {
    AgentRole.TREND: 0.25,
    AgentRole.MULTI_TIMEFRAME: 0.25,
    AgentRole.SENTIMENT: 0.20,
    AgentRole.REVERSAL: 0.15,
    AgentRole.OPTION: 0.15,
    AgentRole.VOLATILE: 0.10,
    AgentRole.MACRO: 0.10,
    AgentRole.CHAIRMAN: 0.05,
}


@dataclass
class AuxiliaryBundle:
    """Side inputs routed to the agents that ask for them."""
    news: Optional[List[str]] = None
    macro: Any = None
    option_flow: Any = None
    timeframes: Optional[Dict[str, Sequence[Candle]]] = None

    def get(self, key: Optional[str]) -> Any:
        if key is None:
            return None
        return getattr(self, key, None)


@dataclass
class EnsembleResult:
    """Result of ensemble signal combination"""
    final_signal: Signal
    confidence: float  # 0 to 100
    weighted_score: float  # -1 to +1
    agent_results: List[AgentCall] = field(default_factory=list)
    reasoning: List[str] = field(default_factory=list)
    weights: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            "final_signal": self.final_signal.value,
            "confidence": self.confidence,
            "weighted_score": self.weighted_score,
            "agent_results": [c.to_dict() for c in self.agent_results],
            "reasoning": list(self.reasoning),
            "weights": dict(self.weights),
        }


class EnsemblePredictor:
    """
    Runs the council and folds its calls into one EnsembleResult.
    """

    def __init__(self, agents: Optional[List[Agent]] = None,
                 weighting: Optional[DynamicWeightingEngine] = None,
                 config: Optional[EnsembleConfig] = None,
                 static_weights: Optional[Dict[AgentRole, float]] = None):
        self.agents = agents if agents is not None else default_agents()
        self.weighting = weighting
        self.config = config or get_config().ensemble
        self.static_weights = static_weights or STATIC_ROLE_WEIGHTS

    def current_weights(self, regime: Optional[Regime] = None) -> Dict[str, float]:
        if self.weighting is not None:
            return self.weighting.compute_weights(self.agents, regime)

        raw = {a.agent_id: self.static_weights.get(a.role, 0.1) for a in self.agents}
        total = sum(raw.values())
        if total <= 0:
            return raw
        return {agent_id: w / total for agent_id, w in raw.items()}

    def predict(self, candles: Sequence[Candle], aux: Optional[AuxiliaryBundle] = None,
                regime: Optional[Regime] = None) -> EnsembleResult:
        aux = aux or AuxiliaryBundle()
        calls = [agent.evaluate(candles, regime, aux.get(agent.aux_key)) for agent in self.agents]
        weights = self.current_weights(regime)
        return self.combine(calls, weights)

    def combine(self, calls: List[AgentCall], weights: Dict[str, float]) -> EnsembleResult:
        """Fold already-computed calls with the given weights."""
        cfg = self.config

        if not calls:
            return EnsembleResult(Signal.HOLD, 0.0, 0.0, reasoning=["No agents registered"],
                                  weights=weights)

        numerator = 0.0
        denominator = 0.0
        reasons = []
        for call in calls:
            weight = weights.get(call.agent_id, 0.0)
            conviction = call.confidence / 100.0
            vote = call.signal.vote

            numerator += vote * conviction * weight
            denominator += weight * conviction if cfg.conviction_normalized else weight

            if abs(vote * conviction) > cfg.materiality:
                reasons.append(f"{call.agent_name}: {call.signal.value} ({call.confidence:.0f}%)")

        score = numerator / denominator if denominator > 0 else 0.0
        score = max(-1.0, min(1.0, score))

        if score >= cfg.buy_cutoff:
            final = Signal.BUY
        elif score <= cfg.sell_cutoff:
            final = Signal.SELL
        else:
            final = Signal.HOLD

        if final == Signal.HOLD:
            avg_confidence = sum(c.confidence for c in calls) / len(calls)
            confidence = max(avg_confidence - cfg.hold_penalty, 0.0)
        else:
            confidence = min(abs(score) * 100, 100.0)

        if not reasons:
            reasons = ["Mixed or neutral signals from all agents"]

        logger.debug(f"Ensemble: {final.value} score={score:+.3f} conf={confidence:.0f}")
        return EnsembleResult(
            final_signal=final,
            confidence=round(confidence, 2),
            weighted_score=round(score, 4),
            agent_results=calls,
            reasoning=reasons,
            weights=weights,
        )

    def record_outcomes(self, result: EnsembleResult, actual_direction: Direction,
                        realized_profit: Optional[float] = None) -> List[AgentPerformance]:
        """Grade every call behind a past prediction."""
        if self.weighting is None:
            raise ValueError("record_outcomes needs a DynamicWeightingEngine")
        return [
            self.weighting.record_outcome(call.agent_id, call.role, call,
                                          actual_direction, realized_profit)
            for call in result.agent_results
        ]
