#!/usr/bin/env python3
"""
DYNAMIC WEIGHTING ENGINE - Agents earn their vote.

Every graded call feeds a per-agent rolling log. Weights for the next
consensus round come from three things the log says about an agent:

1. Accuracy - how often the call matched the realized move
2. Consistency - how steady that hit rate is (1 - stddev of hits), credited
   in proportion to accuracy so a reliably wrong agent earns nothing for it
3. Profitability - squashed average realized profit per call

New agents sit at their role's base weight until they have enough graded
calls, so one lucky guess cannot hijack the council.
"""

import logging
import math
import threading
from dataclasses import dataclass, replace, asdict
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

import numpy as np

from .config import WeightingConfig, get_config
from .models import AgentCall, AgentRole, Direction, Regime, Signal

logger = logging.getLogger(__name__)


# Relative say of each role before it has a track record
ROLE_BASE_WEIGHTS = {
    AgentRole.CHAIRMAN: 2.0,
    AgentRole.VOLATILE: 1.5,
    AgentRole.TREND: 1.0,
    AgentRole.REVERSAL: 1.0,
    AgentRole.MULTI_TIMEFRAME: 1.0,
    AgentRole.SENTIMENT: 0.8,
    AgentRole.OPTION: 0.7,
    AgentRole.MACRO: 0.5,
}

# Role multipliers per regime; missing entries are 1.0
REGIME_ADJUSTMENTS = {
    Regime.BULL_TREND: {
        AgentRole.TREND: 1.3,
        AgentRole.MULTI_TIMEFRAME: 1.2,
        AgentRole.REVERSAL: 0.8,
    },
    Regime.BEAR_TREND: {
        AgentRole.TREND: 1.3,
        AgentRole.MACRO: 1.2,
        AgentRole.REVERSAL: 0.8,
    },
    Regime.SIDEWAYS: {
        AgentRole.REVERSAL: 1.3,
        AgentRole.TREND: 0.7,
        AgentRole.VOLATILE: 0.8,
    },
    Regime.VOLATILE: {
        AgentRole.VOLATILE: 1.4,
        AgentRole.OPTION: 1.2,
        AgentRole.TREND: 0.8,
    },
    Regime.SQUEEZE: {
        AgentRole.VOLATILE: 1.3,
        AgentRole.OPTION: 1.1,
        AgentRole.REVERSAL: 0.9,
    },
}


@dataclass
class AgentPerformance:
    agent_id: str
    role: AgentRole
    total_predictions: int = 0
    correct_predictions: int = 0
    accuracy: float = 0.0
    recent_accuracy: float = 0.0
    volatility: float = 0.0
    consistency: float = 1.0
    profitability: float = 0.5
    last_updated: str = ""

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["role"] = self.role.value
        return data


class _OutcomeLog:
    """Fixed-capacity ring buffer of (correct, profit) pairs."""

    def __init__(self, capacity: int):
        self.capacity = capacity
        self.correct = np.zeros(capacity, dtype=float)
        self.profit = np.full(capacity, np.nan)
        self.head = 0
        self.count = 0

    def append(self, correct: bool, profit: Optional[float]):
        self.correct[self.head] = 1.0 if correct else 0.0
        self.profit[self.head] = np.nan if profit is None else float(profit)
        self.head = (self.head + 1) % self.capacity
        self.count = min(self.count + 1, self.capacity)

    def ordered(self, values: np.ndarray) -> np.ndarray:
        """Entries oldest to newest."""
        if self.count < self.capacity:
            return values[:self.count]
        return np.concatenate([values[self.head:], values[:self.head]])

    def recent_correct(self, n: int) -> np.ndarray:
        return self.ordered(self.correct)[-n:]


def is_correct(signal: Signal, actual: Direction) -> bool:
    if signal == Signal.BUY:
        return actual == Direction.UP
    if signal == Signal.SELL:
        return actual == Direction.DOWN
    return actual == Direction.FLAT


def classify_direction(entry_price: float, exit_price: float,
                       flat_band: float = 0.005) -> Direction:
    """Grade a realized move: within +/- flat_band (fractional) is FLAT."""
    if entry_price <= 0:
        return Direction.FLAT
    change = (exit_price - entry_price) / entry_price
    if change > flat_band:
        return Direction.UP
    if change < -flat_band:
        return Direction.DOWN
    return Direction.FLAT


def coin_flip_quality(cfg: WeightingConfig) -> float:
    """Quality of an agent that is right half the time at break-even profit."""
    return (0.5 * cfg.accuracy_factor
            + 0.5 * 0.5 * cfg.consistency_factor
            + 0.5 * cfg.profitability_factor)


class DynamicWeightingEngine:
    """
    Tracks per-agent performance and turns it into consensus weights.

    Thread-safe: outcomes for the same agent are serialized by a per-agent
    lock; different agents update in parallel.
    """

    def __init__(self, config: Optional[WeightingConfig] = None,
                 base_weights: Optional[Dict[AgentRole, float]] = None):
        self.config = config or get_config().weighting
        self.base_weights = dict(ROLE_BASE_WEIGHTS)
        if base_weights:
            self.base_weights.update(base_weights)
        self._performance: Dict[str, AgentPerformance] = {}
        self._logs: Dict[str, _OutcomeLog] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, agent_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(agent_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[agent_id] = lock
            return lock

    def record_outcome(self, agent_id: str, role: AgentRole, call: AgentCall,
                       actual_direction: Direction,
                       realized_profit: Optional[float] = None) -> AgentPerformance:
        """Grade one past call and refresh the agent's statistics."""
        correct = is_correct(call.signal, actual_direction)
        cfg = self.config

        with self._lock_for(agent_id):
            perf = self._performance.get(agent_id)
            if perf is None:
                perf = AgentPerformance(agent_id=agent_id, role=role)
                with self._registry_lock:
                    self._performance[agent_id] = perf
                    self._logs[agent_id] = _OutcomeLog(cfg.history_size)
            log = self._logs[agent_id]

            perf.total_predictions += 1
            if correct:
                perf.correct_predictions += 1
            perf.accuracy = perf.correct_predictions / perf.total_predictions

            log.append(correct, realized_profit)
            hits = log.ordered(log.correct)
            perf.recent_accuracy = float(np.mean(log.recent_correct(cfg.recent_window)))
            perf.volatility = float(np.std(hits))
            perf.consistency = 1.0 - perf.volatility

            profits = log.ordered(log.profit)
            profits = profits[~np.isnan(profits)]
            if len(profits):
                perf.profitability = 0.5 + 0.5 * math.tanh(float(np.mean(profits)) / cfg.profit_scale)
            else:
                perf.profitability = 0.5

            perf.last_updated = datetime.now(timezone.utc).isoformat()
            snapshot = replace(perf)

        logger.debug(f"{agent_id}: {'hit' if correct else 'miss'} "
                     f"(acc {snapshot.accuracy:.2f}, n={snapshot.total_predictions})")
        return snapshot

    def _raw_weight(self, agent_id: str, role: AgentRole, regime: Optional[Regime]) -> float:
        cfg = self.config
        base = self.base_weights.get(role, cfg.base_weight)

        with self._lock_for(agent_id):
            perf = self._performance.get(agent_id)
            if perf is None or perf.total_predictions < cfg.cold_start_min:
                return base
            quality = (perf.accuracy * cfg.accuracy_factor
                       + perf.consistency * perf.accuracy * cfg.consistency_factor
                       + perf.profitability * cfg.profitability_factor)

        adjustment = 1.0
        if regime is not None:
            adjustment = REGIME_ADJUSTMENTS.get(regime, {}).get(role, 1.0)

        # a coin-flip agent maps back to the base weight
        weight = base * (quality / coin_flip_quality(cfg)) * adjustment
        return max(cfg.min_weight, min(cfg.max_weight, weight))

    def raw_weights(self, agents: Iterable, regime: Optional[Regime] = None) -> Dict[str, float]:
        """Unnormalized weights keyed by agent id."""
        return {a.agent_id: self._raw_weight(a.agent_id, a.role, regime) for a in agents}

    def compute_weights(self, agents: Iterable, regime: Optional[Regime] = None,
                        normalize: bool = True) -> Dict[str, float]:
        """Weights for the next consensus round; sum to 1 when normalized."""
        weights = self.raw_weights(agents, regime)
        if not normalize or not weights:
            return weights
        total = sum(weights.values())
        return {agent_id: w / total for agent_id, w in weights.items()}

    def get_performance(self, agent_id: str) -> Optional[AgentPerformance]:
        with self._lock_for(agent_id):
            perf = self._performance.get(agent_id)
            return replace(perf) if perf else None

    def all_performance(self) -> Dict[str, AgentPerformance]:
        with self._registry_lock:
            agent_ids = list(self._performance.keys())
        result = {}
        for agent_id in agent_ids:
            perf = self.get_performance(agent_id)
            if perf is not None:
                result[agent_id] = perf
        return result

    def performance_snapshot(self) -> Dict[str, Dict]:
        return {agent_id: p.to_dict() for agent_id, p in self.all_performance().items()}

    def reset_agent(self, agent_id: str):
        with self._lock_for(agent_id):
            self._forget(agent_id)
        logger.info(f"Reset performance for {agent_id}")

    def reset_all(self):
        with self._registry_lock:
            agent_ids = list(self._locks.keys())
        for agent_id in agent_ids:
            with self._lock_for(agent_id):
                self._forget(agent_id)
        logger.info("Reset performance for all agents")

    def tracked_agents(self) -> List[str]:
        with self._registry_lock:
            return sorted(self._performance.keys())

    def _forget(self, agent_id: str):
        with self._registry_lock:
            self._performance.pop(agent_id, None)
            self._logs.pop(agent_id, None)
