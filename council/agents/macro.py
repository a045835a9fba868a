#!/usr/bin/env python3
"""
MACRO ECONOMIC AGENT - Scores the rate/inflation/growth/jobs backdrop.

Reads a MacroSnapshot from the auxiliary bundle. Keeps a bounded history of
snapshots on the side so callers can ask whether rates and inflation are
trending, without that history leaking into evaluate().
"""

import math
from collections import deque
from dataclasses import dataclass, replace
from typing import Any, Deque, Dict, List, Optional, Sequence

from ..models import AgentCall, AgentRole, Candle, Regime
from .base import Agent


@dataclass(frozen=True)
class MacroSnapshot:
    interest_rate: Optional[float] = None
    inflation_rate: Optional[float] = None
    gdp_growth: Optional[float] = None
    unemployment_rate: Optional[float] = None
    date: str = ""

    @classmethod
    def from_dict(cls, data: Dict) -> "MacroSnapshot":
        return cls(
            interest_rate=data.get("interest_rate"),
            inflation_rate=data.get("inflation_rate"),
            gdp_growth=data.get("gdp_growth"),
            unemployment_rate=data.get("unemployment_rate"),
            date=str(data.get("date", "")),
        )


@dataclass(frozen=True)
class MacroThresholds:
    high_interest_rate: float = 4.5
    low_interest_rate: float = 2.0
    high_inflation: float = 4.0
    low_inflation: float = 1.5
    high_unemployment: float = 6.0
    low_unemployment: float = 4.0
    healthy_gdp_growth: float = 2.0
    recessionary_gdp_growth: float = 0.0


class MacroEconomicAgent(Agent):
    agent_id = "macro_economic_agent"
    name = "Macro Economic Analyzer"
    role = AgentRole.MACRO
    aux_key = "macro"
    CUTOFF = 40.0

    MAX_HISTORY = 60
    TREND_WINDOW = 3
    STABLE_STEP = 0.1
    TREND_MOVE = 0.2

    def __init__(self, thresholds: Optional[MacroThresholds] = None):
        self.thresholds = thresholds or MacroThresholds()
        self._history: Deque[MacroSnapshot] = deque(maxlen=self.MAX_HISTORY)

    def set_thresholds(self, **overrides):
        """Override individual thresholds, e.g. set_thresholds(high_inflation=3.5)."""
        self.thresholds = replace(self.thresholds, **overrides)

    def evaluate(self, candles: Sequence[Candle], regime: Optional[Regime] = None,
                 aux: Any = None) -> AgentCall:
        short = self.insufficient(candles)
        if short:
            return short
        if aux is None:
            return self.neutral("No macro economic data available")

        snapshot = MacroSnapshot.from_dict(aux) if isinstance(aux, dict) else aux
        if not isinstance(snapshot, MacroSnapshot):
            return self.neutral(f"Macro data invalid (unexpected {type(aux).__name__})")
        values = [snapshot.interest_rate, snapshot.inflation_rate,
                  snapshot.gdp_growth, snapshot.unemployment_rate]
        if all(v is None for v in values):
            return self.neutral("No macro economic data available")
        if any(v is not None and not _valid_reading(v) for v in values):
            return self.neutral("Macro data invalid (non-numeric or non-finite value)")

        t = self.thresholds
        score = 0.0
        reasons: List[str] = []

        rate = snapshot.interest_rate
        if rate is not None:
            if rate < t.low_interest_rate:
                score += 25
                reasons.append(f"Low interest rate ({rate}%) supports growth")
            elif rate > t.high_interest_rate:
                score -= 30
                reasons.append(f"High interest rate ({rate}%) may slow economy")

        inflation = snapshot.inflation_rate
        if inflation is not None:
            if inflation > t.high_inflation:
                score -= 25
                reasons.append(f"High inflation ({inflation}%)")
            elif inflation < t.low_inflation:
                score += 10
                reasons.append(f"Low inflation ({inflation}%)")

        gdp = snapshot.gdp_growth
        if gdp is not None:
            if gdp > t.healthy_gdp_growth:
                score += 20
                reasons.append(f"Strong GDP growth ({gdp}%)")
            elif gdp < t.recessionary_gdp_growth:
                score -= 35
                reasons.append(f"Negative GDP growth ({gdp}%) signals recession")

        jobs = snapshot.unemployment_rate
        if jobs is not None:
            if jobs < t.low_unemployment:
                score += 10
                reasons.append(f"Low unemployment ({jobs}%)")
            elif jobs > t.high_unemployment:
                score -= 20
                reasons.append(f"High unemployment ({jobs}%)")

        return self.from_score(score, reasons, "Mixed macro economic signals")

    # === Side channel: snapshot history ===

    def add_snapshot(self, snapshot: MacroSnapshot):
        self._history.append(snapshot)

    @property
    def history(self) -> List[MacroSnapshot]:
        return list(self._history)

    def historical_trends(self) -> Dict[str, str]:
        """RISING / FALLING / STABLE for interest rate and inflation."""
        if len(self._history) < self.TREND_WINDOW:
            return {"interest_rate": "STABLE", "inflation": "STABLE"}

        recent = list(self._history)[-self.TREND_WINDOW:]
        return {
            "interest_rate": self._trend([s.interest_rate for s in recent]),
            "inflation": self._trend([s.inflation_rate for s in recent]),
        }

    def _trend(self, values: List[Optional[float]]) -> str:
        if any(v is None for v in values):
            return "STABLE"
        steps = [abs(b - a) for a, b in zip(values, values[1:])]
        if all(step < self.STABLE_STEP for step in steps):
            return "STABLE"
        if values[-1] > values[0] + self.TREND_MOVE:
            return "RISING"
        if values[-1] < values[0] - self.TREND_MOVE:
            return "FALLING"
        return "STABLE"


def _valid_reading(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)
