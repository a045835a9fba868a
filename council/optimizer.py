#!/usr/bin/env python3
"""
THRESHOLD OPTIMIZER - Grid search over entry/exit confidence thresholds.

Two searches share one idea: generate the historical signal series once,
then replay it under every parameter combination and keep the best.

1. StrategyOptimizer: buy/sell thresholds for the long-only simulator.
   The grid depends on the regime: trending or coiled markets get an
   aggressive grid (entries as low as 55), volatile or falling markets a
   conservative one (entries 80 and up).
2. RiskGridOptimizer: risk budget x entry threshold for the risk-sized
   long/short arena, scored on profit factor, win rate and drawdown.
"""

import logging
import itertools
from dataclasses import dataclass, field, asdict
from multiprocessing import Pool
from typing import Dict, List, Optional, Sequence, Tuple

from .arena import ArenaConfig, ArenaReport, BacktestArena
from .backtester import BacktestParams, BacktestReport, BacktestSimulator, empty_report
from .config import OptimizerConfig, SimulationConfig, get_config
from .models import Candle, Regime
from .signals import HistoricalSignal, generate_historical_signals

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ThresholdGrid:
    buy_thresholds: Tuple[int, ...]
    sell_thresholds: Tuple[int, ...]
    default: BacktestParams


THRESHOLD_GRIDS = {
    "aggressive": ThresholdGrid(
        buy_thresholds=(55, 60, 65, 70, 75, 80),
        sell_thresholds=(20, 30, 40, 50),
        default=BacktestParams(65, 40),
    ),
    "conservative": ThresholdGrid(
        buy_thresholds=(80, 85, 90, 95),
        sell_thresholds=(40, 50, 60, 70),
        default=BacktestParams(85, 50),
    ),
    "balanced": ThresholdGrid(
        buy_thresholds=(60, 65, 70, 75, 80, 85, 90),
        sell_thresholds=(20, 30, 40, 50, 60),
        default=BacktestParams(75, 40),
    ),
}

REGIME_PROFILES = {
    Regime.BULL_TREND: "aggressive",
    Regime.SQUEEZE: "aggressive",
    Regime.VOLATILE: "conservative",
    Regime.BEAR_TREND: "conservative",
}


def profile_for(regime: Optional[Regime]) -> str:
    return REGIME_PROFILES.get(regime, "balanced")


@dataclass
class CellResult:
    params: BacktestParams
    profit: float
    trade_count: int
    win_rate: float


@dataclass
class OptimizationResult:
    params: BacktestParams
    report: BacktestReport
    regime: Optional[Regime]
    profile: str
    evaluated: int
    cells: List[CellResult] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "params": asdict(self.params),
            "report": self.report.to_dict(),
            "regime": self.regime.value if self.regime else None,
            "profile": self.profile,
            "evaluated": self.evaluated,
            "cells": [asdict(c) for c in self.cells],
        }


def _simulate_cell(args: Tuple) -> BacktestReport:
    """Run single simulation (worker function)"""
    signals, params, initial_balance, commission_rate, slippage_rate, sim_config = args
    simulator = BacktestSimulator(initial_balance, commission_rate, slippage_rate, config=sim_config)
    return simulator.simulate(signals, params)


class StrategyOptimizer:
    """Regime-aware buy/sell threshold search for the long-only simulator."""

    def __init__(self, initial_balance: Optional[float] = None,
                 config: Optional[OptimizerConfig] = None,
                 simulation: Optional[SimulationConfig] = None):
        cfg = get_config()
        self.config = config or cfg.optimizer
        self.simulator = BacktestSimulator(initial_balance=initial_balance,
                                           config=simulation or cfg.simulation)

    def parameter_grid(self, regime: Optional[Regime] = None) -> List[BacktestParams]:
        """Valid (buy, sell) pairs for the regime, in search order."""
        grid = THRESHOLD_GRIDS[profile_for(regime)]
        gap = self.config.min_threshold_gap
        return [
            BacktestParams(buy, sell)
            for buy, sell in itertools.product(grid.buy_thresholds, grid.sell_thresholds)
            if buy >= sell + gap
        ]

    def _evaluate(self, signals: Sequence[HistoricalSignal],
                  combos: List[BacktestParams]) -> List[BacktestReport]:
        sim = self.simulator
        if self.config.workers <= 1:
            return [sim.simulate(signals, params) for params in combos]

        args_list = [
            (list(signals), params, sim.initial_balance, sim.commission_rate,
             sim.slippage_rate, sim.config)
            for params in combos
        ]
        with Pool(processes=self.config.workers) as pool:
            return pool.map(_simulate_cell, args_list)

    def find_optimal(self, candles: Sequence[Candle],
                     regime: Optional[Regime] = None) -> OptimizationResult:
        profile = profile_for(regime)
        grid = THRESHOLD_GRIDS[profile]

        if len(candles) < self.simulator.config.min_history:
            logger.info(f"Only {len(candles)} bars, returning {profile} defaults")
            return OptimizationResult(
                params=grid.default,
                report=empty_report(self.simulator.initial_balance),
                regime=regime,
                profile=profile,
                evaluated=0,
            )

        combos = self.parameter_grid(regime)
        logger.info(f"Testing {len(combos)} threshold combinations ({profile} grid)")

        signals = generate_historical_signals(candles)
        reports = self._evaluate(signals, combos)

        best_idx = 0
        for i, report in enumerate(reports):
            best = reports[best_idx]
            if report.profit > best.profit:
                best_idx = i
            elif (self.config.prefer_fewer_trades and report.profit == best.profit
                  and report.trade_count < best.trade_count):
                best_idx = i

        cells = [CellResult(params, r.profit, r.trade_count, r.win_rate)
                 for params, r in zip(combos, reports)]
        best_params = combos[best_idx]
        logger.info(f"Best: buy {best_params.buy_threshold} / sell {best_params.sell_threshold} "
                    f"-> {reports[best_idx].profit_percent:+.2f}% over {reports[best_idx].trade_count} trades")

        return OptimizationResult(
            params=best_params,
            report=reports[best_idx],
            regime=regime,
            profile=profile,
            evaluated=len(combos),
            cells=cells,
        )


# === Risk grid over the arena ===

RISK_LEVELS = (0.01, 0.02, 0.03, 0.05)
THRESHOLD_LEVELS = (60, 65, 70, 75, 80)
MAX_POSITION_PCT = 0.20


def score_report(report: ArenaReport) -> float:
    """
    Profit factor (capped at 5) x win rate x squared drawdown penalty,
    discounted until there are at least 10 trades.
    """
    if report.trade_count == 0:
        return 0.0
    win_rate = report.win_rate / 100
    profit_factor = min(report.profit_factor, 5.0)
    safety = (1 - report.max_drawdown) ** 2
    significance = min(report.trade_count / 10, 1.0)
    return profit_factor * win_rate * safety * significance


@dataclass
class RiskGridResult:
    config: ArenaConfig
    report: ArenaReport
    score: float


class RiskGridOptimizer:

    def __init__(self, arena: Optional[BacktestArena] = None,
                 risk_levels: Sequence[float] = RISK_LEVELS,
                 threshold_levels: Sequence[int] = THRESHOLD_LEVELS,
                 max_position_pct: float = MAX_POSITION_PCT):
        self.arena = arena or BacktestArena()
        self.risk_levels = tuple(risk_levels)
        self.threshold_levels = tuple(threshold_levels)
        self.max_position_pct = max_position_pct

    def run_grid_search(self, symbol: str, candles: Sequence[Candle],
                        initial_balance: float = 1_000_000) -> List[RiskGridResult]:
        """Every (risk, threshold) cell, best score first."""
        signals = generate_historical_signals(candles)
        results = []
        for risk, threshold in itertools.product(self.risk_levels, self.threshold_levels):
            config = ArenaConfig(
                risk_percent=risk,
                max_position_pct=self.max_position_pct,
                confidence_threshold=threshold,
            )
            report = self.arena.run(symbol, candles, initial_balance, config, signals=signals)
            results.append(RiskGridResult(config, report, score_report(report)))

        results.sort(key=lambda r: r.score, reverse=True)
        if results:
            top = results[0]
            logger.info(f"{symbol}: best risk {top.config.risk_percent:.0%} / threshold "
                        f"{top.config.confidence_threshold} (score {top.score:.3f})")
        return results
