#!/usr/bin/env python3
"""
CENTRALIZED CONFIG - Single source of truth for all configuration.

Loads from .env file and provides typed access to simulation, weighting,
ensemble, optimizer, risk and paper-trading settings.
"""

import os
from pathlib import Path
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

from .errors import ConfigError

# Load .env from project root
BASE_DIR = Path(__file__).parent.parent
load_dotenv(BASE_DIR / ".env")


@dataclass(frozen=True)
class SimulationConfig:
    initial_balance: float = 10_000
    commission_rate: float = 0.001     # 0.1% of notional
    slippage_rate: float = 0.0005      # 0.05% adverse fill
    min_history: int = 50
    default_buy_threshold: int = 75
    default_sell_threshold: int = 40


@dataclass(frozen=True)
class WeightingConfig:
    base_weight: float = 1.0
    cold_start_min: int = 10
    history_size: int = 100
    recent_window: int = 20
    min_weight: float = 0.1
    max_weight: float = 3.0
    accuracy_factor: float = 0.4
    consistency_factor: float = 0.3
    profitability_factor: float = 0.3
    profit_scale: float = 0.02     # realized profit is a fractional return


@dataclass(frozen=True)
class EnsembleConfig:
    buy_cutoff: float = 0.3
    sell_cutoff: float = -0.3
    hold_penalty: float = 30.0
    materiality: float = 0.3
    # True: divide by sum(weight * conf). False: divide by sum(weight).
    conviction_normalized: bool = True


@dataclass(frozen=True)
class OptimizerConfig:
    min_threshold_gap: int = 10
    prefer_fewer_trades: bool = True
    workers: int = 1


@dataclass(frozen=True)
class RiskConfig:
    max_daily_loss_pct: float = 0.05
    max_position_pct: float = 0.20
    cooldown_seconds: float = 60.0


@dataclass(frozen=True)
class PaperTradingConfig:
    initial_cash: float = 1_000_000
    commission_rate: float = 0.001
    slippage_rate: float = 0.0005
    trade_history_limit: int = 50
    allow_short: bool = True
    ledger_path: Path = BASE_DIR / "data" / "paper_portfolio.json"
    max_write_retries: int = 3


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}")


class Config:
    """Centralized configuration with typed access."""

    def __init__(self):
        self.simulation = SimulationConfig()
        self.weighting = WeightingConfig()
        self.ensemble = EnsembleConfig()
        self.optimizer = OptimizerConfig(
            workers=max(1, _env_int("OPTIMIZER_WORKERS", 1)),
        )
        self.risk = RiskConfig()
        self.paper = PaperTradingConfig(
            initial_cash=_env_float("PAPER_INITIAL_CASH", 1_000_000),
            commission_rate=_env_float("PAPER_COMMISSION_RATE", 0.001),
            slippage_rate=_env_float("PAPER_SLIPPAGE_RATE", 0.0005),
            allow_short=os.getenv("PAPER_ALLOW_SHORT", "true").lower() == "true",
            ledger_path=Path(os.getenv("PAPER_LEDGER_PATH",
                                       str(BASE_DIR / "data" / "paper_portfolio.json"))),
        )
        self.base_dir = BASE_DIR

        if self.paper.initial_cash <= 0:
            raise ConfigError("PAPER_INITIAL_CASH must be positive")


# Singleton
_config: Optional[Config] = None


def get_config() -> Config:
    global _config
    if _config is None:
        _config = Config()
    return _config
