#!/usr/bin/env python3
"""
CIRCUIT BREAKER - Pre-trade risk gate for the paper ledger.

Three independent tripwires, checked in order:
1. Daily loss - equity has fallen more than 5% since the day started
2. Cooldown - the same symbol traded less than 60 seconds ago
3. Exposure - a BUY would push the symbol above 20% of equity

Any object with a check_trade(portfolio, request) method can stand in for
the breaker; the engine only relies on that contract.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Optional

from .config import RiskConfig, get_config
from .portfolio import Portfolio, RiskDecision, TradeRequest


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TradeGate(ABC):
    """Base class for pre-trade checks"""

    @abstractmethod
    def check_trade(self, portfolio: Portfolio, request: TradeRequest) -> RiskDecision:
        pass


class CircuitBreaker(TradeGate):

    def __init__(self, config: Optional[RiskConfig] = None,
                 clock: Callable[[], datetime] = utc_now):
        self.config = config or get_config().risk
        self.clock = clock

    def check_trade(self, portfolio: Portfolio, request: TradeRequest) -> RiskDecision:
        cfg = self.config

        if self.daily_loss_exceeded(portfolio):
            return RiskDecision(False, f"Circuit Breaker: Max Daily Loss Exceeded "
                                       f"({cfg.max_daily_loss_pct:.0%})")

        if self.in_cooldown(portfolio, request.symbol):
            return RiskDecision(False, f"Circuit Breaker: Cooldown Active "
                                       f"({cfg.cooldown_seconds:.0f}s)")

        if request.side == "BUY" and self.exposure_too_high(portfolio, request):
            return RiskDecision(False, f"Circuit Breaker: Max Position Size Exceeded "
                                       f"({cfg.max_position_pct:.0%})")

        return RiskDecision(True)

    def daily_loss_exceeded(self, portfolio: Portfolio) -> bool:
        start = portfolio.daily_start_equity
        if start <= 0:
            return False
        drawdown = (start - portfolio.equity) / start
        return drawdown > self.config.max_daily_loss_pct

    def in_cooldown(self, portfolio: Portfolio, symbol: str) -> bool:
        last = next((t for t in portfolio.trades if t.symbol == symbol), None)
        if last is None:
            return False
        traded_at = datetime.fromisoformat(last.timestamp)
        if traded_at.tzinfo is None:
            traded_at = traded_at.replace(tzinfo=timezone.utc)
        elapsed = (self.clock() - traded_at).total_seconds()
        return elapsed < self.config.cooldown_seconds

    def exposure_too_high(self, portfolio: Portfolio, request: TradeRequest) -> bool:
        if portfolio.equity <= 0:
            return True
        existing = portfolio.position_for(request.symbol)
        existing_value = existing.quantity * existing.average_price if existing else 0.0
        after = existing_value + request.price * request.quantity
        return after / portfolio.equity > self.config.max_position_pct
