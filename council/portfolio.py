#!/usr/bin/env python3
"""
PORTFOLIO - Paper ledger records and their JSON shape.
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional

ORDER_SIDES = ("BUY", "SELL")


@dataclass
class Position:
    symbol: str
    quantity: float  # negative = short
    average_price: float
    current_price: float = 0.0
    unrealized_pnl: float = 0.0

    def mark(self, price: float):
        self.current_price = price
        self.unrealized_pnl = (price - self.average_price) * self.quantity

    @property
    def market_value(self) -> float:
        return self.quantity * self.current_price


@dataclass(frozen=True)
class Trade:
    id: str
    timestamp: str
    symbol: str
    side: str
    quantity: float
    execution_price: float
    gross_total: float
    commission: float
    order_type: str = "MARKET"
    reason: str = ""
    realized_pnl: float = 0.0


@dataclass
class Portfolio:
    cash: float
    equity: float
    initial_cash: float
    daily_start_equity: float
    day_start_date: str
    positions: List[Position] = field(default_factory=list)
    trades: List[Trade] = field(default_factory=list)  # newest first
    last_updated: str = ""

    def position_for(self, symbol: str) -> Optional[Position]:
        for pos in self.positions:
            if pos.symbol == symbol:
                return pos
        return None

    def recompute_equity(self):
        self.equity = self.cash + sum(p.market_value for p in self.positions)

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> "Portfolio":
        return cls(
            cash=float(data["cash"]),
            equity=float(data["equity"]),
            initial_cash=float(data["initial_cash"]),
            daily_start_equity=float(data.get("daily_start_equity", data["equity"])),
            day_start_date=data.get("day_start_date", ""),
            positions=[Position(**p) for p in data.get("positions", [])],
            trades=[Trade(**t) for t in data.get("trades", [])],
            last_updated=data.get("last_updated", ""),
        )


@dataclass(frozen=True)
class TradeRequest:
    symbol: str
    side: str  # "BUY" / "SELL"
    quantity: float
    price: float
    reason: str = ""
    order_type: str = "MARKET"


@dataclass(frozen=True)
class ExecutionResult:
    success: bool
    message: str
    trade: Optional[Trade] = None


@dataclass(frozen=True)
class RiskDecision:
    allowed: bool
    reason: str = ""
