#!/usr/bin/env python3
"""
BACKTEST ARENA - Risk-sized long/short replay of the live signal.

Unlike the all-in BacktestSimulator, the arena sizes every entry from
account equity, goes short on confident bearish reads, and manages exits:

- Stop loss at -5% on the position
- Take profit at +10%
- Signal reversal (sentiment flips against the position)

It tracks an equity curve so drawdown and profit factor can be scored by
the risk-grid optimizer.
"""

import logging
import math
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional, Sequence, Tuple

from .config import SimulationConfig, get_config
from .models import Candle, Sentiment
from .signals import HistoricalSignal, generate_historical_signals

logger = logging.getLogger(__name__)

MIN_QUANTITY = 1
MAX_QUANTITY = 10_000


@dataclass(frozen=True)
class ArenaConfig:
    risk_percent: float = 0.02        # equity lost if the stop is hit
    max_position_pct: float = 0.20    # allocation ceiling per trade
    confidence_threshold: int = 50
    stop_loss_pct: float = 0.05
    take_profit_pct: float = 0.10


@dataclass
class ArenaTrade:
    entry_time: str
    entry_price: float
    side: str  # "LONG" / "SHORT"
    quantity: int
    commission: float = 0.0
    exit_time: str = ""
    exit_price: float = 0.0
    pnl: float = 0.0
    reason: str = ""


@dataclass
class ArenaReport:
    symbol: str
    total_bars: int
    initial_balance: float
    final_balance: float
    profit: float
    profit_percent: float
    trade_count: int
    win_rate: float  # percent
    max_drawdown: float  # fraction, 0.12 = 12%
    profit_factor: float
    trades: List[ArenaTrade] = field(default_factory=list)
    equity_curve: List[Tuple[str, float]] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return asdict(self)


def position_size(price: float, confidence: float, equity: float,
                  max_position_pct: float, risk_percent: Optional[float] = None,
                  stop_loss_pct: Optional[float] = None) -> int:
    """
    Shares to trade for one setup.

    Allocation is equity * max_position_pct scaled by confidence (never
    below half). When a risk budget is given, the size is also capped so a
    stop-out loses at most equity * risk_percent. Always 1 to 10,000 shares.
    """
    if price <= 0 or equity <= 0:
        return 0

    confidence_factor = max(0.5, confidence / 100)
    allocation = equity * max_position_pct * confidence_factor
    quantity = math.floor(allocation / price)

    if risk_percent is not None and stop_loss_pct:
        risk_cap = math.floor(equity * risk_percent / (price * stop_loss_pct))
        quantity = min(quantity, risk_cap)

    return int(max(MIN_QUANTITY, min(MAX_QUANTITY, quantity)))


class BacktestArena:

    def __init__(self, commission_rate: Optional[float] = None,
                 slippage_rate: Optional[float] = None,
                 config: Optional[SimulationConfig] = None):
        cfg = config or get_config().simulation
        self.min_history = cfg.min_history
        self.commission_rate = cfg.commission_rate if commission_rate is None else commission_rate
        self.slippage_rate = cfg.slippage_rate if slippage_rate is None else slippage_rate

    def run(self, symbol: str, candles: Sequence[Candle], initial_balance: float = 1_000_000,
            config: Optional[ArenaConfig] = None,
            signals: Optional[Sequence[HistoricalSignal]] = None) -> ArenaReport:
        config = config or ArenaConfig()
        if signals is None:
            signals = generate_historical_signals(candles) if len(candles) >= self.min_history else []

        cash = initial_balance
        position: Optional[ArenaTrade] = None
        closed: List[ArenaTrade] = []
        equity_curve: List[Tuple[str, float]] = []
        peak = initial_balance
        max_drawdown = 0.0
        gross_win = 0.0
        gross_loss = 0.0

        def exit_position(sig: HistoricalSignal, reason: str):
            nonlocal cash, position, gross_win, gross_loss
            if position.side == "LONG":
                fill = sig.price * (1 - self.slippage_rate)
                gross = fill * position.quantity
                commission = gross * self.commission_rate
                cash += gross - commission
                pnl = (fill - position.entry_price) * position.quantity - commission - position.commission
            else:
                fill = sig.price * (1 + self.slippage_rate)
                gross = fill * position.quantity
                commission = gross * self.commission_rate
                cash -= gross + commission
                pnl = (position.entry_price - fill) * position.quantity - commission - position.commission

            if pnl > 0:
                gross_win += pnl
            else:
                gross_loss += abs(pnl)

            position.exit_time = sig.time
            position.exit_price = round(fill, 4)
            position.commission = round(position.commission + commission, 4)
            position.pnl = round(pnl, 2)
            position.reason = reason
            closed.append(position)
            position = None

        for sig in signals:
            price = sig.price
            equity = cash
            if position is not None:
                sign = 1 if position.side == "LONG" else -1
                equity += sign * position.quantity * price

            peak = max(peak, equity)
            if peak > 0:
                max_drawdown = max(max_drawdown, (peak - equity) / peak)
            equity_curve.append((sig.time, round(equity, 2)))

            if position is not None:
                if position.side == "LONG":
                    move = (price - position.entry_price) / position.entry_price
                else:
                    move = (position.entry_price - price) / position.entry_price

                if move < -config.stop_loss_pct:
                    exit_position(sig, f"Stop Loss (-{config.stop_loss_pct:.0%})")
                elif move > config.take_profit_pct:
                    exit_position(sig, f"Take Profit (+{config.take_profit_pct:.0%})")
                elif position.side == "LONG" and sig.sentiment == Sentiment.BEARISH:
                    exit_position(sig, "Signal Reversal (Bearish)")
                elif position.side == "SHORT" and sig.sentiment == Sentiment.BULLISH:
                    exit_position(sig, "Signal Reversal (Bullish)")
                continue

            if sig.confidence < config.confidence_threshold or sig.sentiment == Sentiment.NEUTRAL:
                continue

            quantity = position_size(price, sig.confidence, equity, config.max_position_pct,
                                     config.risk_percent, config.stop_loss_pct)
            long_side = sig.sentiment == Sentiment.BULLISH
            fill = price * (1 + self.slippage_rate) if long_side else price * (1 - self.slippage_rate)
            gross = fill * quantity
            commission = gross * self.commission_rate
            if quantity <= 0 or gross + commission > cash:
                continue

            if long_side:
                cash -= gross + commission
            else:
                cash += gross - commission
            position = ArenaTrade(
                entry_time=sig.time,
                entry_price=fill,
                side="LONG" if long_side else "SHORT",
                quantity=quantity,
                commission=commission,
            )

        if position is not None:
            exit_position(signals[-1], "End of Backtest")

        final_balance = cash
        profit = final_balance - initial_balance
        wins = sum(1 for t in closed if t.pnl > 0)
        profit_factor = gross_win if gross_loss == 0 else gross_win / gross_loss

        return ArenaReport(
            symbol=symbol,
            total_bars=len(candles),
            initial_balance=initial_balance,
            final_balance=round(final_balance, 2),
            profit=round(profit, 2),
            profit_percent=round(profit / initial_balance * 100, 2) if initial_balance else 0.0,
            trade_count=len(closed),
            win_rate=round(wins / len(closed) * 100, 2) if closed else 0.0,
            max_drawdown=round(max_drawdown, 4),
            profit_factor=round(profit_factor, 2),
            trades=closed,
            equity_curve=equity_curve,
        )
