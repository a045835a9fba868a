#!/usr/bin/env python3
"""
PAPER TRADER - Virtual account that executes council decisions.

Features:
- Signed positions: a SELL beyond a long flips it short, a BUY beyond a
  short flips it long, with the cost basis reset at the flip
- Adverse slippage on every fill and commission on gross notional
- Average price is the fill-weighted cost; commission hits cash, not the basis
- Pre-trade CircuitBreaker (daily loss, cooldown, exposure)
- Trade log capped at the newest 50 records
- JSON persistence through a single-writer LedgerStore

Usage:
    engine = PaperTradingEngine()
    result = engine.execute_trade(TradeRequest("AAPL", "BUY", 10, 100.0, "council BUY"))
    engine.close()
"""

import copy
import logging
import math
import threading
import uuid
from datetime import datetime
from typing import Callable, Dict, Optional

from .config import PaperTradingConfig, get_config
from .errors import LedgerCorruptError
from .ledger_store import LedgerStore
from .portfolio import (ORDER_SIDES, ExecutionResult, Portfolio, Position, Trade,
                        TradeRequest)
from .risk import CircuitBreaker, TradeGate, utc_now

logger = logging.getLogger(__name__)

ORDER_EXECUTED = "Order Executed"
INSUFFICIENT_FUNDS = "Insufficient Funds"
INSUFFICIENT_HOLDINGS = "Insufficient Holdings"

QTY_EPSILON = 1e-9


class PaperTradingEngine:
    """
    Paper ledger with a risk gate. All mutations run under one lock.
    """

    def __init__(self, config: Optional[PaperTradingConfig] = None,
                 risk_gate: Optional[TradeGate] = None,
                 store: Optional[LedgerStore] = None,
                 clock: Callable[[], datetime] = utc_now):
        cfg = config or get_config().paper
        self.config = cfg
        self.clock = clock
        self.risk_gate = risk_gate if risk_gate is not None else CircuitBreaker(clock=clock)
        self.store = store or LedgerStore(cfg.ledger_path, max_retries=cfg.max_write_retries)
        self._lock = threading.RLock()
        self._portfolio = self._load_state()

    # === State ===

    def _seed(self) -> Portfolio:
        now = self.clock()
        return Portfolio(
            cash=self.config.initial_cash,
            equity=self.config.initial_cash,
            initial_cash=self.config.initial_cash,
            daily_start_equity=self.config.initial_cash,
            day_start_date=now.date().isoformat(),
            last_updated=now.isoformat(),
        )

    def _load_state(self) -> Portfolio:
        data = self.store.load()
        if data is None:
            logger.info(f"No ledger at {self.store.path}, starting with {self.config.initial_cash:,.0f} cash")
            return self._seed()
        try:
            portfolio = Portfolio.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise LedgerCorruptError(f"Ledger {self.store.path} has an unexpected shape: {e}") from e
        logger.info(f"Loaded ledger: {portfolio.cash:,.2f} cash, {len(portfolio.positions)} positions")
        return portfolio

    def _roll_day(self):
        today = self.clock().date().isoformat()
        if self._portfolio.day_start_date != today:
            self._portfolio.day_start_date = today
            self._portfolio.daily_start_equity = self._portfolio.equity

    def _persist(self):
        self.store.save(self._portfolio.to_dict())

    def get_portfolio(self) -> Portfolio:
        with self._lock:
            return copy.deepcopy(self._portfolio)

    def flush(self):
        """Wait for pending ledger writes; raises PersistenceError on failure."""
        self.store.flush()

    def close(self):
        """Flush pending ledger writes and stop the writer thread."""
        try:
            self.store.flush()
        finally:
            self.store.close()

    def reset(self):
        """Delete persisted state and start again from the seed."""
        with self._lock:
            self.store.delete()
            self._portfolio = self._seed()
        logger.info("Paper ledger reset")

    def mark_to_market(self, prices: Dict[str, float]) -> Portfolio:
        """Update current prices and equity from a symbol -> price map."""
        with self._lock:
            self._roll_day()
            for pos in self._portfolio.positions:
                price = prices.get(pos.symbol)
                if price is not None and _valid(price) and price > 0:
                    pos.mark(price)
            self._portfolio.recompute_equity()
            self._portfolio.last_updated = self.clock().isoformat()
            self._persist()
            return copy.deepcopy(self._portfolio)

    # === Execution ===

    def execute_trade(self, request: TradeRequest) -> ExecutionResult:
        invalid = _validate(request)
        if invalid:
            logger.warning(f"Rejected {request.side} {request.symbol}: {invalid}")
            return ExecutionResult(False, invalid)

        with self._lock:
            self._roll_day()

            decision = self.risk_gate.check_trade(copy.deepcopy(self._portfolio), request)
            if not decision.allowed:
                reason = decision.reason or "Risk Check Failed"
                logger.warning(f"Trade rejected {request.side} {request.quantity} {request.symbol}: {reason}")
                return ExecutionResult(False, reason)

            cfg = self.config
            if request.side == "BUY":
                fill = request.price * (1 + cfg.slippage_rate)
            else:
                fill = request.price * (1 - cfg.slippage_rate)
            gross = fill * request.quantity
            commission = gross * cfg.commission_rate

            if request.side == "BUY":
                outcome = self._apply_buy(request, fill, gross, commission)
            else:
                outcome = self._apply_sell(request, fill, gross, commission)
            if isinstance(outcome, ExecutionResult):
                return outcome
            realized = outcome

            now = self.clock().isoformat()
            trade = Trade(
                id=uuid.uuid4().hex[:12],
                timestamp=now,
                symbol=request.symbol,
                side=request.side,
                quantity=request.quantity,
                execution_price=fill,
                gross_total=gross,
                commission=commission,
                order_type=request.order_type,
                reason=request.reason,
                realized_pnl=realized,
            )
            self._portfolio.trades.insert(0, trade)
            del self._portfolio.trades[cfg.trade_history_limit:]

            self._portfolio.recompute_equity()
            self._portfolio.last_updated = now
            self._persist()

        logger.info(f"{trade.side} {trade.quantity} {trade.symbol} @ {fill:.4f} "
                    f"(commission {commission:.2f}, realized {realized:+.2f})")
        return ExecutionResult(True, ORDER_EXECUTED, trade)

    def _apply_buy(self, request: TradeRequest, fill: float, gross: float, commission: float):
        portfolio = self._portfolio
        cost = gross + commission
        if portfolio.cash < cost:
            logger.warning(f"Insufficient funds for {request.symbol}: need {cost:,.2f}, "
                           f"have {portfolio.cash:,.2f}")
            return ExecutionResult(False, INSUFFICIENT_FUNDS)

        portfolio.cash -= cost
        pos = portfolio.position_for(request.symbol)
        qty = request.quantity
        realized = 0.0

        if pos is None:
            pos = Position(request.symbol, qty, fill)
            portfolio.positions.append(pos)
        elif pos.quantity < 0:
            # cover the short first
            covered = min(qty, -pos.quantity)
            realized = covered * (pos.average_price - fill) - commission * covered / qty
            new_qty = pos.quantity + qty
            if new_qty > QTY_EPSILON:
                pos.average_price = fill
            pos.quantity = new_qty
        else:
            new_qty = pos.quantity + qty
            pos.average_price = (pos.quantity * pos.average_price + gross) / new_qty
            pos.quantity = new_qty

        self._settle(pos, request.price)
        return realized

    def _apply_sell(self, request: TradeRequest, fill: float, gross: float, commission: float):
        portfolio = self._portfolio
        pos = portfolio.position_for(request.symbol)
        held = pos.quantity if pos is not None and pos.quantity > 0 else 0.0
        qty = request.quantity

        if not self.config.allow_short and qty > held + QTY_EPSILON:
            logger.warning(f"Insufficient holdings for {request.symbol}: have {held}, selling {qty}")
            return ExecutionResult(False, INSUFFICIENT_HOLDINGS)

        proceeds = gross - commission
        portfolio.cash += proceeds
        realized = 0.0

        if pos is None:
            pos = Position(request.symbol, -qty, fill)
            portfolio.positions.append(pos)
        elif pos.quantity > 0:
            # close the long first
            closed = min(qty, pos.quantity)
            realized = closed * (fill - pos.average_price) - commission * closed / qty
            new_qty = pos.quantity - qty
            if new_qty < -QTY_EPSILON:
                pos.average_price = fill
            pos.quantity = new_qty
        else:
            new_qty = pos.quantity - qty
            pos.average_price = (abs(pos.quantity) * pos.average_price + gross) / abs(new_qty)
            pos.quantity = new_qty

        self._settle(pos, request.price)
        return realized

    def _settle(self, pos: Position, price: float):
        if abs(pos.quantity) <= QTY_EPSILON:
            self._portfolio.positions.remove(pos)
            return
        pos.mark(price)


def _valid(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _validate(request: TradeRequest) -> Optional[str]:
    if request.side not in ORDER_SIDES:
        return f"Invalid order: side must be BUY or SELL, got {request.side!r}"
    if not request.symbol:
        return "Invalid order: symbol is required"
    if not _valid(request.quantity) or request.quantity <= 0:
        return "Invalid order: quantity must be positive"
    if not _valid(request.price) or request.price <= 0:
        return "Invalid order: price must be positive"
    return None
