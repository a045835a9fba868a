#!/usr/bin/env python3
"""
BACKTESTER - Replay the live signal over history, long-only.

A single account walks the historical signal series as a two-state machine:

    FLAT --(BULLISH, confidence >= buy threshold)--> LONG
    LONG --(BEARISH, or BULLISH with confidence <= sell threshold)--> FLAT

Fills are all-in, with adverse slippage on both legs and a commission on
notional. Any position still open at the end is force-closed at the last
price. No clock, no randomness: the same inputs always give the same report.

Usage:
    python3 -m council.backtester --csv prices.csv
    python3 -m council.backtester --csv prices.csv --regime VOLATILE --json
"""

import json
import logging
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional, Sequence

from .config import SimulationConfig, get_config
from .models import Candle, Sentiment
from .signals import HistoricalSignal, generate_historical_signals

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BacktestParams:
    buy_threshold: int
    sell_threshold: int


@dataclass(frozen=True)
class TradeMarker:
    """Entry/exit point for chart overlays."""
    time: str
    side: str  # "BUY" / "SELL"
    price: float
    confidence: int
    text: str


@dataclass
class BacktestReport:
    initial_balance: float
    final_balance: float
    profit: float
    profit_percent: float
    trade_count: int
    win_rate: float  # percent
    total_commission: float = 0.0
    markers: List[TradeMarker] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return asdict(self)


def empty_report(initial_balance: float) -> BacktestReport:
    return BacktestReport(
        initial_balance=initial_balance,
        final_balance=initial_balance,
        profit=0.0,
        profit_percent=0.0,
        trade_count=0,
        win_rate=0.0,
    )


class BacktestSimulator:
    """
    Long-only single-account simulator over a precomputed signal series.
    """

    def __init__(self, initial_balance: Optional[float] = None,
                 commission_rate: Optional[float] = None,
                 slippage_rate: Optional[float] = None,
                 config: Optional[SimulationConfig] = None):
        cfg = config or get_config().simulation
        self.config = cfg
        self.initial_balance = cfg.initial_balance if initial_balance is None else initial_balance
        self.commission_rate = cfg.commission_rate if commission_rate is None else commission_rate
        self.slippage_rate = cfg.slippage_rate if slippage_rate is None else slippage_rate

    @property
    def default_params(self) -> BacktestParams:
        return BacktestParams(self.config.default_buy_threshold, self.config.default_sell_threshold)

    def run(self, candles: Sequence[Candle],
            params: Optional[BacktestParams] = None) -> BacktestReport:
        """Generate the signal series from candles, then simulate."""
        if len(candles) < self.config.min_history:
            return empty_report(self.initial_balance)
        return self.simulate(generate_historical_signals(candles), params)

    def simulate(self, signals: Sequence[HistoricalSignal],
                 params: Optional[BacktestParams] = None) -> BacktestReport:
        params = params or self.default_params
        if not signals:
            return empty_report(self.initial_balance)

        cash = self.initial_balance
        shares = 0.0
        cost_basis = 0.0
        trades = 0
        wins = 0
        total_commission = 0.0
        markers: List[TradeMarker] = []

        def close_position(sig: HistoricalSignal, text: str):
            nonlocal cash, shares, cost_basis, trades, wins, total_commission
            exit_price = sig.price * (1 - self.slippage_rate)
            gross = shares * exit_price
            commission = gross * self.commission_rate
            proceeds = gross - commission
            pnl = proceeds - cost_basis

            trades += 1
            if pnl > 0:
                wins += 1
            total_commission += commission
            cash += proceeds
            markers.append(TradeMarker(sig.time, "SELL", round(exit_price, 4), sig.confidence,
                                       f"{text} {pnl:+.2f}"))
            shares = 0.0
            cost_basis = 0.0

        for sig in signals:
            if shares == 0:
                if sig.sentiment == Sentiment.BULLISH and sig.confidence >= params.buy_threshold:
                    entry_price = sig.price * (1 + self.slippage_rate)
                    if entry_price <= 0 or cash <= 0:
                        continue
                    # commission comes out of cash before sizing
                    notional = cash / (1 + self.commission_rate)
                    commission = notional * self.commission_rate
                    shares = notional / entry_price
                    cost_basis = cash
                    total_commission += commission
                    cash = 0.0
                    markers.append(TradeMarker(sig.time, "BUY", round(entry_price, 4),
                                               sig.confidence, f"BUY {sig.confidence}%"))
            else:
                bearish = sig.sentiment == Sentiment.BEARISH
                weak = sig.sentiment == Sentiment.BULLISH and sig.confidence <= params.sell_threshold
                if bearish or weak:
                    close_position(sig, "SELL" if bearish else "FADE")

        if shares > 0:
            close_position(signals[-1], "END")

        final_balance = cash
        profit = final_balance - self.initial_balance
        return BacktestReport(
            initial_balance=self.initial_balance,
            final_balance=round(final_balance, 2),
            profit=round(profit, 2),
            profit_percent=round(profit / self.initial_balance * 100, 2) if self.initial_balance else 0.0,
            trade_count=trades,
            win_rate=round(wins / trades * 100, 2) if trades else 0.0,
            total_commission=round(total_commission, 2),
            markers=markers,
        )


def run_backtest(candles: Sequence[Candle], params: Optional[BacktestParams] = None,
                 initial_balance: Optional[float] = None) -> BacktestReport:
    """Convenience: one simulation with config defaults."""
    return BacktestSimulator(initial_balance=initial_balance).run(candles, params)


if __name__ == "__main__":
    import argparse
    import pandas as pd

    from .data import candles_from_frame
    from .models import Regime
    from .optimizer import StrategyOptimizer

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    parser = argparse.ArgumentParser(description="Backtest the council signal and tune thresholds")
    parser.add_argument("--csv", required=True, help="OHLC CSV (timestamp,open,high,low,close[,volume])")
    parser.add_argument("--regime", "-r", choices=[r.value for r in Regime], default=None,
                        help="Market regime for the threshold grid")
    parser.add_argument("--capital", "-c", type=float, default=None, help="Initial balance")
    parser.add_argument("--json", action="store_true", help="Output JSON")
    args = parser.parse_args()

    frame = pd.read_csv(args.csv)
    candles = candles_from_frame(frame)
    regime = Regime(args.regime) if args.regime else None

    optimizer = StrategyOptimizer(initial_balance=args.capital)
    result = optimizer.find_optimal(candles, regime)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, default=str))
    else:
        r = result.report
        print(f"\n{'='*60}")
        print(f"BACKTEST RESULTS: {args.csv} ({regime.value if regime else 'no regime'})")
        print(f"{'='*60}")
        print(f"  Bars:            {len(candles)}")
        print(f"  Best Params:     buy {result.params.buy_threshold} / sell {result.params.sell_threshold}")
        print(f"  Combinations:    {result.evaluated}")
        print(f"  Initial Balance: ${r.initial_balance:,.2f}")
        print(f"  Final Balance:   ${r.final_balance:,.2f}")
        print(f"  Profit:          {r.profit_percent:+.2f}%")
        print(f"  Trades:          {r.trade_count}")
        print(f"  Win Rate:        {r.win_rate:.1f}%")
