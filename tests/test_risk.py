"""Tests for council/risk.py"""

from datetime import timedelta

import pytest

from council.portfolio import Portfolio, Position, Trade, TradeRequest


def _portfolio(equity=1_000_000, daily_start=1_000_000, positions=None, trades=None):
    return Portfolio(
        cash=equity,
        equity=equity,
        initial_cash=1_000_000,
        daily_start_equity=daily_start,
        day_start_date="2024-06-03",
        positions=positions or [],
        trades=trades or [],
    )


def _trade(symbol, when):
    return Trade(id="t1", timestamp=when.isoformat(), symbol=symbol, side="BUY", quantity=1,
                 execution_price=100.0, gross_total=100.0, commission=0.1)


@pytest.fixture
def breaker(clock):
    from council.config import RiskConfig
    from council.risk import CircuitBreaker
    return CircuitBreaker(RiskConfig(), clock=clock)


class TestCircuitBreaker:

    def test_allows_ordinary_trade(self, breaker):
        decision = breaker.check_trade(_portfolio(), TradeRequest("AAPL", "BUY", 10, 100.0))
        assert decision.allowed
        assert decision.reason == ""

    def test_daily_loss(self, breaker):
        decision = breaker.check_trade(_portfolio(equity=940_000),
                                       TradeRequest("AAPL", "BUY", 1, 10.0))
        assert not decision.allowed
        assert decision.reason == "Circuit Breaker: Max Daily Loss Exceeded (5%)"

    def test_daily_loss_at_limit_is_allowed(self, breaker):
        decision = breaker.check_trade(_portfolio(equity=950_000),
                                       TradeRequest("AAPL", "SELL", 1, 10.0))
        assert decision.allowed

    def test_cooldown(self, breaker, clock):
        recent = _portfolio(trades=[_trade("AAPL", clock() - timedelta(seconds=30))])
        blocked = breaker.check_trade(recent, TradeRequest("AAPL", "SELL", 1, 100.0))
        assert not blocked.allowed
        assert blocked.reason == "Circuit Breaker: Cooldown Active (60s)"

        assert breaker.check_trade(recent, TradeRequest("MSFT", "BUY", 1, 100.0)).allowed

        clock.advance(seconds=31)
        assert breaker.check_trade(recent, TradeRequest("AAPL", "SELL", 1, 100.0)).allowed

    def test_cooldown_uses_latest_trade(self, breaker, clock):
        trades = [_trade("AAPL", clock() - timedelta(seconds=5)),
                  _trade("AAPL", clock() - timedelta(hours=2))]
        decision = breaker.check_trade(_portfolio(trades=trades), TradeRequest("AAPL", "BUY", 1, 1.0))
        assert not decision.allowed

    def test_exposure(self, breaker):
        over = breaker.check_trade(_portfolio(), TradeRequest("AAPL", "BUY", 2001, 100.0))
        assert not over.allowed
        assert over.reason == "Circuit Breaker: Max Position Size Exceeded (20%)"

        assert breaker.check_trade(_portfolio(), TradeRequest("AAPL", "BUY", 2000, 100.0)).allowed
        assert breaker.check_trade(_portfolio(), TradeRequest("AAPL", "SELL", 5000, 100.0)).allowed

    def test_exposure_counts_existing_position(self, breaker):
        holding = _portfolio(positions=[Position("AAPL", 1500, 100.0)])
        assert not breaker.check_trade(holding, TradeRequest("AAPL", "BUY", 600, 100.0)).allowed
        assert breaker.check_trade(holding, TradeRequest("AAPL", "BUY", 400, 100.0)).allowed

    def test_checks_in_order(self, breaker, clock):
        portfolio = _portfolio(equity=900_000, trades=[_trade("AAPL", clock())])
        decision = breaker.check_trade(portfolio, TradeRequest("AAPL", "BUY", 10_000, 100.0))
        assert "Max Daily Loss" in decision.reason
