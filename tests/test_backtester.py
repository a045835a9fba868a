"""Tests for council/backtester.py"""

import pytest

from council.models import Sentiment
from council.signals import HistoricalSignal


def bull(price, confidence, time="t"):
    return HistoricalSignal(time, price, confidence, Sentiment.BULLISH)


def bear(price, confidence, time="t"):
    return HistoricalSignal(time, price, confidence, Sentiment.BEARISH)


def _simulator(commission=0.0, slippage=0.0):
    from council.backtester import BacktestSimulator
    from council.config import SimulationConfig
    return BacktestSimulator(initial_balance=10_000, commission_rate=commission,
                             slippage_rate=slippage, config=SimulationConfig())


class TestSimulate:
    """State machine over a hand-built signal series."""

    def test_enter_and_exit_on_bearish(self):
        from council.backtester import BacktestParams
        report = _simulator().simulate(
            [bull(100, 80), bull(110, 50), bear(120, 60)], BacktestParams(75, 40))
        assert report.final_balance == 12_000
        assert report.profit == 2_000
        assert report.profit_percent == 20.0
        assert report.trade_count == 1
        assert report.win_rate == 100.0
        assert [m.side for m in report.markers] == ["BUY", "SELL"]
        assert report.markers[-1].text.startswith("SELL")

    def test_fading_conviction_exits(self):
        from council.backtester import BacktestParams
        report = _simulator().simulate([bull(100, 80), bull(90, 30)], BacktestParams(75, 40))
        assert report.profit == -1_000
        assert report.trade_count == 1
        assert report.win_rate == 0.0
        assert report.markers[-1].text.startswith("FADE")

    def test_open_position_closed_at_end(self):
        from council.backtester import BacktestParams
        report = _simulator().simulate([bull(100, 90), bull(105, 80)], BacktestParams(75, 40))
        assert report.final_balance == 10_500
        assert report.trade_count == 1
        assert report.markers[-1].text.startswith("END")

    def test_below_threshold_never_enters(self):
        from council.backtester import BacktestParams
        report = _simulator().simulate([bull(100, 70), bear(90, 80), bull(120, 74)],
                                       BacktestParams(75, 40))
        assert report.trade_count == 0
        assert report.final_balance == 10_000
        assert report.markers == []

    def test_bearish_never_enters(self):
        report = _simulator().simulate([bear(100, 99), bear(90, 99)])
        assert report.trade_count == 0

    def test_commission_on_both_legs(self):
        from council.backtester import BacktestParams
        report = _simulator(commission=0.001).simulate(
            [bull(100, 80), bear(100, 60)], BacktestParams(75, 40))
        assert report.total_commission == pytest.approx(19.98)
        assert report.profit == pytest.approx(-19.98)

    def test_slippage_is_adverse(self):
        from council.backtester import BacktestParams
        report = _simulator(slippage=0.001).simulate(
            [bull(100, 80), bear(100, 60)], BacktestParams(75, 40))
        assert report.profit < 0
        assert report.markers[0].price == pytest.approx(100.1)
        assert report.markers[1].price == pytest.approx(99.9)

    def test_multiple_round_trips(self):
        from council.backtester import BacktestParams
        signals = [bull(100, 80), bear(110, 60), bull(100, 80), bear(90, 60)]
        report = _simulator().simulate(signals, BacktestParams(75, 40))
        assert report.trade_count == 2
        assert report.win_rate == 50.0
        assert report.final_balance == pytest.approx(9_900)

    def test_empty_series(self):
        report = _simulator().simulate([])
        assert report.final_balance == report.initial_balance
        assert report.trade_count == 0


class TestRun:

    def test_short_history_is_empty_report(self, short_candles):
        report = _simulator().run(short_candles)
        assert report.final_balance == 10_000
        assert report.profit == 0
        assert report.trade_count == 0
        assert report.win_rate == 0

    def test_deterministic(self, up_candles):
        from council.backtester import BacktestParams
        sim = _simulator(commission=0.001, slippage=0.0005)
        first = sim.run(up_candles, BacktestParams(75, 40))
        second = sim.run(up_candles, BacktestParams(75, 40))
        assert first.to_dict() == second.to_dict()

    def test_uptrend_is_profitable(self, up_candles):
        from council.backtester import BacktestParams
        report = _simulator(commission=0.001, slippage=0.0005).run(up_candles, BacktestParams(75, 40))
        assert report.trade_count >= 1
        assert report.final_balance > report.initial_balance

    def test_default_params(self):
        sim = _simulator()
        assert (sim.default_params.buy_threshold, sim.default_params.sell_threshold) == (75, 40)

    def test_run_backtest(self, up_candles):
        from council.backtester import BacktestSimulator, run_backtest
        assert run_backtest(up_candles).to_dict() == BacktestSimulator().run(up_candles).to_dict()
