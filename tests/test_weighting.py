"""Tests for council/weighting.py"""

import threading

import pytest

from council.models import AgentRole, Direction, Regime, Signal
from tests.conftest import FixedAgent, make_call


def _engine(**overrides):
    from council.config import WeightingConfig
    from council.weighting import DynamicWeightingEngine
    return DynamicWeightingEngine(config=WeightingConfig(**overrides))


def _record(engine, agent_id, role, outcomes, profit=None):
    """outcomes: iterable of bools (call was right or wrong)."""
    call = make_call(agent_id, Signal.BUY, 80.0, role)
    for correct in outcomes:
        direction = Direction.UP if correct else Direction.DOWN
        engine.record_outcome(agent_id, role, call, direction, profit)


class TestGrading:

    def test_is_correct(self):
        from council.weighting import is_correct
        assert is_correct(Signal.BUY, Direction.UP)
        assert is_correct(Signal.SELL, Direction.DOWN)
        assert is_correct(Signal.HOLD, Direction.FLAT)
        assert not is_correct(Signal.BUY, Direction.FLAT)
        assert not is_correct(Signal.HOLD, Direction.UP)

    def test_classify_direction(self):
        from council.weighting import classify_direction
        assert classify_direction(100, 101) == Direction.UP
        assert classify_direction(100, 99) == Direction.DOWN
        assert classify_direction(100, 100.3) == Direction.FLAT
        assert classify_direction(0, 10) == Direction.FLAT


class TestPerformanceTracking:

    def test_counts_and_accuracy(self):
        engine = _engine()
        _record(engine, "a", AgentRole.TREND, [True, True, False, True])
        perf = engine.get_performance("a")
        assert perf.total_predictions == 4
        assert perf.correct_predictions == 3
        assert perf.accuracy == 0.75
        assert perf.role == AgentRole.TREND
        assert perf.last_updated

    def test_returned_snapshot_is_a_copy(self):
        engine = _engine()
        call = make_call("a", Signal.BUY, 80.0)
        snap = engine.record_outcome("a", AgentRole.TREND, call, Direction.UP)
        snap.total_predictions = 99
        assert engine.get_performance("a").total_predictions == 1

    def test_recent_accuracy_uses_window(self):
        engine = _engine()
        _record(engine, "a", AgentRole.TREND, [False] * 130 + [True] * 20)
        perf = engine.get_performance("a")
        assert perf.total_predictions == 150
        assert perf.accuracy == pytest.approx(20 / 150)
        assert perf.recent_accuracy == 1.0

    def test_consistency(self):
        engine = _engine()
        _record(engine, "steady", AgentRole.TREND, [True] * 10)
        _record(engine, "erratic", AgentRole.TREND, [True, False] * 5)
        assert engine.get_performance("steady").consistency == pytest.approx(1.0)
        erratic = engine.get_performance("erratic")
        assert erratic.volatility == pytest.approx(0.5)
        assert erratic.consistency == pytest.approx(0.5)

    def test_profitability(self):
        engine = _engine()
        _record(engine, "winner", AgentRole.TREND, [True] * 3, profit=0.03)
        _record(engine, "loser", AgentRole.TREND, [True] * 3, profit=-0.03)
        _record(engine, "unknown", AgentRole.TREND, [True] * 3)
        assert engine.get_performance("winner").profitability > 0.5
        assert engine.get_performance("loser").profitability < 0.5
        assert engine.get_performance("unknown").profitability == 0.5

    def test_concurrent_updates(self):
        engine = _engine()

        def worker():
            _record(engine, "shared", AgentRole.TREND, [True] * 50)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        perf = engine.get_performance("shared")
        assert perf.total_predictions == 400
        assert perf.correct_predictions == 400


class TestWeights:

    def _agents(self):
        return [
            FixedAgent("chair", role=AgentRole.CHAIRMAN),
            FixedAgent("trend", role=AgentRole.TREND),
            FixedAgent("macro", role=AgentRole.MACRO),
        ]

    def test_cold_start_uses_role_base(self):
        from council.weighting import ROLE_BASE_WEIGHTS
        engine = _engine()
        agents = self._agents()
        _record(engine, "trend", AgentRole.TREND, [True] * 9)

        raw = engine.raw_weights(agents, Regime.BULL_TREND)
        assert raw["chair"] == ROLE_BASE_WEIGHTS[AgentRole.CHAIRMAN]
        assert raw["trend"] == ROLE_BASE_WEIGHTS[AgentRole.TREND]
        assert raw["macro"] == ROLE_BASE_WEIGHTS[AgentRole.MACRO]
        assert engine.compute_weights(agents, Regime.BULL_TREND) == \
            engine.compute_weights(agents, Regime.SIDEWAYS)

    def test_weights_sum_to_one(self):
        engine = _engine()
        agents = self._agents()
        _record(engine, "trend", AgentRole.TREND, [True, False, True] * 10)
        for regime in [None] + list(Regime):
            weights = engine.compute_weights(agents, regime)
            assert sum(weights.values()) == pytest.approx(1.0)
            assert all(w > 0 for w in weights.values())

    def test_accuracy_earns_weight(self):
        engine = _engine()
        good = FixedAgent("good", role=AgentRole.TREND)
        bad = FixedAgent("bad", role=AgentRole.TREND)
        _record(engine, "good", AgentRole.TREND, [True] * 20)
        _record(engine, "bad", AgentRole.TREND, [False] * 20)

        raw = engine.raw_weights([good, bad])
        # quality 0.85 and 0.15 against a 0.425 coin-flip midpoint
        assert raw["good"] == pytest.approx(2.0)
        assert raw["bad"] == pytest.approx(0.15 / 0.425)

    def test_coin_flip_keeps_base_weight(self):
        from council.weighting import ROLE_BASE_WEIGHTS
        engine = _engine()
        chair = FixedAgent("chair", role=AgentRole.CHAIRMAN)
        _record(engine, "chair", AgentRole.CHAIRMAN, [True, False] * 10)
        assert engine.raw_weights([chair])["chair"] == pytest.approx(ROLE_BASE_WEIGHTS[AgentRole.CHAIRMAN])

    def test_weight_rises_with_accuracy(self):
        engine = _engine()
        agents = []
        for hits in range(21):
            agent_id = f"hits{hits}"
            _record(engine, agent_id, AgentRole.TREND, [True] * hits + [False] * (20 - hits))
            agents.append(FixedAgent(agent_id, role=AgentRole.TREND))

        raw = engine.raw_weights(agents)
        weights = [raw[a.agent_id] for a in agents]
        assert weights == sorted(weights)
        assert raw["hits0"] < raw["hits4"]

    def test_regime_adjustment(self):
        engine = _engine()
        trend = FixedAgent("trend", role=AgentRole.TREND)
        _record(engine, "trend", AgentRole.TREND, [True] * 20)
        bull = engine.raw_weights([trend], Regime.BULL_TREND)["trend"]
        sideways = engine.raw_weights([trend], Regime.SIDEWAYS)["trend"]
        assert bull == pytest.approx(2.0 * 1.3)
        assert sideways == pytest.approx(2.0 * 0.7)

    def test_weights_are_clamped(self):
        engine = _engine(max_weight=1.5)
        chair = FixedAgent("chair", role=AgentRole.CHAIRMAN)
        _record(engine, "chair", AgentRole.CHAIRMAN, [True] * 20)
        assert engine.raw_weights([chair])["chair"] == 1.5

    def test_reset(self):
        from council.weighting import ROLE_BASE_WEIGHTS
        engine = _engine()
        trend = FixedAgent("trend", role=AgentRole.TREND)
        _record(engine, "trend", AgentRole.TREND, [True] * 20)
        _record(engine, "other", AgentRole.MACRO, [True] * 5)
        assert engine.tracked_agents() == ["other", "trend"]

        engine.reset_agent("trend")
        assert engine.get_performance("trend") is None
        assert engine.raw_weights([trend])["trend"] == ROLE_BASE_WEIGHTS[AgentRole.TREND]
        assert engine.tracked_agents() == ["other"]

        engine.reset_all()
        assert engine.all_performance() == {}

    def test_snapshot(self):
        engine = _engine()
        _record(engine, "trend", AgentRole.TREND, [True])
        snap = engine.performance_snapshot()
        assert snap["trend"]["role"] == "TREND"
        assert snap["trend"]["total_predictions"] == 1
