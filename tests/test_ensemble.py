"""Tests for council/ensemble.py"""

import pytest

from council.models import AgentRole, Direction, Regime, Signal
from tests.conftest import FixedAgent, make_call


def _predictor(agents, **config):
    from council.config import EnsembleConfig
    from council.ensemble import EnsemblePredictor
    return EnsemblePredictor(agents=agents, config=EnsembleConfig(**config))


class TestCombine:
    """Confidence-weighted vote folding."""

    def test_unanimous_buy(self):
        predictor = _predictor([])
        calls = [make_call("a", Signal.BUY, 80), make_call("b", Signal.BUY, 60)]
        result = predictor.combine(calls, {"a": 0.5, "b": 0.5})
        assert result.final_signal == Signal.BUY
        assert result.weighted_score == 1.0
        assert result.confidence == 100.0

    def test_unanimous_sell(self):
        predictor = _predictor([])
        calls = [make_call("a", Signal.SELL, 70), make_call("b", Signal.SELL, 90)]
        result = predictor.combine(calls, {"a": 0.3, "b": 0.7})
        assert result.final_signal == Signal.SELL
        assert result.weighted_score == -1.0

    def test_split_council_holds(self):
        predictor = _predictor([])
        calls = [make_call("a", Signal.BUY, 80), make_call("b", Signal.SELL, 80)]
        result = predictor.combine(calls, {"a": 0.5, "b": 0.5})
        assert result.final_signal == Signal.HOLD
        assert result.weighted_score == 0.0
        assert result.confidence == 50.0

    def test_hold_confidence_floors_at_zero(self):
        predictor = _predictor([])
        calls = [make_call("a", Signal.HOLD, 10), make_call("b", Signal.HOLD, 20)]
        result = predictor.combine(calls, {"a": 0.5, "b": 0.5})
        assert result.final_signal == Signal.HOLD
        assert result.confidence == 0.0

    def test_weights_decide(self):
        predictor = _predictor([])
        calls = [make_call("a", Signal.BUY, 80), make_call("b", Signal.SELL, 80)]
        result = predictor.combine(calls, {"a": 0.8, "b": 0.2})
        assert result.final_signal == Signal.BUY
        assert result.weighted_score == pytest.approx(0.6)
        assert result.confidence == pytest.approx(60.0)

    def test_plain_weight_normalization(self):
        calls = [make_call("a", Signal.BUY, 50), make_call("b", Signal.HOLD, 50)]
        weights = {"a": 0.5, "b": 0.5}

        by_conviction = _predictor([]).combine(calls, weights)
        by_weight = _predictor([], conviction_normalized=False).combine(calls, weights)
        assert by_conviction.weighted_score == 0.5
        assert by_conviction.final_signal == Signal.BUY
        assert by_weight.weighted_score == 0.25
        assert by_weight.final_signal == Signal.HOLD

    def test_reasoning_lists_material_calls(self):
        predictor = _predictor([])
        calls = [make_call("loud", Signal.BUY, 80), make_call("quiet", Signal.SELL, 20)]
        result = predictor.combine(calls, {"loud": 0.5, "quiet": 0.5})
        assert result.reasoning == ["loud: BUY (80%)"]

    def test_reasoning_fallback(self):
        predictor = _predictor([])
        calls = [make_call("a", Signal.BUY, 20), make_call("b", Signal.HOLD, 0)]
        result = predictor.combine(calls, {"a": 0.5, "b": 0.5})
        assert result.reasoning == ["Mixed or neutral signals from all agents"]

    def test_no_calls(self):
        result = _predictor([]).combine([], {})
        assert result.final_signal == Signal.HOLD
        assert result.confidence == 0.0

    def test_to_dict(self):
        predictor = _predictor([])
        result = predictor.combine([make_call("a", Signal.BUY, 80)], {"a": 1.0})
        data = result.to_dict()
        assert data["final_signal"] == "BUY"
        assert data["agent_results"][0]["agent_id"] == "a"
        assert data["weights"] == {"a": 1.0}


class TestPredict:

    def test_static_weights_normalized(self, up_candles):
        agents = [FixedAgent("trend", role=AgentRole.TREND),
                  FixedAgent("chair", role=AgentRole.CHAIRMAN)]
        weights = _predictor(agents).current_weights()
        assert weights["trend"] == pytest.approx(0.25 / 0.30)
        assert sum(weights.values()) == pytest.approx(1.0)

    def test_aux_routing(self, up_candles):
        from council.ensemble import AuxiliaryBundle
        news = FixedAgent("news", aux_key="news")
        plain = FixedAgent("plain")
        _predictor([news, plain]).predict(
            up_candles, AuxiliaryBundle(news=["headline"]), Regime.VOLATILE)

        assert news.seen == [(len(up_candles), Regime.VOLATILE, ["headline"])]
        assert plain.seen == [(len(up_candles), Regime.VOLATILE, None)]

    def test_full_council(self, up_candles):
        from council.ensemble import EnsemblePredictor
        from council.weighting import DynamicWeightingEngine
        predictor = EnsemblePredictor(weighting=DynamicWeightingEngine())
        result = predictor.predict(up_candles, regime=Regime.BULL_TREND)

        assert len(result.agent_results) == 8
        assert -1.0 <= result.weighted_score <= 1.0
        assert 0.0 <= result.confidence <= 100.0
        assert sum(result.weights.values()) == pytest.approx(1.0)
        assert result.reasoning

    def test_record_outcomes(self, up_candles):
        from council.weighting import DynamicWeightingEngine
        from council.ensemble import EnsemblePredictor
        agents = [FixedAgent("a", Signal.BUY, 80), FixedAgent("b", Signal.SELL, 80)]
        engine = DynamicWeightingEngine()
        predictor = EnsemblePredictor(agents=agents, weighting=engine)
        result = predictor.predict(up_candles)

        stats = predictor.record_outcomes(result, Direction.UP, 0.01)
        assert [s.correct_predictions for s in stats] == [1, 0]
        assert engine.tracked_agents() == ["a", "b"]

    def test_record_outcomes_needs_engine(self, up_candles):
        predictor = _predictor([FixedAgent("a")])
        result = predictor.predict(up_candles)
        with pytest.raises(ValueError):
            predictor.record_outcomes(result, Direction.UP)
