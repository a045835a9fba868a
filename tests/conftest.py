"""Shared fixtures for council tests."""

from datetime import datetime, timedelta, timezone

import pytest
from unittest.mock import MagicMock

from council.models import AgentCall, AgentRole, Candle, Sentiment, Signal


START = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_candles(closes, spread=0.5, start=START):
    """Daily candles around the given closes, oldest first."""
    candles = []
    prev = closes[0]
    for i, close in enumerate(closes):
        candles.append(Candle(
            timestamp=(start + timedelta(days=i)).isoformat(),
            open=float(prev),
            high=float(close) + spread,
            low=float(close) - spread,
            close=float(close),
            volume=1_000.0,
        ))
        prev = close
    return candles


def rising_closes(n=120):
    """Accelerating uptrend: every bar higher, and by more."""
    return [100 + 0.02 * i * i for i in range(n)]


def falling_closes(n=120):
    """Accelerating downtrend."""
    return [400 - 0.02 * i * i for i in range(n)]


def make_call(agent_id="stub", signal=Signal.HOLD, confidence=0.0,
              role=AgentRole.TREND, name=None):
    sentiment = {
        Signal.BUY: Sentiment.BULLISH,
        Signal.SELL: Sentiment.BEARISH,
        Signal.HOLD: Sentiment.NEUTRAL,
    }[signal]
    return AgentCall(
        agent_id=agent_id,
        agent_name=name or agent_id,
        role=role,
        signal=signal,
        confidence=confidence,
        sentiment=sentiment,
        reason="stub",
    )


class FixedAgent:
    """Agent double that always returns the same call and records its inputs."""

    def __init__(self, agent_id, signal=Signal.HOLD, confidence=0.0,
                 role=AgentRole.TREND, aux_key=None):
        self.agent_id = agent_id
        self.name = agent_id
        self.role = role
        self.aux_key = aux_key
        self.signal = signal
        self.confidence = confidence
        self.seen = []

    def evaluate(self, candles, regime=None, aux=None):
        self.seen.append((len(candles), regime, aux))
        return make_call(self.agent_id, self.signal, self.confidence, self.role)


@pytest.fixture
def up_candles():
    return make_candles(rising_closes())


@pytest.fixture
def down_candles():
    return make_candles(falling_closes())


@pytest.fixture
def volatile_candles():
    """Gentle drift with wide bars (ATR well above 2% of price)."""
    return make_candles([100 + 0.1 * i for i in range(80)], spread=3.0)


@pytest.fixture
def short_candles():
    return make_candles([100 + i for i in range(30)])


class FixedClock:
    """Settable clock for time-dependent code."""

    def __init__(self, now=None):
        self.now = now or datetime(2024, 6, 3, 14, 30, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def allow_all_gate():
    """Risk gate that approves everything."""
    from council.portfolio import RiskDecision
    gate = MagicMock()
    gate.check_trade.return_value = RiskDecision(True)
    return gate


@pytest.fixture
def paper_config(tmp_path):
    from council.config import PaperTradingConfig
    return PaperTradingConfig(ledger_path=tmp_path / "ledger.json")


@pytest.fixture
def engine(paper_config, allow_all_gate, clock):
    from council.ledger_store import LedgerStore
    from council.paper_trader import PaperTradingEngine
    store = LedgerStore(paper_config.ledger_path, retry_delay=0)
    eng = PaperTradingEngine(config=paper_config, risk_gate=allow_all_gate,
                             store=store, clock=clock)
    yield eng
    eng.close()
