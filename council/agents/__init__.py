# Council agents
#
# Price-only:
# - technical: TrendAgent, ReversalAgent, VolatilityAgent
# - chairman: regime-aware generalist
# - multi_timeframe: cross-timeframe agreement
#
# Auxiliary-fed:
# - macro: rates / inflation / growth / jobs
# - news: headline keyword sentiment
# - option_flow: options positioning

from typing import List

from .base import Agent
from .chairman import ChairmanAgent
from .macro import MacroEconomicAgent, MacroSnapshot, MacroThresholds
from .multi_timeframe import MultiTimeframeAgent
from .news import NewsSentimentAgent
from .option_flow import OptionFlowAgent, OptionFlowSnapshot
from .technical import ReversalAgent, TrendAgent, VolatilityAgent


def default_agents() -> List[Agent]:
    """Fresh instances of every council member."""
    return [
        ChairmanAgent(),
        TrendAgent(),
        ReversalAgent(),
        VolatilityAgent(),
        MacroEconomicAgent(),
        NewsSentimentAgent(),
        OptionFlowAgent(),
        MultiTimeframeAgent(),
    ]


__all__ = [
    "Agent",
    "ChairmanAgent",
    "TrendAgent",
    "ReversalAgent",
    "VolatilityAgent",
    "MacroEconomicAgent",
    "MacroSnapshot",
    "MacroThresholds",
    "NewsSentimentAgent",
    "OptionFlowAgent",
    "OptionFlowSnapshot",
    "MultiTimeframeAgent",
    "default_agents",
]
