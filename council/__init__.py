# Agent Council Trader - multi-agent market analysis and paper trading
#
# Analysis:
# - agents: independent scorers (trend, reversal, volatility, chairman, macro,
#   news sentiment, option flow, multi-timeframe) emitting AgentCalls
# - weighting: performance-adaptive per-agent weights
# - ensemble: weighted consensus over all agent calls
#
# Simulation:
# - signals: live technical snapshot and its historical replay
# - backtester: long-only threshold simulator
# - arena: risk-sized long/short simulator with stops
# - optimizer: regime-aware threshold grid and risk grid searches
#
# Execution:
# - paper_trader: virtual ledger with slippage, commission and short flips
# - risk: CircuitBreaker pre-trade gate
# - ledger_store: single-writer JSON persistence
