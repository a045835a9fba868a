#!/usr/bin/env python3
"""
NEWS SENTIMENT AGENT - Keyword scan over headline text.

Each document scores +1 per positive keyword and -1 per negative keyword
it contains. The call is driven by the average net balance per document.
"""

from typing import Any, List, Optional, Sequence

from ..models import AgentCall, AgentRole, Candle, Regime
from .base import Agent


POSITIVE_KEYWORDS = (
    "beat", "exceeds", "strong", "growth", "rise", "increase", "surge",
    "rally", "bullish", "upward", "positive", "optimistic", "record",
    "breakthrough", "innovation", "partnership", "expansion", "profit",
    "gain", "outperform", "upgrade", "recommend", "buy",
)

NEGATIVE_KEYWORDS = (
    "miss", "below", "weak", "decline", "fall", "decrease", "drop",
    "plunge", "bearish", "downward", "negative", "pessimistic", "concern",
    "risk", "challenge", "struggle", "loss", "underperform", "downgrade",
    "sell", "recession", "inflation", "rate hike", "cut", "layoff",
)


class NewsSentimentAgent(Agent):
    agent_id = "news_sentiment_agent"
    name = "News Sentiment Analyzer"
    role = AgentRole.SENTIMENT
    aux_key = "news"
    CUTOFF = 1.5

    CONFIDENCE_PER_POINT = 10

    def __init__(self):
        self.positive_keywords: List[str] = list(POSITIVE_KEYWORDS)
        self.negative_keywords: List[str] = list(NEGATIVE_KEYWORDS)

    def add_positive_keyword(self, keyword: str):
        keyword = keyword.strip().lower()
        if keyword and keyword not in self.positive_keywords:
            self.positive_keywords.append(keyword)

    def add_negative_keyword(self, keyword: str):
        keyword = keyword.strip().lower()
        if keyword and keyword not in self.negative_keywords:
            self.negative_keywords.append(keyword)

    def score_document(self, text: str) -> tuple:
        """Return (net score, matched keywords) for one document."""
        lowered = text.lower()
        matched = []
        net = 0
        for keyword in self.positive_keywords:
            if keyword in lowered:
                net += 1
                matched.append(keyword)
        for keyword in self.negative_keywords:
            if keyword in lowered:
                net -= 1
                matched.append(keyword)
        return net, matched

    def evaluate(self, candles: Sequence[Candle], regime: Optional[Regime] = None,
                 aux: Any = None) -> AgentCall:
        short = self.insufficient(candles)
        if short:
            return short

        documents = [d for d in (aux or []) if isinstance(d, str) and d.strip()]
        if not documents:
            return self.neutral("No news data available")

        total = 0
        keyword_hits = 0
        reasons = []
        for i, doc in enumerate(documents, start=1):
            net, matched = self.score_document(doc)
            keyword_hits += len(matched)
            if net != 0:
                tone = "positive" if net > 0 else "negative"
                reasons.append(f"News {i}: {tone} ({net:+d}, {', '.join(matched)})")
                total += net

        if keyword_hits == 0:
            return self.neutral("No sentiment keywords found in news")

        avg = total / len(documents)
        confidence = min(abs(avg) * self.CONFIDENCE_PER_POINT, 100)
        return self.from_score(avg, reasons, f"Balanced news flow (avg {avg:+.2f})",
                               confidence=confidence)
