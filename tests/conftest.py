from typing import List, Optional

import pytest

from hos_research.llm import Completion

ANALYST_REPLY = """Overall assessment: ACME is executing well after a strong quarter, but valuation is stretched.

Recommendation: SELL
Target Price: $142.50

Risks:
- Customer concentration in two accounts
• Rising input costs
1. Currency exposure
2. Key-person dependency
- Litigation overhang

Opportunities:
- Expansion into Asia
- New product line

Technical Indicators: RSI is neutral and MACD is flattening.
"""


class FakeProvider:
    def __init__(self, reply: str = ANALYST_REPLY, error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.calls: List[dict] = []

    def complete(self, messages, temperature, max_tokens):
        self.calls.append({"messages": messages, "temperature": temperature, "max_tokens": max_tokens})
        if self.error is not None:
            raise self.error
        return Completion(content=self.reply, tokens_used=42, model="fake-model")


@pytest.fixture
def analyst_reply() -> str:
    return ANALYST_REPLY


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def acme_request() -> dict:
    return {
        "stock": {
            "symbol": "ACME",
            "price": 100,
            "changePercent": 2.5,
            "marketCap": 5e9,
            "pe": 15,
            "volume": 2e6,
        },
        "historicalData": [
            {"high": 110, "low": 90, "close": 100},
            {"high": 105, "low": 95, "close": 102},
        ],
        "news": [{"title": "ACME beats earnings"}],
    }


@pytest.fixture
def provider_factory():
    return FakeProvider
