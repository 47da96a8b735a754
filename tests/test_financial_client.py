from unittest.mock import MagicMock, patch

import requests

from hos_research.financial_client import (
    FALLBACK_RISKS,
    FinancialResearchClient,
    fallback_analysis,
    fallback_report,
    momentum_recommendation,
)
from hos_research.models import HistoricalBar, NewsItem, StockSnapshot


def _stock(change_percent: float = 2.5) -> StockSnapshot:
    return StockSnapshot(
        symbol="ACME", name="Acme Corp", price=100.0, change_percent=change_percent, market_cap=5e9, volume=2e6, pe=15.0
    )


def test_momentum_recommendation_thresholds() -> None:
    assert momentum_recommendation(2.5) == "buy"
    assert momentum_recommendation(2.0) == "hold"
    assert momentum_recommendation(-2.0) == "hold"
    assert momentum_recommendation(-3.1) == "sell"


def test_fallback_analysis_is_deterministic() -> None:
    first = fallback_analysis(_stock(-3.0), now=1)
    second = fallback_analysis(_stock(-3.0), now=1)
    assert first == second
    assert first.recommendation == "sell"
    assert first.target_price is None
    assert first.risks == FALLBACK_RISKS
    assert "loss of 3.00%" in first.analysis


def test_fallback_report_has_price_target() -> None:
    text = fallback_report(_stock())
    assert text.startswith("# Financial Research Report: Acme Corp (ACME)")
    assert "12-month target: $115.00" in text
    assert "## Recommendation\nBUY" in text


def test_analyze_parses_server_payload() -> None:
    resp = MagicMock()
    resp.json.return_value = {
        "symbol": "ACME",
        "analysis": "text",
        "recommendation": "sell",
        "targetPrice": 142.5,
        "risks": ["r1"],
        "opportunities": ["o1"],
        "technicalIndicators": {"rsi": 61.2, "macd": {"value": 1.0, "signal": 0.5, "histogram": 0.5}},
        "generatedAt": 1700000000000,
    }
    client = FinancialResearchClient("https://edge.example.com/fn", token="anon")
    bars = [HistoricalBar(open=1, high=2, low=0.5, close=1.5, date="2026-01-02")]

    with patch("hos_research.financial_client.requests.post", return_value=resp) as post:
        result = client.analyze(_stock(), bars, [NewsItem(title="ACME beats earnings")])

    assert result.recommendation == "sell"
    assert result.target_price == 142.5
    assert result.technical_indicators.rsi == 61.2
    assert result.technical_indicators.macd.signal == 0.5
    args, kwargs = post.call_args
    assert args[0] == "https://edge.example.com/fn/financial/analyze"
    assert kwargs["json"]["stock"]["changePercent"] == 2.5
    assert kwargs["json"]["historicalData"][0]["close"] == 1.5


def test_analyze_falls_back_on_transport_error() -> None:
    client = FinancialResearchClient("https://edge.example.com/fn")
    with patch("hos_research.financial_client.requests.post", side_effect=requests.ConnectionError("down")):
        result = client.analyze(_stock(), [], [])
    assert result.recommendation == "buy"
    assert result.risks == FALLBACK_RISKS


def test_report_falls_back_on_http_error() -> None:
    resp = MagicMock()
    resp.raise_for_status.side_effect = requests.HTTPError("500 Server Error")
    client = FinancialResearchClient("https://edge.example.com/fn")
    with patch("hos_research.financial_client.requests.post", return_value=resp):
        text = client.report("ACME", _stock(), [], [])
    assert "12-month target: $115.00" in text


def test_report_falls_back_on_non_object_body() -> None:
    resp = MagicMock()
    resp.json.return_value = ["not", "an", "object"]
    client = FinancialResearchClient("https://edge.example.com/fn")
    with patch("hos_research.financial_client.requests.post", return_value=resp):
        text = client.report("ACME", _stock(), [], [])
    assert text.startswith("# Financial Research Report: Acme Corp (ACME)")
