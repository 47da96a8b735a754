from types import SimpleNamespace

from hos_research.financial import REPORT_FALLBACK_TEXT, FinancialAnalyst
from hos_research.models import HistoricalBar, NewsItem, StockSnapshot
from hos_research.prompts import ANALYST_PERSONA, REPORT_PERSONA
from hos_research.schemas import AnalyzeRequest


def _settings_stub() -> SimpleNamespace:
    return SimpleNamespace(analysis_temperature=0.7, analysis_max_tokens=1500, report_max_tokens=3000)


def _acme() -> StockSnapshot:
    return StockSnapshot(symbol="ACME", name="ACME", price=100.0, change_percent=2.5, market_cap=5e9, volume=2e6, pe=15.0)


def test_analyze_example_scenario(fake_provider, acme_request) -> None:
    body = AnalyzeRequest.model_validate(acme_request)
    analyst = FinancialAnalyst(fake_provider, _settings_stub())

    result = analyst.analyze(body.stock.to_model(), body.bars(), body.news_items())

    assert result.symbol == "ACME"
    assert result.recommendation in {"buy", "hold", "sell"}
    assert len(result.risks) <= 3
    assert len(result.opportunities) <= 3

    call = fake_provider.calls[0]
    assert call["temperature"] == 0.7
    assert call["max_tokens"] == 1500
    assert call["messages"][0] == {"role": "system", "content": ANALYST_PERSONA}
    assert "- ACME beats earnings" in call["messages"][1]["content"]
    assert "30-Day Price Range: $90.00 - $110.00" in call["messages"][1]["content"]


def test_analyze_is_idempotent_apart_from_timestamp(fake_provider) -> None:
    analyst = FinancialAnalyst(fake_provider, _settings_stub())
    bars = [HistoricalBar(open=c, high=c + 2, low=c - 2, close=c) for c in range(80, 120)]
    news = [NewsItem(title="ACME beats earnings", source="Wire")]

    first = analyst.analyze(_acme(), bars, news).to_payload()
    second = analyst.analyze(_acme(), bars, news).to_payload()
    first.pop("generatedAt")
    second.pop("generatedAt")

    assert first == second
    assert fake_provider.calls[0] == fake_provider.calls[1]


def test_analyze_uses_supplied_timestamp(fake_provider) -> None:
    analyst = FinancialAnalyst(fake_provider, _settings_stub())
    result = analyst.analyze(_acme(), [], [], now=1234)
    assert result.generated_at == 1234


def test_analyze_with_empty_history(fake_provider) -> None:
    analyst = FinancialAnalyst(fake_provider, _settings_stub())

    result = analyst.analyze(_acme(), [], [])

    assert result.technical_indicators.to_payload() == {}
    assert "30-Day Price Range: N/A" in fake_provider.calls[0]["messages"][1]["content"]


def test_report_returns_raw_text(fake_provider, analyst_reply) -> None:
    analyst = FinancialAnalyst(fake_provider, _settings_stub())

    text = analyst.report("ACME", _acme(), [], [])

    assert text == analyst_reply
    call = fake_provider.calls[0]
    assert call["max_tokens"] == 3000
    assert call["messages"][0]["content"] == REPORT_PERSONA


def test_report_empty_reply_falls_back(fake_provider) -> None:
    fake_provider.reply = ""
    analyst = FinancialAnalyst(fake_provider, _settings_stub())
    assert analyst.report("ACME", _acme(), [], []) == REPORT_FALLBACK_TEXT
