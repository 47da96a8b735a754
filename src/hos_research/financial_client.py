from __future__ import annotations

import logging
import time
from dataclasses import asdict
from typing import Dict, Optional, Sequence

import requests

from hos_research.config import Settings
from hos_research.models import (
    MACD,
    AnalysisResult,
    BollingerBands,
    HistoricalBar,
    MovingAverages,
    NewsItem,
    StockSnapshot,
    TechnicalIndicators,
)

logger = logging.getLogger(__name__)

FALLBACK_RISKS = [
    "Market volatility and economic uncertainty",
    "Sector-specific regulatory challenges",
    "Competitive pressure from industry peers",
]
FALLBACK_OPPORTUNITIES = [
    "Strong market position and brand recognition",
    "Potential for market share expansion",
    "Innovation and product development pipeline",
]
REPORT_TARGET_UPSIDE = 0.15


def momentum_recommendation(change_percent: float) -> str:
    if change_percent > 2:
        return "buy"
    if change_percent < -2:
        return "sell"
    return "hold"


def _stock_body(stock: StockSnapshot) -> Dict[str, object]:
    return {
        "symbol": stock.symbol,
        "name": stock.name,
        "price": stock.price,
        "change": stock.change,
        "changePercent": stock.change_percent,
        "volume": stock.volume,
        "marketCap": stock.market_cap,
        "pe": stock.pe,
        "eps": stock.eps,
    }


def _news_body(item: NewsItem) -> Dict[str, object]:
    return {
        "title": item.title,
        "source": item.source,
        "summary": item.summary,
        "url": item.url,
        "publishedAt": item.published_at,
        "sentiment": item.sentiment,
    }


def fallback_analysis(stock: StockSnapshot, now: Optional[int] = None) -> AnalysisResult:
    recommendation = momentum_recommendation(stock.change_percent)
    direction = "gain" if stock.change_percent >= 0 else "loss"
    momentum = "positive" if stock.change_percent > 0 else "negative"
    text = (
        f"{stock.name} is currently trading at ${stock.price:.2f} with a {direction} of "
        f"{abs(stock.change_percent):.2f}%. Based on current market conditions and technical indicators, "
        f"we recommend a {recommendation.upper()} rating. The stock shows {momentum} momentum with "
        f"significant trading volume."
    )
    return AnalysisResult(
        symbol=stock.symbol,
        analysis=text,
        recommendation=recommendation,
        risks=list(FALLBACK_RISKS),
        opportunities=list(FALLBACK_OPPORTUNITIES),
        technical_indicators=TechnicalIndicators(),
        generated_at=now if now is not None else int(time.time() * 1000),
    )


def fallback_report(stock: StockSnapshot) -> str:
    change = stock.change_percent
    pe = f"{stock.pe:.2f}" if stock.pe is not None else "N/A"
    outlook = "attractive" if change > 1 else "moderate"
    return f"""# Financial Research Report: {stock.name} ({stock.symbol})

## Executive Summary
{stock.name} is currently trading at ${stock.price:.2f}, representing a {"gain" if change >= 0 else "decline"} of {abs(change):.2f}% in the current session. This report provides a comprehensive analysis of the company's financial performance, market position, and investment potential.

## Company Overview
{stock.name} operates in a dynamic market environment with strong fundamentals and growth potential.

## Financial Performance
- Current Price: ${stock.price:.2f}
- Market Capitalization: ${stock.market_cap / 1e9:.2f}B
- P/E Ratio: {pe}
- Trading Volume: {stock.volume / 1e6:.2f}M shares

## Technical Analysis
The stock is showing {"bullish" if change > 0 else "bearish"} momentum with strong trading activity.

## Market Position
The company maintains a strong competitive position in its sector.

## Investment Thesis
Based on current market conditions and fundamental analysis, {stock.name} presents {outlook} investment opportunities.

## Recommendation
{momentum_recommendation(change).upper()}

## Price Target
12-month target: ${stock.price * (1 + REPORT_TARGET_UPSIDE):.2f}

---
*This report is generated for informational purposes only and should not be considered investment advice.*"""


def _analysis_from_payload(payload: dict) -> AnalysisResult:
    raw = payload.get("technicalIndicators") or {}
    indicators = TechnicalIndicators(
        rsi=raw.get("rsi"),
        macd=MACD(**raw["macd"]) if raw.get("macd") else None,
        moving_averages=MovingAverages(**raw["movingAverages"]) if raw.get("movingAverages") else None,
        bollinger=BollingerBands(**raw["bollinger"]) if raw.get("bollinger") else None,
    )
    return AnalysisResult(
        symbol=payload["symbol"],
        analysis=payload.get("analysis", ""),
        recommendation=payload.get("recommendation", "hold"),
        target_price=payload.get("targetPrice"),
        risks=list(payload.get("risks", [])),
        opportunities=list(payload.get("opportunities", [])),
        technical_indicators=indicators,
        generated_at=int(payload.get("generatedAt", 0)),
    )


class FinancialResearchClient:
    """Calls the financial routes and degrades to local fallbacks on any failure."""

    def __init__(self, base_url: str, token: Optional[str] = None, timeout_sec: float = 45.0):
        self.base_url = base_url.rstrip("/") + "/financial"
        self.token = token
        self.timeout_sec = timeout_sec

    @classmethod
    def from_settings(cls, settings: Settings) -> "FinancialResearchClient":
        return cls(settings.ai_server_url, settings.public_anon_key, settings.ai_timeout_sec)

    def _post(self, path: str, body: dict) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        resp = requests.post(f"{self.base_url}{path}", json=body, headers=headers, timeout=self.timeout_sec)
        resp.raise_for_status()
        return resp.json()

    def analyze(
        self,
        stock: StockSnapshot,
        bars: Sequence[HistoricalBar],
        news: Sequence[NewsItem],
    ) -> AnalysisResult:
        body = {
            "stock": _stock_body(stock),
            "historicalData": [asdict(bar) for bar in bars],
            "news": [_news_body(item) for item in news],
        }
        try:
            return _analysis_from_payload(self._post("/analyze", body))
        except (requests.RequestException, ValueError, KeyError, TypeError) as exc:
            logger.warning("Error generating analysis for %s: %s", stock.symbol, exc)
            return fallback_analysis(stock)

    def report(
        self,
        symbol: str,
        stock: StockSnapshot,
        bars: Sequence[HistoricalBar],
        news: Sequence[NewsItem],
    ) -> str:
        body = {
            "symbol": symbol,
            "stock": _stock_body(stock),
            "historicalData": [asdict(bar) for bar in bars],
            "news": [_news_body(item) for item in news],
        }
        try:
            data = self._post("/report", body)
            return data.get("report") or "Report generation failed"
        except (requests.RequestException, ValueError, AttributeError) as exc:
            logger.warning("Error generating research report for %s: %s", symbol, exc)
            return fallback_report(stock)
