from __future__ import annotations

import logging
import time
from typing import Optional, Sequence

from hos_research.config import Settings
from hos_research.indicators import compute_indicators
from hos_research.llm import ChatProvider
from hos_research.models import AnalysisResult, HistoricalBar, NewsItem, StockSnapshot
from hos_research.parsing import parse_analysis
from hos_research.prompts import (
    ANALYST_PERSONA,
    REPORT_PERSONA,
    build_analysis_prompt,
    build_report_prompt,
)

logger = logging.getLogger(__name__)

REPORT_FALLBACK_TEXT = "Report generation failed"


class FinancialAnalyst:
    def __init__(self, provider: ChatProvider, settings: Settings):
        self.provider = provider
        self.temperature = settings.analysis_temperature
        self.analysis_max_tokens = settings.analysis_max_tokens
        self.report_max_tokens = settings.report_max_tokens

    def analyze(
        self,
        stock: StockSnapshot,
        bars: Sequence[HistoricalBar],
        news: Sequence[NewsItem],
        now: Optional[int] = None,
    ) -> AnalysisResult:
        prompt = build_analysis_prompt(stock, bars, news)
        completion = self.provider.complete(
            [
                {"role": "system", "content": ANALYST_PERSONA},
                {"role": "user", "content": prompt},
            ],
            temperature=self.temperature,
            max_tokens=self.analysis_max_tokens,
        )
        logger.info("analysis for %s: %d tokens", stock.symbol, completion.tokens_used)
        generated_at = now if now is not None else int(time.time() * 1000)
        return parse_analysis(stock.symbol, completion.content, compute_indicators(bars), generated_at)

    def report(
        self,
        symbol: str,
        stock: StockSnapshot,
        bars: Sequence[HistoricalBar],
        news: Sequence[NewsItem],
    ) -> str:
        prompt = build_report_prompt(symbol, stock, bars, news)
        completion = self.provider.complete(
            [
                {"role": "system", "content": REPORT_PERSONA},
                {"role": "user", "content": prompt},
            ],
            temperature=self.temperature,
            max_tokens=self.report_max_tokens,
        )
        logger.info("report for %s: %d tokens", symbol, completion.tokens_used)
        return completion.content or REPORT_FALLBACK_TEXT
