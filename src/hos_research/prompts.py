from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from hos_research.models import HistoricalBar, NewsItem, StockSnapshot
from hos_research.schemas import ChatContext, ChatMessage


ANALYST_PERSONA = (
    "You are a professional financial analyst with expertise in stock market analysis, "
    "technical indicators, and investment strategies. Provide detailed, actionable insights."
)
REPORT_PERSONA = (
    "You are a senior equity research analyst at a top investment bank. "
    "Write comprehensive, professional research reports."
)

MAX_HEADLINES = 3
NOT_AVAILABLE = "N/A"


def price_range(bars: Sequence[HistoricalBar]) -> Optional[Tuple[float, float]]:
    """Return ``(lowest low, highest high)``, or ``None`` for an empty series."""
    if not bars:
        return None
    return min(bar.low for bar in bars), max(bar.high for bar in bars)


def _money(value: Optional[float]) -> str:
    return NOT_AVAILABLE if value is None else f"${value:.2f}"


def _signed_pct(value: float) -> str:
    sign = "+" if value >= 0 else ""
    return f"{sign}{value:.2f}%"


def _market_data_lines(stock: StockSnapshot) -> Tuple[str, str, str]:
    pe = f"{stock.pe:.2f}" if stock.pe is not None else NOT_AVAILABLE
    return (
        f"${stock.market_cap / 1e9:.2f}B",
        pe,
        f"{stock.volume / 1e6:.2f}M",
    )


def build_analysis_prompt(
    stock: StockSnapshot,
    bars: Sequence[HistoricalBar],
    news: Sequence[NewsItem],
) -> str:
    market_cap, pe, volume = _market_data_lines(stock)
    headlines = []
    for item in news[:MAX_HEADLINES]:
        suffix = f" ({item.source})" if item.source else ""
        headlines.append(f"- {item.title}{suffix}")

    bounds = price_range(bars)
    if bounds is None:
        range_text = NOT_AVAILABLE
    else:
        range_text = f"{_money(bounds[0])} - {_money(bounds[1])}"

    return f"""Analyze {stock.name} ({stock.symbol}) stock:

Current Price: {_money(stock.price)}
Change: {_signed_pct(stock.change_percent)}
Market Cap: {market_cap}
P/E Ratio: {pe}
Volume: {volume} shares

Recent News:
{chr(10).join(headlines) if headlines else "- No recent headlines"}

30-Day Price Range: {range_text}

Provide a concise analysis including:
1. Overall assessment (2-3 sentences)
2. Recommendation: BUY, HOLD, or SELL
3. Target price (optional)
4. 3 key risks
5. 3 key opportunities
6. Technical indicators assessment

Be specific and actionable."""


def build_report_prompt(
    symbol: str,
    stock: StockSnapshot,
    bars: Sequence[HistoricalBar],
    news: Sequence[NewsItem],
) -> str:
    market_cap, pe, volume = _market_data_lines(stock)
    headlines = [f"- {item.title}" for item in news[:MAX_HEADLINES]]
    bounds = price_range(bars)
    start = bars[0].close if bars else None
    end = bars[-1].close if bars else None
    low, high = bounds if bounds is not None else (None, None)

    return f"""Generate a comprehensive financial research report for {stock.name} ({symbol}).

Current Data:
- Price: {_money(stock.price)} ({_signed_pct(stock.change_percent)})
- Market Cap: {market_cap}
- P/E Ratio: {pe}
- Volume: {volume}

Recent News Headlines:
{chr(10).join(headlines) if headlines else "- No recent headlines"}

Price Trend (last 30 days):
- Start: {_money(start)}
- End: {_money(end)}
- High: {_money(high)}
- Low: {_money(low)}

Please provide:
1. Executive Summary
2. Company Overview
3. Financial Performance Analysis
4. Technical Analysis
5. Market Position & Competitive Landscape
6. Growth Opportunities
7. Risk Factors
8. Investment Thesis
9. Recommendation (Buy/Hold/Sell)
10. Price Target (12-month)

Format as a professional research report with sections and bullet points."""


def build_chat_messages(
    messages: Sequence[ChatMessage],
    context: Optional[ChatContext] = None,
) -> List[dict]:
    """Flatten chat messages for the provider, with one system message first.

    The first system message from the caller is kept and the context block is
    appended to it; any other system messages are dropped.
    """
    system = next((m.content for m in messages if m.role == "system"), "")

    if context is not None:
        system += "\n\nCurrent context:"
        if context.mood:
            system += f"\n- Mood level: {context.mood:g}/10"
        if context.energy:
            system += f"\n- Energy level: {context.energy:g}/10"
        if context.core_values:
            system += f"\n- Core values: {', '.join(context.core_values)}"
        if context.current_goals:
            system += f"\n- Current goals: {', '.join(context.current_goals)}"
        if context.recent_memories:
            system += f"\n- Recent memories: {'; '.join(context.recent_memories)}"

    prepared = [{"role": "system", "content": system}]
    prepared.extend({"role": m.role, "content": m.content} for m in messages if m.role != "system")
    return prepared
