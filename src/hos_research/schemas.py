"""Request bodies accepted over HTTP.

Payloads are validated here, before any value reaches prompt formatting. Field
names follow the camelCase JSON the dashboard sends; each payload converts to the
plain dataclass used by the rest of the package.
"""

from __future__ import annotations

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from hos_research.models import HistoricalBar, NewsItem, StockSnapshot


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, allow_inf_nan=False, extra="ignore")


class ChatMessage(_Payload):
    role: Literal["system", "user", "assistant"]
    content: str


class ChatContext(_Payload):
    mood: Optional[float] = None
    energy: Optional[float] = None
    core_values: List[str] = Field(default_factory=list, alias="coreValues")
    current_goals: List[str] = Field(default_factory=list, alias="currentGoals")
    recent_memories: List[str] = Field(default_factory=list, alias="recentMemories")


class ChatRequest(_Payload):
    messages: List[ChatMessage] = Field(min_length=1)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    context: Optional[ChatContext] = None


class StockPayload(_Payload):
    symbol: str = Field(min_length=1)
    name: str = ""
    price: float = Field(ge=0)
    change_percent: float = Field(alias="changePercent")
    market_cap: float = Field(ge=0, alias="marketCap")
    volume: float = Field(ge=0)
    pe: Optional[float] = None
    change: Optional[float] = None
    eps: Optional[float] = None

    @field_validator("symbol")
    @classmethod
    def _strip_symbol(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("symbol must not be blank")
        return value

    def to_model(self) -> StockSnapshot:
        return StockSnapshot(
            symbol=self.symbol,
            name=self.name.strip() or self.symbol,
            price=self.price,
            change_percent=self.change_percent,
            market_cap=self.market_cap,
            volume=self.volume,
            pe=self.pe,
            change=self.change,
            eps=self.eps,
        )


class HistoricalBarPayload(_Payload):
    high: float
    low: float
    close: float
    open: Optional[float] = None
    date: str = ""
    volume: Optional[float] = None

    def to_model(self) -> HistoricalBar:
        return HistoricalBar(
            open=self.close if self.open is None else self.open,
            high=self.high,
            low=self.low,
            close=self.close,
            date=self.date,
            volume=self.volume,
        )


class NewsPayload(_Payload):
    title: str
    source: str = ""
    summary: str = ""
    url: str = ""
    published_at: str = Field(default="", alias="publishedAt")
    sentiment: Optional[Literal["positive", "negative", "neutral"]] = None

    def to_model(self) -> NewsItem:
        return NewsItem(
            title=self.title.strip(),
            source=self.source.strip(),
            summary=self.summary,
            url=self.url,
            published_at=self.published_at,
            sentiment=self.sentiment,
        )


class AnalyzeRequest(_Payload):
    stock: StockPayload
    historical_data: List[HistoricalBarPayload] = Field(default_factory=list, alias="historicalData")
    news: List[NewsPayload] = Field(default_factory=list)

    def bars(self) -> List[HistoricalBar]:
        return [bar.to_model() for bar in self.historical_data]

    def news_items(self) -> List[NewsItem]:
        return [item.to_model() for item in self.news]


class ReportRequest(AnalyzeRequest):
    symbol: str = Field(min_length=1)


class UserDataWrite(_Payload):
    key: str = Field(min_length=1)
    user_id: str = Field(min_length=1, alias="userId")
    data: Any = None
