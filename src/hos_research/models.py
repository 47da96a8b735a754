from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Union


RECOMMENDATIONS = ("buy", "hold", "sell")

PROJECT_STATUSES = ("planning", "active", "paused", "completed", "archived")
PAPER_STATUSES = ("to-read", "reading", "completed", "referenced")
EXPERIMENT_STATUSES = ("planned", "running", "completed", "failed")
FINDING_TYPES = ("insight", "discovery", "validation", "refutation")
SIGNIFICANCE_LEVELS = ("low", "medium", "high", "critical")
VARIABLE_TYPES = ("independent", "dependent", "control")
OBSERVATION_TYPES = ("note", "insight", "anomaly", "breakthrough")
PUBLICATION_STATUSES = ("draft", "submitted", "under-review", "accepted", "published")
NOTE_TYPES = ("idea", "analysis", "summary", "question")


# Market data


@dataclass(frozen=True)
class StockSnapshot:
    symbol: str
    name: str
    price: float
    change_percent: float
    market_cap: float
    volume: float
    pe: Optional[float] = None
    change: Optional[float] = None
    eps: Optional[float] = None


@dataclass(frozen=True)
class HistoricalBar:
    open: float
    high: float
    low: float
    close: float
    date: str = ""
    volume: Optional[float] = None


@dataclass(frozen=True)
class NewsItem:
    title: str
    source: str = ""
    summary: str = ""
    url: str = ""
    published_at: str = ""
    sentiment: Optional[str] = None


@dataclass
class MACD:
    value: float
    signal: float
    histogram: float


@dataclass
class MovingAverages:
    sma20: Optional[float] = None
    sma50: Optional[float] = None
    sma200: Optional[float] = None


@dataclass
class BollingerBands:
    upper: float
    middle: float
    lower: float


@dataclass
class TechnicalIndicators:
    rsi: Optional[float] = None
    macd: Optional[MACD] = None
    moving_averages: Optional[MovingAverages] = None
    bollinger: Optional[BollingerBands] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        if self.rsi is not None:
            payload["rsi"] = self.rsi
        if self.macd is not None:
            payload["macd"] = {
                "value": self.macd.value,
                "signal": self.macd.signal,
                "histogram": self.macd.histogram,
            }
        if self.moving_averages is not None:
            payload["movingAverages"] = {
                "sma20": self.moving_averages.sma20,
                "sma50": self.moving_averages.sma50,
                "sma200": self.moving_averages.sma200,
            }
        if self.bollinger is not None:
            payload["bollinger"] = {
                "upper": self.bollinger.upper,
                "middle": self.bollinger.middle,
                "lower": self.bollinger.lower,
            }
        return payload


@dataclass
class AnalysisResult:
    symbol: str
    analysis: str
    recommendation: str
    generated_at: int
    target_price: Optional[float] = None
    risks: List[str] = field(default_factory=list)
    opportunities: List[str] = field(default_factory=list)
    technical_indicators: TechnicalIndicators = field(default_factory=TechnicalIndicators)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "symbol": self.symbol,
            "analysis": self.analysis,
            "recommendation": self.recommendation,
            "risks": list(self.risks),
            "opportunities": list(self.opportunities),
            "technicalIndicators": self.technical_indicators.to_payload(),
            "generatedAt": self.generated_at,
        }
        # Absent rather than null, matching an undefined field on the wire.
        if self.target_price is not None:
            payload["targetPrice"] = self.target_price
        return payload


# Research records


@dataclass
class Variable:
    id: str
    name: str
    type: str
    value: Union[str, float]
    unit: Optional[str] = None


@dataclass
class Metric:
    name: str
    value: float
    unit: Optional[str] = None
    benchmark: Optional[float] = None


@dataclass
class ExperimentResult:
    id: str
    timestamp: datetime
    success: bool
    data: Dict[str, Any] = field(default_factory=dict)
    metrics: List[Metric] = field(default_factory=list)
    notes: Optional[str] = None


@dataclass
class Observation:
    id: str
    timestamp: datetime
    content: str
    type: str = "note"
    attachments: List[str] = field(default_factory=list)


@dataclass
class Finding:
    id: str
    title: str
    description: str
    type: str
    date: datetime
    significance: str = "medium"
    evidence: List[str] = field(default_factory=list)
    related_papers: List[str] = field(default_factory=list)


@dataclass
class ResearchPaper:
    id: str
    title: str
    abstract: str
    field: str
    authors: List[str] = field(default_factory=list)
    url: Optional[str] = None
    arxiv_id: Optional[str] = None
    doi: Optional[str] = None
    published_date: Optional[datetime] = None
    citations: int = 0
    tags: List[str] = field(default_factory=list)
    notes: Optional[str] = None
    key_findings: List[str] = field(default_factory=list)
    relevance_score: float = 0.0
    status: str = "to-read"


@dataclass
class Experiment:
    id: str
    name: str
    description: str
    hypothesis: str
    methodology: str
    start_date: datetime
    status: str = "planned"
    end_date: Optional[datetime] = None
    variables: List[Variable] = field(default_factory=list)
    results: List[ExperimentResult] = field(default_factory=list)
    observations: List[Observation] = field(default_factory=list)
    conclusions: Optional[str] = None


@dataclass
class Publication:
    id: str
    title: str
    venue: str
    authors: List[str] = field(default_factory=list)
    status: str = "draft"
    submission_date: Optional[datetime] = None
    publication_date: Optional[datetime] = None
    url: Optional[str] = None


@dataclass
class ResearchProject:
    id: str
    title: str
    description: str
    field: str
    start_date: datetime
    status: str = "planning"
    tags: List[str] = field(default_factory=list)
    end_date: Optional[datetime] = None
    progress: int = 0
    hypothesis: Optional[str] = None
    methodology: Optional[str] = None
    findings: List[Finding] = field(default_factory=list)
    papers: List[ResearchPaper] = field(default_factory=list)
    experiments: List[Experiment] = field(default_factory=list)
    collaborators: List[str] = field(default_factory=list)
    publications: List[Publication] = field(default_factory=list)


@dataclass
class ResearchNote:
    id: str
    title: str
    content: str
    created_date: datetime
    updated_date: datetime
    type: str = "idea"
    tags: List[str] = field(default_factory=list)
    project_id: Optional[str] = None
