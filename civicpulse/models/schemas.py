from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_RESULTS_LIMIT = 100

Provenance = Literal["vector", "keyword", "fallback", "mock"]
NodeType = Literal["donor", "candidate", "committee"]


class BillRecord(BaseModel):
    """A bill as normalised from Congress.gov; read-only to consumers"""

    model_config = ConfigDict(frozen=True)

    id: str
    congress: int
    bill_type: str
    number: str
    title: str
    sponsor: Optional[str] = None
    sponsor_party: Optional[str] = None
    introduced_date: Optional[str] = None
    latest_action_text: Optional[str] = None
    latest_action_date: Optional[str] = None
    update_date: Optional[str] = None
    summary: str = ""
    policy_area: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    cosponsor_parties: List[str] = Field(default_factory=list)


class SearchResult(BaseModel):
    id: str
    title: str
    summary: str = ""
    sponsor: str = "Unknown"
    date: Optional[str] = None
    status: str = "Introduced"
    tags: List[str] = Field(default_factory=list)
    similarity: Optional[float] = None
    matched: Optional[bool] = None
    provenance: Provenance


class SearchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    query: str = ""
    include_bills: bool = Field(True, alias="includeBills")
    max_results: int = Field(20, alias="maxResults")

    @field_validator("max_results")
    @classmethod
    def clamp_max_results(cls, value: int) -> int:
        return max(1, min(value, MAX_RESULTS_LIMIT))


class SearchResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    bills: List[SearchResult] = Field(default_factory=list)
    analysis: str
    source: str
    search_time: int = Field(0, alias="searchTime")


class IndexStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_bills: int = Field(alias="totalBills")
    is_built: bool = Field(alias="isBuilt")
    last_update: Optional[float] = Field(None, alias="lastUpdate")
    provider: str


class MoneyFlowNode(BaseModel):
    id: int
    name: str
    type: NodeType


class MoneyFlowLink(BaseModel):
    source: int
    target: int
    value: float


class MoneyFlowTotals(BaseModel):
    total_receipts: float = 0
    total_disbursements: float = 0
    individual_contributions: float = 0
    pac_contributions: float = 0
    linked_total: float = 0
    exceeds_receipts: bool = False


class MoneyFlowGraph(BaseModel):
    nodes: List[MoneyFlowNode] = Field(default_factory=list)
    links: List[MoneyFlowLink] = Field(default_factory=list)
    totals: MoneyFlowTotals = Field(default_factory=MoneyFlowTotals)


class DashboardNode(BaseModel):
    id: int
    name: str
    key: str


class DashboardLink(BaseModel):
    source: int
    target: int
    value: float
    key: str


class DashboardTotals(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tracked: float
    dark_money: float = Field(alias="darkMoney")
    last_updated: str = Field(alias="lastUpdated")
    period: str = "Last 30 days"
    source: str = "live"


class FinanceDashboard(BaseModel):
    nodes: List[DashboardNode] = Field(default_factory=list)
    links: List[DashboardLink] = Field(default_factory=list)
    totals: DashboardTotals


class PolarizationEstimate(BaseModel):
    democrat_support: float
    republican_support: float
    polarization_score: float
    controversy_level: Literal["low", "medium", "high", "extreme"]
    confidence: Literal["low", "medium", "high"]
    reasoning: str = ""
    provenance: Literal["metadata", "ai"] = "metadata"


class AnalyzedBill(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    status: str
    date: Optional[str] = None
    summary: str = ""
    sponsor: Optional[str] = None
    trend_score: int = Field(50, alias="trendScore")
    categories: List[str] = Field(default_factory=list)
    polarization: PolarizationEstimate


class LobbyingStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    amount: float
    formatted: str
    change: str
    timeframe: str = "vs last month"
    last_updated: str = Field(alias="lastUpdated")
    source: str
    raw_text: Optional[str] = Field(None, alias="rawText")


class NewsArticle(BaseModel):
    title: str
    description: str = ""
    url: str
    image_url: Optional[str] = None
    published_at: Optional[str] = None
    source: str = "Unknown"
    snippet: str = ""


class NewsFeed(BaseModel):
    articles: List[NewsArticle] = Field(default_factory=list)
    source: str


class NewsSummary(BaseModel):
    summary: str
    source: str


class ErrorResponse(BaseModel):
    error: str
    details: Optional[Any] = None


def dump(model: BaseModel) -> Dict[str, Any]:
    """JSON-ready dict using the public (camelCase) field names"""
    return model.model_dump(mode="json", by_alias=True)
