"""Instrument record models: field groups, source records and the canonical record."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import Field

from stockconsensus.domain.models.base import ValueObject


class ReliabilityTier(str, Enum):
    """Static reliability tier of a data source."""

    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @property
    def rank(self) -> int:
        """Ordering used for tie-breaking (higher is better)."""
        return {"High": 2, "Medium": 1, "Low": 0}[self.value]


class FieldGroup(str, Enum):
    """Independently sourced sub-sections of an instrument record."""

    PRICE_INFO = "price_info"
    FINANCIAL_METRICS = "financial_metrics"
    TECHNICAL_INDICATORS = "technical_indicators"
    NEWS_ITEMS = "news_items"
    SENTIMENT_SUMMARY = "sentiment_summary"


class RecordMetadata(ValueObject):
    identifier: str | None = Field(default=None, description="Instrument code")
    company_name: str | None = Field(default=None, description="Company name")
    collected_at: str | None = Field(default=None, description="ISO 8601 collection time")
    reliability_tier: ReliabilityTier | None = Field(
        default=None, description="Reliability tier asserted for the data"
    )
    sources: list[str] = Field(default_factory=list, description="Contributing source names")


class PriceInfo(ValueObject):
    current_price: float | None = None
    change: float | None = Field(default=None, description="Absolute daily change")
    change_percent: float | None = Field(default=None, description="Daily change in percent")
    volume: float | None = None
    market_cap: str | None = None
    open: float | None = None
    high: float | None = None
    low: float | None = None
    source_url: str | None = None


class FinancialMetrics(ValueObject):
    per: float | None = Field(default=None, description="Price/earnings ratio")
    pbr: float | None = Field(default=None, description="Price/book ratio")
    roe: float | None = Field(default=None, description="Return on equity (percent)")
    dividend_yield: float | None = None
    eps: float | None = None
    latest_earnings: str | None = None
    source_url: str | None = None


class MacdValues(ValueObject):
    value: float | None = None
    signal: float | None = None
    histogram: float | None = None


class TechnicalIndicators(ValueObject):
    ma25: float | None = None
    ma75: float | None = None
    ma200: float | None = None
    rsi: float | None = None
    macd: MacdValues = Field(default_factory=MacdValues)
    source_url: str | None = None


class NewsItem(ValueObject):
    title: str | None = None
    summary: str | None = None
    published_at: str | None = Field(default=None, description="ISO 8601 publication time")
    url: str | None = None
    reliability: ReliabilityTier | None = None


class SentimentSummary(ValueObject):
    overall: str | None = None
    reason: str | None = None
    reliability: ReliabilityTier | None = None


class InstrumentRecord(ValueObject):
    """Fields shared by source records and the canonical record."""

    metadata: RecordMetadata | None = None
    price_info: PriceInfo | None = None
    financial_metrics: FinancialMetrics | None = None
    technical_indicators: TechnicalIndicators | None = None
    news_items: list[NewsItem] | None = None
    sentiment_summary: SentimentSummary | None = None

    def get_group(self, group: FieldGroup) -> ValueObject | list[NewsItem] | None:
        value: ValueObject | list[NewsItem] | None = getattr(self, group.value)
        return value

    def has_group(self, group: FieldGroup) -> bool:
        value = self.get_group(group)
        if group is FieldGroup.NEWS_ITEMS:
            return bool(value)
        return value is not None


class SourceRecord(InstrumentRecord):
    """Output of one collector. Any subset of field groups may be absent."""

    identifier: str = Field(..., description="Requested instrument code")
    source_name: str = Field(..., description="Name of the producing collector")
    reliability_tier: ReliabilityTier = Field(
        default=ReliabilityTier.MEDIUM, description="Static tier of the producing collector"
    )
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    confidence: int = Field(default=0, ge=0, le=100, description="Collector-asserted confidence")
    success: bool = Field(default=False)
    errors: list[str] = Field(default_factory=list)


class CanonicalRecord(InstrumentRecord):
    """Merged record. Every field group is always present, possibly all-null."""

    metadata: RecordMetadata = Field(default_factory=RecordMetadata)
    price_info: PriceInfo = Field(default_factory=PriceInfo)
    financial_metrics: FinancialMetrics = Field(default_factory=FinancialMetrics)
    technical_indicators: TechnicalIndicators = Field(default_factory=TechnicalIndicators)
    news_items: list[NewsItem] = Field(default_factory=list)
    sentiment_summary: SentimentSummary = Field(default_factory=SentimentSummary)
    sources_used: list[str] = Field(default_factory=list)
    merge_confidence: int = Field(default=0, ge=0, le=100)

    @classmethod
    def empty(cls, identifier: str) -> CanonicalRecord:
        """All-null record used when nothing could be merged."""
        return cls(
            metadata=RecordMetadata(
                identifier=identifier,
                collected_at=datetime.now(UTC).isoformat(),
                reliability_tier=ReliabilityTier.LOW,
            )
        )

    def has_price_data(self) -> bool:
        return self.price_info.current_price is not None
