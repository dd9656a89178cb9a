"""Domain models for Stock Consensus."""

from stockconsensus.domain.models.identifier import Identifier, Market
from stockconsensus.domain.models.opinion import (
    AgentOpinion,
    AgentRole,
    ConsensusDecision,
    ConsensusOutcome,
    Extracted,
    ExtractionKind,
    PriceRange,
    RawOpinion,
    Recommendation,
    TargetPriceRange,
    VoteCounts,
)
from stockconsensus.domain.models.rate_limit import AdmissionResult, RateWindowState
from stockconsensus.domain.models.record import (
    CanonicalRecord,
    FieldGroup,
    FinancialMetrics,
    InstrumentRecord,
    MacdValues,
    NewsItem,
    PriceInfo,
    RecordMetadata,
    ReliabilityTier,
    SentimentSummary,
    SourceRecord,
    TechnicalIndicators,
)
from stockconsensus.domain.models.results import AggregationResult, PipelineResult
from stockconsensus.domain.models.validation import (
    CollectorAssessment,
    DataQuality,
    ValidationResult,
)

__all__ = [
    "Identifier",
    "Market",
    # Records
    "CanonicalRecord",
    "FieldGroup",
    "FinancialMetrics",
    "InstrumentRecord",
    "MacdValues",
    "NewsItem",
    "PriceInfo",
    "RecordMetadata",
    "ReliabilityTier",
    "SentimentSummary",
    "SourceRecord",
    "TechnicalIndicators",
    # Validation
    "CollectorAssessment",
    "DataQuality",
    "ValidationResult",
    # Opinions and consensus
    "AgentOpinion",
    "AgentRole",
    "ConsensusDecision",
    "ConsensusOutcome",
    "Extracted",
    "ExtractionKind",
    "PriceRange",
    "RawOpinion",
    "Recommendation",
    "TargetPriceRange",
    "VoteCounts",
    # Admission control
    "AdmissionResult",
    "RateWindowState",
    # Step results
    "AggregationResult",
    "PipelineResult",
]
