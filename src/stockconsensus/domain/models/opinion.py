"""Agent opinion and consensus decision models."""

from __future__ import annotations

from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

from stockconsensus.domain.models.base import ValueObject

T = TypeVar("T")


class Recommendation(str, Enum):
    BUY = "Buy"
    SELL = "Sell"
    HOLD = "Hold"


class AgentRole(str, Enum):
    """Fixed opinion agent roles."""

    TECHNICAL = "technical"
    FUNDAMENTAL = "fundamental"
    GENERAL = "general"


class ExtractionKind(str, Enum):
    """How a value was obtained from a raw opinion."""

    PARSED = "parsed"
    FALLBACK_PARSED = "fallback_parsed"
    MISSING = "missing"


class Extracted(BaseModel, Generic[T]):
    """Tagged extraction result: ``Parsed(value) | FallbackParsed(value) | Missing``."""

    model_config = {"frozen": True}

    kind: ExtractionKind
    value: T | None = None

    @classmethod
    def parsed(cls, value: T) -> Extracted[T]:
        return cls(kind=ExtractionKind.PARSED, value=value)

    @classmethod
    def fallback(cls, value: T) -> Extracted[T]:
        return cls(kind=ExtractionKind.FALLBACK_PARSED, value=value)

    @classmethod
    def missing(cls) -> Extracted[T]:
        return cls(kind=ExtractionKind.MISSING)

    @property
    def is_missing(self) -> bool:
        return self.kind is ExtractionKind.MISSING


class RawOpinion(ValueObject):
    """Unprocessed output of one opinion agent."""

    agent_name: str
    role: AgentRole
    content: str = Field(..., description="Raw text returned by the agent")
    structured: dict[str, Any] | None = Field(
        default=None, description="Schema-constrained payload, when the agent returned one"
    )


class PriceRange(ValueObject):
    low: float | None = None
    high: float | None = None

    @property
    def is_complete(self) -> bool:
        return self.low is not None and self.high is not None


class AgentOpinion(ValueObject):
    """Normalized, structured opinion of one agent."""

    agent_name: str
    domain_label: str = Field(..., description="Role the agent answered for")
    recommendation: Recommendation
    confidence: float | None = Field(
        default=None, ge=0.0, le=1.0, description="None when the agent gave no confidence"
    )
    confidence_origin: ExtractionKind = ExtractionKind.PARSED
    target_price: PriceRange | None = None
    risks: list[str] = Field(default_factory=list)
    rationale: str | None = None
    summary: str | None = None


class ConsensusOutcome(str, Enum):
    MAJORITY = "majority"
    SPLIT = "split"


class VoteCounts(ValueObject):
    buy: int = 0
    sell: int = 0
    hold: int = 0

    @property
    def total(self) -> int:
        return self.buy + self.sell + self.hold


class TargetPriceRange(ValueObject):
    low: float
    high: float
    mean_low: float
    mean_high: float


class ConsensusDecision(ValueObject):
    """Final Buy/Sell/Hold outcome of one pipeline run."""

    decision: Recommendation
    reasoning: str
    confidence: float | None = Field(
        ..., ge=0.0, le=1.0, description="None when no opinion gave a confidence"
    )
    outcome: ConsensusOutcome
    vote_counts: VoteCounts
    target_price: TargetPriceRange | None = None
    agent_confidences: dict[str, float | None] = Field(default_factory=dict)
    missing_confidences: int = Field(
        default=0, ge=0, description="Opinions that carried no confidence value"
    )
