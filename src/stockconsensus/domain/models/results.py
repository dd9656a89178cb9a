"""Pipeline step result models."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

from stockconsensus.domain.models.opinion import AgentOpinion, ConsensusDecision
from stockconsensus.domain.models.rate_limit import AdmissionResult
from stockconsensus.domain.models.record import CanonicalRecord


class AggregationResult(BaseModel):
    """Result of merging collector records with success/error handling."""

    success: bool = Field(..., description="Whether the merged record passed validation")
    canonical_record: CanonicalRecord = Field(..., description="Merged, fully shaped record")
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    sources_used: list[str] = Field(default_factory=list)
    confidence: int = Field(default=0, ge=0, le=100)
    metadata: dict[str, Any] = Field(default_factory=dict, description="Additional metadata")


class PipelineResult(BaseModel):
    """Complete output of one pipeline run."""

    identifier: str
    canonical_record: CanonicalRecord
    aggregation: AggregationResult
    opinions: list[AgentOpinion] = Field(default_factory=list)
    decision: ConsensusDecision
    admission: AdmissionResult
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
