"""Validation result models."""

from enum import Enum

from pydantic import Field

from stockconsensus.domain.models.base import ValueObject


class DataQuality(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class ValidationResult(ValueObject):
    """Plausibility score of a single record. Derived, never persisted."""

    is_valid: bool = Field(..., description="True iff no errors were found")
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    score: int = Field(..., ge=0, le=100)


class CollectorAssessment(ValueObject):
    """Quality grade of one collector result."""

    is_valid: bool
    quality: DataQuality
    recommendations: list[str] = Field(default_factory=list)
