"""Record plausibility validator.

Scores a single (possibly partial) record. The score starts at 100 and each
rule violation deducts from it; the result is clamped to [0, 100]. The
validator is a pure function of its input.
"""

from __future__ import annotations

from datetime import datetime

from stockconsensus.domain.models.record import InstrumentRecord, ReliabilityTier, SourceRecord
from stockconsensus.domain.models.validation import (
    CollectorAssessment,
    DataQuality,
    ValidationResult,
)

MISSING_REQUIRED_PENALTY = 20
NON_POSITIVE_PRICE_PENALTY = 30
LARGE_CHANGE_PENALTY = 10
NEGATIVE_VOLUME_PENALTY = 15
RATIO_RANGE_PENALTY = 5
SHORT_TITLE_PENALTY = 2
BAD_TIMESTAMP_PENALTY = 3

MAX_ABS_CHANGE_PERCENT = 50.0
MIN_TITLE_LENGTH = 5

# (attribute, group, lower, upper, label)
RANGE_RULES: tuple[tuple[str, str, float, float, str], ...] = (
    ("per", "financial_metrics", 0.0, 1000.0, "PER"),
    ("pbr", "financial_metrics", 0.0, 50.0, "PBR"),
    ("roe", "financial_metrics", -100.0, 100.0, "ROE"),
    ("rsi", "technical_indicators", 0.0, 100.0, "RSI"),
)

TIER_ADJUSTMENT: dict[ReliabilityTier, int] = {
    ReliabilityTier.HIGH: 5,
    ReliabilityTier.MEDIUM: 0,
    ReliabilityTier.LOW: -10,
}


def is_iso8601(value: str | None) -> bool:
    """True for full ISO 8601 date-times (a date alone is not enough)."""
    if not value or "T" not in value:
        return False
    try:
        datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return False
    return True


class RecordValidator:
    """Validator for instrument records."""

    def validate(self, record: InstrumentRecord) -> ValidationResult:
        errors: list[str] = []
        warnings: list[str] = []
        score = 100

        # Required leaves
        identifier = record.metadata.identifier if record.metadata else None
        if not identifier:
            errors.append("Missing required field: metadata.identifier")
            score -= MISSING_REQUIRED_PENALTY

        price = record.price_info
        current_price = price.current_price if price else None
        if current_price is None:
            errors.append("Missing required field: price_info.current_price")
            score -= MISSING_REQUIRED_PENALTY
        elif current_price <= 0:
            errors.append(f"Invalid price: {current_price} (must be positive)")
            score -= NON_POSITIVE_PRICE_PENALTY

        if price is not None:
            change = price.change_percent
            if change is not None and abs(change) > MAX_ABS_CHANGE_PERCENT:
                warnings.append(f"Daily change of {change}% exceeds {MAX_ABS_CHANGE_PERCENT:g}%")
                score -= LARGE_CHANGE_PENALTY
            if price.volume is not None and price.volume < 0:
                errors.append(f"Negative volume: {price.volume}")
                score -= NEGATIVE_VOLUME_PENALTY

        for attribute, group_name, lower, upper, label in RANGE_RULES:
            group = getattr(record, group_name)
            value = getattr(group, attribute) if group is not None else None
            if value is not None and not lower <= value <= upper:
                warnings.append(f"{label} out of range [{lower:g}, {upper:g}]: {value}")
                score -= RATIO_RANGE_PENALTY

        for item in record.news_items or []:
            if not item.title or len(item.title) < MIN_TITLE_LENGTH:
                warnings.append(f"News title too short: {item.title!r}")
                score -= SHORT_TITLE_PENALTY
            if not is_iso8601(item.published_at):
                warnings.append(f"News timestamp is not ISO 8601: {item.published_at!r}")
                score -= BAD_TIMESTAMP_PENALTY

        tier = record.metadata.reliability_tier if record.metadata else None
        if tier is None and isinstance(record, SourceRecord):
            tier = record.reliability_tier
        if tier is not None:
            score += TIER_ADJUSTMENT[tier]

        return ValidationResult(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            score=max(0, min(100, score)),
        )

    def assess_collector_result(self, record: SourceRecord) -> CollectorAssessment:
        """Grade the data quality of one collector result."""
        validation = self.validate(record)

        if validation.score >= 80:
            quality = DataQuality.HIGH
        elif validation.score >= 60:
            quality = DataQuality.MEDIUM
        else:
            quality = DataQuality.LOW

        recommendations: list[str] = []
        if record.confidence < 70:
            recommendations.append("Source reliability should be improved")
        if validation.errors:
            recommendations.append("Required data could not be collected")
        if validation.warnings:
            recommendations.append("Collected data has plausibility issues")

        return CollectorAssessment(
            is_valid=validation.is_valid and record.success,
            quality=quality,
            recommendations=recommendations,
        )
