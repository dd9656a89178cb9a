"""Multi-source aggregator.

Fans out to every collector, then merges the successful partial records into
one canonical record, field group by field group, with a confidence score.
"""

from __future__ import annotations

import asyncio
import math
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

import structlog

from stockconsensus.domain.exceptions import CallTimeoutError
from stockconsensus.domain.models.identifier import Identifier
from stockconsensus.domain.models.record import (
    CanonicalRecord,
    FieldGroup,
    RecordMetadata,
    SourceRecord,
)
from stockconsensus.domain.models.results import AggregationResult
from stockconsensus.domain.ports.collectors import Collector
from stockconsensus.domain.services.quorum import Quorum
from stockconsensus.domain.services.selection import (
    FIELD_GROUP_POLICY,
    Candidate,
    SelectionStrategy,
    merge_news,
    select_best,
)
from stockconsensus.domain.services.timeouts import with_timeout
from stockconsensus.domain.services.validator import RecordValidator

logger = structlog.get_logger(__name__)

SOURCE_COUNT_BONUS_PER_RECORD = 5
MAX_SOURCE_COUNT_BONUS = 20


def merge_confidence(source_confidences: Sequence[int], validation_score: int) -> int:
    """Overall confidence of a merge, in [0, 100].

    ``(mean source confidence + validation score) / 2`` plus a bonus of 5 per
    contributing record capped at 20, rounded half-up.
    """
    if not source_confidences:
        return 0
    average = sum(source_confidences) / len(source_confidences)
    bonus = min(SOURCE_COUNT_BONUS_PER_RECORD * len(source_confidences), MAX_SOURCE_COUNT_BONUS)
    value = math.floor((average + validation_score) / 2 + bonus + 0.5)
    return max(0, min(100, value))


class DataAggregator:
    """Merges collector records into a canonical record."""

    def __init__(
        self,
        collectors: Sequence[Collector] = (),
        validator: RecordValidator | None = None,
        quorum: Quorum | None = None,
        timeout_seconds: float | None = None,
        policy: Mapping[FieldGroup, SelectionStrategy] | None = None,
    ) -> None:
        self._collectors = list(collectors)
        self._validator = validator or RecordValidator()
        self._quorum = quorum or Quorum.any_of(max(1, len(self._collectors)))
        self._timeout_seconds = timeout_seconds
        self._policy = dict(policy or FIELD_GROUP_POLICY)

    @property
    def collectors(self) -> list[Collector]:
        return list(self._collectors)

    async def collect(self, identifier: Identifier) -> list[SourceRecord]:
        """Fetch from every collector concurrently and wait for all to settle."""
        return list(
            await asyncio.gather(*(self._fetch_one(c, identifier) for c in self._collectors))
        )

    async def _fetch_one(self, collector: Collector, identifier: Identifier) -> SourceRecord:
        try:
            return await with_timeout(
                collector.fetch(identifier), self._timeout_seconds, label=collector.source_name
            )
        except CallTimeoutError as e:
            logger.warning("Collector timed out", source=collector.source_name, error=str(e))
            return collector.failure(identifier, e.message)

    async def collect_and_aggregate(self, identifier: Identifier) -> AggregationResult:
        records = await self.collect(identifier)
        return self.aggregate(records, identifier.code)

    def aggregate(self, records: Sequence[SourceRecord], identifier: str) -> AggregationResult:
        """Merge ``records`` into one canonical record for ``identifier``."""
        successful = [r for r in records if r.success]
        # Failed sources are absorbed as warnings.
        warnings = [
            error for r in records if not r.success for error in (r.errors or ["unknown error"])
        ]

        if not self._quorum.is_met(len(successful)):
            logger.warning(
                "Aggregation failed",
                identifier=identifier,
                successful=len(successful),
                quorum=str(self._quorum),
            )
            return AggregationResult(
                success=False,
                canonical_record=CanonicalRecord.empty(identifier),
                errors=[
                    f"Data collection failed: {len(successful)} source(s) succeeded, "
                    f"quorum {self._quorum} not met"
                ],
                warnings=warnings,
                sources_used=[],
                confidence=0,
            )

        candidates = [
            Candidate(record=r, validation_score=self._validator.validate(r).score, order=i)
            for i, r in enumerate(successful)
        ]

        groups: dict[str, Any] = {}
        sources_used: list[str] = []
        winners: dict[FieldGroup, Candidate] = {}

        def _use(source_name: str) -> None:
            if source_name not in sources_used:
                sources_used.append(source_name)

        for group, strategy in self._policy.items():
            if strategy is SelectionStrategy.MERGE_ALL:
                items = merge_news(successful)
                groups[group.value] = items
                for r in successful:
                    if any(item in items for item in r.news_items or []):
                        _use(r.source_name)
                continue

            best = select_best(c for c in candidates if c.record.has_group(group))
            if best is None:
                # Default null shape comes from the canonical model.
                continue
            winners[group] = best
            groups[group.value] = best.record.get_group(group)
            _use(best.record.source_name)

        metadata = self._merge_metadata(identifier, successful, winners.get(FieldGroup.PRICE_INFO))
        canonical = CanonicalRecord(metadata=metadata, sources_used=sources_used, **groups)

        validation = self._validator.validate(canonical)
        confidence = merge_confidence([r.confidence for r in successful], validation.score)
        canonical = canonical.model_copy(update={"merge_confidence": confidence})

        errors = list(validation.errors)
        warnings.extend(validation.warnings)

        logger.info(
            "Aggregation finished",
            identifier=identifier,
            sources_used=sources_used,
            successful=len(successful),
            validation_score=validation.score,
            confidence=confidence,
        )

        return AggregationResult(
            success=not errors,
            canonical_record=canonical,
            errors=errors,
            warnings=warnings,
            sources_used=sources_used,
            confidence=confidence,
            metadata={
                "validation_score": validation.score,
                "records_received": len(records),
                "records_successful": len(successful),
            },
        )

    @staticmethod
    def _merge_metadata(
        identifier: str, successful: Sequence[SourceRecord], price_winner: Candidate | None
    ) -> RecordMetadata:
        primary = price_winner.record if price_winner else successful[0]
        base = primary.metadata or RecordMetadata()
        return RecordMetadata(
            identifier=identifier,
            company_name=base.company_name,
            collected_at=datetime.now(UTC).isoformat(),
            reliability_tier=base.reliability_tier or primary.reliability_tier,
            sources=list(dict.fromkeys(r.source_name for r in successful)),
        )
