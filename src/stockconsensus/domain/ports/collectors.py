"""Collector port.

A collector fetches one partial record from one upstream source. The contract
is that ``fetch`` never raises: every failure is reported inside the returned
record as ``success=False`` with a readable entry in ``errors``.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from datetime import UTC, datetime

import structlog
from pydantic import Field

from stockconsensus.domain.models.base import ValueObject
from stockconsensus.domain.models.identifier import Identifier, Market
from stockconsensus.domain.models.record import ReliabilityTier, SourceRecord

logger = structlog.get_logger(__name__)


class SourceDescriptor(ValueObject):
    """Static metadata of a collector, used for tie-breaking."""

    source_name: str
    url: str
    priority: int = Field(..., ge=1, description="1 is the most preferred source")
    reliability_tier: ReliabilityTier
    supported_markets: frozenset[Market]
    base_confidence: int = Field(..., ge=0, le=100)


class Collector(ABC):
    """Base class for all collectors."""

    @property
    @abstractmethod
    def descriptor(self) -> SourceDescriptor:
        """Static source metadata."""

    @property
    def source_name(self) -> str:
        return self.descriptor.source_name

    def missing_configuration(self) -> list[str]:
        """Names of required settings that are not configured."""
        return []

    async def close(self) -> None:
        """Release any client held by the collector."""

    @abstractmethod
    async def _collect(self, identifier: Identifier) -> SourceRecord:
        """Fetch and parse data for ``identifier``.

        May raise; ``fetch`` turns any exception into a failed record. May also
        return a record with ``success=False`` that still carries the field
        groups that parsed.
        """

    async def fetch(self, identifier: Identifier) -> SourceRecord:
        """Fetch one partial record. Never raises."""
        descriptor = self.descriptor
        if identifier.market not in descriptor.supported_markets:
            return self.failure(
                identifier,
                f"{descriptor.source_name}: market {identifier.market.value} not supported",
            )

        started = time.perf_counter()
        try:
            record = await self._collect(identifier)
        except Exception as e:
            logger.warning(
                "Collector failed",
                source=descriptor.source_name,
                identifier=identifier.code,
                error=str(e),
                error_type=type(e).__name__,
            )
            return self.failure(identifier, f"{descriptor.source_name}: {e}")

        logger.info(
            "Collector finished",
            source=descriptor.source_name,
            identifier=identifier.code,
            success=record.success,
            duration_ms=round((time.perf_counter() - started) * 1000),
        )
        return record

    def failure(self, identifier: Identifier | str, message: str) -> SourceRecord:
        """Build the failed record for this source."""
        return SourceRecord(
            identifier=str(identifier),
            source_name=self.descriptor.source_name,
            reliability_tier=self.descriptor.reliability_tier,
            timestamp=datetime.now(UTC),
            confidence=0,
            success=False,
            errors=[message],
        )
