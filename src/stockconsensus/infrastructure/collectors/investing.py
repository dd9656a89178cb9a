"""Investing.com collector."""

from stockconsensus.domain.models.identifier import Identifier, Market
from stockconsensus.domain.models.record import ReliabilityTier
from stockconsensus.domain.ports.collectors import SourceDescriptor
from stockconsensus.infrastructure.collectors.base import SearchApiCollector

INVESTING = SourceDescriptor(
    source_name="Investing.com",
    url="https://jp.investing.com",
    priority=3,
    reliability_tier=ReliabilityTier.MEDIUM,
    supported_markets=frozenset({Market.JP, Market.US}),
    base_confidence=75,
)


class InvestingCollector(SearchApiCollector):
    @property
    def descriptor(self) -> SourceDescriptor:
        return INVESTING

    def page_url(self, identifier: Identifier) -> str:
        return f"https://jp.investing.com/search/?q={identifier.code}"
