"""Nikkei collector. Domestic (JP) instruments only."""

from stockconsensus.domain.models.identifier import Identifier, Market
from stockconsensus.domain.models.record import ReliabilityTier
from stockconsensus.domain.ports.collectors import SourceDescriptor
from stockconsensus.infrastructure.collectors.base import SearchApiCollector

NIKKEI = SourceDescriptor(
    source_name="Nikkei",
    url="https://www.nikkei.com",
    priority=2,
    reliability_tier=ReliabilityTier.HIGH,
    supported_markets=frozenset({Market.JP}),
    base_confidence=85,
)


class NikkeiCollector(SearchApiCollector):
    @property
    def descriptor(self) -> SourceDescriptor:
        return NIKKEI

    def page_url(self, identifier: Identifier) -> str:
        return f"https://www.nikkei.com/nkd/company/?scode={identifier.code}"
