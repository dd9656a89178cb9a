"""Yahoo Finance collector."""

from stockconsensus.domain.models.identifier import Identifier, Market
from stockconsensus.domain.models.record import ReliabilityTier
from stockconsensus.domain.ports.collectors import SourceDescriptor
from stockconsensus.infrastructure.collectors.base import SearchApiCollector

YAHOO_FINANCE = SourceDescriptor(
    source_name="Yahoo Finance",
    url="https://finance.yahoo.com",
    priority=1,
    reliability_tier=ReliabilityTier.HIGH,
    supported_markets=frozenset({Market.JP, Market.US}),
    base_confidence=90,
)


class YahooFinanceCollector(SearchApiCollector):
    @property
    def descriptor(self) -> SourceDescriptor:
        return YAHOO_FINANCE

    def page_url(self, identifier: Identifier) -> str:
        if identifier.market is Market.JP:
            return f"https://finance.yahoo.co.jp/quote/{identifier.code}.T"
        return f"https://finance.yahoo.com/quote/{identifier.code}"
