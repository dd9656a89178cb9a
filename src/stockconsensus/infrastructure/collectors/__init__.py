"""Concrete collectors."""

from stockconsensus.infrastructure.collectors.base import SearchApiCollector
from stockconsensus.infrastructure.collectors.investing import InvestingCollector
from stockconsensus.infrastructure.collectors.nikkei import NikkeiCollector
from stockconsensus.infrastructure.collectors.yahoo_finance import YahooFinanceCollector

__all__ = [
    "SearchApiCollector",
    "YahooFinanceCollector",
    "NikkeiCollector",
    "InvestingCollector",
]
