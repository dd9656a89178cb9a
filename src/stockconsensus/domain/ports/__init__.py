"""Ports (interfaces) for external collaborators."""

from stockconsensus.domain.ports.agents import OpinionAgent
from stockconsensus.domain.ports.collectors import Collector, SourceDescriptor
from stockconsensus.domain.ports.rate_limit import RateWindowStore

__all__ = [
    "Collector",
    "SourceDescriptor",
    "OpinionAgent",
    "RateWindowStore",
]
