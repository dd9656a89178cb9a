"""Rate window stores."""

from stockconsensus.infrastructure.rate_limit.memory import InMemoryRateWindowStore

__all__ = ["InMemoryRateWindowStore"]
