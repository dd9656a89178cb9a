"""Rate window store port."""

from abc import ABC, abstractmethod

from stockconsensus.domain.models.rate_limit import RateWindowState


class RateWindowStore(ABC):
    """Storage for per-caller rate windows.

    An in-memory table serves single-process deployments; a TTL-keyed
    external store can back multi-instance deployments.
    """

    @abstractmethod
    async def get(self, key: str) -> RateWindowState | None:
        """Get the current window for ``key``, if any."""

    @abstractmethod
    async def set(self, key: str, state: RateWindowState, ttl_seconds: float) -> None:
        """Store the window for ``key``. ``ttl_seconds`` bounds its lifetime."""
