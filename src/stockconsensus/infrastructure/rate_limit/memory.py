"""In-memory rate window store for single-process deployments.

State does not survive a restart and is not shared between processes.
"""

from __future__ import annotations

import time
from collections.abc import Callable

from stockconsensus.domain.models.rate_limit import RateWindowState
from stockconsensus.domain.ports.rate_limit import RateWindowStore


class InMemoryRateWindowStore(RateWindowStore):
    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[RateWindowState, float]] = {}

    async def get(self, key: str) -> RateWindowState | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        state, expires_at = entry
        if self._clock() > expires_at:
            del self._entries[key]
            return None
        return state

    async def set(self, key: str, state: RateWindowState, ttl_seconds: float) -> None:
        self._entries[key] = (state, self._clock() + ttl_seconds)
        self._purge_expired()

    def _purge_expired(self) -> None:
        now = self._clock()
        for key in [k for k, (_, expires_at) in self._entries.items() if now > expires_at]:
            del self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)
