"""Fixed-window rate governor.

Each caller key owns one window of ``window_ms`` milliseconds admitting at
most ``max_requests`` requests. A denied request leaves the window untouched.
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable

import structlog

from stockconsensus.domain.models.rate_limit import AdmissionResult, RateWindowState
from stockconsensus.domain.ports.rate_limit import RateWindowStore

logger = structlog.get_logger(__name__)

DEFAULT_MAX_REQUESTS = 10
DEFAULT_WINDOW_MS = 60_000


class RateGovernor:
    """Admission control per caller key."""

    def __init__(
        self,
        store: RateWindowStore,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_ms: int = DEFAULT_WINDOW_MS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_ms < 1:
            raise ValueError("window_ms must be positive")
        self._store = store
        self._max_requests = max_requests
        self._window_seconds = window_ms / 1000
        self._clock = clock

    @property
    def max_requests(self) -> int:
        return self._max_requests

    async def admit(self, key: str) -> AdmissionResult:
        """Admit or deny one request for ``key``.

        A missing or expired window starts a new one with this request counted.
        Within a live window the request is admitted while the count is below
        the maximum; otherwise it is denied and the window is not modified.
        """
        now = self._clock()
        state = await self._store.get(key)

        if state is None or now > state.window_reset_at:
            state = RateWindowState(count=1, window_reset_at=now + self._window_seconds)
            allowed = True
        elif state.count < self._max_requests:
            state.count += 1
            allowed = True
        else:
            allowed = False

        if allowed:
            await self._store.set(key, state, ttl_seconds=state.window_reset_at - now)

        result = AdmissionResult(
            allowed=allowed,
            remaining=max(0, self._max_requests - state.count),
            reset_in_seconds=max(0, math.ceil(state.window_reset_at - now)),
            reset_at=math.ceil(state.window_reset_at),
        )
        if not allowed:
            logger.warning(
                "Rate limit exceeded",
                caller=key,
                max_requests=self._max_requests,
                reset_in_seconds=result.reset_in_seconds,
            )
        return result
