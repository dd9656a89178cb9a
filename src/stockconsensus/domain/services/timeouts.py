"""Per-call timeout helper."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from stockconsensus.domain.exceptions import CallTimeoutError

T = TypeVar("T")


async def with_timeout(awaitable: Awaitable[T], seconds: float | None, *, label: str) -> T:
    """Bound a single external call to ``seconds``.

    A call that exceeds its timeout raises :class:`CallTimeoutError`, which
    callers treat like any other failure of that call. ``None`` disables the
    bound.
    """
    if seconds is None:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except TimeoutError as e:
        raise CallTimeoutError(f"{label}: timed out after {seconds:g}s", label=label) from e
