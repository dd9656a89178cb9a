"""Shared test configuration."""

from collections.abc import Iterator

import pytest
import structlog

from stockconsensus.infrastructure.config import get_settings
from stockconsensus.infrastructure.containers import reset_container


@pytest.fixture(autouse=True)
def _isolate_global_state() -> Iterator[None]:
    """Undo logging configuration, cached settings and the global container."""
    yield
    structlog.reset_defaults()
    get_settings.cache_clear()
    reset_container()
