"""Main dependency injection container configuration.

Composes the adapters, domain services and the analysis pipeline. Every
provider can be overridden, which is how tests swap in stub collectors,
agents and clocks.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from dependency_injector import containers, providers

from stockconsensus.application.pipeline import AnalysisPipeline
from stockconsensus.domain.services.aggregator import DataAggregator
from stockconsensus.domain.services.consensus import ConsensusReducer
from stockconsensus.domain.services.opinion_normalizer import OpinionNormalizer
from stockconsensus.domain.services.quorum import Quorum
from stockconsensus.domain.services.rate_governor import RateGovernor
from stockconsensus.domain.services.validator import RecordValidator
from stockconsensus.infrastructure.config import Settings, get_settings
from stockconsensus.infrastructure.containers.adapters import (
    configure_agents,
    configure_collectors,
)
from stockconsensus.infrastructure.rate_limit import InMemoryRateWindowStore


def _instantiate(config: dict[str, providers.Provider]) -> list[Any]:
    return [provider() for provider in config.values()]


def _quorum(required: int, members: Sequence[Any]) -> Quorum:
    total = max(1, len(members))
    return Quorum(required=min(required, total), total=total)


class Container(containers.DeclarativeContainer):
    """Dependency injection container for Stock Consensus.

    Override providers to customize wiring:
        container = Container()
        container.settings.override(Settings(search_api_key="..."))
        container.collectors.override([MyCollector()])
    """

    settings = providers.Singleton(get_settings)

    # Adapters
    _collectors_config = providers.Singleton(configure_collectors, settings=settings)
    collectors = providers.Singleton(_instantiate, config=_collectors_config)
    _agents_config = providers.Singleton(configure_agents, settings=settings)
    agents = providers.Singleton(_instantiate, config=_agents_config)
    rate_window_store = providers.Singleton(InMemoryRateWindowStore)

    # Domain services
    validator = providers.Singleton(RecordValidator)
    normalizer = providers.Singleton(OpinionNormalizer)
    aggregator = providers.Singleton(
        DataAggregator,
        collectors=collectors,
        validator=validator,
        quorum=providers.Callable(
            _quorum, required=settings.provided.collector_quorum, members=collectors
        ),
        timeout_seconds=settings.provided.collector_timeout_seconds,
    )
    reducer = providers.Singleton(
        ConsensusReducer,
        agents=agents,
        normalizer=normalizer,
        quorum=providers.Callable(_quorum, required=settings.provided.agent_quorum, members=agents),
        timeout_seconds=settings.provided.agent_timeout_seconds,
    )
    rate_governor = providers.Singleton(
        RateGovernor,
        store=rate_window_store,
        max_requests=settings.provided.rate_limit_max_requests,
        window_ms=settings.provided.rate_limit_window_ms,
    )

    # Use case
    pipeline = providers.Singleton(
        AnalysisPipeline,
        aggregator=aggregator,
        reducer=reducer,
        governor=rate_governor,
    )


# Global container instance (can be overridden for testing)
_container: Container | None = None


def get_container(settings: Settings | None = None) -> Container:
    """Get the global dependency injection container.

    Args:
        settings: Optional settings. When given, a fresh container using them is
                  returned and the global instance is left untouched.

    Returns:
        Container instance
    """
    global _container
    if settings is not None:
        container_instance = Container()
        container_instance.settings.override(settings)
        return container_instance
    if _container is None:
        _container = Container()
    return _container


def set_container(container: Container) -> None:
    """Set a custom container (useful for testing).

    Args:
        container: Container instance to use
    """
    global _container
    _container = container


def reset_container() -> None:
    """Reset the global container (useful for testing)."""
    global _container
    _container = None
