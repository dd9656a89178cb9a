"""Collector and opinion agent provider configuration."""

from dependency_injector import providers

from stockconsensus.domain.models.opinion import AgentRole
from stockconsensus.infrastructure.agents import ChatCompletionOpinionAgent
from stockconsensus.infrastructure.collectors import (
    InvestingCollector,
    NikkeiCollector,
    YahooFinanceCollector,
)
from stockconsensus.infrastructure.config import Settings


def configure_collectors(settings: Settings) -> dict[str, providers.Provider]:
    """Configure collector providers, in priority order.

    Args:
        settings: Settings supplying the search API credentials and timeout.

    Returns:
        Dictionary of collector providers
    """
    common = {
        "api_key": settings.search_api_key,
        "base_url": settings.search_base_url,
        "model": settings.search_model,
        "timeout_seconds": settings.collector_timeout_seconds,
    }
    return {
        "yahoo_finance": providers.Singleton(YahooFinanceCollector, **common),
        "nikkei": providers.Singleton(NikkeiCollector, **common),
        "investing": providers.Singleton(InvestingCollector, **common),
    }


def configure_agents(settings: Settings) -> dict[str, providers.Provider]:
    """Configure the three opinion agent providers, one per role.

    Args:
        settings: Settings supplying per-role API keys, endpoint and timeout.

    Returns:
        Dictionary of agent providers
    """
    common = {
        "base_url": settings.agent_base_url,
        "model": settings.agent_model,
        "timeout_seconds": settings.agent_timeout_seconds,
    }
    return {
        "technical": providers.Singleton(
            ChatCompletionOpinionAgent,
            name="technical-analyst",
            role=AgentRole.TECHNICAL,
            api_key=settings.technical_agent_api_key,
            api_key_setting="STOCKCONSENSUS_TECHNICAL_AGENT_API_KEY",
            **common,
        ),
        "fundamental": providers.Singleton(
            ChatCompletionOpinionAgent,
            name="fundamental-analyst",
            role=AgentRole.FUNDAMENTAL,
            api_key=settings.fundamental_agent_api_key,
            api_key_setting="STOCKCONSENSUS_FUNDAMENTAL_AGENT_API_KEY",
            **common,
        ),
        "general": providers.Singleton(
            ChatCompletionOpinionAgent,
            name="market-generalist",
            role=AgentRole.GENERAL,
            api_key=settings.general_agent_api_key,
            api_key_setting="STOCKCONSENSUS_GENERAL_AGENT_API_KEY",
            **common,
        ),
    }
