"""Application settings loaded from the environment."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings. Every field can be set as ``STOCKCONSENSUS_<FIELD>``."""

    model_config = SettingsConfigDict(
        env_prefix="STOCKCONSENSUS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Web search API used by the collectors
    search_api_key: str | None = None
    search_base_url: str = "https://api.perplexity.ai"
    search_model: str = "sonar-pro"

    # OpenAI-compatible chat completions API used by the opinion agents
    technical_agent_api_key: str | None = None
    fundamental_agent_api_key: str | None = None
    general_agent_api_key: str | None = None
    agent_base_url: str = "https://api.openai.com/v1"
    agent_model: str = "gpt-4o-mini"

    collector_timeout_seconds: float = Field(default=30.0, gt=0)
    agent_timeout_seconds: float = Field(default=45.0, gt=0)
    collector_quorum: int = Field(default=1, ge=1)
    agent_quorum: int = Field(default=3, ge=1)

    rate_limit_max_requests: int = Field(default=10, ge=1)
    rate_limit_window_ms: int = Field(default=60_000, ge=1)

    api_host: str = "127.0.0.1"
    api_port: int = 8000

    log_level: str = "INFO"
    log_json: bool = False


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance. Call ``get_settings.cache_clear()`` to reload."""
    return Settings()
