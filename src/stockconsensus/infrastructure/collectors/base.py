"""Shared base for collectors backed by a web-search chat completions API."""

from __future__ import annotations

from abc import abstractmethod
from datetime import UTC, datetime
from typing import Any

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from stockconsensus.domain.exceptions import SourceUnavailableError
from stockconsensus.domain.models.identifier import Identifier, Market
from stockconsensus.domain.models.record import (
    FinancialMetrics,
    NewsItem,
    PriceInfo,
    RecordMetadata,
    SentimentSummary,
    SourceRecord,
    TechnicalIndicators,
)
from stockconsensus.domain.ports.collectors import Collector
from stockconsensus.domain.services.opinion_normalizer import extract_json_object

logger = structlog.get_logger(__name__)

RESPONSE_SCHEMA = """{
  "company_name": "official company name",
  "price_info": {
    "current_price": 0, "change": 0, "change_percent": 0, "volume": 0,
    "market_cap": "text", "open": 0, "high": 0, "low": 0
  },
  "financial_metrics": {
    "per": 0, "pbr": 0, "roe": 0, "eps": 0, "dividend_yield": 0, "latest_earnings": "text"
  },
  "technical_indicators": {
    "ma25": 0, "ma75": 0, "ma200": 0, "rsi": 0,
    "macd": {"value": 0, "signal": 0, "histogram": 0}
  },
  "news_items": [
    {"title": "text", "summary": "text", "published_at": "ISO 8601", "url": "https://..."}
  ],
  "sentiment_summary": {"overall": "positive|neutral|negative", "reason": "text"}
}"""

# (payload key, model); each group is parsed independently.
GROUP_MODELS: tuple[tuple[str, type[BaseModel]], ...] = (
    ("price_info", PriceInfo),
    ("financial_metrics", FinancialMetrics),
    ("technical_indicators", TechnicalIndicators),
    ("sentiment_summary", SentimentSummary),
)


class SearchApiCollector(Collector):
    """Collector that asks a web-search LLM API for one source's view of an instrument.

    Subclasses provide the descriptor and the page to search. The response is
    expected to hold one JSON object; every field group is parsed on its own
    so that a malformed group does not discard the others.
    """

    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://api.perplexity.ai",
        model: str = "sonar-pro",
        timeout_seconds: float = 30.0,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._timeout_seconds = timeout_seconds
        self._client: httpx.AsyncClient | None = None

    @abstractmethod
    def page_url(self, identifier: Identifier) -> str:
        """The page the search should be anchored on."""

    def missing_configuration(self) -> list[str]:
        return [] if self._api_key else ["STOCKCONSENSUS_SEARCH_API_KEY"]

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout_seconds,
                follow_redirects=True,
            )
        return self._client

    def build_prompt(self, identifier: Identifier) -> str:
        if identifier.market is Market.JP:
            market = "Japanese stock with securities code"
        else:
            market = "US stock with ticker"
        return (
            f"Search the web for the latest market data on the {market} {identifier.code}.\n"
            f"Prefer {self.source_name} ({self.page_url(identifier)}) as the source.\n"
            "Return the company name, price information, financial metrics, technical "
            "indicators, the three most recent news items and an overall sentiment.\n"
            "Use null for anything you cannot find. Do not estimate numbers.\n"
            "Answer with a single JSON object in a ```json block using exactly this shape:\n"
            f"{RESPONSE_SCHEMA}"
        )

    async def _search(self, prompt: str) -> str:
        if not self._api_key:
            raise SourceUnavailableError("search API key not configured")

        client = await self._get_client()
        resp = await client.post(
            "/chat/completions",
            headers={"Authorization": f"Bearer {self._api_key}"},
            json={
                "model": self._model,
                "messages": [{"role": "user", "content": prompt}],
                "temperature": 0.1,
            },
        )
        resp.raise_for_status()
        payload = resp.json()
        try:
            content = payload["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise SourceUnavailableError("unexpected search API response shape") from e
        if not content:
            raise SourceUnavailableError("empty search API response")
        return str(content)

    async def _collect(self, identifier: Identifier) -> SourceRecord:
        content = await self._search(self.build_prompt(identifier))
        data = extract_json_object(content)
        if data is None:
            raise SourceUnavailableError("no JSON object in search API response")
        return self.parse_payload(identifier, data)

    def parse_payload(self, identifier: Identifier, data: dict[str, Any]) -> SourceRecord:
        """Build the source record from a decoded response object."""
        descriptor = self.descriptor
        page_url = self.page_url(identifier)
        errors: list[str] = []
        groups: dict[str, Any] = {}

        for key, model in GROUP_MODELS:
            raw = data.get(key)
            if raw is None:
                continue
            if not isinstance(raw, dict):
                errors.append(f"{self.source_name}: {key} is not an object")
                continue
            if key == "price_info" and raw.get("market_cap") is not None:
                raw = {**raw, "market_cap": str(raw["market_cap"])}
            if key == "sentiment_summary":
                raw = {**raw, "reliability": descriptor.reliability_tier}
            elif "source_url" in model.model_fields:
                raw = {**raw, "source_url": page_url}
            try:
                groups[key] = model.model_validate(raw)
            except ValidationError as e:
                errors.append(f"{self.source_name}: invalid {key} ({e.error_count()} error(s))")

        news = data.get("news_items")
        if isinstance(news, list):
            items: list[NewsItem] = []
            for raw_item in news:
                if not isinstance(raw_item, dict):
                    errors.append(f"{self.source_name}: news item is not an object")
                    continue
                try:
                    items.append(
                        NewsItem.model_validate(
                            {**raw_item, "reliability": descriptor.reliability_tier}
                        )
                    )
                except ValidationError:
                    errors.append(f"{self.source_name}: invalid news item skipped")
            groups["news_items"] = items
        elif news is not None:
            errors.append(f"{self.source_name}: news_items is not a list")

        company_name = data.get("company_name")
        success = not errors
        if errors:
            logger.warning(
                "Partial collector payload",
                source=self.source_name,
                identifier=identifier.code,
                errors=errors,
            )

        return SourceRecord(
            identifier=identifier.code,
            source_name=descriptor.source_name,
            reliability_tier=descriptor.reliability_tier,
            timestamp=datetime.now(UTC),
            confidence=descriptor.base_confidence if success else 0,
            success=success,
            errors=errors,
            metadata=RecordMetadata(
                identifier=identifier.code,
                company_name=company_name if isinstance(company_name, str) else None,
                collected_at=datetime.now(UTC).isoformat(),
                reliability_tier=descriptor.reliability_tier,
                sources=[descriptor.source_name],
            ),
            **groups,
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
