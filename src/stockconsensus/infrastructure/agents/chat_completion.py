"""Opinion agent backed by an OpenAI-compatible chat completions API."""

from __future__ import annotations

import json

import httpx
import structlog

from stockconsensus.domain.exceptions import SourceUnavailableError
from stockconsensus.domain.models.opinion import AgentRole, RawOpinion
from stockconsensus.domain.models.record import CanonicalRecord
from stockconsensus.domain.ports.agents import OpinionAgent
from stockconsensus.domain.services.opinion_normalizer import extract_json_object

logger = structlog.get_logger(__name__)

ROLE_INSTRUCTIONS: dict[AgentRole, str] = {
    AgentRole.TECHNICAL: (
        "You are a technical analyst. Judge the instrument from price action, "
        "moving averages, RSI and MACD."
    ),
    AgentRole.FUNDAMENTAL: (
        "You are a fundamental analyst. Judge the instrument from valuation ratios, "
        "profitability and earnings."
    ),
    AgentRole.GENERAL: (
        "You are a market generalist. Judge the instrument from recent news, "
        "sentiment and the overall picture."
    ),
}

OUTPUT_INSTRUCTIONS = (
    "Respond with a JSON object only, with these keys: "
    '"recommendation" (one of "Buy", "Sell", "Hold"), '
    '"confidence" (0-100), '
    '"target_price" ({"low": number, "high": number}), '
    '"risks" (list of strings), "rationale" (string), "summary" (string).'
)


class ChatCompletionOpinionAgent(OpinionAgent):
    """One role-bound agent talking to a chat completions endpoint."""

    def __init__(
        self,
        name: str,
        role: AgentRole,
        api_key: str | None,
        api_key_setting: str,
        base_url: str = "https://api.openai.com/v1",
        model: str = "gpt-4o-mini",
        timeout_seconds: float = 45.0,
    ) -> None:
        self._name = name
        self._role = role
        self._api_key = api_key
        self._api_key_setting = api_key_setting
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._timeout_seconds = timeout_seconds
        self._client: httpx.AsyncClient | None = None

    def get_agent_name(self) -> str:
        return self._name

    def get_role(self) -> AgentRole:
        return self._role

    def missing_configuration(self) -> list[str]:
        return [] if self._api_key else [self._api_key_setting]

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout_seconds,
                follow_redirects=True,
            )
        return self._client

    def build_messages(self, record: CanonicalRecord) -> list[dict[str, str]]:
        data = record.model_dump(mode="json", exclude={"merge_confidence"})
        return [
            {"role": "system", "content": f"{ROLE_INSTRUCTIONS[self._role]} {OUTPUT_INSTRUCTIONS}"},
            {
                "role": "user",
                "content": "Give your recommendation for this instrument:\n"
                + json.dumps(data, ensure_ascii=False),
            },
        ]

    async def request_opinion(self, record: CanonicalRecord) -> RawOpinion:
        if not self._api_key:
            raise SourceUnavailableError(f"{self._name}: API key not configured")

        client = await self._get_client()
        resp = await client.post(
            "/chat/completions",
            headers={"Authorization": f"Bearer {self._api_key}"},
            json={
                "model": self._model,
                "messages": self.build_messages(record),
                "temperature": 0.2,
                "response_format": {"type": "json_object"},
            },
        )
        resp.raise_for_status()
        payload = resp.json()
        try:
            content = payload["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as e:
            raise SourceUnavailableError(f"{self._name}: unexpected response shape") from e

        structured = extract_json_object(content)
        if structured is None:
            logger.debug("Agent returned free text", agent=self._name, length=len(content))
        return RawOpinion(
            agent_name=self._name,
            role=self._role,
            content=content,
            structured=structured,
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
