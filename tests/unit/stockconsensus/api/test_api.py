"""Unit tests for the HTTP surface."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from stockconsensus.api import create_app
from stockconsensus.domain.models.identifier import Identifier, Market
from stockconsensus.domain.models.opinion import AgentRole, RawOpinion
from stockconsensus.domain.models.record import (
    CanonicalRecord,
    PriceInfo,
    RecordMetadata,
    ReliabilityTier,
    SourceRecord,
)
from stockconsensus.domain.ports.agents import OpinionAgent
from stockconsensus.domain.ports.collectors import Collector, SourceDescriptor
from stockconsensus.infrastructure.config import Settings
from stockconsensus.infrastructure.containers import Container


class StubCollector(Collector):
    def __init__(self) -> None:
        self.closed = False

    @property
    def descriptor(self) -> SourceDescriptor:
        return SourceDescriptor(
            source_name="Stub",
            url="https://example.com",
            priority=1,
            reliability_tier=ReliabilityTier.HIGH,
            supported_markets=frozenset({Market.JP, Market.US}),
            base_confidence=90,
        )

    async def _collect(self, identifier: Identifier) -> SourceRecord:
        return SourceRecord(
            identifier=identifier.code,
            source_name="Stub",
            confidence=90,
            success=True,
            metadata=RecordMetadata(identifier=identifier.code),
            price_info=PriceInfo(current_price=180.5),
        )

    async def close(self) -> None:
        self.closed = True


class StubAgent(OpinionAgent):
    def __init__(self, name: str, recommendation: str, fail: bool = False) -> None:
        self._name = name
        self._recommendation = recommendation
        self._fail = fail

    def get_agent_name(self) -> str:
        return self._name

    def get_role(self) -> AgentRole:
        return AgentRole.GENERAL

    async def request_opinion(self, record: CanonicalRecord) -> RawOpinion:
        if self._fail:
            raise RuntimeError("vendor unavailable")
        return RawOpinion(
            agent_name=self._name,
            role=AgentRole.GENERAL,
            content="",
            structured={"recommendation": self._recommendation, "confidence": 70},
        )


def _client(agents: list[StubAgent] | None = None, **settings: object) -> TestClient:
    container = Container()
    container.settings.override(Settings(_env_file=None, **settings))  # type: ignore[arg-type]
    container.collectors.override([StubCollector()])
    container.agents.override(
        agents or [StubAgent("a", "sell"), StubAgent("b", "sell"), StubAgent("c", "buy")]
    )
    return TestClient(create_app(container))


@pytest.mark.unit
class TestAnalysisEndpoint:
    """Test POST /api/v1/analysis."""

    def test_success(self) -> None:
        response = _client().post("/api/v1/analysis", json={"identifier": "aapl"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["identifier"] == "AAPL"
        assert body["data"]["decision"]["decision"] == "Sell"
        assert body["data"]["decision"]["confidence"] == 0.7
        assert body["data"]["canonical_record"]["price_info"]["current_price"] == 180.5
        assert response.headers["X-RateLimit-Remaining"] == "9"
        assert int(response.headers["X-RateLimit-Reset"]) > 0

    def test_invalid_identifier(self) -> None:
        response = _client().post("/api/v1/analysis", json={"identifier": "TOO-LONG"})

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["code"] == "VALIDATION_ERROR"

    def test_rate_limited(self) -> None:
        client = _client(rate_limit_max_requests=1)
        assert client.post("/api/v1/analysis", json={"identifier": "7203"}).status_code == 200

        response = client.post("/api/v1/analysis", json={"identifier": "7203"})

        assert response.status_code == 429
        assert response.json()["code"] == "RATE_LIMIT_EXCEEDED"
        assert response.json()["details"]["reset_in_seconds"] > 0
        assert response.headers["X-RateLimit-Remaining"] == "0"

    def test_agent_failure(self) -> None:
        agents = [StubAgent("a", "buy"), StubAgent("b", "buy", fail=True), StubAgent("c", "buy")]
        response = _client(agents=agents).post("/api/v1/analysis", json={"identifier": "7203"})

        assert response.status_code == 502
        assert response.json()["code"] == "AGENT_FAILURE"

    def test_missing_body_field(self) -> None:
        response = _client().post("/api/v1/analysis", json={})
        assert response.status_code == 422


@pytest.mark.unit
class TestHealthEndpoint:
    def test_health(self) -> None:
        response = _client().get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.json()["missing_configuration"] == []


@pytest.mark.unit
class TestLifespan:
    def test_shutdown_closes_clients(self) -> None:
        """Test that application shutdown closes the collector and agent clients."""
        collector = StubCollector()
        container = Container()
        container.settings.override(Settings(_env_file=None))
        container.collectors.override([collector])
        container.agents.override([StubAgent("a", "buy"), StubAgent("b", "buy")])

        with TestClient(create_app(container)) as client:
            assert client.get("/health").status_code == 200
            assert collector.closed is False

        assert collector.closed is True
