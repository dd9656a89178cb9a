"""Pipeline orchestrator.

Runs one analysis request end to end: identifier validation, admission,
configuration check, collection and aggregation, then consensus. Any failing
step stops the run and surfaces a typed error.
"""

from __future__ import annotations

import asyncio

import structlog

from stockconsensus.domain.exceptions import (
    AgentFailureError,
    AggregationFailureError,
    ConfigurationError,
    RateLimitExceededError,
)
from stockconsensus.domain.models.identifier import Identifier
from stockconsensus.domain.models.rate_limit import AdmissionResult
from stockconsensus.domain.models.results import AggregationResult, PipelineResult
from stockconsensus.domain.services.aggregator import DataAggregator
from stockconsensus.domain.services.consensus import ConsensusReducer
from stockconsensus.domain.services.rate_governor import RateGovernor

logger = structlog.get_logger(__name__)


class AnalysisPipeline:
    """Orchestrates aggregation and consensus for one identifier."""

    def __init__(
        self,
        aggregator: DataAggregator,
        reducer: ConsensusReducer,
        governor: RateGovernor,
    ) -> None:
        self._aggregator = aggregator
        self._reducer = reducer
        self._governor = governor

    def missing_configuration(self) -> list[str]:
        """Setting names required by any collector or agent that are not set."""
        missing: list[str] = []
        for component in [*self._aggregator.collectors, *self._reducer.agents]:
            for name in component.missing_configuration():
                if name not in missing:
                    missing.append(name)
        return missing

    async def aclose(self) -> None:
        """Close the HTTP clients held by every collector and agent."""
        await asyncio.gather(
            *(collector.close() for collector in self._aggregator.collectors),
            *(agent.close() for agent in self._reducer.agents),
        )

    def _check_configuration(self) -> None:
        missing = self.missing_configuration()
        if missing:
            raise ConfigurationError(
                f"Missing configuration: {', '.join(missing)}", missing=missing
            )

    async def admit(self, caller_key: str) -> AdmissionResult:
        """Admit one request for ``caller_key`` or raise."""
        admission = await self._governor.admit(caller_key)
        if not admission.allowed:
            raise RateLimitExceededError(
                f"Rate limit exceeded, retry in {admission.reset_in_seconds}s", admission
            )
        return admission

    async def aggregate(self, raw_identifier: str) -> AggregationResult:
        """Collect and merge data for ``raw_identifier`` without consensus.

        No admission control is applied; used by local tooling.
        """
        identifier = Identifier.parse(raw_identifier)
        self._check_configuration()
        return await self._aggregator.collect_and_aggregate(identifier)

    async def run(self, raw_identifier: str, caller_key: str) -> PipelineResult:
        """Run the full analysis for ``raw_identifier`` on behalf of ``caller_key``.

        Raises:
            InvalidIdentifierError: Before any external call.
            RateLimitExceededError: When the caller's window is exhausted.
            ConfigurationError: Before any external call.
            AggregationFailureError: When the merged record has no price.
            AgentFailureError: When fewer agents succeeded than the quorum.
        """
        identifier = Identifier.parse(raw_identifier)
        admission = await self.admit(caller_key)
        self._check_configuration()

        logger.info(
            "Pipeline started",
            identifier=identifier.code,
            market=identifier.market.value,
            caller=caller_key,
        )

        aggregation = await self._aggregator.collect_and_aggregate(identifier)
        canonical = aggregation.canonical_record
        if not canonical.has_price_data():
            raise AggregationFailureError(
                aggregation.errors[0] if aggregation.errors else "No price data collected",
                canonical_record=canonical,
                warnings=aggregation.warnings,
            )

        try:
            opinions, decision = await self._reducer.decide(canonical)
        except AgentFailureError as e:
            if e.canonical_record is None:
                e.canonical_record = canonical
            raise

        logger.info(
            "Pipeline finished",
            identifier=identifier.code,
            decision=decision.decision.value,
            confidence=decision.confidence,
            merge_confidence=canonical.merge_confidence,
        )
        return PipelineResult(
            identifier=identifier.code,
            canonical_record=canonical,
            aggregation=aggregation,
            opinions=opinions,
            decision=decision,
            admission=admission,
        )
