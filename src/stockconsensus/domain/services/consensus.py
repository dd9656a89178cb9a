"""Consensus reducer.

Asks every opinion agent about the canonical record concurrently, normalizes
each raw opinion and reduces them by majority vote into one decision.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence

import structlog

from stockconsensus.domain.exceptions import AgentFailureError, OpinionParseError
from stockconsensus.domain.models.opinion import (
    AgentOpinion,
    ConsensusDecision,
    ConsensusOutcome,
    RawOpinion,
    Recommendation,
    TargetPriceRange,
    VoteCounts,
)
from stockconsensus.domain.models.record import CanonicalRecord
from stockconsensus.domain.ports.agents import OpinionAgent
from stockconsensus.domain.services.opinion_normalizer import OpinionNormalizer
from stockconsensus.domain.services.quorum import Quorum
from stockconsensus.domain.services.timeouts import with_timeout

logger = structlog.get_logger(__name__)

AGENT_COUNT = 3
SPLIT_CONFIDENCE = 0.5


def integrate_target_prices(opinions: Sequence[AgentOpinion]) -> TargetPriceRange | None:
    """Combine the target price ranges of opinions that supplied both bounds."""
    complete = [o.target_price for o in opinions if o.target_price and o.target_price.is_complete]
    if not complete:
        return None
    lows = [t.low for t in complete if t.low is not None]
    highs = [t.high for t in complete if t.high is not None]
    return TargetPriceRange(
        low=min(lows),
        high=max(highs),
        mean_low=round(sum(lows) / len(lows), 2),
        mean_high=round(sum(highs) / len(highs), 2),
    )


def vote(opinions: Sequence[AgentOpinion]) -> ConsensusDecision:
    """Majority vote over normalized opinions.

    Buy wins with a majority, then Sell, then Hold; each majority reports the
    mean of the confidences the agents actually gave, or None if none did.
    Without any majority the decision is Hold with a fixed confidence of 0.5
    and outcome ``split``. The vote denominator is the number of opinions.
    """
    if not opinions:
        raise AgentFailureError("No opinions to reduce")

    counts = VoteCounts(
        buy=sum(1 for o in opinions if o.recommendation is Recommendation.BUY),
        sell=sum(1 for o in opinions if o.recommendation is Recommendation.SELL),
        hold=sum(1 for o in opinions if o.recommendation is Recommendation.HOLD),
    )
    total = len(opinions)
    majority = total // 2 + 1
    known = [o.confidence for o in opinions if o.confidence is not None]
    mean_confidence = round(sum(known) / len(known), 4) if known else None

    for recommendation, count in (
        (Recommendation.BUY, counts.buy),
        (Recommendation.SELL, counts.sell),
        (Recommendation.HOLD, counts.hold),
    ):
        if count >= majority:
            decision = recommendation
            reasoning = f"{count} of {total} recommend {recommendation.value.lower()}"
            confidence = mean_confidence
            outcome = ConsensusOutcome.MAJORITY
            break
    else:
        decision = Recommendation.HOLD
        reasoning = "agents disagree"
        confidence = SPLIT_CONFIDENCE
        outcome = ConsensusOutcome.SPLIT

    return ConsensusDecision(
        decision=decision,
        reasoning=reasoning,
        confidence=confidence,
        outcome=outcome,
        vote_counts=counts,
        target_price=integrate_target_prices(opinions),
        agent_confidences={o.agent_name: o.confidence for o in opinions},
        missing_confidences=total - len(known),
    )


class ConsensusReducer:
    """Fans out to opinion agents and reduces their opinions to one decision."""

    def __init__(
        self,
        agents: Sequence[OpinionAgent] = (),
        normalizer: OpinionNormalizer | None = None,
        quorum: Quorum | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        self._agents = list(agents)
        self._normalizer = normalizer or OpinionNormalizer()
        self._quorum = quorum or Quorum.all_of(AGENT_COUNT)
        self._timeout_seconds = timeout_seconds

    @property
    def agents(self) -> list[OpinionAgent]:
        return list(self._agents)

    @property
    def quorum(self) -> Quorum:
        return self._quorum

    async def solicit(self, record: CanonicalRecord) -> list[RawOpinion]:
        """Ask every agent concurrently and wait for all calls to settle.

        In-flight calls are never cancelled because a sibling failed.

        Raises:
            AgentFailureError: If fewer agents succeeded than the quorum requires.
        """
        results = await asyncio.gather(
            *(self._ask(agent, record) for agent in self._agents), return_exceptions=True
        )

        raw_opinions: list[RawOpinion] = []
        failures: dict[str, str] = {}
        for agent, result in zip(self._agents, results, strict=True):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                failures[agent.get_agent_name()] = str(result) or type(result).__name__
            else:
                raw_opinions.append(result)

        if not self._quorum.is_met(len(raw_opinions)):
            raise AgentFailureError(
                f"{len(raw_opinions)} of {len(self._agents)} agents answered, "
                f"quorum {self._quorum} not met",
                canonical_record=record,
                failures=failures,
            )
        return raw_opinions

    async def _ask(self, agent: OpinionAgent, record: CanonicalRecord) -> RawOpinion:
        name = agent.get_agent_name()
        started = time.perf_counter()
        logger.info("Agent request", agent=name, role=agent.get_role().value)
        try:
            raw = await with_timeout(
                agent.request_opinion(record), self._timeout_seconds, label=name
            )
        except Exception as e:
            logger.warning(
                "Agent request failed",
                agent=name,
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=round((time.perf_counter() - started) * 1000),
            )
            raise
        logger.info(
            "Agent response",
            agent=name,
            duration_ms=round((time.perf_counter() - started) * 1000),
        )
        return raw

    def normalize(self, raw_opinions: Sequence[RawOpinion]) -> list[AgentOpinion]:
        """Normalize raw opinions; an unparseable opinion counts as a failed agent.

        With a partial quorum the vote runs over the usable opinions only, so
        ``k`` opinions give a ``k``-vote decision.

        Raises:
            AgentFailureError: If there are more opinions than agent roles, or
                fewer opinions normalize than the quorum requires.
        """
        if len(raw_opinions) > self._quorum.total:
            raise AgentFailureError(
                f"{len(raw_opinions)} opinions for {self._quorum.total} agent roles",
                expected=self._quorum.total,
                received=len(raw_opinions),
            )
        opinions: list[AgentOpinion] = []
        failures: dict[str, str] = {}
        for raw in raw_opinions:
            try:
                opinions.append(self._normalizer.normalize(raw))
            except OpinionParseError as e:
                failures[raw.agent_name] = e.message

        if not self._quorum.is_met(len(opinions)):
            raise AgentFailureError(
                f"{len(opinions)} usable opinions, quorum {self._quorum} not met",
                failures=failures,
            )
        return opinions

    def reduce(self, raw_opinions: Sequence[RawOpinion]) -> ConsensusDecision:
        """Normalize raw opinions and reduce them to one decision."""
        return vote(self.normalize(raw_opinions))

    async def decide(self, record: CanonicalRecord) -> tuple[list[AgentOpinion], ConsensusDecision]:
        """Solicit, normalize and vote."""
        raw_opinions = await self.solicit(record)
        try:
            opinions = self.normalize(raw_opinions)
        except AgentFailureError as e:
            e.canonical_record = record
            raise
        decision = vote(opinions)
        logger.info(
            "Consensus reached",
            decision=decision.decision.value,
            outcome=decision.outcome.value,
            confidence=decision.confidence,
            votes=decision.vote_counts.model_dump(),
        )
        return opinions, decision
