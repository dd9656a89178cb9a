"""Opinion agent port."""

from abc import ABC, abstractmethod

from stockconsensus.domain.models.opinion import AgentRole, RawOpinion
from stockconsensus.domain.models.record import CanonicalRecord


class OpinionAgent(ABC):
    """An upstream agent that produces one opinion about a canonical record."""

    @abstractmethod
    def get_agent_name(self) -> str:
        """Get the agent name (e.g., 'openai', 'claude')."""

    @abstractmethod
    def get_role(self) -> AgentRole:
        """Get the fixed role this agent answers for."""

    def missing_configuration(self) -> list[str]:
        return []

    async def close(self) -> None:
        """Release any client held by the agent."""

    @abstractmethod
    async def request_opinion(self, record: CanonicalRecord) -> RawOpinion:
        """Ask the agent for its opinion on ``record``.

        Raises on transport or vendor failure; the consensus reducer counts a
        raised call as a failed agent.
        """
