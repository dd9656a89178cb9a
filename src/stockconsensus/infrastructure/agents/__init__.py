"""Concrete opinion agents."""

from stockconsensus.infrastructure.agents.chat_completion import ChatCompletionOpinionAgent

__all__ = ["ChatCompletionOpinionAgent"]
