"""
Generation gateway - the single call surface every workflow node goes through.

The gateway bounds the conversation history before handing the state to the
wrapped agent: the hard message cap always applies, summarization only when
the capped history still exceeds the token budget and a summarizer is bound.
Summarization calls are infrastructure overhead and never show up as
conversation turns.
"""

from typing import AsyncIterator, Protocol

import structlog

from ..context.compression import CompressionPolicy, ContextBudget
from ..llm.base import BaseLLM
from .state import WorkflowState

logger = structlog.get_logger()


class Agent(Protocol):
    """What the gateway needs from an agent adapter."""

    @property
    def name(self) -> str: ...

    @property
    def description(self) -> str: ...

    def stream(self, state: WorkflowState) -> AsyncIterator[WorkflowState]: ...


class GenerationGateway:
    """Applies the context budget, then delegates to an agent."""

    def __init__(
        self,
        agent: Agent,
        policy: CompressionPolicy | None = None,
        summarizer: BaseLLM | None = None,
    ):
        self.agent = agent
        self.budget = ContextBudget(policy=policy or CompressionPolicy(), summarizer=summarizer)

    @property
    def name(self) -> str:
        return self.agent.name

    @property
    def description(self) -> str:
        return self.agent.description

    @property
    def policy(self) -> CompressionPolicy:
        return self.budget.policy

    async def prepare(self, state: WorkflowState) -> WorkflowState:
        """Return the state the agent will actually see."""
        bounded = await self.budget.bound(state.messages)

        if bounded.compression is not None:
            result = bounded.compression
            logger.info(
                "context_compressed",
                agent=self.name,
                compressed=result.compressed,
                was_chunked=result.was_chunked,
                chunk_count=result.chunk_count,
                original_tokens=result.original_tokens,
                new_tokens=result.new_tokens,
            )

        if not bounded.truncated and not bounded.was_compressed:
            return state

        reason = "summarized" if bounded.was_compressed else "message cap"
        return state.compressed(bounded.messages, reason=f"{self.name}: {reason}")

    async def stream(self, state: WorkflowState) -> AsyncIterator[WorkflowState]:
        """Yield the agent's partial states; the last one is the final state.

        Not restartable: each call runs the agent again.
        """
        prepared = await self.prepare(state)
        async for partial in self.agent.stream(prepared):
            yield partial

    async def invoke(self, state: WorkflowState) -> WorkflowState:
        """Run the agent and return its final state verbatim."""
        final = await self.prepare(state)
        async for partial in self.agent.stream(final):
            final = partial
        return final
