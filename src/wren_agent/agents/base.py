"""
Base agent: one logical role (planner, coder, tester) behind a uniform
``accept state, produce updated state`` contract.

Internally an agent runs a bounded tool loop against its model: the model is
called with the conversation so far, requested tools are executed and their
results appended, and the loop ends when the model answers without tool
calls or submits its structured response.
"""

from abc import ABC
from dataclasses import dataclass
from typing import AsyncIterator, Iterable

import structlog
from pydantic import BaseModel

from ..context.compression import ContextBudget, estimate_text_tokens, process_large_context
from ..llm.base import BaseLLM, LLMResponse, ToolDefinition
from ..structured import SUBMIT_RESPONSE_TOOL, response_tool
from ..tools.base import Tool
from ..tools.registry import ToolRegistry
from ..workflow.state import WorkflowState

logger = structlog.get_logger()

DEFAULT_MAX_TOOL_ITERATIONS = 10


@dataclass
class Turn:
    """Progress of one tool-loop turn."""

    state: WorkflowState
    response: LLMResponse | None = None
    iterations: int = 0
    finished: bool = False


class BaseAgent(ABC):
    """Common behaviour of all agents.

    Subclasses differ in their instruction text, their tools and in how they
    turn the model's output into a state update (``stream``).
    """

    response_model: type[BaseModel] | None = None
    response_description: str = "Submit your final structured response."

    def __init__(
        self,
        name: str,
        description: str,
        system_prompt: str,
        llm: BaseLLM,
        tools: Iterable[Tool] = (),
        max_tool_iterations: int = DEFAULT_MAX_TOOL_ITERATIONS,
        budget: ContextBudget | None = None,
    ):
        self._name = name
        self._description = description
        self.system_prompt = system_prompt
        self.llm = llm
        self.tool_registry = ToolRegistry(tools)
        self.max_tool_iterations = max_tool_iterations
        self.budget = budget

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    def tool_definitions(self) -> list[ToolDefinition]:
        definitions = self.tool_registry.get_definitions()
        if self.response_model is not None:
            definitions.append(response_tool(self.response_model, self.response_description))
        return definitions

    async def stream(self, state: WorkflowState) -> AsyncIterator[WorkflowState]:
        """Yield partial states, ending with the final state for this invocation."""
        turn = Turn(state=state)
        async for partial in self.run_turn(turn):
            yield partial

    async def invoke(self, state: WorkflowState) -> WorkflowState:
        """Run the agent to completion and return the final state."""
        final = state
        async for partial in self.stream(state):
            final = partial
        return final

    async def run_turn(self, turn: Turn) -> AsyncIterator[WorkflowState]:
        """Run the tool loop, yielding the state after every appended message.

        ``turn`` is updated in place so callers can inspect the last model
        response once the generator is exhausted.
        """
        definitions = self.tool_definitions()

        while turn.iterations < self.max_tool_iterations:
            turn.iterations += 1

            response = await self.llm.generate(
                messages=list(turn.state.messages),
                tools=definitions or None,
                system_prompt=self.system_prompt,
            )
            turn.response = response

            if not response.tool_calls:
                turn.state = turn.state.with_assistant_message(response.content)
                turn.finished = True
                yield turn.state
                return

            turn.state = turn.state.with_assistant_message(response.content, response.tool_calls)
            yield turn.state

            submitted = False
            for tool_call in response.tool_calls:
                if tool_call.name == SUBMIT_RESPONSE_TOOL and self.response_model is not None:
                    submitted = True
                    result_text = "Response recorded."
                else:
                    result = await self.tool_registry.execute(tool_call.name, tool_call.arguments)
                    result_text = await self._bound_tool_output(result.to_message_content())

                turn.state = turn.state.with_tool_result(tool_call.id, result_text, tool_call.name)
                yield turn.state

            if submitted:
                turn.finished = True
                return

        logger.warning(
            "Tool iteration limit reached",
            agent=self.name,
            max_tool_iterations=self.max_tool_iterations,
        )

    async def _bound_tool_output(self, text: str) -> str:
        """Summarize a single oversized tool output when a budget is bound."""
        if self.budget is None or estimate_text_tokens(text) <= self.budget.policy.max_tokens:
            return text

        result = await process_large_context(text, self.budget.summarizer, self.budget.policy)
        if result.compressed:
            logger.info(
                "Tool output compressed",
                agent=self.name,
                original_tokens=result.original_tokens,
                new_tokens=result.new_tokens,
                was_chunked=result.was_chunked,
            )
        return result.content
