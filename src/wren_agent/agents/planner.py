"""
Planner agent: turns the user's request into an ordered list of plan steps.
"""

from typing import AsyncIterator

import structlog
from pydantic import BaseModel, Field

from ..context.compression import ContextBudget
from ..errors import AdapterValidationError
from ..llm.base import BaseLLM
from ..structured import extract_structured
from ..tools.base import Tool
from ..workflow.state import PlanStep, WorkflowState
from .base import DEFAULT_MAX_TOOL_ITERATIONS, BaseAgent, Turn
from .prompts import planner_prompt, planner_request

logger = structlog.get_logger()

AGENT_NAME = "planner"
AGENT_DESC = (
    "Analyzes the codebase, tests, and configurations to draft clear, step-by-step plans "
    "that reference project conventions and required verification steps."
)


class PlannerResponse(BaseModel):
    """Structured output of the planner."""

    steps: list[PlanStep] = Field(description="Ordered plan steps")


class PlannerAgent(BaseAgent):
    """Produces the plan. Given read-only tools, so it cannot change the project."""

    response_model = PlannerResponse
    response_description = "Submit the finished plan."

    def __init__(
        self,
        llm: BaseLLM,
        working_dir: str,
        tools: list[Tool] | None = None,
        max_tool_iterations: int = DEFAULT_MAX_TOOL_ITERATIONS,
        budget: ContextBudget | None = None,
    ):
        super().__init__(
            name=AGENT_NAME,
            description=AGENT_DESC,
            system_prompt=planner_prompt(working_dir),
            llm=llm,
            tools=tools or [],
            max_tool_iterations=max_tool_iterations,
            budget=budget,
        )

    async def stream(self, state: WorkflowState) -> AsyncIterator[WorkflowState]:
        latest = state.last_message.content if state.last_message else ""
        turn = Turn(state=state.with_user_message(planner_request(state.original_request, latest)))
        yield turn.state

        async for partial in self.run_turn(turn):
            yield partial

        if turn.response is None:
            raise AdapterValidationError(self.name, "model produced no response")

        plan = extract_structured(turn.response, PlannerResponse).unwrap(self.name)
        if not plan.steps:
            raise AdapterValidationError(self.name, "plan contains no steps", raw_content=turn.response.content)

        logger.info("Plan drafted", agent=self.name, steps=len(plan.steps))
        yield turn.state.with_steps(plan.steps)
