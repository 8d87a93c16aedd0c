"""
Tester agent: runs the checks and reports a structured pass/fail verdict.
"""

from typing import AsyncIterator

import structlog
from pydantic import BaseModel, Field

from ..context.compression import ContextBudget
from ..errors import AdapterValidationError
from ..llm.base import BaseLLM
from ..structured import extract_structured
from ..tools.base import Tool
from ..workflow.state import WorkflowState
from .base import DEFAULT_MAX_TOOL_ITERATIONS, BaseAgent, Turn
from .prompts import tester_prompt, tester_request

logger = structlog.get_logger()

AGENT_NAME = "tester"
AGENT_DESC = (
    "Validates code correctness and quality by reviewing changes, running tests, "
    "and reporting issues or confirmations."
)


class TesterResponse(BaseModel):
    """Structured verdict of the tester."""

    passed: bool = Field(description="Whether the implementation passed all checks")
    errors: list[str] = Field(default_factory=list, description="One entry per problem found")


class TesterAgent(BaseAgent):
    """Sets ``eval_passed`` from the model's verdict and records its errors."""

    response_model = TesterResponse
    response_description = "Submit the pass/fail verdict."

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
            system_prompt=tester_prompt(working_dir),
            llm=llm,
            tools=tools or [],
            max_tool_iterations=max_tool_iterations,
            budget=budget,
        )

    async def stream(self, state: WorkflowState) -> AsyncIterator[WorkflowState]:
        turn = Turn(state=state.with_user_message(tester_request(state.original_request)))
        yield turn.state

        async for partial in self.run_turn(turn):
            yield partial

        if turn.response is None:
            raise AdapterValidationError(self.name, "model produced no response")

        extraction = extract_structured(turn.response, TesterResponse)
        verdict = extraction.unwrap(self.name)

        if extraction.source == "text":
            logger.info("Tester verdict parsed from free text")
        logger.info("Tester verdict", passed=verdict.passed, errors=len(verdict.errors))

        yield turn.state.with_evaluation(verdict.passed).with_suggestions(verdict.errors)
