"""
Coder agent: implements the plan, turn after turn, until it reports completion.
"""

from typing import AsyncIterator

import structlog

from ..context.compression import ContextBudget
from ..llm.base import BaseLLM
from ..tools.base import Tool
from ..workflow.state import WorkflowState
from .base import DEFAULT_MAX_TOOL_ITERATIONS, BaseAgent, Turn
from .prompts import COMPLETION_SENTINEL, coder_continue, coder_prompt, coder_task

logger = structlog.get_logger()

AGENT_NAME = "coder"
AGENT_DESC = (
    "Executes approved plans by editing and creating code, matching existing style and "
    "architecture, and running build, lint, and test commands to ensure quality."
)

DEFAULT_MAX_TURNS = 5
MAX_FEEDBACK_ITEMS = 10
MAX_CARRIED_CHARS = 4000


def is_complete(content: str) -> bool:
    """True when the output carries the completion marker."""
    return COMPLETION_SENTINEL in content


class CoderAgent(BaseAgent):
    """Writes code for the plan.

    Each turn starts with a human-turn message: the rendered plan and tester
    feedback on the first turn, the latest output on every turn after that.
    Turns repeat until the model emits the completion marker or
    ``max_turns`` is reached.
    """

    def __init__(
        self,
        llm: BaseLLM,
        working_dir: str,
        tools: list[Tool] | None = None,
        max_tool_iterations: int = DEFAULT_MAX_TOOL_ITERATIONS,
        max_turns: int = DEFAULT_MAX_TURNS,
        budget: ContextBudget | None = None,
    ):
        super().__init__(
            name=AGENT_NAME,
            description=AGENT_DESC,
            system_prompt=coder_prompt(working_dir),
            llm=llm,
            tools=tools or [],
            max_tool_iterations=max_tool_iterations,
            budget=budget,
        )
        self.max_turns = max_turns

    def render_task(self, state: WorkflowState) -> str:
        plan = [step.render() for step in state.steps]
        feedback = [] if state.eval_passed else list(state.suggestions[-MAX_FEEDBACK_ITEMS:])
        return coder_task(plan, feedback)

    async def stream(self, state: WorkflowState) -> AsyncIterator[WorkflowState]:
        content = self.render_task(state)

        for turn_number in range(1, self.max_turns + 1):
            state = state.with_user_message(content)
            if turn_number > 1:
                state = await self._apply_budget(state)
            yield state

            turn = Turn(state=state)
            async for partial in self.run_turn(turn):
                yield partial
            state = turn.state

            output = turn.response.content if turn.response else ""
            if is_complete(output):
                logger.info("Coder reported completion", turns=turn_number)
                return

            content = coder_continue(output[-MAX_CARRIED_CHARS:] or "(no text output)")

        logger.warning(
            "Coder stopped without completion marker",
            max_turns=self.max_turns,
        )

    async def _apply_budget(self, state: WorkflowState) -> WorkflowState:
        """Keep the history within budget between the coder's own turns."""
        if self.budget is None:
            return state

        bounded = await self.budget.bound(state.messages)
        if bounded.truncated or bounded.was_compressed:
            return state.compressed(bounded.messages, reason="coder turn")
        return state
