"""
Workflow state threaded through the planner, coder and tester nodes.
"""

from dataclasses import dataclass, replace
from typing import Iterable

import structlog
from pydantic import BaseModel, ConfigDict, Field

from ..llm.base import LLMMessage, ToolCall

logger = structlog.get_logger()


class PlanStep(BaseModel):
    """A single step of the planner's plan."""

    model_config = ConfigDict(frozen=True)

    action: str = Field(description='What kind of change, e.g. "Create file" or "Modify file"')
    description: str = Field(description="What to do in this step")
    path: str | None = Field(default=None, description="Absolute path the step touches, if any")
    details: list[str] = Field(default_factory=list, description="Granular sub-tasks")

    def render(self) -> str:
        head = f"{self.action}: {self.description}"
        if self.path:
            head += f" ({self.path})"
        if self.details:
            head += "\n" + "\n".join(f"  - {d}" for d in self.details)
        return head


@dataclass(frozen=True)
class WorkflowState:
    """Conversation state for one workflow run.

    ``messages``, ``steps`` and ``suggestions`` only ever grow; the single
    exception is :meth:`compressed`, which replaces the history and is
    counted in ``compression_count``.
    """

    messages: tuple[LLMMessage, ...] = ()
    original_request: str = ""
    eval_passed: bool = False
    steps: tuple[PlanStep, ...] = ()
    suggestions: tuple[str, ...] = ()
    compression_count: int = 0

    @classmethod
    def initial(
        cls,
        user_text: str,
        history: Iterable[LLMMessage] = (),
    ) -> "WorkflowState":
        """Seed a run with prior history plus the user's request."""
        return cls(
            messages=(*history, LLMMessage(role="user", content=user_text)),
            original_request=user_text,
        )

    def with_messages(self, *messages: LLMMessage) -> "WorkflowState":
        return replace(self, messages=self.messages + messages)

    def with_user_message(self, content: str) -> "WorkflowState":
        return self.with_messages(LLMMessage(role="user", content=content))

    def with_assistant_message(
        self, content: str, tool_calls: list[ToolCall] | None = None
    ) -> "WorkflowState":
        return self.with_messages(LLMMessage(
            role="assistant",
            content=content,
            tool_calls=tuple(tool_calls) if tool_calls else None,
        ))

    def with_tool_result(self, tool_call_id: str, result: str, tool_name: str = "") -> "WorkflowState":
        return self.with_messages(LLMMessage(
            role="tool",
            content=result,
            tool_call_id=tool_call_id,
            name=tool_name,
        ))

    def with_steps(self, steps: Iterable[PlanStep]) -> "WorkflowState":
        return replace(self, steps=self.steps + tuple(steps))

    def with_suggestions(self, suggestions: Iterable[str]) -> "WorkflowState":
        return replace(self, suggestions=self.suggestions + tuple(suggestions))

    def with_evaluation(self, passed: bool) -> "WorkflowState":
        return replace(self, eval_passed=passed)

    def compressed(self, messages: Iterable[LLMMessage], reason: str) -> "WorkflowState":
        """Replace the history. The only operation allowed to drop messages."""
        new_messages = tuple(messages)
        logger.info(
            "History replaced",
            reason=reason,
            before=len(self.messages),
            after=len(new_messages),
            compression_count=self.compression_count + 1,
        )
        return replace(
            self,
            messages=new_messages,
            compression_count=self.compression_count + 1,
        )

    @property
    def last_message(self) -> LLMMessage | None:
        return self.messages[-1] if self.messages else None

    @property
    def last_assistant_message(self) -> LLMMessage | None:
        for message in reversed(self.messages):
            if message.role == "assistant":
                return message
        return None

    @property
    def message_count(self) -> int:
        return len(self.messages)
