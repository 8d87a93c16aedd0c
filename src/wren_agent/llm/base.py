"""
Base classes for LLM providers.

These are the model-handle types consumed by the agents and by the context
budget manager.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Literal, Sequence

import structlog

logger = structlog.get_logger()

Role = Literal["user", "assistant", "system", "tool"]


@dataclass(frozen=True)
class ToolDefinition:
    """Definition of a tool that the LLM can use."""

    name: str
    description: str
    parameters: dict[str, Any]


@dataclass(frozen=True)
class ToolCall:
    """A tool call made by the LLM."""

    id: str
    name: str
    arguments: dict[str, Any]


@dataclass(frozen=True)
class LLMMessage:
    """A message in the conversation. Immutable once created."""

    role: Role
    content: str
    tool_calls: tuple[ToolCall, ...] | None = None
    tool_call_id: str | None = None
    name: str | None = None


def drop_orphaned_tool_results(messages: Sequence[LLMMessage]) -> list[LLMMessage]:
    """Remove tool results whose call is not earlier in the history.

    Capping a history by message count can cut between an assistant tool
    call and its result; providers reject a result with no matching call.
    """
    call_ids: set[str] = set()
    kept: list[LLMMessage] = []

    for msg in messages:
        if msg.role == "tool" and msg.tool_call_id not in call_ids:
            logger.debug("Dropping orphaned tool result", tool_call_id=msg.tool_call_id)
            continue
        if msg.tool_calls:
            call_ids.update(tc.id for tc in msg.tool_calls)
        kept.append(msg)

    return kept


@dataclass
class LLMResponse:
    """Response from an LLM."""

    content: str
    tool_calls: list[ToolCall] = field(default_factory=list)
    input_tokens: int = 0
    output_tokens: int = 0
    model: str = ""
    stop_reason: str | None = None
    raw_response: Any = None


class BaseLLM(ABC):
    """Base class for LLM providers."""

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        max_retries: int = 3,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.max_retries = max_retries

    @abstractmethod
    async def generate(
        self,
        messages: list[LLMMessage],
        tools: list[ToolDefinition] | None = None,
        system_prompt: str | None = None,
    ) -> LLMResponse:
        """Generate a response from the LLM."""
        pass

    @abstractmethod
    async def stream(
        self,
        messages: list[LLMMessage],
        tools: list[ToolDefinition] | None = None,
        system_prompt: str | None = None,
    ) -> AsyncIterator[str]:
        """Stream a response from the LLM."""
        pass

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Get the provider name."""
        pass
