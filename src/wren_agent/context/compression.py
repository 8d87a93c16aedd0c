"""
Context budget management - keeps model input within a bounded size.

Strategies are tried cheapest first:
- No-op when the estimated size already fits the budget
- Truncation to the most recent messages when no summarizer is bound
- Single-pass summarization through the bound model
- Chunked summarization for very large content: every chunk is summarized
  concurrently, then the joined summaries are summarized once more

Compression is best effort. A failing summarizer never breaks a run: the
original content is returned and a warning is logged.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Sequence

import structlog

from ..errors import ConfigurationError
from ..llm.base import BaseLLM, LLMMessage

logger = structlog.get_logger()

# Approximate characters per token; tunable, only monotonicity matters
CHARS_PER_TOKEN = 4

# Overhead per message for role markers and formatting, in characters
MESSAGE_OVERHEAD_CHARS = 20

CHUNK_SEPARATOR = "\n----entry----\n"

COMPRESSED_HISTORY_PREFIX = "Compressed conversation history:\n"

# Summary size asked for when the policy does not name one; never above max_tokens
DEFAULT_TARGET_TOKENS = 10_000

COMPRESSION_PROMPT = """You are the component that summarizes internal chat history into a given structure.

When the conversation history grows too large, you will be invoked to distill the entire history into a concise, structured XML snapshot. This snapshot is CRITICAL, as it will become the agent's *only* memory of the past. The agent will resume its work based solely on this snapshot. All crucial details, plans, errors, and user directives MUST be preserved.

First, think through the entire history privately. Review the user's overall goal, the agent's actions, tool outputs, file modifications, and any unresolved questions. Identify every piece of information that is essential for future actions.

Then generate the final <state_snapshot> XML object. Be incredibly dense with information. Omit any irrelevant conversational filler.

The structure MUST be as follows:

<state_snapshot>
    <overall_goal>
        <!-- A single, concise sentence describing the user's high-level objective. -->
    </overall_goal>

    <key_knowledge>
        <!-- Crucial facts, conventions, and constraints the agent must remember: build and test commands, library choices, user directives. -->
    </key_knowledge>

    <file_system_state>
        <!-- Files that have been created, read, modified, or deleted, with a short note on their status. -->
    </file_system_state>

    <recent_actions>
        <!-- The last few significant agent actions and their outcomes. Focus on facts. -->
    </recent_actions>

    <current_plan>
        <!-- The step-by-step plan, each step marked [DONE], [IN PROGRESS] or [TODO]. -->
    </current_plan>
</state_snapshot>""".strip()


@dataclass(frozen=True)
class CompressionPolicy:
    """Budget that triggers truncation or summarization.

    One instance per generation gateway; immutable for its lifetime. When
    ``target_tokens`` is not given it is the smaller of DEFAULT_TARGET_TOKENS
    and ``max_tokens``.
    """

    max_tokens: int = 30_000
    target_tokens: int | None = None
    max_messages: int = 50
    enable_chunking: bool = True
    max_chunk_tokens: int = 5_000

    def __post_init__(self) -> None:
        if self.target_tokens is None:
            object.__setattr__(self, "target_tokens", min(DEFAULT_TARGET_TOKENS, self.max_tokens))

        for name in ("max_tokens", "target_tokens", "max_messages", "max_chunk_tokens"):
            if getattr(self, name) < 1:
                raise ConfigurationError(f"CompressionPolicy.{name} must be positive")
        if self.target_tokens > self.max_tokens:
            raise ConfigurationError(
                "CompressionPolicy.target_tokens cannot exceed max_tokens"
            )

    @property
    def max_chunk_chars(self) -> int:
        return self.max_chunk_tokens * CHARS_PER_TOKEN


@dataclass
class CompressionResult:
    """Result of a compression operation."""

    content: str
    was_chunked: bool = False
    chunk_count: int | None = None
    original_tokens: int = 0
    new_tokens: int = 0
    compressed: bool = False


@dataclass
class BoundedHistory:
    """Message history after the budget has been applied."""

    messages: list[LLMMessage]
    truncated: int = 0
    compression: CompressionResult | None = None

    @property
    def was_compressed(self) -> bool:
        return self.compression is not None and self.compression.compressed


def estimate_text_tokens(text: str) -> int:
    """Estimate token count for raw text."""
    return len(text) // CHARS_PER_TOKEN


def estimate_tokens(messages: Sequence[LLMMessage]) -> int:
    """Estimate token count for a list of messages."""
    total_chars = sum(len(m.content) for m in messages)
    overhead = len(messages) * MESSAGE_OVERHEAD_CHARS
    return (total_chars + overhead) // CHARS_PER_TOKEN


def serialize_messages(messages: Sequence[LLMMessage]) -> str:
    """Flatten a history into ``role: content`` lines, oldest first."""
    return "\n".join(f"{m.role}: {m.content}" for m in messages)


def truncate_messages(messages: Sequence[LLMMessage], max_messages: int) -> list[LLMMessage]:
    """Keep only the most recent ``max_messages`` messages, in order."""
    if max_messages < 1:
        return []
    if len(messages) <= max_messages:
        return list(messages)
    return list(messages[-max_messages:])


def chunk_content(content: str, max_chunk_chars: int = 10_000) -> list[str]:
    """Split content into contiguous fixed-size chunks.

    Joining the chunks reproduces ``content`` exactly; only the last chunk
    may be shorter than ``max_chunk_chars``.
    """
    if max_chunk_chars < 1:
        raise ValueError("max_chunk_chars must be positive")

    if len(content) <= max_chunk_chars:
        return [content]

    return [
        content[position:position + max_chunk_chars]
        for position in range(0, len(content), max_chunk_chars)
    ]


async def compress_context(
    content: str,
    llm: BaseLLM,
    policy: CompressionPolicy,
) -> CompressionResult:
    """Summarize content in a single model call.

    Returns the original content untouched if the call fails for any reason.
    """
    original_tokens = estimate_text_tokens(content)
    request = (
        f"Please compress the following content to roughly {policy.target_tokens} "
        f"tokens or fewer:\n\n{content}"
    )

    try:
        response = await llm.generate(
            messages=[LLMMessage(role="user", content=request)],
            system_prompt=COMPRESSION_PROMPT,
        )
    except Exception as e:
        logger.warning(
            "Context summarization failed, keeping original content",
            error=str(e),
            estimated_tokens=original_tokens,
        )
        return CompressionResult(
            content=content,
            original_tokens=original_tokens,
            new_tokens=original_tokens,
        )

    summary = response.content.strip()
    return CompressionResult(
        content=summary,
        original_tokens=original_tokens,
        new_tokens=estimate_text_tokens(summary),
        compressed=True,
    )


async def process_large_context(
    content: str,
    llm: BaseLLM | None,
    policy: CompressionPolicy,
    estimated_tokens: int | None = None,
) -> CompressionResult:
    """Bound a large piece of content using the cheapest sufficient strategy.

    Args:
        content: Serialized history or a single large tool output
        llm: Model used for summarization; None means summarization is unavailable
        policy: Budget to apply
        estimated_tokens: Size estimate to gate on; defaults to estimating
            ``content`` as raw text. Callers that already decided the content
            is over budget pass their own estimate so both steps agree.

    Returns:
        CompressionResult describing the bounded content
    """
    estimated = estimated_tokens if estimated_tokens is not None else estimate_text_tokens(content)

    if estimated <= policy.max_tokens:
        return CompressionResult(
            content=content,
            original_tokens=estimated,
            new_tokens=estimated,
        )

    if llm is None:
        # Raw text cannot be truncated by message; callers holding a message
        # list apply truncate_messages instead.
        logger.debug("No summarizer bound, content left as-is", estimated_tokens=estimated)
        return CompressionResult(
            content=content,
            original_tokens=estimated,
            new_tokens=estimated,
        )

    if not policy.enable_chunking or estimated <= policy.max_tokens * 2:
        return await compress_context(content, llm, policy)

    chunks = chunk_content(content, policy.max_chunk_chars)
    if len(chunks) == 1:
        return await compress_context(content, llm, policy)

    logger.info(
        "Summarizing content in chunks",
        chunk_count=len(chunks),
        estimated_tokens=estimated,
    )

    summaries = await asyncio.gather(
        *(compress_context(chunk, llm, policy) for chunk in chunks)
    )
    if not any(s.compressed for s in summaries):
        return CompressionResult(
            content=content,
            was_chunked=True,
            chunk_count=len(chunks),
            original_tokens=estimated,
            new_tokens=estimated,
        )

    combined = CHUNK_SEPARATOR.join(s.content for s in summaries)
    final = await compress_context(combined, llm, policy)

    return CompressionResult(
        content=final.content,
        was_chunked=True,
        chunk_count=len(chunks),
        original_tokens=estimated,
        new_tokens=estimate_text_tokens(final.content),
        compressed=True,
    )


@dataclass
class ContextBudget:
    """Applies a CompressionPolicy to message histories.

    The hard message cap is applied unconditionally; summarization runs only
    when the capped history still exceeds the token budget and a summarizer
    is bound.
    """

    policy: CompressionPolicy = field(default_factory=CompressionPolicy)
    summarizer: BaseLLM | None = None

    async def bound(self, messages: Sequence[LLMMessage]) -> BoundedHistory:
        capped = truncate_messages(messages, self.policy.max_messages)
        truncated = len(messages) - len(capped)

        if truncated:
            logger.debug(
                "History capped",
                dropped=truncated,
                max_messages=self.policy.max_messages,
            )

        estimated = estimate_tokens(capped)
        if self.summarizer is None or estimated <= self.policy.max_tokens:
            return BoundedHistory(messages=capped, truncated=truncated)

        serialized = serialize_messages(capped)
        result = await process_large_context(
            serialized, self.summarizer, self.policy, estimated_tokens=estimated
        )

        if not result.compressed:
            return BoundedHistory(messages=capped, truncated=truncated, compression=result)

        summary = LLMMessage(role="user", content=f"{COMPRESSED_HISTORY_PREFIX}{result.content}")
        return BoundedHistory(messages=[summary], truncated=truncated, compression=result)
