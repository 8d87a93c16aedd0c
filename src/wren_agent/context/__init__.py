"""
Context budget module - estimation, truncation and summarization of history.
"""

from .compression import (
    CHARS_PER_TOKEN,
    BoundedHistory,
    CompressionPolicy,
    CompressionResult,
    ContextBudget,
    chunk_content,
    compress_context,
    estimate_text_tokens,
    estimate_tokens,
    process_large_context,
    serialize_messages,
    truncate_messages,
)

__all__ = [
    "CHARS_PER_TOKEN",
    "BoundedHistory",
    "CompressionPolicy",
    "CompressionResult",
    "ContextBudget",
    "chunk_content",
    "compress_context",
    "estimate_text_tokens",
    "estimate_tokens",
    "process_large_context",
    "serialize_messages",
    "truncate_messages",
]
