"""
LLM module for multi-provider model support.

Providers:
- Anthropic Claude (native SDK)
- OpenAI GPT (native SDK)
- DeepSeek and OpenRouter (via OpenAI-compatible endpoints)
"""

from .base import BaseLLM, LLMMessage, LLMResponse, ToolCall, ToolDefinition
from .anthropic import AnthropicLLM
from .openai import OpenAILLM
from .factory import create_llm

__all__ = [
    "BaseLLM",
    "LLMMessage",
    "LLMResponse",
    "ToolCall",
    "ToolDefinition",
    "AnthropicLLM",
    "OpenAILLM",
    "create_llm",
]
