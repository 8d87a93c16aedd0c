"""
LLM factory for creating provider instances.

Supports: Anthropic Claude, OpenAI GPT, DeepSeek and OpenRouter.
"""

import structlog

from ..config import LLMConfig
from ..errors import ConfigurationError, ProviderNotFoundError
from .anthropic import AnthropicLLM
from .base import BaseLLM
from .openai import OpenAILLM

logger = structlog.get_logger()


def create_llm(config: LLMConfig) -> BaseLLM:
    """Create an LLM instance based on configuration.

    Provider routing:
    - anthropic -> AnthropicLLM (native Anthropic SDK)
    - openai -> OpenAILLM (native OpenAI SDK)
    - deepseek -> OpenAILLM (OpenAI-compatible endpoint)
    - openrouter -> OpenAILLM (OpenAI-compatible endpoint)
    """
    provider = config.provider

    if not config.api_key:
        raise ConfigurationError(f"No API key configured for provider '{provider}'")

    if provider == "anthropic":
        llm: BaseLLM = AnthropicLLM(
            api_key=config.api_key,
            model=config.model,
            base_url=config.base_url,
            max_tokens=config.max_tokens,
            temperature=config.temperature,
            max_retries=config.max_retries,
        )
    elif provider in ("openai", "deepseek", "openrouter"):
        llm = OpenAILLM(
            api_key=config.api_key,
            model=config.model,
            base_url=config.base_url,
            max_tokens=config.max_tokens,
            temperature=config.temperature,
            max_retries=config.max_retries,
            provider=provider,
        )
    else:
        logger.error("Failed to create LLM", provider=provider)
        raise ProviderNotFoundError(provider)

    logger.debug("LLM created", provider=provider, model=config.model)
    return llm
