"""
Configuration management for wren-agent.

Uses pydantic-settings for environment variable parsing and validation.
Library code never reads settings implicitly; the CLI resolves a ``Settings``
object once and hands explicit configuration objects down.
"""

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

Provider = Literal["anthropic", "openai", "deepseek", "openrouter"]

AGENT_NAMES = ("planner", "coder", "tester")

DEFAULT_MODELS: dict[str, str] = {
    "anthropic": "claude-sonnet-4-20250514",
    "openai": "gpt-4o",
    "deepseek": "deepseek-chat",
    "openrouter": "anthropic/claude-sonnet-4",
}

DEFAULT_BASE_URLS: dict[str, str | None] = {
    "anthropic": None,
    "openai": None,
    "deepseek": "https://api.deepseek.com/v1",
    "openrouter": "https://openrouter.ai/api/v1",
}


class LLMConfig(BaseSettings):
    """Configuration for a single LLM binding."""

    model_config = SettingsConfigDict(extra="ignore")

    provider: Provider = "anthropic"
    model: str = DEFAULT_MODELS["anthropic"]
    api_key: str = ""
    base_url: str | None = None
    max_tokens: int = 4096
    temperature: float = 0.7
    max_retries: int = 3


class AgentModelOverride(BaseModel):
    """Per-agent override of the default model binding."""

    provider: Provider | None = None
    model: str | None = None
    temperature: float | None = None


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="WREN_",
        extra="ignore",
        env_nested_delimiter="__",
    )

    # Application
    debug: bool = False
    log_level: str = "INFO"
    workspace_dir: str = Field(default=".", description="Project root the agents work in")

    # LLM Providers (API Keys)
    anthropic_api_key: str = Field(default="", description="Anthropic API key for Claude")
    openai_api_key: str = Field(default="", description="OpenAI API key")
    deepseek_api_key: str = Field(default="", description="DeepSeek API key")
    openrouter_api_key: str = Field(default="", description="OpenRouter API key")

    # Default model settings
    default_provider: Provider = "anthropic"
    default_model: str = ""
    max_tokens: int = 4096
    temperature: float = 0.7
    max_retries: int = 3

    # Per-agent overrides, e.g. WREN_CODER__MODEL=gpt-4o
    planner: AgentModelOverride = Field(default_factory=AgentModelOverride)
    coder: AgentModelOverride = Field(default_factory=AgentModelOverride)
    tester: AgentModelOverride = Field(default_factory=AgentModelOverride)

    # Workflow
    recursion_limit: int = Field(default=25, description="Maximum node visits per workflow run")
    max_tool_iterations: int = Field(default=10, description="Tool-loop bound inside one agent turn")
    coder_max_turns: int = Field(default=5, description="Coder turns before giving up on the completion marker")

    # Context budget
    compression_max_tokens: int = 30_000
    compression_target_tokens: int | None = Field(default=None, description="Summary size; defaults to min(10000, max tokens)")
    compression_max_messages: int = 50
    compression_enable_chunking: bool = True
    compression_max_chunk_tokens: int = 5_000
    summarize_context: bool = Field(default=True, description="Let gateways summarize oversized history")

    # Shell tool
    shell_timeout_seconds: int = 120

    @field_validator(
        "recursion_limit",
        "max_tool_iterations",
        "coder_max_turns",
        "compression_max_tokens",
        "compression_target_tokens",
        "compression_max_messages",
        "compression_max_chunk_tokens",
        "shell_timeout_seconds",
    )
    @classmethod
    def must_be_positive(cls, v: int | None) -> int | None:
        if v is not None and v < 1:
            raise ValueError("must be a positive integer")
        return v

    @property
    def api_keys(self) -> dict[str, str]:
        return {
            "anthropic": self.anthropic_api_key,
            "openai": self.openai_api_key,
            "deepseek": self.deepseek_api_key,
            "openrouter": self.openrouter_api_key,
        }

    def get_llm_config(self, agent: str | None = None) -> LLMConfig:
        """Get the LLM configuration for an agent, falling back to the defaults."""
        override = getattr(self, agent) if agent in AGENT_NAMES else AgentModelOverride()

        provider = override.provider or self.default_provider
        if override.model:
            model = override.model
        elif self.default_model and provider == self.default_provider:
            model = self.default_model
        else:
            model = DEFAULT_MODELS[provider]

        return LLMConfig(
            provider=provider,
            model=model,
            api_key=self.api_keys.get(provider, ""),
            base_url=DEFAULT_BASE_URLS.get(provider),
            max_tokens=self.max_tokens,
            temperature=override.temperature if override.temperature is not None else self.temperature,
            max_retries=self.max_retries,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
