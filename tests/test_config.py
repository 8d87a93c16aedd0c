"""
Tests for configuration module.
"""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from wren_agent.config import DEFAULT_MODELS, Settings


def load(env: dict[str, str]) -> Settings:
    with patch.dict(os.environ, env, clear=True):
        return Settings(_env_file=None)


def test_settings_default_values():
    """Test that settings have sensible defaults."""
    settings = load({})

    assert settings.default_provider == "anthropic"
    assert settings.workspace_dir == "."
    assert settings.recursion_limit == 25
    assert settings.max_tool_iterations == 10
    assert settings.coder_max_turns == 5
    assert settings.compression_max_tokens == 30_000
    assert settings.compression_max_messages == 50
    assert settings.summarize_context is True


def test_settings_from_env():
    """Test loading settings from prefixed environment variables."""
    settings = load({
        "WREN_ANTHROPIC_API_KEY": "test_anthropic_key",
        "WREN_DEFAULT_MODEL": "claude-opus-4",
        "WREN_RECURSION_LIMIT": "40",
        "WREN_SUMMARIZE_CONTEXT": "false",
    })

    assert settings.anthropic_api_key == "test_anthropic_key"
    assert settings.default_model == "claude-opus-4"
    assert settings.recursion_limit == 40
    assert settings.summarize_context is False


def test_unprefixed_variables_ignored():
    """Test that variables without the WREN_ prefix are not read."""
    settings = load({"ANTHROPIC_API_KEY": "bare"})

    assert settings.anthropic_api_key == ""


def test_non_positive_limits_rejected():
    """Test that zero or negative limits fail validation."""
    with pytest.raises(ValidationError):
        load({"WREN_RECURSION_LIMIT": "0"})

    with pytest.raises(ValidationError):
        load({"WREN_COMPRESSION_MAX_MESSAGES": "-1"})


def test_get_llm_config():
    """Test getting the default LLM configuration."""
    settings = load({"WREN_ANTHROPIC_API_KEY": "test_key"})

    config = settings.get_llm_config()

    assert config.provider == "anthropic"
    assert config.api_key == "test_key"
    assert config.model == DEFAULT_MODELS["anthropic"]
    assert config.base_url is None


def test_get_llm_config_deepseek():
    """Test that DeepSeek resolves its OpenAI-compatible endpoint."""
    settings = load({
        "WREN_DEFAULT_PROVIDER": "deepseek",
        "WREN_DEEPSEEK_API_KEY": "ds_key",
    })

    config = settings.get_llm_config("planner")

    assert config.provider == "deepseek"
    assert config.model == "deepseek-chat"
    assert config.api_key == "ds_key"
    assert config.base_url == "https://api.deepseek.com/v1"


def test_per_agent_override():
    """Test that one agent can be bound to a different provider and model."""
    settings = load({
        "WREN_ANTHROPIC_API_KEY": "anthropic_key",
        "WREN_OPENAI_API_KEY": "openai_key",
        "WREN_CODER__PROVIDER": "openai",
        "WREN_CODER__MODEL": "gpt-4.1",
        "WREN_TESTER__TEMPERATURE": "0.1",
    })

    coder = settings.get_llm_config("coder")
    planner = settings.get_llm_config("planner")
    tester = settings.get_llm_config("tester")

    assert coder.provider == "openai"
    assert coder.model == "gpt-4.1"
    assert coder.api_key == "openai_key"
    assert planner.provider == "anthropic"
    assert planner.api_key == "anthropic_key"
    assert tester.temperature == 0.1
    assert planner.temperature == 0.7


def test_default_model_only_applies_to_default_provider():
    """Test that an agent on another provider gets that provider's default model."""
    settings = load({
        "WREN_DEFAULT_MODEL": "claude-opus-4",
        "WREN_CODER__PROVIDER": "openai",
    })

    assert settings.get_llm_config("planner").model == "claude-opus-4"
    assert settings.get_llm_config("coder").model == DEFAULT_MODELS["openai"]
