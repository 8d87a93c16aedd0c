"""
Tests for the Chat entry point.
"""

import os
from unittest.mock import patch

import pytest

from fakes import ScriptedLLM, submit, text
from wren_agent.agents import COMPLETION_SENTINEL
from wren_agent.chat import Chat, RunConfig, default_tools
from wren_agent.config import Settings
from wren_agent.errors import ConfigurationError, RecursionLimitExceeded
from wren_agent.llm import AnthropicLLM, OpenAILLM
from wren_agent.workflow import Node

PLAN = {"steps": [{"action": "Create file", "description": "Add greet()"}]}


def scripted_models(verdicts: list[bool], coder_replies: int | None = None) -> dict[str, ScriptedLLM]:
    coder_replies = coder_replies or len(verdicts)
    return {
        "planner": ScriptedLLM([submit(PLAN)]),
        "coder": ScriptedLLM([text(f"Implemented.\n{COMPLETION_SENTINEL}") for _ in range(coder_replies)]),
        "tester": ScriptedLLM([
            submit({"passed": passed, "errors": [] if passed else [f"failure {i}"]})
            for i, passed in enumerate(verdicts)
        ]),
    }


def test_run_config_requires_every_model():
    """Test that a missing agent model is a configuration error."""
    models = scripted_models([True])
    del models["tester"]

    with pytest.raises(ConfigurationError) as exc_info:
        RunConfig(models=models)

    assert "tester" in str(exc_info.value)


def test_run_config_rejects_non_positive_limits():
    """Test that non-positive limits are rejected."""
    with pytest.raises(ConfigurationError):
        RunConfig(models=scripted_models([True]), recursion_limit=0)


def test_run_config_from_settings_shares_clients():
    """Test that agents with identical bindings share one client."""
    env = {
        "WREN_ANTHROPIC_API_KEY": "anthropic_key",
        "WREN_OPENAI_API_KEY": "openai_key",
        "WREN_CODER__PROVIDER": "openai",
        "WREN_RECURSION_LIMIT": "12",
    }
    with patch.dict(os.environ, env, clear=True):
        settings = Settings(_env_file=None)

    config = RunConfig.from_settings(settings)

    assert config.models["planner"] is config.models["tester"]
    assert isinstance(config.models["planner"], AnthropicLLM)
    assert isinstance(config.models["coder"], OpenAILLM)
    assert config.recursion_limit == 12


def test_run_config_from_settings_small_token_budget():
    """Test that a small max token setting builds a policy with a matching target."""
    env = {"WREN_ANTHROPIC_API_KEY": "key", "WREN_COMPRESSION_MAX_TOKENS": "8000"}
    with patch.dict(os.environ, env, clear=True):
        settings = Settings(_env_file=None)

    config = RunConfig.from_settings(settings)

    assert settings.compression_target_tokens is None
    assert config.policy.max_tokens == 8000
    assert config.policy.target_tokens == 8000


def test_run_config_from_settings_without_key():
    """Test that settings without an API key cannot build models."""
    with patch.dict(os.environ, {}, clear=True):
        settings = Settings(_env_file=None)

    with pytest.raises(ConfigurationError):
        RunConfig.from_settings(settings)


def test_default_tools(tmp_path):
    """Test the per-agent tool sets."""
    tools = default_tools(str(tmp_path))

    names = {agent: {tool.name for tool in agent_tools} for agent, agent_tools in tools.items()}
    assert "write_file" not in names["planner"]
    assert "run_command" not in names["planner"]
    assert {"write_file", "run_command"} <= names["coder"]
    assert "write_file" not in names["tester"]
    assert "run_command" in names["tester"]


@pytest.mark.asyncio
async def test_query_runs_workflow():
    """Test a full plan, code, test run that passes first time."""
    chat = Chat(RunConfig(models=scripted_models([True])), tools={})

    state = await chat.query("add a greet function")

    assert state.eval_passed is True
    assert state.original_request == "add a greet function"
    assert [step.description for step in state.steps] == ["Add greet()"]
    assert chat.message_history == list(state.messages)
    assert chat.graph.last_run.path == [Node.PLANNER, Node.CODER, Node.TESTER]


@pytest.mark.asyncio
async def test_query_retries_after_failed_tests():
    """Test that tester feedback is handed to the coder on the next pass."""
    models = scripted_models([False, True])
    chat = Chat(RunConfig(models=models), tools={})

    state = await chat.query("fix the bug")

    assert state.eval_passed is True
    assert state.suggestions == ("failure 0",)
    second_task = models["coder"].calls[1]["messages"][-1].content
    assert "failure 0" in second_task


@pytest.mark.asyncio
async def test_query_carries_history():
    """Test that a second query starts from the first query's history."""
    models = scripted_models([True])
    for name, llm in scripted_models([True]).items():
        models[name].responses.extend(llm.responses)
    chat = Chat(RunConfig(models=models), tools={})

    first = await chat.query("first request")
    second = await chat.query("second request")

    assert second.messages[:len(first.messages)] == first.messages
    assert second.original_request == "second request"

    chat.reset()
    assert chat.message_history == []


@pytest.mark.asyncio
async def test_query_hits_recursion_limit():
    """Test that a tester that never passes ends in RecursionLimitExceeded."""
    chat = Chat(RunConfig(models=scripted_models([False, False], coder_replies=2), recursion_limit=4), tools={})

    with pytest.raises(RecursionLimitExceeded) as exc_info:
        await chat.query("impossible")

    assert exc_info.value.limit == 4
    assert exc_info.value.state.eval_passed is False
    assert chat.message_history == []
