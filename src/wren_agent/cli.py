"""
Command-line interface for wren-agent.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import structlog
from pydantic import ValidationError

from .config import AGENT_NAMES, Settings, get_settings
from .errors import ConfigurationError, WorkflowError
from .workflow import WorkflowState

logger = structlog.get_logger()


def configure_logging(level: str = "INFO") -> None:
    """Route structlog through stdlib logging with a console renderer."""
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level.upper())

    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wren",
        description="wren-agent - plan, code and test a change with cooperating LLM agents",
    )
    parser.add_argument("--log-level", default=None, help="Override WREN_LOG_LEVEL")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    query_parser = subparsers.add_parser("query", help="Run the workflow for one request")
    query_parser.add_argument("text", help="What you want built or changed")
    query_parser.add_argument("--workspace", default=None, help="Project root (default: WREN_WORKSPACE_DIR)")
    query_parser.add_argument("--recursion-limit", type=int, default=None, help="Maximum node visits")

    config_parser = subparsers.add_parser("config", help="Show configuration")
    config_parser.add_argument("--check", action="store_true", help="Check configuration validity")

    subparsers.add_parser("init", help="Create a .env template in the current directory")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "init":
        init_env()
        return 0

    try:
        settings = get_settings()
    except ValidationError as e:
        configure_logging(args.log_level or "INFO")
        logger.error("Invalid configuration", error=str(e))
        return 1
    configure_logging(args.log_level or settings.log_level)

    if args.command == "config":
        return show_config(settings, args.check)

    if args.command == "query":
        overrides = {}
        if args.workspace:
            overrides["workspace_dir"] = args.workspace
        if args.recursion_limit is not None:
            overrides["recursion_limit"] = args.recursion_limit
        if overrides:
            settings = settings.model_copy(update=overrides)
        return asyncio.run(run_query(settings, args.text))

    parser.print_help()
    return 0


async def run_query(settings: Settings, text: str) -> int:
    """Run one workflow and print its outcome."""
    from .chat import Chat

    try:
        chat = Chat.from_settings(settings)
    except ConfigurationError as e:
        logger.error("Invalid configuration", error=str(e))
        return 1

    try:
        state = await chat.query(text)
    except WorkflowError as e:
        logger.error(
            "Workflow failed",
            error_type=type(e).__name__,
            node=e.node,
            error=str(e),
        )
        return 1

    print_result(state)
    return 0


def print_result(state: WorkflowState) -> None:
    """Print the plan, the verdict and the final assistant reply."""
    if state.steps:
        print("\nPlan:")
        for i, step in enumerate(state.steps, start=1):
            print(f"  {i}. {step.action}: {step.description}")

    print(f"\nTests passed: {'yes' if state.eval_passed else 'no'}")

    last = state.last_assistant_message
    if last is not None and last.content:
        print(f"\nassistant: {last.content}")


def mask(value: str) -> str:
    if not value:
        return "(not set)"
    return value[:4] + "..." + value[-4:] if len(value) > 10 else "****"


def show_config(settings: Settings, check: bool) -> int:
    """Show current configuration."""
    print("\n=== wren-agent Configuration ===\n")

    print("Workspace:")
    print(f"  Directory: {Path(settings.workspace_dir).resolve()}")
    print(f"  Debug: {settings.debug}")

    print("\nLLM Providers:")
    print(f"  Default: {settings.default_provider}")
    print(f"  Default Model: {settings.default_model or '(provider default)'}")
    for provider, key in settings.api_keys.items():
        print(f"  {provider.capitalize()} Key: {mask(key)}")

    print("\nAgents:")
    for agent in AGENT_NAMES:
        llm_config = settings.get_llm_config(agent)
        print(f"  {agent}: {llm_config.provider}/{llm_config.model} (temperature {llm_config.temperature})")

    print("\nWorkflow:")
    print(f"  Recursion Limit: {settings.recursion_limit}")
    print(f"  Max Tool Iterations: {settings.max_tool_iterations}")
    print(f"  Coder Max Turns: {settings.coder_max_turns}")

    print("\nContext Budget:")
    print(f"  Max Tokens: {settings.compression_max_tokens}")
    target = settings.compression_target_tokens
    print(f"  Target Tokens: {target if target is not None else 'derived from Max Tokens'}")
    print(f"  Max Messages: {settings.compression_max_messages}")
    print(f"  Chunking: {settings.compression_enable_chunking} ({settings.compression_max_chunk_tokens} tokens/chunk)")
    print(f"  Summarize: {settings.summarize_context}")

    if not check:
        return 0

    print("\n=== Configuration Check ===\n")
    errors = []
    for agent in AGENT_NAMES:
        llm_config = settings.get_llm_config(agent)
        if not llm_config.api_key:
            errors.append(f"{agent}: no API key for provider '{llm_config.provider}'")

    if target is not None and target > settings.compression_max_tokens:
        errors.append("compression_target_tokens cannot exceed compression_max_tokens")

    if errors:
        print("Errors:")
        for e in errors:
            print(f"   - {e}")
        print("\nConfiguration has errors - fix them before running a query")
        return 1

    print("Configuration looks good!")
    return 0


def init_env() -> None:
    """Write a .env template if none exists."""
    env_file = Path(".env")

    if env_file.exists():
        print(f"{env_file} already exists")
        return

    env_file.write_text("""# wren-agent configuration

# LLM API keys (set at least the one for your default provider)
WREN_ANTHROPIC_API_KEY=
# WREN_OPENAI_API_KEY=
# WREN_DEEPSEEK_API_KEY=
# WREN_OPENROUTER_API_KEY=

# Default provider and model
WREN_DEFAULT_PROVIDER=anthropic
# WREN_DEFAULT_MODEL=claude-sonnet-4-20250514

# Per-agent overrides
# WREN_CODER__PROVIDER=openai
# WREN_CODER__MODEL=gpt-4o
# WREN_PLANNER__TEMPERATURE=0.2

# Workflow
WREN_WORKSPACE_DIR=.
WREN_RECURSION_LIMIT=25

# Context budget
# WREN_COMPRESSION_MAX_TOKENS=30000
# WREN_COMPRESSION_MAX_MESSAGES=50
""")
    print(f"Created {env_file}")


if __name__ == "__main__":
    sys.exit(main())
