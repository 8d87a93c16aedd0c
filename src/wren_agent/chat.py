"""
Workflow entry point: wires models, tools, agents and gateways into the
plan/code/test graph and runs one query at a time.
"""

from dataclasses import dataclass, field

import structlog

from .agents import CoderAgent, PlannerAgent, TesterAgent
from .config import AGENT_NAMES, Settings
from .context.compression import CompressionPolicy, ContextBudget
from .errors import ConfigurationError
from .llm import BaseLLM, LLMMessage, create_llm
from .tools import FileManager, ShellConfig, ShellExecutor, Tool, create_file_tools, create_shell_tools
from .workflow import AgentDescriptor, GenerationGateway, WorkflowGraph, WorkflowState

logger = structlog.get_logger()


@dataclass
class RunConfig:
    """Caller-supplied configuration for a Chat, validated on construction."""

    models: dict[str, BaseLLM]
    policy: CompressionPolicy = field(default_factory=CompressionPolicy)
    recursion_limit: int = 25
    working_dir: str = "."
    max_tool_iterations: int = 10
    coder_max_turns: int = 5
    summarize_context: bool = True
    shell_timeout_seconds: int = 120

    def __post_init__(self) -> None:
        missing = [name for name in AGENT_NAMES if self.models.get(name) is None]
        if missing:
            raise ConfigurationError(f"No model bound for agent(s): {', '.join(missing)}")

        for name in ("recursion_limit", "max_tool_iterations", "coder_max_turns", "shell_timeout_seconds"):
            if getattr(self, name) < 1:
                raise ConfigurationError(f"{name} must be a positive integer")

    @classmethod
    def from_settings(cls, settings: Settings) -> "RunConfig":
        """Build model handles for every agent from environment settings.

        Agents whose resolved LLM configuration is identical share one client.
        """
        models: dict[str, BaseLLM] = {}
        clients: dict[str, BaseLLM] = {}

        for agent in AGENT_NAMES:
            llm_config = settings.get_llm_config(agent)
            key = llm_config.model_dump_json()
            if key not in clients:
                clients[key] = create_llm(llm_config)
            models[agent] = clients[key]

        policy = CompressionPolicy(
            max_tokens=settings.compression_max_tokens,
            target_tokens=settings.compression_target_tokens,
            max_messages=settings.compression_max_messages,
            enable_chunking=settings.compression_enable_chunking,
            max_chunk_tokens=settings.compression_max_chunk_tokens,
        )

        return cls(
            models=models,
            policy=policy,
            recursion_limit=settings.recursion_limit,
            working_dir=settings.workspace_dir,
            max_tool_iterations=settings.max_tool_iterations,
            coder_max_turns=settings.coder_max_turns,
            summarize_context=settings.summarize_context,
            shell_timeout_seconds=settings.shell_timeout_seconds,
        )


def default_tools(working_dir: str, shell_timeout_seconds: int = 120) -> dict[str, list[Tool]]:
    """Tool sets per agent: read-only planner, read/write coder, read/run tester."""
    files = FileManager(working_dir)
    shell = ShellExecutor(ShellConfig(workspace_dir=working_dir, timeout_seconds=shell_timeout_seconds))

    return {
        "planner": create_file_tools(files, writable=False),
        "coder": create_file_tools(files) + create_shell_tools(shell),
        "tester": create_file_tools(files, writable=False) + create_shell_tools(shell),
    }


class Chat:
    """Runs user queries through the planner -> coder -> tester workflow.

    The message history is carried over from one query to the next.
    """

    def __init__(
        self,
        config: RunConfig,
        tools: dict[str, list[Tool]] | None = None,
    ):
        self.config = config
        if tools is None:
            tools = default_tools(config.working_dir, config.shell_timeout_seconds)

        self.gateways: dict[str, GenerationGateway] = {}
        for agent in self._create_agents(config, tools):
            summarizer = config.models[agent.name] if config.summarize_context else None
            self.gateways[agent.name] = GenerationGateway(agent, config.policy, summarizer)

        self.graph = WorkflowGraph(
            planner=AgentDescriptor.of(self.gateways["planner"]),
            coder=AgentDescriptor.of(self.gateways["coder"]),
            tester=AgentDescriptor.of(self.gateways["tester"]),
            recursion_limit=config.recursion_limit,
        )
        self.message_history: list[LLMMessage] = []

    @classmethod
    def from_settings(cls, settings: Settings) -> "Chat":
        return cls(RunConfig.from_settings(settings))

    @staticmethod
    def _create_agents(config: RunConfig, tools: dict[str, list[Tool]]):
        def budget(agent: str) -> ContextBudget:
            summarizer = config.models[agent] if config.summarize_context else None
            return ContextBudget(policy=config.policy, summarizer=summarizer)

        yield PlannerAgent(
            llm=config.models["planner"],
            working_dir=config.working_dir,
            tools=tools.get("planner", []),
            max_tool_iterations=config.max_tool_iterations,
            budget=budget("planner"),
        )
        yield CoderAgent(
            llm=config.models["coder"],
            working_dir=config.working_dir,
            tools=tools.get("coder", []),
            max_tool_iterations=config.max_tool_iterations,
            max_turns=config.coder_max_turns,
            budget=budget("coder"),
        )
        yield TesterAgent(
            llm=config.models["tester"],
            working_dir=config.working_dir,
            tools=tools.get("tester", []),
            max_tool_iterations=config.max_tool_iterations,
            budget=budget("tester"),
        )

    async def query(self, user_text: str) -> WorkflowState:
        """Run one workflow for ``user_text`` and return the final state.

        Raises:
            WorkflowError: The run failed; the error names the node and
                carries the last-known state
        """
        state = WorkflowState.initial(user_text, self.message_history)
        logger.info("Workflow started", request=user_text[:200], history=len(self.message_history))

        async for node, state in self.graph.astream(state):
            logger.debug(
                "Node completed",
                node=node.value,
                messages=state.message_count,
                eval_passed=state.eval_passed,
            )

        self.message_history = list(state.messages)
        return state

    def reset(self) -> None:
        """Forget the message history carried between queries."""
        self.message_history = []
