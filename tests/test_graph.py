"""
Tests for the workflow graph.
"""

import pytest

from wren_agent.errors import (
    AdapterValidationError,
    ConfigurationError,
    NodeExecutionError,
    RecursionLimitExceeded,
)
from wren_agent.workflow import AgentDescriptor, Node, WorkflowGraph, WorkflowState
from wren_agent.workflow.graph import next_node, route_after_tester


class StepNode:
    """Node double that appends one assistant message per visit."""

    def __init__(self, name: str, error: Exception | None = None):
        self.name = name
        self.description = f"{name} node"
        self.error = error
        self.visits = 0

    async def invoke(self, state: WorkflowState) -> WorkflowState:
        self.visits += 1
        if self.error is not None:
            raise self.error
        return state.with_assistant_message(f"{self.name} {self.visits}")


class VerdictNode(StepNode):
    """Tester double that pops its verdicts in order, repeating the last one."""

    def __init__(self, verdicts: list[bool]):
        super().__init__("tester")
        self.verdicts = list(verdicts)

    async def invoke(self, state: WorkflowState) -> WorkflowState:
        state = await super().invoke(state)
        verdict = self.verdicts.pop(0) if len(self.verdicts) > 1 else self.verdicts[0]
        return state.with_evaluation(verdict)


def build_graph(tester: StepNode, coder: StepNode | None = None, limit: int = 10) -> WorkflowGraph:
    return WorkflowGraph(
        planner=AgentDescriptor.of(StepNode("planner")),
        coder=AgentDescriptor.of(coder or StepNode("coder")),
        tester=AgentDescriptor.of(tester),
        recursion_limit=limit,
    )


def test_route_after_tester_reads_verdict():
    """Test that the tester edge depends only on eval_passed."""
    assert route_after_tester(WorkflowState(eval_passed=True)) is True
    assert route_after_tester(WorkflowState(eval_passed=False)) is False


def test_transitions():
    """Test the fixed and conditional edges."""
    state = WorkflowState()

    assert next_node(Node.START, state) is Node.PLANNER
    assert next_node(Node.PLANNER, state) is Node.CODER
    assert next_node(Node.CODER, state) is Node.TESTER
    assert next_node(Node.TESTER, state) is Node.CODER
    assert next_node(Node.TESTER, WorkflowState(eval_passed=True)) is Node.END


def test_duplicate_agent_names_rejected():
    """Test that agent names must be unique within a graph."""
    with pytest.raises(ConfigurationError):
        WorkflowGraph(
            planner=AgentDescriptor.of(StepNode("same")),
            coder=AgentDescriptor.of(StepNode("same")),
            tester=AgentDescriptor.of(StepNode("tester")),
        )


def test_non_positive_recursion_limit_rejected():
    """Test that the iteration ceiling must be at least one."""
    with pytest.raises(ConfigurationError):
        build_graph(VerdictNode([True]), limit=0)


@pytest.mark.asyncio
async def test_first_pass_success():
    """Test planner, coder, tester, then END when tests pass immediately."""
    graph = build_graph(VerdictNode([True]))

    final = await graph.ainvoke(WorkflowState.initial("add a feature"))

    assert final.eval_passed is True
    assert graph.last_run.visits == 3
    assert graph.last_run.path == [Node.PLANNER, Node.CODER, Node.TESTER]


@pytest.mark.asyncio
async def test_retries_until_tester_passes():
    """Test the coder/tester cycle repeats until the tester passes."""
    tester = VerdictNode([False, False, True])
    graph = build_graph(tester, limit=10)

    visited = [node async for node, _ in graph.astream(WorkflowState.initial("fix the bug"))]

    assert visited == [
        Node.PLANNER,
        Node.CODER, Node.TESTER,
        Node.CODER, Node.TESTER,
        Node.CODER, Node.TESTER,
    ]
    assert graph.last_run.visits == 7
    assert tester.visits == 3


@pytest.mark.asyncio
async def test_recursion_limit_counts_visits():
    """Test that an always-failing tester stops after exactly the limit of visits."""
    graph = build_graph(VerdictNode([False]), limit=5)

    with pytest.raises(RecursionLimitExceeded) as exc_info:
        await graph.ainvoke(WorkflowState.initial("impossible"))

    error = exc_info.value
    assert error.limit == 5
    assert error.node == "coder"
    assert error.state is not None
    assert error.state.eval_passed is False
    assert graph.last_run.visits == 5


@pytest.mark.asyncio
async def test_adapter_error_propagates_with_state():
    """Test that an agent's validation error reaches the caller with the last state."""
    coder = StepNode("coder", error=AdapterValidationError("coder", "bad output"))
    graph = build_graph(VerdictNode([True]), coder=coder)

    with pytest.raises(AdapterValidationError) as exc_info:
        await graph.ainvoke(WorkflowState.initial("task"))

    error = exc_info.value
    assert error.node == "coder"
    assert error.state is not None
    assert error.state.messages[-1].content == "planner 1"


@pytest.mark.asyncio
async def test_unexpected_error_wrapped():
    """Test that other node failures become NodeExecutionError with the cause chained."""
    cause = RuntimeError("disk full")
    graph = build_graph(VerdictNode([True]), coder=StepNode("coder", error=cause))

    with pytest.raises(NodeExecutionError) as exc_info:
        await graph.ainvoke(WorkflowState.initial("task"))

    assert exc_info.value.node == "coder"
    assert exc_info.value.__cause__ is cause


@pytest.mark.asyncio
async def test_history_only_grows_between_nodes():
    """Test that every yielded state extends the previous one."""
    graph = build_graph(VerdictNode([False, True]))
    previous = WorkflowState.initial("grow")

    async for _, state in graph.astream(previous):
        assert state.messages[:len(previous.messages)] == previous.messages
        assert len(state.messages) > len(previous.messages)
        previous = state
