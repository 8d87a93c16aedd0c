"""
Workflow graph: the plan -> code -> test state machine.

    START -> PLANNER -> CODER -> TESTER -(passed)-> END
                          ^         |
                          +-(failed)+

The graph visits one node at a time and owns the iteration ceiling; it is
the only guard against a tester that never passes.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Callable, Protocol

import structlog

from ..errors import (
    ConfigurationError,
    NodeExecutionError,
    RecursionLimitExceeded,
    WorkflowError,
)
from .state import WorkflowState

logger = structlog.get_logger()

DEFAULT_RECURSION_LIMIT = 25


class Node(str, Enum):
    START = "start"
    PLANNER = "planner"
    CODER = "coder"
    TESTER = "tester"
    END = "end"


class Runnable(Protocol):
    """Anything a node can execute, typically a GenerationGateway."""

    async def invoke(self, state: WorkflowState) -> WorkflowState: ...


@dataclass(frozen=True)
class AgentDescriptor:
    """A node's identity and behaviour. The graph only reads it."""

    name: str
    description: str
    runnable: Runnable

    @classmethod
    def of(cls, runnable: Any) -> "AgentDescriptor":
        """Describe a runnable that carries its own name and description."""
        return cls(name=runnable.name, description=runnable.description, runnable=runnable)


def route_after_tester(state: WorkflowState) -> bool:
    """Conditional edge out of TESTER. Pure: reads only ``eval_passed``."""
    return state.eval_passed


# (node, predicate result) -> next node; None marks an unconditional edge
TRANSITIONS: dict[tuple[Node, bool | None], Node] = {
    (Node.START, None): Node.PLANNER,
    (Node.PLANNER, None): Node.CODER,
    (Node.CODER, None): Node.TESTER,
    (Node.TESTER, False): Node.CODER,
    (Node.TESTER, True): Node.END,
}

CONDITIONS: dict[Node, Callable[[WorkflowState], bool]] = {
    Node.TESTER: route_after_tester,
}


def next_node(node: Node, state: WorkflowState) -> Node:
    """Look up the successor of ``node`` for ``state``."""
    condition = CONDITIONS.get(node)
    key = (node, condition(state) if condition else None)
    return TRANSITIONS[key]


@dataclass
class GraphRun:
    """Bookkeeping for one run, kept for diagnostics."""

    visits: int = 0
    path: list[Node] = field(default_factory=list)


class WorkflowGraph:
    """Drives a state through planner, coder and tester nodes."""

    def __init__(
        self,
        planner: AgentDescriptor,
        coder: AgentDescriptor,
        tester: AgentDescriptor,
        recursion_limit: int = DEFAULT_RECURSION_LIMIT,
    ):
        if recursion_limit < 1:
            raise ConfigurationError("recursion_limit must be at least 1")

        names = [planner.name, coder.name, tester.name]
        if len(set(names)) != len(names):
            raise ConfigurationError(f"Agent names must be unique within a graph: {names}")

        self.nodes: dict[Node, AgentDescriptor] = {
            Node.PLANNER: planner,
            Node.CODER: coder,
            Node.TESTER: tester,
        }
        self.recursion_limit = recursion_limit
        self.last_run: GraphRun | None = None

    async def astream(self, state: WorkflowState) -> AsyncIterator[tuple[Node, WorkflowState]]:
        """Run the graph, yielding ``(node, state)`` after every node visit.

        Raises:
            RecursionLimitExceeded: A further visit would exceed the ceiling
            AdapterValidationError: An agent produced an invalid update
            NodeExecutionError: A node failed for any other reason
        """
        run = GraphRun()
        self.last_run = run
        current = next_node(Node.START, state)

        while current is not Node.END:
            descriptor = self.nodes[current]

            if run.visits >= self.recursion_limit:
                logger.error(
                    "Recursion limit reached",
                    limit=self.recursion_limit,
                    next_node=descriptor.name,
                )
                raise RecursionLimitExceeded(self.recursion_limit, node=descriptor.name, state=state)

            run.visits += 1
            run.path.append(current)
            logger.info("Entering node", node=descriptor.name, visit=run.visits)

            try:
                state = await descriptor.runnable.invoke(state)
            except WorkflowError as e:
                raise e.attach(descriptor.name, state)
            except Exception as e:
                logger.error("Node failed", node=descriptor.name, error=str(e))
                raise NodeExecutionError(
                    f"{descriptor.name} failed: {e}",
                    node=descriptor.name,
                    state=state,
                ) from e

            yield current, state
            current = next_node(current, state)

        logger.info("Workflow finished", visits=run.visits)

    async def ainvoke(self, state: WorkflowState) -> WorkflowState:
        """Run the graph to END and return the final state."""
        async for _, state in self.astream(state):
            pass
        return state
