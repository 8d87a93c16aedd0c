"""
Workflow module - state, generation gateway and the plan/code/test graph.
"""

from .state import PlanStep, WorkflowState
from .gateway import GenerationGateway
from .graph import (
    AgentDescriptor,
    GraphRun,
    Node,
    WorkflowGraph,
    next_node,
    route_after_tester,
)

__all__ = [
    "PlanStep",
    "WorkflowState",
    "GenerationGateway",
    "AgentDescriptor",
    "GraphRun",
    "Node",
    "WorkflowGraph",
    "next_node",
    "route_after_tester",
]
