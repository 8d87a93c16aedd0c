"""
Agents module - the planner, coder and tester roles.

Includes:
- BaseAgent: tool loop and structured-response plumbing shared by all roles
- PlannerAgent: drafts the plan, read-only tools
- CoderAgent: implements the plan until it reports completion
- TesterAgent: runs the checks and sets the pass/fail verdict
"""

from .base import BaseAgent, Turn
from .coder import CoderAgent
from .planner import PlannerAgent, PlannerResponse
from .prompts import COMPLETION_SENTINEL
from .tester import TesterAgent, TesterResponse

__all__ = [
    "BaseAgent",
    "Turn",
    "CoderAgent",
    "PlannerAgent",
    "PlannerResponse",
    "TesterAgent",
    "TesterResponse",
    "COMPLETION_SENTINEL",
]
