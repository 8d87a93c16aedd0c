"""
Error types for wren-agent.

Configuration errors are raised while objects are being built and never reach
the workflow graph. Workflow errors are raised while a run is in progress and
carry the node that failed together with the last-known state.
"""

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .workflow.state import WorkflowState


class WrenError(Exception):
    """Base class for all wren-agent errors."""


class ConfigurationError(WrenError):
    """Invalid or incomplete configuration detected at construction time."""


class ProviderNotFoundError(ConfigurationError):
    """No LLM implementation exists for the requested provider."""

    def __init__(self, provider: str):
        super().__init__(f"Cannot find provider {provider} to initialize LLM.")
        self.provider = provider


class WorkflowError(WrenError):
    """A workflow run terminated with a failure.

    Attributes:
        node: Name of the node that was executing when the run failed
        state: Last-known workflow state, for diagnostics
    """

    def __init__(
        self,
        message: str,
        node: str | None = None,
        state: "WorkflowState | None" = None,
    ):
        super().__init__(message)
        self.node = node
        self.state = state

    def attach(self, node: str, state: "WorkflowState") -> "WorkflowError":
        """Fill in node and state if the raiser did not know them."""
        if self.node is None:
            self.node = node
        if self.state is None:
            self.state = state
        return self


class AdapterValidationError(WorkflowError):
    """An agent adapter could not produce a valid state update."""

    def __init__(
        self,
        adapter: str,
        reason: str,
        raw_content: Any = None,
        state: "WorkflowState | None" = None,
    ):
        super().__init__(f"{adapter}: {reason}", node=adapter, state=state)
        self.adapter = adapter
        self.reason = reason
        self.raw_content = raw_content


class RecursionLimitExceeded(WorkflowError):
    """The graph hit its iteration ceiling before reaching END."""

    def __init__(
        self,
        limit: int,
        node: str | None = None,
        state: "WorkflowState | None" = None,
    ):
        super().__init__(
            f"Recursion limit of {limit} reached without hitting a stop condition",
            node=node,
            state=state,
        )
        self.limit = limit


class NodeExecutionError(WorkflowError):
    """A node raised an unexpected error; the original is chained as __cause__."""
