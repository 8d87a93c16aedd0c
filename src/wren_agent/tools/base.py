"""
Base types for agent tools.

A tool is a named async handler plus a parameter list. Agents never call
handlers directly: calls go through a ToolRegistry, and every outcome,
including a bad call from the model, comes back as a ToolResult.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from ..llm.base import ToolDefinition


@dataclass
class ToolResult:
    """Result from a tool execution."""

    success: bool
    output: str = ""
    data: Any = None
    error: str | None = None

    def to_message_content(self) -> str:
        """Text handed back to the model as the tool result."""
        return self.output if self.success else f"Error: {self.error}"


ToolHandler = Callable[..., Awaitable[ToolResult]]


@dataclass
class ToolParameter:
    """Definition of a tool parameter."""

    name: str
    param_type: str  # string, integer, boolean, array, object
    description: str
    required: bool = True
    default: Any = None
    enum: list[str] | None = None

    def to_schema(self) -> dict[str, Any]:
        schema: dict[str, Any] = {"type": self.param_type, "description": self.description}
        if self.enum:
            schema["enum"] = self.enum
        if self.default is not None:
            schema["default"] = self.default
        return schema


@dataclass
class Tool:
    """A named async handler the model can call."""

    name: str
    description: str
    parameters: list[ToolParameter] = field(default_factory=list)
    handler: ToolHandler | None = None

    @property
    def required(self) -> list[str]:
        return [p.name for p in self.parameters if p.required]

    def get_parameters_schema(self) -> dict[str, Any]:
        """JSON Schema for the handler's keyword arguments."""
        return {
            "type": "object",
            "properties": {p.name: p.to_schema() for p in self.parameters},
            "required": self.required,
        }

    def to_definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=self.description,
            parameters=self.get_parameters_schema(),
        )

    async def execute(self, **kwargs: Any) -> ToolResult:
        """Run the handler, dropping unknown arguments.

        A call missing a required argument is reported as a failed result.
        """
        if self.handler is None:
            return ToolResult(success=False, error=f"Tool '{self.name}' has no handler")

        missing = [name for name in self.required if name not in kwargs]
        if missing:
            return ToolResult(success=False, error=f"Missing required argument(s): {', '.join(missing)}")

        known = {p.name for p in self.parameters}
        return await self.handler(**{k: v for k, v in kwargs.items() if k in known})
