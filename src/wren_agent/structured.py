"""
Structured-response extraction.

A structured response is first looked for in the ``submit_response`` tool
call the agent was offered. If the model answered in free text instead, the
last fenced JSON block (or a bare JSON object) is parsed. Both stages
validate against a pydantic model, and failures come back as a value rather
than an exception so callers decide how fatal they are.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from .errors import AdapterValidationError
from .llm.base import LLMResponse, ToolDefinition

T = TypeVar("T", bound=BaseModel)

SUBMIT_RESPONSE_TOOL = "submit_response"

_JSON_FENCE_PATTERN = re.compile(r"```(?:json)?\s*\n(.*?)\n?\s*```", re.DOTALL)
_JSON_OBJECT_PATTERN = re.compile(r"\{.*\}", re.DOTALL)


@dataclass
class Extraction(Generic[T]):
    """Outcome of extracting a structured value: either ``value`` or ``error``."""

    value: T | None = None
    error: str | None = None
    raw: Any = None
    source: str | None = None

    @property
    def ok(self) -> bool:
        return self.value is not None

    def unwrap(self, adapter: str) -> T:
        """Return the value or raise AdapterValidationError for ``adapter``."""
        if self.value is None:
            raise AdapterValidationError(
                adapter,
                self.error or "no structured response",
                raw_content=self.raw,
            )
        return self.value


def response_tool(model: type[BaseModel], description: str) -> ToolDefinition:
    """Tool definition whose arguments are the structured response."""
    return ToolDefinition(
        name=SUBMIT_RESPONSE_TOOL,
        description=description,
        parameters=model.model_json_schema(),
    )


def parse_json_block(text: str) -> Any:
    """Parse JSON from free text.

    Tries, in order: the whole text, fenced code blocks (last one first), and
    the outermost ``{...}`` span. Raises ValueError if nothing parses.
    """
    stripped = text.strip()
    candidates = [stripped]
    candidates.extend(reversed(_JSON_FENCE_PATTERN.findall(stripped)))
    match = _JSON_OBJECT_PATTERN.search(stripped)
    if match:
        candidates.append(match.group(0))

    for candidate in candidates:
        try:
            return json.loads(candidate)
        except (json.JSONDecodeError, TypeError):
            continue

    raise ValueError("no JSON object found in text")


def _validate(model: type[T], data: Any) -> tuple[T | None, str | None]:
    try:
        return model.model_validate(data), None
    except ValidationError as e:
        return None, f"{model.__name__} validation failed: {e.error_count()} error(s): {e.errors()[0]['msg']}"


def extract_structured(response: LLMResponse, model: type[T]) -> Extraction[T]:
    """Extract a ``model`` instance from an LLM response."""
    errors: list[str] = []

    for call in response.tool_calls:
        if call.name != SUBMIT_RESPONSE_TOOL:
            continue
        value, error = _validate(model, call.arguments)
        if value is not None:
            return Extraction(value=value, raw=call.arguments, source="tool_call")
        errors.append(error or "invalid tool arguments")

    if response.content.strip():
        try:
            data = parse_json_block(response.content)
        except ValueError as e:
            errors.append(str(e))
        else:
            value, error = _validate(model, data)
            if value is not None:
                return Extraction(value=value, raw=response.content, source="text")
            errors.append(error or "invalid JSON payload")
    else:
        errors.append("empty response")

    raw: Any = response.content
    if not raw and response.tool_calls:
        raw = [call.arguments for call in response.tool_calls]

    return Extraction(error="; ".join(errors), raw=raw)
