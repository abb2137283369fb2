"""Core domain models used across layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union


@dataclass(slots=True)
class LLMToolCall:
    """Tool invocation returned by an LLM provider."""

    name: str
    arguments: dict[str, Any]
    call_id: str | None = None


@dataclass(slots=True)
class LLMResponse:
    """Result from an LLM generation request."""

    content: str
    tool_calls: list[LLMToolCall] = field(default_factory=list)
    raw: dict[str, Any] | None = None


@dataclass(slots=True)
class FunctionCallRequest:
    """A function call decided by the model, not yet validated."""

    name: str
    arguments: dict[str, Any]
    call_id: str | None = None

    @classmethod
    def from_tool_call(cls, tool_call: LLMToolCall) -> FunctionCallRequest:
        return cls(name=tool_call.name, arguments=dict(tool_call.arguments), call_id=tool_call.call_id)


@dataclass(frozen=True, slots=True)
class NotFound:
    """Lookup outcome for an entity with no stored record."""

    entity: str

    def to_payload(self) -> dict[str, str]:
        return {
            "status": "not_found",
            "entity": self.entity,
            "message": f"No data is available for '{self.entity}'.",
        }


FunctionResult = Union[dict[str, Any], NotFound]


def result_payload(result: FunctionResult) -> dict[str, Any]:
    """Shape a function result for the function-role message sent to the model."""

    if isinstance(result, NotFound):
        return result.to_payload()
    return {"status": "ok", "data": result}
