"""
Provider‑neutral dataclasses for client‑side tool use.

They are intentionally minimal: everything provider‑specific lives in adapters.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from llm_relay.errors import ToolValidationError

__all__ = ["ToolDescriptor", "ToolCall", "ToolResult"]


@dataclass(frozen=True, slots=True)
class ToolDescriptor:
    """A named, schema-described capability the model may ask to invoke."""
    name: str
    description: str
    input_schema: dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ToolValidationError("Tool name must be a non-empty string")
        schema = self.input_schema
        if not isinstance(schema, Mapping) or schema.get("type") != "object":
            raise ToolValidationError(
                f"Tool '{self.name}' input_schema must be a JSON-Schema object "
                "with type 'object'"
            )

    @property
    def properties(self) -> dict[str, Any]:
        return dict(self.input_schema.get("properties") or {})

    @property
    def required(self) -> list[str]:
        return list(self.input_schema.get("required") or [])

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ToolDescriptor":
        """Build from the wire form; ``inputSchema`` is accepted as an alias."""
        schema = data.get("input_schema", data.get("inputSchema"))
        if schema is None:
            schema = {"type": "object", "properties": {}}
        return cls(
            name=data.get("name", ""),
            description=data.get("description", ""),
            input_schema=dict(schema),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": dict(self.input_schema),
        }


@dataclass(slots=True)
class ToolCall:
    """A model‑agnostic request emitted by the LLM to call a local tool."""
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    id: Optional[str] = None    # backend correlation id, when reported

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ToolCall":
        return cls(
            name=data.get("name", ""),
            arguments=dict(data.get("arguments") or {}),
            id=data.get("id"),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name, "arguments": self.arguments}
        if self.id is not None:
            out["id"] = self.id
        return out


@dataclass(slots=True)
class ToolResult:
    """Payload to send back to the LLM after the tool finished running."""
    name: str
    result: Any
    correlation_id: Optional[str] = None    # must match ToolCall.id when set

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ToolResult":
        """``tool_use_id`` and ``correlation_id`` are both accepted."""
        return cls(
            name=data.get("name", ""),
            result=data.get("result"),
            correlation_id=data.get("correlation_id", data.get("tool_use_id")),
        )

    @classmethod
    def for_call(cls, call: ToolCall, result: Any) -> "ToolResult":
        return cls(name=call.name, result=result, correlation_id=call.id)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name, "result": self.result}
        if self.correlation_id is not None:
            out["tool_use_id"] = self.correlation_id
        return out
