"""Chat-side types: messages, generation options and outcomes."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from enum import StrEnum
from typing import Any, Mapping, Optional

from llm_relay.types.tool import ToolCall


class Role(StrEnum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL = "tool"


# Older callers still send OpenAI's legacy "function" role for tool output.
_ROLE_ALIASES: dict[str, Role] = {"function": Role.TOOL, "tool-result": Role.TOOL}


@dataclass(slots=True)
class Message:
    """One turn of a conversation. Order in a list is the turn history.

    ``name`` is only meaningful for tool-result messages, where it names the
    tool whose output ``content`` holds.
    """

    role: Role
    content: str
    name: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.role, Role):
            role = str(self.role)
            self.role = _ROLE_ALIASES.get(role) or Role(role)
        if self.content is None:
            self.content = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Message":
        return cls(
            role=data.get("role", Role.USER),
            content=data.get("content") or "",
            name=data.get("name"),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"role": self.role.value, "content": self.content}
        if self.name:
            out["name"] = self.name
        return out


@dataclass(frozen=True)
class GenerationOptions:
    """Sampling parameters. Every field is optional; providers fill their own defaults."""

    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    stop_sequences: Optional[list[str]] = None

    def as_dict(self, exclude_none: bool = True) -> dict[str, Any]:
        """
        Convert to dictionary, optionally excluding None values.

        Args:
            exclude_none: If True, exclude fields with None values

        Returns:
            Dictionary representation of the options
        """
        result = asdict(self)
        if exclude_none:
            return {k: v for k, v in result.items() if v is not None}
        return result

    def with_defaults(self, **defaults: Any) -> "GenerationOptions":
        """Return a new instance where unset fields take the given defaults."""
        missing = {
            k: v for k, v in defaults.items() if getattr(self, k) is None and v is not None
        }
        return replace(self, **missing) if missing else self


@dataclass(slots=True)
class GenerationOutcome:
    """Either a final text ``response`` or a list of ``tool_calls``, never both."""

    response: Optional[str] = None
    tool_calls: list[ToolCall] = field(default_factory=list)

    def __post_init__(self) -> None:
        # Calls win when a backend produced both.
        if self.tool_calls:
            self.response = None
        elif self.response is None:
            self.response = ""

    @classmethod
    def text(cls, response: str) -> "GenerationOutcome":
        return cls(response=response)

    @classmethod
    def calls(cls, tool_calls: list[ToolCall]) -> "GenerationOutcome":
        return cls(tool_calls=list(tool_calls))

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)

    def to_dict(self) -> dict[str, Any]:
        if self.tool_calls:
            return {"toolCalls": [tc.to_dict() for tc in self.tool_calls]}
        return {"response": self.response}
