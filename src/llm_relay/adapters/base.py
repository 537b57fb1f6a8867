"""Shared pieces of the request adapters."""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Protocol, Sequence

from llm_relay.types import (
    GenerationOptions,
    GenerationOutcome,
    Message,
    ToolCall,
    ToolDescriptor,
    ToolResult,
)

__all__ = ["RequestAdapter", "TOOL_CALL_PLACEHOLDER", "dump_result", "field_of", "parse_arguments"]

_logger = logging.getLogger(__name__)
_logger.addHandler(logging.NullHandler())

# Returned when the backend signalled a tool call but none of the calls was usable
# and it produced no text either.
TOOL_CALL_PLACEHOLDER = "(tool call expected)"


class RequestAdapter(Protocol):
    """Protocol for adapting between the shared model and one backend's wire shapes."""

    def build_tools(self, tools: Sequence[ToolDescriptor]) -> list[dict[str, Any]]:
        """Convert tool descriptors to the backend's native tool shape."""
        ...

    def tools_from_provider(self, native: Sequence[Mapping[str, Any]]) -> list[ToolDescriptor]:
        """Convert native tool definitions back to descriptors."""
        ...

    def build_messages(self, messages: Sequence[Message]) -> list[dict[str, Any]]:
        """Convert shared messages to the backend's message list."""
        ...

    def build_params(self, options: GenerationOptions) -> dict[str, Any]:
        """Convert resolved options to request keyword arguments."""
        ...

    def from_provider(self, raw: Any) -> GenerationOutcome:
        """Convert a raw backend response to a GenerationOutcome."""
        ...

    def text_from(self, raw: Any) -> str:
        """Extract the trimmed text answer from a raw backend response."""
        ...

    def tool_result_messages(
        self, results: Sequence[ToolResult], issued: Sequence[ToolCall] = ()
    ) -> list[dict[str, Any]]:
        """Messages that feed ``results`` back to the backend."""
        ...


def field_of(obj: Any, name: str, default: Any = None) -> Any:
    """Read ``name`` from an SDK model or a plain mapping."""
    if isinstance(obj, Mapping):
        return obj.get(name, default)
    return getattr(obj, name, default)


def parse_arguments(raw_args: Any, tool_name: str, logger: logging.Logger | None = None) -> dict[str, Any]:
    """
    Turn raw tool-call arguments into a dict, never raising.

    Models occasionally emit malformed JSON; that yields ``{}`` so the
    conversation can carry on.
    """
    log = logger or _logger
    if raw_args is None or raw_args == "":
        return {}
    if isinstance(raw_args, Mapping):
        return dict(raw_args)
    if isinstance(raw_args, str):
        try:
            parsed = json.loads(raw_args)
        except json.JSONDecodeError as exc:
            log.warning("Bad JSON in arguments for tool '%s': %r", tool_name, raw_args, exc_info=exc)
            return {}
        if isinstance(parsed, dict):
            return parsed
        log.warning("Arguments for tool '%s' are not a JSON object: %r", tool_name, raw_args)
        return {}
    log.warning("Unsupported argument payload for tool '%s': %r", tool_name, type(raw_args).__name__)
    return {}


def dump_result(result: Any) -> str:
    """Serialize a tool result for the wire; strings pass through untouched."""
    if isinstance(result, str):
        return result
    return json.dumps(result, default=str)
