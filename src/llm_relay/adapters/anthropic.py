"""Anthropic adapter for pure request/response transformations."""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Optional, Sequence

from anthropic.types import Message as AnthropicMessage

from llm_relay.adapters.base import TOOL_CALL_PLACEHOLDER, dump_result, field_of, parse_arguments
from llm_relay.types import (
    GenerationOptions,
    GenerationOutcome,
    Message,
    Role,
    ToolCall,
    ToolDescriptor,
    ToolResult,
)


class AnthropicRequestAdapter:
    """Adapter for converting between the shared model and the Messages API."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or logging.getLogger(__name__)

    def build_tools(self, tools: Sequence[ToolDescriptor]) -> list[dict[str, Any]]:
        """Anthropic rejects a null ``required``, so it defaults to ``[]``."""
        return [
            {
                "name": tool.name,
                "description": tool.description,
                "input_schema": {
                    "type": "object",
                    "properties": tool.properties,
                    "required": tool.required,
                },
            }
            for tool in tools
        ]

    def tools_from_provider(self, native: Sequence[Mapping[str, Any]]) -> list[ToolDescriptor]:
        return [
            ToolDescriptor(
                name=tool["name"],
                description=tool.get("description", ""),
                input_schema=dict(tool.get("input_schema") or {"type": "object", "properties": {}}),
            )
            for tool in native
        ]

    def build_messages(self, messages: Sequence[Message]) -> list[dict[str, Any]]:
        """Convert shared messages to Anthropic's format.

        Anthropic has no system role inside the turn list, so ``system``
        messages are sent as ``user`` turns. This loses the distinction but
        keeps the content in order. Plain tool-output messages are sent as user
        turns tagged with the tool's name.
        """
        anthropic_messages: list[dict[str, Any]] = []
        for msg in messages:
            if msg.role is Role.SYSTEM:
                anthropic_messages.append({"role": "user", "content": msg.content})
            elif msg.role is Role.TOOL:
                tag = f"[tool {msg.name}] " if msg.name else ""
                anthropic_messages.append({"role": "user", "content": f"{tag}{msg.content}"})
            else:
                anthropic_messages.append({"role": msg.role.value, "content": msg.content})
        return anthropic_messages

    def build_params(self, options: GenerationOptions) -> dict[str, Any]:
        """Convert resolved options to Messages API keyword arguments."""
        return options.as_dict(exclude_none=True)

    def text_from(self, raw: AnthropicMessage) -> str:
        """Text blocks joined with a single space, in response order."""
        parts = [
            field_of(block, "text") or ""
            for block in field_of(raw, "content") or []
            if field_of(block, "type") == "text"
        ]
        return " ".join(parts).strip()

    def from_provider(self, raw: AnthropicMessage) -> GenerationOutcome:
        """Convert an Anthropic response to a GenerationOutcome.

        ``tool_use`` blocks without a usable name are dropped.
        """
        text = self.text_from(raw)
        tool_blocks = [
            block for block in field_of(raw, "content") or [] if field_of(block, "type") == "tool_use"
        ]
        calls: list[ToolCall] = []
        for block in tool_blocks:
            name = field_of(block, "name")
            if not name:
                self.logger.warning("Dropping Anthropic tool_use block without a name: %r", block)
                continue
            calls.append(
                ToolCall(
                    name=name,
                    arguments=parse_arguments(field_of(block, "input"), name, self.logger),
                    id=field_of(block, "id"),
                )
            )

        if calls:
            return GenerationOutcome.calls(calls)
        if tool_blocks and not text:
            return GenerationOutcome.text(TOOL_CALL_PLACEHOLDER)
        return GenerationOutcome.text(text)

    def assistant_message_from(self, calls: Sequence[ToolCall]) -> dict[str, Any]:
        """The assistant turn that requested ``calls``, as Anthropic expects to see it again."""
        return {
            "role": "assistant",
            "content": [
                {"type": "tool_use", "id": call.id, "name": call.name, "input": call.arguments}
                for call in calls
            ],
        }

    def tool_result_messages(
        self, results: Sequence[ToolResult], issued: Sequence[ToolCall] = ()
    ) -> list[dict[str, Any]]:
        """
        Correlated results go back as ``tool_result`` blocks after the assistant
        turn that requested them. A result without a correlation id cannot be
        attached to a ``tool_use`` block and is sent as a JSON user turn naming
        the tool instead.
        """
        correlated = [r for r in results if r.correlation_id]
        loose = [r for r in results if not r.correlation_id]

        messages: list[dict[str, Any]] = []
        if correlated:
            by_id = {call.id: call for call in issued if call.id}
            calls = [
                by_id.get(r.correlation_id) or ToolCall(name=r.name, arguments={}, id=r.correlation_id)
                for r in correlated
            ]
            messages.append(self.assistant_message_from(calls))
            messages.append(
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "tool_result",
                            "tool_use_id": r.correlation_id,
                            "content": dump_result(r.result),
                        }
                        for r in correlated
                    ],
                }
            )
        for r in loose:
            messages.append(
                {
                    "role": "user",
                    "content": json.dumps(
                        {"type": "tool_result", "name": r.name, "content": dump_result(r.result)}
                    ),
                }
            )
        return messages
