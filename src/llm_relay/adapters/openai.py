"""OpenAI adapter for pure request/response transformations."""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Optional, Sequence

from openai.types.chat import ChatCompletion

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

UNKNOWN_FUNCTION = "unknown_function"


class OpenAIRequestAdapter:
    """Adapter for converting between the shared model and Chat Completions."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or logging.getLogger(__name__)

    def build_tools(self, tools: Sequence[ToolDescriptor]) -> list[dict[str, Any]]:
        """Wrap each descriptor in OpenAI's ``function`` tool envelope."""
        return [
            {
                "type": "function",
                "function": {
                    "name": tool.name,
                    "description": tool.description,
                    "parameters": dict(tool.input_schema),
                },
            }
            for tool in tools
        ]

    def tools_from_provider(self, native: Sequence[Mapping[str, Any]]) -> list[ToolDescriptor]:
        descriptors = []
        for tool in native:
            func = tool.get("function", tool)
            descriptors.append(
                ToolDescriptor(
                    name=func["name"],
                    description=func.get("description", ""),
                    input_schema=dict(func.get("parameters") or {"type": "object", "properties": {}}),
                )
            )
        return descriptors

    def build_messages(self, messages: Sequence[Message]) -> list[dict[str, Any]]:
        """Convert shared messages to OpenAI's expected format.

        Tool output carried as a plain message becomes a legacy ``function``
        message; it has no call id to correlate with.
        """
        openai_messages: list[dict[str, Any]] = []
        for msg in messages:
            if msg.role is Role.TOOL:
                openai_messages.append(
                    {
                        "role": "function",
                        "name": msg.name or UNKNOWN_FUNCTION,
                        "content": msg.content,
                    }
                )
                continue
            openai_messages.append({"role": msg.role.value, "content": msg.content})
        return openai_messages

    def build_params(self, options: GenerationOptions) -> dict[str, Any]:
        """Convert resolved options to Chat Completions keyword arguments."""
        params = options.as_dict(exclude_none=True)
        stop = params.pop("stop_sequences", None)
        if stop:
            params["stop"] = stop
        return params

    def text_from(self, raw: ChatCompletion) -> str:
        choices = field_of(raw, "choices") or []
        if not choices:
            return ""
        message = field_of(choices[0], "message")
        content = field_of(message, "content") if message is not None else None
        return (content or "").strip()

    def from_provider(self, raw: ChatCompletion) -> GenerationOutcome:
        """Convert an OpenAI response to a GenerationOutcome.

        ``tool_calls`` are preferred; the legacy ``function_call`` field is
        honoured when they are absent. Calls without a usable name are dropped.
        """
        text = self.text_from(raw)
        choices = field_of(raw, "choices") or []
        message = field_of(choices[0], "message") if choices else None
        if message is None:
            return GenerationOutcome.text(text)

        signalled = False
        calls: list[ToolCall] = []

        raw_calls = field_of(message, "tool_calls") or []
        if raw_calls:
            signalled = True
            for tc in raw_calls:
                function = field_of(tc, "function")
                name = field_of(function, "name") if function is not None else None
                if not name:
                    self.logger.warning("Dropping OpenAI tool call without a name: %r", tc)
                    continue
                calls.append(
                    ToolCall(
                        name=name,
                        arguments=parse_arguments(field_of(function, "arguments"), name, self.logger),
                        id=field_of(tc, "id"),
                    )
                )
        else:
            fc = field_of(message, "function_call")
            if fc is not None:
                signalled = True
                name = field_of(fc, "name")
                if name:
                    calls.append(
                        ToolCall(
                            name=name,
                            arguments=parse_arguments(field_of(fc, "arguments"), name, self.logger),
                        )
                    )

        if calls:
            return GenerationOutcome.calls(calls)
        if signalled and not text:
            return GenerationOutcome.text(TOOL_CALL_PLACEHOLDER)
        return GenerationOutcome.text(text)

    def assistant_message_from(self, calls: Sequence[ToolCall]) -> dict[str, Any]:
        """The assistant turn that requested ``calls``, in Chat Completions form."""
        return {
            "role": "assistant",
            "content": None,
            "tool_calls": [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {"name": call.name, "arguments": json.dumps(call.arguments)},
                }
                for call in calls
            ],
        }

    def tool_result_messages(
        self, results: Sequence[ToolResult], issued: Sequence[ToolCall] = ()
    ) -> list[dict[str, Any]]:
        """
        Correlated results become ``tool`` messages answering an assistant
        ``tool_calls`` turn, rebuilt from ``issued`` where possible. A result
        without a correlation id falls back to a legacy ``function`` message
        tagged with the tool's name.
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
            messages.extend(
                {"role": "tool", "tool_call_id": r.correlation_id, "content": dump_result(r.result)}
                for r in correlated
            )
        messages.extend(
            {
                "role": "function",
                "name": r.name or UNKNOWN_FUNCTION,
                "content": json.dumps(r.result, default=str),
            }
            for r in loose
        )
        return messages
