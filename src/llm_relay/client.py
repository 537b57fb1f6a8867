"""Typed client over any relay transport."""

from __future__ import annotations

import base64
import logging
from typing import Any, Mapping, Optional, Sequence

from llm_relay.errors import RelayRPCError
from llm_relay.params import normalize_options
from llm_relay.transport import Transport
from llm_relay.types import (
    GenerationOptions,
    GenerationOutcome,
    Message,
    ToolCall,
    ToolDescriptor,
    ToolResult,
)

__all__ = ["RelayClient"]

Options = GenerationOptions | Mapping[str, Any] | None


def _options(options: Options) -> Optional[dict[str, Any]]:
    if options is None:
        return None
    return normalize_options(options).as_dict()


def _outcome(result: Mapping[str, Any]) -> GenerationOutcome:
    calls = [ToolCall.from_dict(c) for c in result.get("toolCalls") or []]
    if calls:
        return GenerationOutcome.calls(calls)
    return GenerationOutcome.text(result.get("response") or "")


class RelayClient:
    """
    Calls the dispatcher's methods through a transport and returns typed values.

    Error envelopes are raised as ``RelayRPCError`` carrying the server's code.
    """

    def __init__(self, transport: Transport, *, logger: Optional[logging.Logger] = None) -> None:
        self.transport = transport
        self.logger = logger or logging.getLogger(__name__)

    async def _call(self, method: str, params: dict[str, Any]) -> Any:
        params = {k: v for k, v in params.items() if v is not None}
        self.logger.debug("Calling %s", method)
        envelope = await self.transport.request(method, params)
        error = envelope.get("error")
        if error is not None:
            self.logger.debug("%s failed: %s", method, error)
            raise RelayRPCError(error.get("code", 0), error.get("message", ""))
        return envelope.get("result")

    async def generate(self, prompt: str, options: Options = None) -> str:
        result = await self._call("generate", {"prompt": prompt, "options": _options(options)})
        return result["content"]

    async def generate_with_tools(
        self,
        messages: Sequence[Message],
        tools: Sequence[ToolDescriptor],
        options: Options = None,
    ) -> GenerationOutcome:
        """Single turn: the outcome may carry tool calls for the caller to run."""
        result = await self._call(
            "generate_with_tools",
            {
                "messages": [m.to_dict() for m in messages],
                "tools": [t.to_dict() for t in tools],
                "options": _options(options),
            },
        )
        return _outcome(result)

    async def resolve_with_tools(
        self,
        messages: Sequence[Message],
        tools: Sequence[ToolDescriptor],
        options: Options = None,
    ) -> str:
        """Let the server run the whole tool loop and return the final text."""
        result = await self._call(
            "resolve_with_tools",
            {
                "messages": [m.to_dict() for m in messages],
                "tools": [t.to_dict() for t in tools],
                "options": _options(options),
            },
        )
        return result["content"]

    async def continue_with_tool_result(
        self,
        messages: Sequence[Message],
        tools: Sequence[ToolDescriptor],
        tool_results: Sequence[ToolResult],
        options: Options = None,
    ) -> GenerationOutcome:
        result = await self._call(
            "continue_with_tool_result",
            {
                "messages": [m.to_dict() for m in messages],
                "tools": [t.to_dict() for t in tools],
                "toolResults": [r.to_dict() for r in tool_results],
                "options": _options(options),
            },
        )
        return _outcome(result)

    async def read_resource(self, uri: str) -> str:
        """Return the resource's text; binary content is base64-decoded and read as UTF-8."""
        result = await self._call("resources/read", {"uri": uri})
        contents = result.get("contents") or []
        if not contents:
            return ""
        first = contents[0]
        if "text" in first:
            return first["text"]
        return base64.b64decode(first.get("blob", "")).decode("utf-8", errors="replace")

    async def call_tool(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> Any:
        result = await self._call("call_tool", {"name": name, "arguments": dict(arguments or {})})
        return result["result"]
