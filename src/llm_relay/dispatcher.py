"""
JSON-RPC style request dispatcher.

``RequestDispatcher.handle`` takes one decoded request object and always
returns one response envelope: ``{"jsonrpc", "id", "result"}`` on success or
``{"jsonrpc", "id", "error": {"code", "message"}}`` on failure. Nothing raised
by a method body escapes ``handle``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Mapping, Optional

from llm_relay.cache import Cache
from llm_relay.errors import InvalidParamsError, ToolHandlerNotFoundError, ToolValidationError
from llm_relay.orchestrator import DEFAULT_MAX_ROUNDS, ToolHandlers, ToolLoop, run_tool
from llm_relay.providers.base import BaseProvider
from llm_relay.resources import read_resource
from llm_relay.types import Message, ToolDescriptor, ToolResult

__all__ = [
    "RequestDispatcher",
    "PARSE_ERROR",
    "INVALID_REQUEST",
    "METHOD_NOT_FOUND",
    "INVALID_PARAMS",
    "INTERNAL_ERROR",
    "SERVER_ERROR",
    "success",
    "failure",
]

JSONRPC_VERSION = "2.0"

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603
SERVER_ERROR = -32000

Method = Callable[[Mapping[str, Any]], Awaitable[dict[str, Any]]]


def success(request_id: Any, result: Any) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def failure(request_id: Any, code: int, message: str) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": {"code": code, "message": message}}


def _require(params: Mapping[str, Any], key: str, kind: type | tuple[type, ...]) -> Any:
    value = params.get(key)
    if value is None:
        raise InvalidParamsError(f"Missing required param: {key}")
    if not isinstance(value, kind):
        raise InvalidParamsError(f"Param '{key}' has the wrong type: {type(value).__name__}")
    return value


def _options(params: Mapping[str, Any]) -> Optional[Mapping[str, Any]]:
    options = params.get("options")
    if options is not None and not isinstance(options, Mapping):
        raise InvalidParamsError("Param 'options' must be an object")
    return options


def _messages(params: Mapping[str, Any]) -> list[Message]:
    raw = _require(params, "messages", list)
    try:
        return [Message.from_dict(m) for m in raw]
    except (AttributeError, TypeError, ValueError) as exc:
        raise InvalidParamsError(f"Invalid message: {exc}") from exc


def _tools(params: Mapping[str, Any]) -> list[ToolDescriptor]:
    raw = _require(params, "tools", list)
    try:
        return [ToolDescriptor.from_dict(t) for t in raw]
    except (AttributeError, TypeError) as exc:
        raise InvalidParamsError(f"Invalid tool descriptor: {exc}") from exc


def _tool_results(params: Mapping[str, Any]) -> list[ToolResult]:
    raw = params.get("toolResults", params.get("tool_results"))
    if raw is None:
        raise InvalidParamsError("Missing required param: toolResults")
    if isinstance(raw, Mapping):
        raw = [raw]
    if not isinstance(raw, list):
        raise InvalidParamsError("Param 'toolResults' must be a list")
    try:
        return [ToolResult.from_dict(r) for r in raw]
    except (AttributeError, TypeError) as exc:
        raise InvalidParamsError(f"Invalid tool result: {exc}") from exc


class RequestDispatcher:
    """Routes requests by method name to a provider, the tool loop or the resource reader.

    ``resolve_with_tools`` runs the whole tool loop server-side. Since a
    provider instance may keep per-conversation state, each run either gets a
    fresh provider from ``provider_factory`` or holds a lock on the shared one.
    """

    def __init__(
        self,
        provider: BaseProvider,
        handlers: Optional[ToolHandlers] = None,
        *,
        cache: Optional[Cache] = None,
        max_rounds: int = DEFAULT_MAX_ROUNDS,
        provider_factory: Optional[Callable[[], BaseProvider]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.provider = provider
        self.handlers: dict[str, Any] = dict(handlers or {})
        self.cache = cache
        self.max_rounds = max_rounds
        self.provider_factory = provider_factory
        self.logger = logger or logging.getLogger(__name__)
        self._provider_lock = asyncio.Lock()
        self._methods: dict[str, Method] = {
            "generate": self._generate,
            "generate_with_tools": self._generate_with_tools,
            "resolve_with_tools": self._resolve_with_tools,
            "continue_with_tool_result": self._continue_with_tool_result,
            "resources/read": self._read_resource,
            "call_tool": self._call_tool,
        }

    @property
    def methods(self) -> list[str]:
        return list(self._methods)

    async def handle(self, request: Any) -> dict[str, Any]:
        """Dispatch one request and return its response envelope."""
        if not isinstance(request, Mapping):
            return failure(None, INVALID_REQUEST, "Request must be a JSON object")

        request_id = request.get("id")
        method_name = request.get("method")
        if not isinstance(method_name, str):
            return failure(request_id, INVALID_REQUEST, "Request is missing a method name")

        method = self._methods.get(method_name)
        if method is None:
            self.logger.warning("Unknown method: %s", method_name)
            return failure(request_id, METHOD_NOT_FOUND, f"Method not found: {method_name}")

        params = request.get("params")
        if params is None:
            params = {}
        if not isinstance(params, Mapping):
            return failure(request_id, INVALID_PARAMS, "Params must be an object")

        self.logger.debug("Dispatching %s (id=%s)", method_name, request_id)
        try:
            result = await method(params)
        except (InvalidParamsError, ToolValidationError) as exc:
            self.logger.warning("Invalid params for %s: %s", method_name, exc)
            return failure(request_id, INVALID_PARAMS, str(exc))
        except Exception as exc:
            code = INTERNAL_ERROR if method_name == "resolve_with_tools" else SERVER_ERROR
            self.logger.error("Error handling %s: %s", method_name, exc)
            return failure(request_id, code, str(exc))
        return success(request_id, result)

    # --- methods -----------------------------------------------------------
    async def _generate(self, params: Mapping[str, Any]) -> dict[str, Any]:
        prompt = _require(params, "prompt", str)
        content = await self.provider.generate(prompt, _options(params))
        return {"content": content}

    async def _generate_with_tools(self, params: Mapping[str, Any]) -> dict[str, Any]:
        messages = _messages(params)
        tools = _tools(params)
        outcome = await self.provider.generate_with_tools(messages, tools, _options(params))
        return outcome.to_dict()

    async def _resolve_with_tools(self, params: Mapping[str, Any]) -> dict[str, Any]:
        messages = _messages(params)
        tools = _tools(params)
        if not tools:
            raise ToolValidationError("At least one tool is required for a tool-augmented call")
        options = _options(params)

        if self.provider_factory is not None:
            provider = self.provider_factory()
            async with provider:
                content = await self._loop(provider).run(messages, tools, options)
        else:
            async with self._provider_lock:
                content = await self._loop(self.provider).run(messages, tools, options)
        return {"content": content}

    async def _continue_with_tool_result(self, params: Mapping[str, Any]) -> dict[str, Any]:
        messages = _messages(params)
        tools = _tools(params) if params.get("tools") is not None else []
        results = _tool_results(params)
        outcome = await self.provider.continue_with_tool_result(
            messages, tools, results, _options(params)
        )
        return outcome.to_dict()

    async def _read_resource(self, params: Mapping[str, Any]) -> dict[str, Any]:
        uri = _require(params, "uri", str)
        content = await read_resource(uri, cache=self.cache, log=self.logger)
        return {"contents": [content]}

    async def _call_tool(self, params: Mapping[str, Any]) -> dict[str, Any]:
        name = _require(params, "name", str)
        arguments = params.get("arguments") or {}
        if not isinstance(arguments, Mapping):
            raise InvalidParamsError("Param 'arguments' must be an object")
        handler = self.handlers.get(name)
        if handler is None:
            raise ToolHandlerNotFoundError(name)
        self.logger.info("Calling tool '%s'", name)
        return {"result": await run_tool(name, handler, dict(arguments))}

    def _loop(self, provider: BaseProvider) -> ToolLoop:
        return ToolLoop(provider, self.handlers, max_rounds=self.max_rounds, logger=self.logger)
