"""Tool execution loop: generate, run the requested tools, continue, repeat."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence, Union

from llm_relay.adapters.base import dump_result
from llm_relay.errors import (
    OrchestrationCancelledError,
    ToolExecutionError,
    ToolHandlerNotFoundError,
    ToolLoopExceededError,
    ToolValidationError,
)
from llm_relay.providers.base import BaseProvider, Options
from llm_relay.types import GenerationOutcome, Message, Role, ToolCall, ToolDescriptor, ToolResult

__all__ = ["ToolHandler", "ToolHandlers", "ToolLoop", "DEFAULT_MAX_ROUNDS", "run_tool"]

ToolHandler = Callable[[dict[str, Any]], Union[Any, Awaitable[Any]]]
ToolHandlers = Mapping[str, ToolHandler]

DEFAULT_MAX_ROUNDS = 8


async def run_tool(name: str, handler: ToolHandler, arguments: dict[str, Any]) -> Any:
    """Run one handler with its argument mapping; sync handlers go to a worker thread.

    Raises:
        ToolExecutionError: If the handler raises.
    """
    try:
        if inspect.iscoroutinefunction(handler):
            return await handler(arguments)
        result = await asyncio.to_thread(handler, arguments)
        if inspect.isawaitable(result):
            result = await result
        return result
    except asyncio.CancelledError:
        raise
    except Exception as exc:
        raise ToolExecutionError(name, exc) from exc


class ToolLoop:
    """Drives one conversation until the provider stops asking for tools.

    Handlers receive the call's argument mapping as their only parameter and
    may be plain functions or coroutines. Errors from the provider and from
    handlers are not caught here; the caller decides how to report them.
    """

    def __init__(
        self,
        provider: BaseProvider,
        handlers: ToolHandlers,
        *,
        max_rounds: int = DEFAULT_MAX_ROUNDS,
        concurrent: bool = False,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """
        Args:
            provider: The provider to converse with. Not shared with other runs.
            handlers: Tool name to implementation.
            max_rounds: Maximum number of tool-execution rounds per run.
            concurrent: Run the calls of one round in an ``asyncio.TaskGroup``.
            logger: Optional logger; defaults to this module's logger.
        """
        if max_rounds < 1:
            raise ValueError("max_rounds must be >= 1")
        self.provider = provider
        self.handlers = handlers
        self.max_rounds = max_rounds
        self.concurrent = concurrent
        self.logger = logger or logging.getLogger(__name__)

    async def run(
        self,
        messages: Sequence[Message],
        tools: Sequence[ToolDescriptor],
        options: Options = None,
        *,
        cancel: Optional[asyncio.Event] = None,
    ) -> str:
        """Resolve the conversation to a final answer.

        Raises:
            ToolValidationError: If ``tools`` is empty.
            ToolHandlerNotFoundError: If a requested tool has no handler.
            ToolExecutionError: If a handler fails.
            ToolLoopExceededError: If the model keeps asking past ``max_rounds``.
            OrchestrationCancelledError: If ``cancel`` gets set mid-run.
            UpstreamError: If a provider call fails.
        """
        if not tools:
            raise ToolValidationError("At least one tool is required for a tool-augmented call")

        working = list(messages)
        self._check_cancelled(cancel)
        outcome = await self.provider.generate_with_tools(working, tools, options)

        rounds = 0
        while outcome.tool_calls:
            if rounds >= self.max_rounds:
                self.logger.warning("Max tool rounds (%d) reached. Stopping execution.", self.max_rounds)
                raise ToolLoopExceededError(self.max_rounds)
            rounds += 1
            self.logger.info(
                "Round %d/%d: processing %d tool call(s).", rounds, self.max_rounds, len(outcome.tool_calls)
            )

            results = await self._execute_round(outcome.tool_calls, cancel)

            self._check_cancelled(cancel)
            outcome = await self.provider.continue_with_tool_result(working, tools, results, options)
            if outcome.tool_calls:
                # Keep earlier results visible to stateless providers on the next round.
                working.extend(
                    Message(role=Role.TOOL, content=dump_result(r.result), name=r.name) for r in results
                )

        self.logger.debug("No tool calls in response. Loop finished after %d round(s).", rounds)
        return outcome.response or ""

    async def _execute_round(
        self, calls: Sequence[ToolCall], cancel: Optional[asyncio.Event]
    ) -> list[ToolResult]:
        # Resolve every handler before running anything, so a missing one
        # leaves no tool half-executed.
        resolved = []
        for call in calls:
            handler = self.handlers.get(call.name)
            if handler is None:
                self.logger.error("No tool handler found for tool: %s", call.name)
                raise ToolHandlerNotFoundError(call.name)
            resolved.append((call, handler))

        if self.concurrent:
            self._check_cancelled(cancel)
            # A failing call cancels its siblings; none outlive the round.
            try:
                async with asyncio.TaskGroup() as group:
                    tasks = [group.create_task(self._run_one(call, handler)) for call, handler in resolved]
            except BaseExceptionGroup as failed:
                raise failed.exceptions[0]
            outputs = [task.result() for task in tasks]
        else:
            outputs = []
            for call, handler in resolved:
                self._check_cancelled(cancel)
                outputs.append(await self._run_one(call, handler))

        return [ToolResult.for_call(call, output) for (call, _), output in zip(resolved, outputs)]

    async def _run_one(self, call: ToolCall, handler: ToolHandler) -> Any:
        self.logger.info("Executing tool '%s'...", call.name)
        self.logger.debug("Tool arguments: %s", call.arguments)
        try:
            result = await run_tool(call.name, handler, call.arguments)
        except ToolExecutionError as exc:
            self.logger.error("Tool '%s' failed: %s", call.name, exc.original_exc)
            raise
        self.logger.info("Tool '%s' executed successfully.", call.name)
        return result

    @staticmethod
    def _check_cancelled(cancel: Optional[asyncio.Event]) -> None:
        if cancel is not None and cancel.is_set():
            raise OrchestrationCancelledError("Orchestration cancelled by caller")
