"""Base class for provider implementations."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Mapping, Optional, Sequence

from llm_relay.adapters.base import RequestAdapter
from llm_relay.errors import classify_error
from llm_relay.params import CallKind, resolve_options
from llm_relay.provider import Provider
from llm_relay.types import (
    GenerationOptions,
    GenerationOutcome,
    Message,
    ToolDescriptor,
    ToolResult,
)

__all__ = ["BaseProvider", "Options"]

Options = GenerationOptions | Mapping[str, Any] | None


class BaseProvider(ABC):
    """
    Base class for all provider implementations. All implementations are async-first.

    Every provider offers the same three operations: plain generation,
    tool-augmented generation and continuation with tool results. None of
    them retries; SDK failures surface as ``UpstreamError``.
    """

    provider: ClassVar[Provider]
    default_model: ClassVar[str]

    def __init__(
        self,
        model: Optional[str] = None,
        *,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> None:
        """
        Initializes the base provider.

        Args:
            model: The identifier of the model to be used. Falls back to the
                   provider's ``default_model``.
            logger: Optional logger instance. If None, a logger named after
                    this module will be used.
            name: Optional name for this component, used in logging.
                  If None, defaults to the concrete class's name.
        """
        self.model = model or self.default_model
        self.logger = logger or logging.getLogger(__name__)
        self.name = name if name is not None else self.__class__.__name__

    @property
    @abstractmethod
    def adapter(self) -> RequestAdapter:
        """Request adapter for this provider."""
        ...

    @abstractmethod
    async def _create(self, **request: Any) -> Any:
        """Issue one backend call with fully translated arguments and return the raw response."""
        ...

    async def _send(self, **request: Any) -> Any:
        try:
            return await self._create(model=self.model, **request)
        except Exception as exc:
            raise classify_error(exc, self.logger) from exc

    def _options(self, call: CallKind, options: Options) -> dict[str, Any]:
        return self.adapter.build_params(resolve_options(self.provider, call, options))

    async def generate(self, prompt: str, options: Options = None) -> str:
        """Send a single user turn without tools and return the trimmed text."""
        self._log(f"Generating response with {self.model} (no tools)")
        raw = await self._send(
            messages=[{"role": "user", "content": prompt}],
            **self._options(CallKind.GENERATE, options),
        )
        return self.adapter.text_from(raw)

    async def generate_with_tools(
        self,
        messages: Sequence[Message],
        tools: Sequence[ToolDescriptor],
        options: Options = None,
    ) -> GenerationOutcome:
        """One backend call with tools available; returns either text or tool calls."""
        self._log(f"Generating response with {self.model} ({len(tools)} tool(s))")
        request: dict[str, Any] = {
            "messages": self.adapter.build_messages(messages),
            **self._options(CallKind.TOOLS, options),
        }
        if tools:
            request["tools"] = self.adapter.build_tools(tools)
        raw = await self._send(**request)
        outcome = self.adapter.from_provider(raw)
        self._after_generation(outcome)
        return outcome

    @abstractmethod
    async def continue_with_tool_result(
        self,
        messages: Sequence[Message],
        tools: Sequence[ToolDescriptor],
        tool_results: Sequence[ToolResult],
        options: Options = None,
    ) -> GenerationOutcome:
        """Feed tool results back and return the backend's next outcome. Does not loop."""
        ...

    def _after_generation(self, outcome: GenerationOutcome) -> None:
        """Hook for providers that need to remember what they just returned."""

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, f"[{self.name}] {message}")

    # --- lifecycle ---------------------------------------------------------
    async def aclose(self) -> None:
        """
        Close underlying async HTTP clients to avoid cleanup after the loop closes.
        Safe to call multiple times.
        """
        client = getattr(self, "_client", None)
        close = getattr(client, "close", None)
        if close:
            await close()

    async def __aenter__(self) -> "BaseProvider":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
