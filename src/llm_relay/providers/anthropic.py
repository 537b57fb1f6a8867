from __future__ import annotations

import logging
from typing import Any, Optional, Self, Sequence

from anthropic import AsyncAnthropic
from anthropic.types import Message as AnthropicMessage

from llm_relay.adapters.anthropic import AnthropicRequestAdapter
from llm_relay.params import CallKind
from llm_relay.provider import Provider
from llm_relay.providers.base import BaseProvider, Options
from llm_relay.types import GenerationOutcome, Message, ToolCall, ToolDescriptor, ToolResult


class AnthropicProvider(BaseProvider):
    """
    Anthropic provider (async‑only), backed by the Messages API.

    Unlike the OpenAI provider this one is stateful: the continuation path
    keeps the conversation history (including the ``tool_use`` turns it
    returned) so that every ``tool_result`` can point at the call it answers.
    An instance must therefore serve a single conversation at a time; call
    ``reset()`` before reusing it for a new one.

    Use ``AnthropicProvider.from_client`` when you already have an ``AsyncAnthropic`` instance.
    """

    provider = Provider.ANTHROPIC
    default_model = "claude-3-5-sonnet-20241022"

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        *,
        timeout: float = 60.0,
        max_retries: int = 2,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
        base_url: Optional[str] = None,
    ) -> None:
        super().__init__(model=model, logger=logger, name=name)
        self.api_key = api_key
        self._client = AsyncAnthropic(
            api_key=api_key,
            timeout=timeout,
            max_retries=max_retries,
            base_url=base_url,
        )
        self._adapter = AnthropicRequestAdapter(logger=self.logger)
        self._history: list[dict[str, Any]] = []
        self._issued: list[ToolCall] = []
        self._log("Provider initialized", logging.DEBUG)

    @classmethod
    def from_client(
        cls,
        client: AsyncAnthropic,
        model: Optional[str] = None,
        *,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> Self:
        """
        Wrap an existing ``AsyncAnthropic`` client.
        """
        if not isinstance(client, AsyncAnthropic):
            raise TypeError(
                f"AnthropicProvider.from_client expects AsyncAnthropic; got {type(client).__name__}"
            )

        self = cls.__new__(cls)  # bypass __init__
        BaseProvider.__init__(self, model=model, logger=logger, name=name)
        self.api_key = client.api_key or ""
        self._client = client
        self._adapter = AnthropicRequestAdapter(logger=self.logger)
        self._history = []
        self._issued = []
        return self

    @property
    def adapter(self) -> AnthropicRequestAdapter:
        """Request adapter for Anthropic provider."""
        return self._adapter

    @property
    def history(self) -> list[dict[str, Any]]:
        """Native-format turns accumulated by the continuation path."""
        return list(self._history)

    def reset(self) -> None:
        """Forget the accumulated conversation."""
        self._history = []
        self._issued = []

    async def _create(self, **request: Any) -> AnthropicMessage:
        return await self._client.messages.create(**request)

    def _after_generation(self, outcome: GenerationOutcome) -> None:
        # A tool-augmented generation starts a new exchange from the caller's messages.
        self._history = []
        self._issued = list(outcome.tool_calls)

    async def continue_with_tool_result(
        self,
        messages: Sequence[Message],
        tools: Sequence[ToolDescriptor],
        tool_results: Sequence[ToolResult],
        options: Options = None,
    ) -> GenerationOutcome:
        """Append correlated ``tool_result`` blocks to the history and ask the model to carry on."""
        self._log(f"Continuing with {len(tool_results)} tool result(s)")

        if not self._history:
            self._history = self._adapter.build_messages(messages)
        self._history.extend(self._adapter.tool_result_messages(tool_results, self._issued))

        request: dict[str, Any] = {
            "messages": list(self._history),
            **self._options(CallKind.CONTINUE, options),
        }
        if tools:
            request["tools"] = self._adapter.build_tools(tools)
        raw = await self._send(**request)

        outcome = self._adapter.from_provider(raw)
        if outcome.tool_calls:
            self._issued = list(outcome.tool_calls)
        elif outcome.response:
            self._history.append({"role": "assistant", "content": outcome.response})
        return outcome
