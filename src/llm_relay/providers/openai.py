from __future__ import annotations

import logging
from typing import Any, Optional, Self, Sequence

from openai import AsyncOpenAI
from openai.types.chat import ChatCompletion

from llm_relay.adapters.openai import OpenAIRequestAdapter
from llm_relay.params import CallKind
from llm_relay.provider import Provider
from llm_relay.providers.base import BaseProvider, Options
from llm_relay.types import GenerationOutcome, Message, ToolCall, ToolDescriptor, ToolResult


class OpenAIProvider(BaseProvider):
    """
    OpenAI provider (async‑only), backed by Chat Completions.

    Sends the full message list on every call. The only state kept is the
    set of tool calls from the latest reply, so that a continuation can
    answer them by ``tool_call_id``.

    Use ``OpenAIProvider.from_client`` when you already have an ``AsyncOpenAI`` instance.
    """

    provider = Provider.OPENAI
    default_model = "gpt-4o-2024-11-20"

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
        self._client = AsyncOpenAI(
            api_key=api_key,
            timeout=timeout,
            max_retries=max_retries,
            base_url=base_url,
        )
        self._adapter = OpenAIRequestAdapter(logger=self.logger)
        self._issued: list[ToolCall] = []
        self._log("Provider initialized", logging.DEBUG)

    # Alternate constructor
    @classmethod
    def from_client(
        cls,
        client: AsyncOpenAI,
        model: Optional[str] = None,
        *,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> Self:
        """
        Build an ``OpenAIProvider`` around an already‑configured ``AsyncOpenAI`` client.
        """
        if not isinstance(client, AsyncOpenAI):
            raise TypeError(
                f"OpenAIProvider.from_client expects AsyncOpenAI; got {type(client).__name__}"
            )

        self = cls.__new__(cls)  # bypass __init__
        BaseProvider.__init__(self, model=model, logger=logger, name=name)
        self.api_key = client.api_key
        self._client = client
        self._adapter = OpenAIRequestAdapter(logger=self.logger)
        self._issued = []
        return self

    @property
    def adapter(self) -> OpenAIRequestAdapter:
        """Request adapter for OpenAI provider."""
        return self._adapter

    async def _create(self, **request: Any) -> ChatCompletion:
        return await self._client.chat.completions.create(**request)

    def _after_generation(self, outcome: GenerationOutcome) -> None:
        self._issued = list(outcome.tool_calls)

    async def continue_with_tool_result(
        self,
        messages: Sequence[Message],
        tools: Sequence[ToolDescriptor],
        tool_results: Sequence[ToolResult],
        options: Options = None,
    ) -> GenerationOutcome:
        """Answer the pending tool calls with the results and ask the model to carry on."""
        self._log(f"Continuing with {len(tool_results)} tool result(s)")
        request: dict[str, Any] = {
            "messages": [
                *self._adapter.build_messages(messages),
                *self._adapter.tool_result_messages(tool_results, self._issued),
            ],
            **self._options(CallKind.CONTINUE, options),
        }
        if tools:
            request["tools"] = self._adapter.build_tools(tools)
        raw = await self._send(**request)
        outcome = self._adapter.from_provider(raw)
        self._after_generation(outcome)
        return outcome
