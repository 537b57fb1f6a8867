import json
from typing import Any, Callable, Optional
from unittest.mock import AsyncMock

import pytest
from anthropic import AsyncAnthropic
from anthropic.types import Message as AnthropicMessage
from openai import AsyncOpenAI
from openai.types.chat import ChatCompletion

from llm_relay.providers import AnthropicProvider, OpenAIProvider
from llm_relay.types import ToolDescriptor

WEATHER_TOOL = {
    "name": "get_weather",
    "description": "Get the current weather in a given location",
    "input_schema": {
        "type": "object",
        "properties": {
            "location": {"type": "string"},
            "unit": {"type": "string", "enum": ["celsius", "fahrenheit"]},
        },
        "required": ["location"],
    },
}


def completion(text: Optional[str] = None, tool_calls: Optional[list[tuple[str, Any]]] = None) -> ChatCompletion:
    """A Chat Completions response with either text or ``(name, arguments)`` tool calls.

    String arguments are sent verbatim, anything else is JSON-encoded.
    """
    message: dict[str, Any] = {"role": "assistant", "content": text}
    if tool_calls:
        message["tool_calls"] = [
            {
                "id": f"call_{i}",
                "type": "function",
                "function": {
                    "name": name,
                    "arguments": args if isinstance(args, str) else json.dumps(args),
                },
            }
            for i, (name, args) in enumerate(tool_calls, start=1)
        ]
    return ChatCompletion.model_validate(
        {
            "id": "chatcmpl-test",
            "object": "chat.completion",
            "created": 0,
            "model": "gpt-4o",
            "choices": [
                {
                    "index": 0,
                    "finish_reason": "tool_calls" if tool_calls else "stop",
                    "message": message,
                }
            ],
        }
    )


def anthropic_message(*blocks: dict[str, Any]) -> AnthropicMessage:
    """A Messages API response built from raw content blocks."""
    has_tool = any(b.get("type") == "tool_use" for b in blocks)
    return AnthropicMessage.model_validate(
        {
            "id": "msg_test",
            "type": "message",
            "role": "assistant",
            "model": "claude-3-5-sonnet-20241022",
            "content": list(blocks),
            "stop_reason": "tool_use" if has_tool else "end_turn",
            "stop_sequence": None,
            "usage": {"input_tokens": 1, "output_tokens": 1},
        }
    )


def text_block(text: str) -> dict[str, Any]:
    return {"type": "text", "text": text}


def tool_use_block(name: str, arguments: dict[str, Any], block_id: str = "toolu_1") -> dict[str, Any]:
    return {"type": "tool_use", "id": block_id, "name": name, "input": arguments}


@pytest.fixture
def weather_tool() -> ToolDescriptor:
    return ToolDescriptor.from_dict(WEATHER_TOOL)


@pytest.fixture
def make_completion() -> Callable[..., ChatCompletion]:
    return completion


@pytest.fixture
def make_anthropic_message() -> Callable[..., AnthropicMessage]:
    return anthropic_message


@pytest.fixture
def openai_provider() -> OpenAIProvider:
    """OpenAI provider whose ``chat.completions.create`` is an AsyncMock.

    Set ``provider.create.return_value`` or ``.side_effect`` in the test.
    """
    client = AsyncOpenAI(api_key="test-key")
    client.chat.completions.create = AsyncMock()
    provider = OpenAIProvider.from_client(client)
    provider.create = client.chat.completions.create
    return provider


@pytest.fixture
def anthropic_provider() -> AnthropicProvider:
    """Anthropic provider whose ``messages.create`` is an AsyncMock."""
    client = AsyncAnthropic(api_key="test-key")
    client.messages.create = AsyncMock()
    provider = AnthropicProvider.from_client(client)
    provider.create = client.messages.create
    return provider
