"""Tests for the SDK-bound providers, with the SDK call stubbed out."""

import pytest
from openai import AsyncOpenAI

from llm_relay.errors import UpstreamError, classify_error
from llm_relay.providers import AnthropicProvider, OpenAIProvider
from llm_relay.types import Message, ToolCall, ToolResult


async def test_openai_generate_returns_trimmed_text(openai_provider, make_completion):
    openai_provider.create.return_value = make_completion("  Paris is the capital of France.\n")

    text = await openai_provider.generate("What is the capital of France?")

    assert text == "Paris is the capital of France."
    kwargs = openai_provider.create.await_args.kwargs
    assert kwargs["messages"] == [{"role": "user", "content": "What is the capital of France?"}]
    assert kwargs["model"] == OpenAIProvider.default_model
    assert kwargs["max_tokens"] == 4000
    assert "tools" not in kwargs


async def test_anthropic_generate_returns_trimmed_text(anthropic_provider, make_anthropic_message):
    anthropic_provider.create.return_value = make_anthropic_message(
        {"type": "text", "text": "Paris is the capital of France."}
    )

    text = await anthropic_provider.generate("What is the capital of France?", {"maxTokens": 64})

    assert text == "Paris is the capital of France."
    assert anthropic_provider.create.await_args.kwargs["max_tokens"] == 64


async def test_openai_generate_with_tools_returns_calls(openai_provider, make_completion, weather_tool):
    openai_provider.create.return_value = make_completion(
        tool_calls=[("get_weather", {"location": "San Francisco", "unit": "celsius"})]
    )

    outcome = await openai_provider.generate_with_tools(
        [Message(role="user", content="Weather in SF?")], [weather_tool]
    )

    assert outcome.response is None
    assert [(c.name, c.arguments) for c in outcome.tool_calls] == [
        ("get_weather", {"location": "San Francisco", "unit": "celsius"})
    ]
    kwargs = openai_provider.create.await_args.kwargs
    assert kwargs["tools"][0]["function"]["name"] == "get_weather"
    assert kwargs["max_tokens"] == 1000


async def test_anthropic_generate_with_tools_returns_calls(
    anthropic_provider, make_anthropic_message, weather_tool
):
    anthropic_provider.create.return_value = make_anthropic_message(
        {"type": "tool_use", "id": "toolu_1", "name": "get_weather",
         "input": {"location": "San Francisco", "unit": "celsius"}}
    )

    outcome = await anthropic_provider.generate_with_tools(
        [Message(role="user", content="Weather in SF?")], [weather_tool]
    )

    assert outcome.response is None
    assert outcome.tool_calls == [
        ToolCall(name="get_weather", arguments={"location": "San Francisco", "unit": "celsius"}, id="toolu_1")
    ]


async def test_openai_continuation_appends_function_messages(openai_provider, make_completion, weather_tool):
    openai_provider.create.return_value = make_completion("It is 20C.")
    messages = [Message(role="user", content="Weather in SF?")]

    outcome = await openai_provider.continue_with_tool_result(
        messages, [weather_tool], [ToolResult(name="get_weather", result={"temperature": "20C"})]
    )

    assert outcome.response == "It is 20C."
    sent = openai_provider.create.await_args.kwargs["messages"]
    assert sent == [
        {"role": "user", "content": "Weather in SF?"},
        {"role": "function", "name": "get_weather", "content": '{"temperature": "20C"}'},
    ]


async def test_anthropic_continuation_threads_tool_use_id(
    anthropic_provider, make_anthropic_message, weather_tool
):
    anthropic_provider.create.side_effect = [
        make_anthropic_message(
            {"type": "tool_use", "id": "toolu_7", "name": "get_weather", "input": {"location": "SF"}}
        ),
        make_anthropic_message({"type": "text", "text": "It is 20C."}),
    ]
    messages = [Message(role="user", content="Weather in SF?")]

    first = await anthropic_provider.generate_with_tools(messages, [weather_tool])
    result = ToolResult.for_call(first.tool_calls[0], {"temperature": "20C"})
    outcome = await anthropic_provider.continue_with_tool_result(messages, [weather_tool], [result])

    assert outcome.response == "It is 20C."
    sent = anthropic_provider.create.await_args.kwargs["messages"]
    assert sent[0] == {"role": "user", "content": "Weather in SF?"}
    assert sent[1]["role"] == "assistant"
    assert sent[1]["content"][0]["id"] == "toolu_7"
    assert sent[2]["content"][0]["tool_use_id"] == "toolu_7"
    assert anthropic_provider.history[-1] == {"role": "assistant", "content": "It is 20C."}


async def test_anthropic_new_exchange_resets_history(
    anthropic_provider, make_anthropic_message, weather_tool
):
    anthropic_provider.create.side_effect = [
        make_anthropic_message({"type": "text", "text": "Done."}),
        make_anthropic_message({"type": "text", "text": "Fresh."}),
    ]
    await anthropic_provider.continue_with_tool_result(
        [Message(role="user", content="old")], [weather_tool], [ToolResult(name="get_weather", result=1)]
    )
    assert anthropic_provider.history

    await anthropic_provider.generate_with_tools([Message(role="user", content="new")], [weather_tool])

    assert anthropic_provider.history == []


async def test_sdk_failure_becomes_upstream_error(openai_provider):
    openai_provider.create.side_effect = RuntimeError("socket closed")

    with pytest.raises(UpstreamError) as excinfo:
        await openai_provider.generate("hi")

    assert isinstance(excinfo.value.original_exc, RuntimeError)
    assert "socket closed" in str(excinfo.value)


def test_classify_error_prefixes():
    assert str(classify_error(TimeoutError("slow"))).startswith("Connection problem")
    wrapped = classify_error(ValueError("bad"))
    assert str(wrapped) == "ValueError: bad"
    assert classify_error(wrapped) is wrapped


def test_from_client_type_checks():
    with pytest.raises(TypeError):
        AnthropicProvider.from_client(AsyncOpenAI(api_key="test-key"))


async def test_provider_closes_client(openai_provider):
    async with openai_provider as provider:
        assert provider.model == OpenAIProvider.default_model
    assert openai_provider._client.is_closed()
