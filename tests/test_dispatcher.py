"""Tests for the JSON-RPC style dispatcher."""

import json

import pytest

from llm_relay.cache import TTLCache
from llm_relay.dispatcher import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    SERVER_ERROR,
    RequestDispatcher,
)
from llm_relay.tools import EXAMPLE_HANDLERS

from conftest import WEATHER_TOOL

USER_MSG = {"role": "user", "content": "What's the weather in San Francisco?"}
SF_ARGS = {"location": "San Francisco", "unit": "celsius"}


@pytest.fixture
def dispatcher(openai_provider):
    return RequestDispatcher(openai_provider, EXAMPLE_HANDLERS, cache=TTLCache(ttl_seconds=60))


def rpc(method, params=None, request_id=1):
    return {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params}


@pytest.mark.parametrize(
    "request_",
    [
        rpc("generate", {"prompt": "hi"}, request_id="a"),
        rpc("generate", {}, request_id=2),
        rpc("no_such_method", {}, request_id=3),
        rpc("resources/read", {"uri": "http://example.com/x"}, request_id=4),
        rpc("call_tool", {"name": "calculate_sum", "arguments": {"a": 1, "b": 2}}, request_id=5),
        {"method": "generate", "params": {"prompt": "hi"}},
        {"id": 6, "params": {}},
    ],
)
async def test_every_response_is_a_single_envelope(dispatcher, openai_provider, make_completion, request_):
    openai_provider.create.return_value = make_completion("Hello!")

    response = await dispatcher.handle(request_)

    assert response["jsonrpc"] == "2.0"
    assert response["id"] == request_.get("id")
    assert ("result" in response) != ("error" in response)


async def test_non_object_request(dispatcher):
    response = await dispatcher.handle(["generate"])
    assert response == {"jsonrpc": "2.0", "id": None, "error": {"code": INVALID_REQUEST, "message": "Request must be a JSON object"}}


async def test_unknown_method(dispatcher):
    response = await dispatcher.handle(rpc("tools/list"))
    assert response["error"]["code"] == METHOD_NOT_FOUND


async def test_generate(dispatcher, openai_provider, make_completion):
    openai_provider.create.return_value = make_completion("Paris is the capital of France.")

    response = await dispatcher.handle(rpc("generate", {"prompt": "Capital of France?", "options": {"maxTokens": 20}}))

    assert response["result"] == {"content": "Paris is the capital of France."}
    assert openai_provider.create.await_args.kwargs["max_tokens"] == 20


@pytest.mark.parametrize(
    "params",
    [
        {},
        {"prompt": 42},
        {"prompt": "hi", "options": "fast"},
    ],
)
async def test_generate_invalid_params(dispatcher, openai_provider, params):
    response = await dispatcher.handle(rpc("generate", params))

    assert response["error"]["code"] == INVALID_PARAMS
    openai_provider.create.assert_not_awaited()


async def test_generate_with_tools_single_turn(dispatcher, openai_provider, make_completion):
    openai_provider.create.return_value = make_completion(tool_calls=[("get_weather", SF_ARGS)])

    response = await dispatcher.handle(
        rpc("generate_with_tools", {"messages": [USER_MSG], "tools": [WEATHER_TOOL]})
    )

    assert response["result"] == {
        "toolCalls": [{"name": "get_weather", "arguments": SF_ARGS, "id": "call_1"}]
    }


async def test_invalid_tool_schema_is_invalid_params(dispatcher):
    bad_tool = {"name": "x", "description": "", "input_schema": {"type": "string"}}

    response = await dispatcher.handle(rpc("generate_with_tools", {"messages": [USER_MSG], "tools": [bad_tool]}))

    assert response["error"]["code"] == INVALID_PARAMS


async def test_resolve_with_tools_runs_the_loop(dispatcher, openai_provider, make_completion):
    openai_provider.create.side_effect = [
        make_completion(tool_calls=[("get_weather", SF_ARGS)]),
        make_completion("It is 20°C and sunny in San Francisco."),
    ]

    response = await dispatcher.handle(
        rpc("resolve_with_tools", {"messages": [USER_MSG], "tools": [WEATHER_TOOL]})
    )

    assert response["result"] == {"content": "It is 20°C and sunny in San Francisco."}
    tool_msg = openai_provider.create.await_args.kwargs["messages"][-1]
    assert tool_msg["role"] == "tool"
    assert tool_msg["tool_call_id"] == "call_1"
    assert json.loads(tool_msg["content"])["location"] == "San Francisco"


async def test_resolve_with_tools_failure_code(openai_provider, make_completion):
    openai_provider.create.return_value = make_completion(tool_calls=[("get_weather", SF_ARGS)])
    dispatcher = RequestDispatcher(openai_provider, {})

    response = await dispatcher.handle(
        rpc("resolve_with_tools", {"messages": [USER_MSG], "tools": [WEATHER_TOOL]})
    )

    assert response["error"]["code"] == INTERNAL_ERROR
    assert "get_weather" in response["error"]["message"]


async def test_resolve_with_tools_uses_provider_factory(openai_provider, make_completion):
    openai_provider.create.return_value = make_completion("No tools needed.")
    created = []

    def factory():
        created.append(openai_provider)
        return openai_provider

    dispatcher = RequestDispatcher(openai_provider, EXAMPLE_HANDLERS, provider_factory=factory)
    response = await dispatcher.handle(
        rpc("resolve_with_tools", {"messages": [USER_MSG], "tools": [WEATHER_TOOL]})
    )

    assert response["result"] == {"content": "No tools needed."}
    assert len(created) == 1


async def test_continue_with_tool_result(dispatcher, openai_provider, make_completion):
    openai_provider.create.return_value = make_completion("It is 20C.")

    response = await dispatcher.handle(
        rpc(
            "continue_with_tool_result",
            {
                "messages": [USER_MSG],
                "tools": [WEATHER_TOOL],
                "toolResults": [{"name": "get_weather", "result": {"temperature": "20C"}, "tool_use_id": "call_1"}],
            },
        )
    )

    assert response["result"] == {"response": "It is 20C."}


async def test_continue_requires_tool_results(dispatcher):
    response = await dispatcher.handle(rpc("continue_with_tool_result", {"messages": [USER_MSG]}))
    assert response["error"]["code"] == INVALID_PARAMS


async def test_provider_failure_is_server_error(dispatcher, openai_provider):
    openai_provider.create.side_effect = RuntimeError("boom")

    response = await dispatcher.handle(rpc("generate", {"prompt": "hi"}))

    assert response["error"]["code"] == SERVER_ERROR
    assert "boom" in response["error"]["message"]


async def test_read_text_resource(dispatcher, tmp_path):
    path = tmp_path / "x.txt"
    path.write_text("hello")
    uri = path.as_uri()

    response = await dispatcher.handle(rpc("resources/read", {"uri": uri}))

    assert response["result"] == {"contents": [{"uri": uri, "mimeType": "text/plain", "text": "hello"}]}


async def test_read_resource_bad_scheme(dispatcher):
    response = await dispatcher.handle(rpc("resources/read", {"uri": "s3://bucket/x.txt"}))

    assert response["error"]["code"] == SERVER_ERROR
    assert "file://" in response["error"]["message"]


async def test_read_resource_is_cached(dispatcher, tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("first")
    request = rpc("resources/read", {"uri": path.as_uri()})

    await dispatcher.handle(request)
    path.write_text("second")
    response = await dispatcher.handle(request)

    assert response["result"]["contents"][0]["text"] == "first"
    assert dispatcher.cache.stats.hits == 1


async def test_call_tool(dispatcher):
    response = await dispatcher.handle(rpc("call_tool", {"name": "calculate_sum", "arguments": {"a": 3, "b": 5}}))
    assert response["result"] == {"result": {"result": 8}}


async def test_call_unknown_tool(dispatcher):
    response = await dispatcher.handle(rpc("call_tool", {"name": "launch_rockets"}))

    assert response["error"]["code"] == SERVER_ERROR
    assert response["error"]["message"] == "No tool handler found for tool: launch_rockets"
