"""Tests for generation option normalization."""

import pytest

from llm_relay.params import CallKind, normalize_options, resolve_options
from llm_relay.provider import Provider
from llm_relay.types import GenerationOptions


def test_normalize_accepts_camel_case_and_stop_alias():
    opts = normalize_options({"maxTokens": 200, "topP": 0.5, "stop": "END", "seed": 1})

    assert opts == GenerationOptions(max_tokens=200, top_p=0.5, stop_sequences=["END"])


def test_normalize_none_and_instances():
    assert normalize_options(None) == GenerationOptions()
    opts = GenerationOptions(temperature=0.1)
    assert normalize_options(opts) is opts


def test_normalize_rejects_non_mapping():
    with pytest.raises(TypeError):
        normalize_options(["max_tokens", 10])


def test_openai_defaults_depend_on_call_kind():
    plain = resolve_options(Provider.OPENAI, CallKind.GENERATE, None)
    tools = resolve_options(Provider.OPENAI, CallKind.TOOLS, None)

    assert plain.max_tokens == 4000
    assert tools.max_tokens == 1000
    assert plain.temperature == tools.temperature == 0.7
    assert plain.top_p == 1.0


def test_anthropic_defaults_and_overrides():
    opts = resolve_options(Provider.ANTHROPIC, CallKind.CONTINUE, {"temperature": 0})

    assert opts.max_tokens == 1024
    assert opts.temperature == 0
    assert opts.top_p is None
