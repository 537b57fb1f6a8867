"""Tests for settings, provider selection and example tools."""

import logging
import sys

import pytest
from openai import AsyncOpenAI

from llm_relay.config import Settings, setup_logging
from llm_relay.errors import ConfigurationError, UnsupportedProviderError
from llm_relay.factory import create_provider, parse_provider, select_provider
from llm_relay.provider import Provider, get_api_key
from llm_relay.providers import AnthropicProvider, OpenAIProvider
from llm_relay.tools import calculate_sum, get_weather


def test_settings_defaults():
    settings = Settings.from_env({"OPENAI_API_KEY": "sk-test"})

    assert settings.provider is Provider.OPENAI
    assert settings.api_key == "sk-test"
    assert settings.model is None
    assert settings.cache_ttl == 3600
    assert settings.max_tool_rounds == 8
    assert settings.log_level == "INFO"


def test_settings_anthropic_accepts_legacy_key_name():
    settings = Settings.from_env(
        {"PROVIDER_NAME": "anthropic", "CLAUDE_API_KEY": "sk-ant", "ANTHROPIC_MODEL": "claude-x", "CACHE_TTL": "5"}
    )

    assert settings.provider is Provider.ANTHROPIC
    assert settings.api_key == "sk-ant"
    assert settings.model == "claude-x"
    assert settings.cache_ttl == 5


@pytest.mark.parametrize(
    "env",
    [
        {},
        {"PROVIDER_NAME": "anthropic", "OPENAI_API_KEY": "sk-test"},
        {"PROVIDER_NAME": "gemini", "OPENAI_API_KEY": "sk-test"},
        {"OPENAI_API_KEY": "sk-test", "MAX_TOOL_ROUNDS": "many"},
        {"OPENAI_API_KEY": "sk-test", "MAX_TOOL_ROUNDS": "0"},
    ],
)
def test_settings_rejects_bad_env(env):
    with pytest.raises(ConfigurationError):
        Settings.from_env(env)


def test_setup_logging_writes_to_stderr():
    logger = logging.getLogger("llm_relay")
    saved = list(logger.handlers)
    try:
        logger.handlers = [h for h in logger.handlers if isinstance(h, logging.NullHandler)]
        setup_logging("DEBUG")
        setup_logging("DEBUG")

        streams = [h for h in logger.handlers if isinstance(h, logging.StreamHandler)]
        assert len(streams) == 1
        assert streams[0].stream is sys.stderr
        assert logger.level == logging.DEBUG
    finally:
        logger.handlers = saved
        logger.setLevel(logging.NOTSET)


def test_select_provider_by_name():
    assert isinstance(select_provider("openai", "sk-test"), OpenAIProvider)
    provider = select_provider(Provider.ANTHROPIC, "sk-ant", model="claude-x")
    assert isinstance(provider, AnthropicProvider)
    assert provider.model == "claude-x"


def test_unsupported_provider():
    with pytest.raises(UnsupportedProviderError, match="Unsupported provider"):
        parse_provider("gemini")


def test_create_provider_reads_env(monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-env")
    provider = create_provider("anthropic")
    assert provider.api_key == "sk-env"


def test_dotenv_loaded_only_when_reading_os_environ(monkeypatch):
    """.env is loaded by key lookup and by from_env() over os.environ, never for a given mapping."""
    loads = []
    monkeypatch.setattr("llm_relay.provider.load_dotenv", lambda: loads.append("provider"))
    monkeypatch.setattr("llm_relay.config.load_dotenv", lambda: loads.append("config"))
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    monkeypatch.delenv("PROVIDER_NAME", raising=False)

    Settings.from_env({"OPENAI_API_KEY": "sk-mapping"})
    assert loads == []

    assert get_api_key(Provider.OPENAI) == "sk-env"
    assert Settings.from_env().api_key == "sk-env"
    assert loads == ["provider", "config"]


def test_create_provider_wraps_client():
    client = AsyncOpenAI(api_key="sk-client")
    provider = create_provider(Provider.OPENAI, "gpt-4o-mini", client=client)

    assert provider._client is client
    assert provider.model == "gpt-4o-mini"


def test_example_tools():
    assert calculate_sum({"a": 3, "b": 5}) == {"result": 8}
    assert calculate_sum({"a": 0.5, "b": 0.25}) == {"result": 0.75}
    with pytest.raises(ValueError):
        calculate_sum({"a": 1})
    assert get_weather({"location": "Oslo", "unit": "fahrenheit"})["temperature"] == "68°F"
