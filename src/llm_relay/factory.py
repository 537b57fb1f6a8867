from __future__ import annotations

import logging
from typing import Type

from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from llm_relay.errors import UnsupportedProviderError
from llm_relay.provider import Provider, get_api_key
from llm_relay.providers.anthropic import AnthropicProvider
from llm_relay.providers.base import BaseProvider
from llm_relay.providers.openai import OpenAIProvider

__all__ = ["select_provider", "create_provider", "parse_provider"]

# map Provider enum to its implementation
_PROVIDER_REGISTRY: dict[Provider, Type[BaseProvider]] = {
    Provider.OPENAI: OpenAIProvider,
    Provider.ANTHROPIC: AnthropicProvider,
}


def parse_provider(provider: Provider | str) -> Provider:
    """Coerce ``provider`` to the enum, raising UnsupportedProviderError otherwise."""
    try:
        return Provider(provider)
    except ValueError:
        supported = " or ".join(f"'{p.value}'" for p in Provider)
        raise UnsupportedProviderError(
            f'Unsupported provider: "{provider}". Supported providers are: {supported}.'
        ) from None


def select_provider(
    provider: Provider | str,
    credential: str,
    *,
    model: str | None = None,
    logger: logging.Logger | None = None,
    **provider_kwargs: object,
) -> BaseProvider:
    """
    Pick and construct the provider for ``provider`` with the given credential.

    No network traffic happens here; the SDK validates the credential on the
    first real call.
    """
    kind = parse_provider(provider)
    log = logger or logging.getLogger(__name__)
    log.info("Using %s provider.", kind.value)
    return _PROVIDER_REGISTRY[kind](credential, model, logger=logger, **provider_kwargs)


def create_provider(
    provider: Provider | str,
    model: str | None = None,
    *,
    api_key: str | None = None,
    client: AsyncOpenAI | AsyncAnthropic | None = None,
    logger: logging.Logger | None = None,
    **provider_kwargs: object,
) -> BaseProvider:
    """
    Factory for creating any supported provider.

    Args:
        provider: Which provider to use (OPENAI, ANTHROPIC), or its name.
        model: Model identifier; each provider has its own default.
        api_key: Overrides automatic lookup; if omitted, pulled from env.
        client: Optional pre-configured client instance to use.
            - For Provider.OPENAI: an AsyncOpenAI instance
            - For Provider.ANTHROPIC: an AsyncAnthropic instance
            If not provided, the relevant client with the default configuration will be used.
        logger: Optional custom logger.
        **provider_kwargs: Any extra args to pass through (timeout, max_retries, base_url).
    """
    kind = parse_provider(provider)

    if client is not None:  # use caller‑supplied client verbatim
        return _PROVIDER_REGISTRY[kind].from_client(client, model, logger=logger)

    key = api_key or get_api_key(kind)
    return select_provider(kind, key, model=model, logger=logger, **provider_kwargs)
