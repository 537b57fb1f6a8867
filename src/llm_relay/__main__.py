"""Run the relay as a stdio server: ``python -m llm_relay``."""

from __future__ import annotations

import asyncio
import logging
import sys

from llm_relay.cache import TTLCache
from llm_relay.config import Settings, setup_logging
from llm_relay.dispatcher import RequestDispatcher
from llm_relay.errors import ConfigurationError
from llm_relay.factory import select_provider
from llm_relay.tools import EXAMPLE_HANDLERS
from llm_relay.transport import StdioServer

logger = logging.getLogger("llm_relay.server")


async def serve(settings: Settings) -> None:
    def new_provider():
        return select_provider(settings.provider, settings.api_key, model=settings.model)

    provider = new_provider()
    dispatcher = RequestDispatcher(
        provider,
        EXAMPLE_HANDLERS,
        cache=TTLCache(ttl_seconds=settings.cache_ttl),
        max_rounds=settings.max_tool_rounds,
        provider_factory=new_provider,
    )
    async with provider:
        await StdioServer(dispatcher).serve_stdio()


def main() -> int:
    try:
        settings = Settings.from_env()
    except ConfigurationError as exc:
        setup_logging()
        logger.error("%s", exc)
        return 1

    setup_logging(settings.log_level)
    logger.info("Starting relay server with the %s provider", settings.provider.value)
    try:
        asyncio.run(serve(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    return 0


if __name__ == "__main__":
    sys.exit(main())
