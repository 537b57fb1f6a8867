"""
Runtime configuration and logging setup for the relay server.

Settings come from the process environment. When reading ``os.environ``, a
``.env`` file in the working directory is loaded into it first.
"""

from __future__ import annotations

import logging
import os
import shlex
import sys
from dataclasses import dataclass, field
from typing import Mapping, Optional

from dotenv import load_dotenv

from llm_relay.errors import ConfigurationError, UnsupportedProviderError
from llm_relay.factory import parse_provider
from llm_relay.provider import Provider

__all__ = ["Settings", "setup_logging"]

_LOGGER_NAME = "llm_relay"


def _int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{key} must be an integer, got {raw!r}") from None


@dataclass(frozen=True, slots=True)
class Settings:
    """Everything ``python -m llm_relay`` needs to start."""

    provider: Provider = Provider.OPENAI
    api_key: str = ""
    model: Optional[str] = None
    cache_ttl: int = 3600
    max_tool_rounds: int = 8
    log_level: str = "INFO"
    server_command: str = sys.executable
    server_args: list[str] = field(default_factory=lambda: ["-m", "llm_relay"])

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Read settings from ``env`` (defaults to ``os.environ`` after loading ``.env``).

        Raises:
            ConfigurationError: Unknown provider, missing API key for the
                selected provider, or a non-numeric numeric setting.
        """
        if env is None:
            load_dotenv()
            env = os.environ

        try:
            provider = parse_provider(env.get("PROVIDER_NAME") or Provider.OPENAI.value)
        except UnsupportedProviderError as exc:
            raise ConfigurationError(str(exc)) from exc

        if provider is Provider.OPENAI:
            api_key = env.get("OPENAI_API_KEY", "")
            model = env.get("OPENAI_MODEL") or None
        else:
            api_key = env.get("ANTHROPIC_API_KEY") or env.get("CLAUDE_API_KEY", "")
            model = env.get("ANTHROPIC_MODEL") or None
        if not api_key:
            missing = "OPENAI_API_KEY" if provider is Provider.OPENAI else "ANTHROPIC_API_KEY"
            raise ConfigurationError(f"{missing} must be set to use the {provider.value} provider")

        max_rounds = _int(env, "MAX_TOOL_ROUNDS", 8)
        if max_rounds < 1:
            raise ConfigurationError("MAX_TOOL_ROUNDS must be >= 1")

        server_args = env.get("RELAY_SERVER_ARGS")
        return cls(
            provider=provider,
            api_key=api_key,
            model=model,
            cache_ttl=_int(env, "CACHE_TTL", 3600),
            max_tool_rounds=max_rounds,
            log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
            server_command=env.get("RELAY_SERVER_COMMAND") or sys.executable,
            server_args=shlex.split(server_args) if server_args else ["-m", "llm_relay"],
        )


def setup_logging(
    level: int | str = logging.INFO,
    format_str: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
) -> None:
    """Attach a stderr handler to the library's root logger.

    stdout carries the stdio protocol, so log output must never go there.
    Calling this more than once has no further effect.

    Args:
        level: Logging level, as a number or a name such as ``"DEBUG"``.
        format_str: Log format string.
    """
    logger = logging.getLogger(_LOGGER_NAME)

    if any(not isinstance(h, logging.NullHandler) for h in logger.handlers):
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(format_str))
    logger.addHandler(handler)
    logger.setLevel(level)
