from __future__ import annotations

import os
from enum import StrEnum
from typing import Final

from dotenv import load_dotenv


class Provider(StrEnum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


# First entry wins; CLAUDE_API_KEY is the older name some deployments still set.
_ENV_VARS: Final[dict[Provider, tuple[str, ...]]] = {
    Provider.OPENAI: ("OPENAI_API_KEY",),
    Provider.ANTHROPIC: ("ANTHROPIC_API_KEY", "CLAUDE_API_KEY"),
}


def get_api_key(provider: Provider) -> str:
    """Return the API key for *provider* or raise RuntimeError."""
    load_dotenv()
    try:
        env_vars = _ENV_VARS[provider]
    except KeyError:
        raise RuntimeError(f"No config for {provider!s}") from None

    for env_var in env_vars:
        key = os.environ.get(env_var)
        if key:
            return key
    raise RuntimeError(f"{env_vars[0]} missing")


__all__ = ["Provider", "get_api_key"]
