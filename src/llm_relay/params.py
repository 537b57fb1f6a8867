"""
Generation option normalization for llm-relay.

Public API
- Callers pass either a ``GenerationOptions`` or a plain dict as ``options``.

Contract
- Standard keys work across providers:
  max_tokens: int
  temperature: float
  top_p: float
  stop_sequences: list[str]

- camelCase spellings (``maxTokens``, ``topP``, ``stopSequences``) are
  accepted, since the JSON-RPC callers send them that way.
- ``stop`` is accepted as an alias of ``stop_sequences``; a bare string is
  wrapped in a list.
- Unknown keys are ignored.

Defaults are not applied here. Each provider owns its own defaults, keyed by
the kind of call being made (see ``DEFAULTS``).
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Mapping

from llm_relay.provider import Provider
from llm_relay.types import GenerationOptions

__all__ = ["CallKind", "DEFAULTS", "normalize_options", "resolve_options"]


class CallKind(StrEnum):
    GENERATE = "generate"
    TOOLS = "tools"
    CONTINUE = "continue"


_ALIASES: dict[str, str] = {
    "max_tokens": "max_tokens",
    "maxTokens": "max_tokens",
    "temperature": "temperature",
    "top_p": "top_p",
    "topP": "top_p",
    "stop_sequences": "stop_sequences",
    "stopSequences": "stop_sequences",
    "stop": "stop_sequences",
}

# Plain generation gets more headroom than a tool turn, which usually only
# needs enough tokens to emit the call itself.
DEFAULTS: dict[Provider, dict[CallKind, dict[str, Any]]] = {
    Provider.OPENAI: {
        CallKind.GENERATE: {"max_tokens": 4000, "temperature": 0.7, "top_p": 1.0},
        CallKind.TOOLS: {"max_tokens": 1000, "temperature": 0.7, "top_p": 1.0},
        CallKind.CONTINUE: {"max_tokens": 1000, "temperature": 0.7, "top_p": 1.0},
    },
    Provider.ANTHROPIC: {
        CallKind.GENERATE: {"max_tokens": 1024, "temperature": 0.7},
        CallKind.TOOLS: {"max_tokens": 1024, "temperature": 0.7},
        CallKind.CONTINUE: {"max_tokens": 1024, "temperature": 0.7},
    },
}


def normalize_options(options: GenerationOptions | Mapping[str, Any] | None) -> GenerationOptions:
    """
    Normalize user-supplied options to a ``GenerationOptions`` instance.

    Example
    -------
    >>> normalize_options({"maxTokens": 200, "stop": "END", "seed": 1})
    GenerationOptions(max_tokens=200, temperature=None, top_p=None, stop_sequences=['END'])
    """
    if options is None:
        return GenerationOptions()
    if isinstance(options, GenerationOptions):
        return options
    if not isinstance(options, Mapping):
        raise TypeError(f"options must be a dict, got {type(options).__name__}")

    fields: dict[str, Any] = {}
    for key, value in options.items():
        target = _ALIASES.get(key)
        if target is None or value is None:
            continue
        fields[target] = value

    stop = fields.get("stop_sequences")
    if isinstance(stop, str):
        fields["stop_sequences"] = [stop]
    elif stop is not None:
        fields["stop_sequences"] = list(stop)

    return GenerationOptions(**fields)


def resolve_options(
    provider: Provider,
    call: CallKind,
    options: GenerationOptions | Mapping[str, Any] | None,
) -> GenerationOptions:
    """Normalize, then fill unset fields with the provider's defaults for ``call``."""
    return normalize_options(options).with_defaults(**DEFAULTS[provider][call])
