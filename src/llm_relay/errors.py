"""
Exception hierarchy for llm-relay.

Translate noisy provider tracebacks into a unified `UpstreamError`, while
preserving the original exception for full tracebacks. Everything else in
here describes a local failure of the orchestration or dispatch layers.
"""

from __future__ import annotations

import logging
from typing import Final, Optional, Type

import anthropic
import openai

__all__: tuple[str, ...] = (
    "RelayError",
    "UpstreamError",
    "UnsupportedProviderError",
    "ConfigurationError",
    "ToolValidationError",
    "ToolHandlerNotFoundError",
    "ToolExecutionError",
    "ToolLoopExceededError",
    "OrchestrationCancelledError",
    "MalformedResourceError",
    "InvalidParamsError",
    "RelayRPCError",
    "classify_error",
)


class RelayError(Exception):
    """Base exception for all llm-relay errors."""


class UpstreamError(RelayError):
    """The backend API call itself failed (network, auth, rate limit).

    Attributes:
        original_exc: The underlying provider exception.
    """

    original_exc: Exception

    def __init__(self, message: str, original_exc: Exception) -> None:
        super().__init__(message)
        self.original_exc = original_exc
        self.__cause__ = original_exc


class UnsupportedProviderError(RelayError, ValueError):
    """Raised when a provider name is outside the supported set."""


class ConfigurationError(RelayError):
    """Raised when required settings are missing or invalid."""


class ToolValidationError(RelayError, ValueError):
    """Raised when a tool descriptor or tool set is unusable."""


class ToolHandlerNotFoundError(RelayError):
    """The model asked for a tool that has no local implementation."""

    def __init__(self, tool_name: str) -> None:
        super().__init__(f"No tool handler found for tool: {tool_name}")
        self.tool_name = tool_name


class ToolExecutionError(RelayError):
    """A tool handler raised while running."""

    def __init__(self, tool_name: str, original_exc: Exception) -> None:
        super().__init__(
            f"Tool '{tool_name}' failed: {type(original_exc).__name__}: {original_exc}"
        )
        self.tool_name = tool_name
        self.original_exc = original_exc
        self.__cause__ = original_exc


class ToolLoopExceededError(RelayError):
    """The model kept requesting tools past the configured round cap."""

    def __init__(self, max_rounds: int) -> None:
        super().__init__(
            f"Tool loop exceeded {max_rounds} round(s) without a final response"
        )
        self.max_rounds = max_rounds


class OrchestrationCancelledError(RelayError):
    """The caller aborted an orchestration run between steps."""


class MalformedResourceError(RelayError):
    """Resource URI used an unsupported scheme or the file could not be read."""


class InvalidParamsError(RelayError, ValueError):
    """A dispatcher request carried missing or ill-typed params."""


class RelayRPCError(RelayError):
    """An error envelope returned by the dispatcher, raised on the client side."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(f"[{code}] {message}")
        self.code = code
        self.message = message


OpenAI_APIError: Final = openai.APIError
OpenAI_APIConnectionError: Final = openai.APIConnectionError
OpenAI_RateLimitError: Final = openai.RateLimitError
OpenAI_AuthenticationError: Final = openai.AuthenticationError

Anthropic_APIError: Final = anthropic.APIError
Anthropic_APIConnectionError: Final = anthropic.APIConnectionError
Anthropic_RateLimitError: Final = anthropic.RateLimitError
Anthropic_AuthenticationError: Final = anthropic.AuthenticationError

API_ERRORS: Final[tuple[Type[Exception], ...]] = (
    OpenAI_APIError,
    Anthropic_APIError,
)

CONN_ERRORS: Final[tuple[Type[Exception], ...]] = (
    OpenAI_APIConnectionError,
    Anthropic_APIConnectionError,
    TimeoutError,
    ConnectionError,
)

RATE_LIMIT_ERRORS: Final[tuple[Type[Exception], ...]] = (
    OpenAI_RateLimitError,
    Anthropic_RateLimitError,
)

AUTH_ERRORS: Final[tuple[Type[Exception], ...]] = (
    OpenAI_AuthenticationError,
    Anthropic_AuthenticationError,
)


def classify_error(
    exc: Exception,
    logger: Optional[logging.Logger] = None,
) -> UpstreamError:
    """Wrap an SDK exception in UpstreamError with a friendly, concise message."""
    log = logger or logging.getLogger("llm_relay.errors")

    if isinstance(exc, UpstreamError):
        return exc
    if isinstance(exc, RATE_LIMIT_ERRORS):
        msg = "Rate-limit exceeded"
    elif isinstance(exc, AUTH_ERRORS):
        msg = "Authentication rejected by the LLM provider"
    elif isinstance(exc, CONN_ERRORS):
        msg = "Connection problem, unable to reach the LLM provider"
    elif isinstance(exc, API_ERRORS):
        status = getattr(exc, "status_code", None)
        msg = f"Provider reported an error ({status})" if status else "Provider reported an error"
    else:
        msg = exc.__class__.__name__

    log.warning("Wrapping provider exception: %s", exc)
    return UpstreamError(f"{msg}: {exc}", exc)
