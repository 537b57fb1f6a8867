"""Pure transformation adapters for different LLM providers."""

from .anthropic import AnthropicRequestAdapter
from .base import RequestAdapter
from .openai import OpenAIRequestAdapter

__all__ = [
    "OpenAIRequestAdapter",
    "AnthropicRequestAdapter",
    "RequestAdapter",
]
