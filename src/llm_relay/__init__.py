"""
LLM Relay - one interface for prompts and tool-calling loops across LLM providers.
"""

import logging

from .cache import TTLCache
from .client import RelayClient
from .config import Settings, setup_logging
from .dispatcher import RequestDispatcher
from .errors import (
    MalformedResourceError,
    OrchestrationCancelledError,
    RelayError,
    RelayRPCError,
    ToolExecutionError,
    ToolHandlerNotFoundError,
    ToolLoopExceededError,
    UnsupportedProviderError,
    UpstreamError,
)
from .factory import create_provider, select_provider
from .orchestrator import ToolLoop
from .provider import Provider, get_api_key
from .providers import AnthropicProvider, BaseProvider, OpenAIProvider
from .transport import InProcessTransport, StdioClientTransport, StdioServer
from .types import GenerationOptions, GenerationOutcome, Message, Role, ToolCall, ToolDescriptor, ToolResult

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "BaseProvider",
    "OpenAIProvider",
    "AnthropicProvider",
    "select_provider",
    "create_provider",
    "Provider",
    "get_api_key",
    "ToolLoop",
    "RequestDispatcher",
    "TTLCache",
    "RelayClient",
    "InProcessTransport",
    "StdioClientTransport",
    "StdioServer",
    "Settings",
    "setup_logging",
    "GenerationOptions",
    "GenerationOutcome",
    "Message",
    "Role",
    "ToolCall",
    "ToolDescriptor",
    "ToolResult",
    "RelayError",
    "UpstreamError",
    "UnsupportedProviderError",
    "ToolHandlerNotFoundError",
    "ToolExecutionError",
    "ToolLoopExceededError",
    "OrchestrationCancelledError",
    "MalformedResourceError",
    "RelayRPCError",
]
