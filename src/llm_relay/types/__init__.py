from .chat import GenerationOptions, GenerationOutcome, Message, Role
from .tool import ToolCall, ToolDescriptor, ToolResult

__all__ = [
    "GenerationOptions",
    "GenerationOutcome",
    "Message",
    "Role",
    "ToolCall",
    "ToolDescriptor",
    "ToolResult",
]
