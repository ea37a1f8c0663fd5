"""
Tool definitions.

Local functions the model can call during a conversation, the registry that
indexes them for one run, and the JSON-Schema builder used to describe their
parameters.
"""

from deepchat.tools.base import (
    ToolCallContext,
    ToolCallback,
    ToolDefinition,
    ToolDefinitionBuilder,
    ToolOutcome,
    ToolRegistry,
    ToolResult,
)
from deepchat.tools.schema import JsonSchema

__all__ = [
    "JsonSchema",
    "ToolCallContext",
    "ToolCallback",
    "ToolDefinition",
    "ToolDefinitionBuilder",
    "ToolOutcome",
    "ToolRegistry",
    "ToolResult",
]
