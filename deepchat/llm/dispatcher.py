"""
Tool dispatcher: turns the model's tool calls into tool-role result messages.

For each call, in the order the model listed them:
1. Check the call is well formed (id present, name non-blank)
2. Look the name up in the ToolRegistry
3. Parse the argument string into an object (absent means {})
4. Invoke the callback through ToolRegistry.invoke()
5. Wrap the result in a tool message answering the call id

Any failure is fatal for the run. Tool side effects are not assumed to be
idempotent, so nothing is retried and nothing is reported back to the model
as an error string.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from typing import Any

from deepchat.llm.errors import MalformedToolCall, ToolExecutionError, UnknownTool
from deepchat.llm.models import Message, ToolCallRequest
from deepchat.tools.base import ToolCallContext, ToolRegistry

logger = logging.getLogger(__name__)


class ToolDispatcher:
    """
    Executes tool calls against a registry.

    Args:
        registry: Tools available to the current run
    """

    def __init__(self, registry: ToolRegistry):
        self._registry = registry

    async def dispatch(self, tool_calls: Iterable[ToolCallRequest]) -> list[Message]:
        """Run every call in order and return one tool message per call."""
        return [await self.dispatch_one(call) for call in tool_calls]

    async def dispatch_one(self, call: ToolCallRequest) -> Message:
        """
        Run a single tool call.

        Raises:
            MalformedToolCall: Missing id/function, blank name, or arguments
                               that are not a JSON object
            UnknownTool: The name is not registered
            ToolExecutionError: The callback raised or returned no content
        """
        if call.function is None or not call.id:
            raise MalformedToolCall(
                "Tool call entry is missing 'id' or 'function'", tool_call=call.to_wire()
            )

        name = call.function.name
        if name is None or not name.strip():
            raise MalformedToolCall(
                "Missing 'name' in tool call function object", tool_call=call.to_wire()
            )
        if name not in self._registry:
            raise UnknownTool(name)

        arguments = self.parse_arguments(name, call.function.arguments)

        logger.info(f"Executing tool '{name}' (call {call.id})")
        outcome = await self._registry.invoke(
            name,
            ToolCallContext(arguments=arguments, tool_name=name, tool_call_id=call.id),
        )
        if not outcome.ok:
            logger.error(f"Tool '{name}' failed: {outcome.error}")
            raise ToolExecutionError(name, cause=outcome.error) from outcome.error

        return Message.tool(outcome.result.content, call.id)

    @staticmethod
    def parse_arguments(name: str, raw: str | None) -> dict[str, Any]:
        """
        Parse the model's argument string.

        None (field omitted) and blank strings both mean "no arguments".
        """
        if raw is None:
            logger.warning(f"Missing 'arguments' for tool call '{name}', assuming empty arguments")
            return {}
        if not raw.strip():
            return {}

        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as e:
            raise MalformedToolCall(
                f"Failed to parse arguments for tool call '{name}': {raw!r} ({e})",
                tool_call={"name": name, "arguments": raw},
                cause=e,
            ) from e

        if not isinstance(parsed, dict):
            raise MalformedToolCall(
                f"Arguments for tool call '{name}' must be a JSON object, got {type(parsed).__name__}",
                tool_call={"name": name, "arguments": raw},
            )
        return parsed
