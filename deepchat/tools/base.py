"""
Tool definitions and the per-run tool registry.

A ToolDefinition bundles everything the model and the orchestrator need to
know about one locally implemented function: the name the model calls it by,
a description, the JSON schema of its parameters and the callback that runs
it. Definitions are built once by the caller and shared read-only across all
turns of a run.

The registry is the only place that touches caller code. ToolRegistry.invoke()
runs a callback and folds whatever happens into a ToolOutcome, so the rest of
the orchestrator never has to reason about foreign exception types.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Iterable, Iterator
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field

from deepchat.tools.schema import JsonSchema


class ToolCallContext(BaseModel):
    """Arguments the model supplied for one tool call."""

    arguments: dict[str, Any] = Field(default_factory=dict, description="Parsed argument object")
    tool_name: str | None = Field(None, description="Name of the tool being called")
    tool_call_id: str | None = Field(None, description="Id of the originating tool call")

    model_config = ConfigDict(frozen=True)

    def get(self, key: str, default: Any = None) -> Any:
        return self.arguments.get(key, default)


class ToolResult(BaseModel):
    """Content a callback hands back to the model, typically JSON text."""

    content: str | None = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def of(cls, content: str) -> ToolResult:
        return cls(content=content)


ToolCallback = Callable[
    [ToolCallContext],
    Union[ToolResult, str, None, Awaitable[Union[ToolResult, str, None]]],
]


class ToolDefinition(BaseModel):
    """
    A function-style tool the model may call.

    Example:
        >>> weather = (
        ...     ToolDefinition.build("get_weather")
        ...     .description("Fetch the weather for a city.")
        ...     .parameter("location", JsonSchema.string("City name"), required=True)
        ...     .callback(lambda ctx: ToolResult.of('{"forecast": "Sunny"}'))
        ...     .build()
        ... )
    """

    name: str = Field(min_length=1, description="Unique tool name")
    description: str | None = Field(None, description="What the tool does, shown to the model")
    parameters: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object"},
        description="Serialized JSON schema of the argument object (opaque to the orchestrator)",
    )
    callback: Callable[..., Any] | None = Field(None, description="Function run when the model calls the tool")

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    def to_wire(self) -> dict[str, Any]:
        """Tool entry for the request body."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }

    @staticmethod
    def build(name: str) -> ToolDefinitionBuilder:
        return ToolDefinitionBuilder(name)


class ToolDefinitionBuilder:
    """Fluent builder producing an object-typed parameter schema."""

    def __init__(self, name: str):
        self._name = name
        self._description: str | None = None
        self._schema = JsonSchema.object()
        self._callback: Callable[..., Any] | None = None
        self._additional_properties = False

    def description(self, text: str) -> ToolDefinitionBuilder:
        self._description = text
        return self

    def parameter(self, name: str, schema: JsonSchema, required: bool = False) -> ToolDefinitionBuilder:
        self._schema.property(name, schema, required=required)
        return self

    def callback(self, fn: Callable[..., Any]) -> ToolDefinitionBuilder:
        self._callback = fn
        return self

    def allow_additional_properties(self) -> ToolDefinitionBuilder:
        self._additional_properties = True
        return self

    def build(self) -> ToolDefinition:
        self._schema.additional_properties(self._additional_properties)
        return ToolDefinition(
            name=self._name,
            description=self._description,
            parameters=self._schema.to_dict(),
            callback=self._callback,
        )


class ToolOutcome(BaseModel):
    """Result-or-error of one callback invocation."""

    result: ToolResult | None = None
    error: BaseException | None = None

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @property
    def ok(self) -> bool:
        return self.error is None and self.result is not None


class ToolRegistry:
    """
    Name → ToolDefinition index for one orchestration run.

    Args:
        tools: Definitions to register. Names must be unique.

    Raises:
        ValueError: If two definitions share a name
    """

    def __init__(self, tools: Iterable[ToolDefinition] | None = None):
        self._tools: dict[str, ToolDefinition] = {}
        for tool in tools or ():
            self.register(tool)

    def register(self, tool: ToolDefinition) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Duplicate tool name: {tool.name!r}")
        self._tools[tool.name] = tool

    def get(self, name: str) -> ToolDefinition | None:
        return self._tools.get(name)

    def names(self) -> list[str]:
        return list(self._tools)

    def definitions(self) -> list[ToolDefinition]:
        return list(self._tools.values())

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[ToolDefinition]:
        return iter(self._tools.values())

    async def invoke(self, name: str, context: ToolCallContext) -> ToolOutcome:
        """
        Run the callback registered under `name`.

        Sync callbacks run inline and block the run until they return;
        a callback that returns an awaitable is awaited in place.
        An exception from the callback, a missing callback, or a missing or
        empty result all come back as ToolOutcome.error.

        Raises:
            KeyError: If no tool is registered under `name`
        """
        tool = self._tools[name]
        if tool.callback is None:
            return ToolOutcome(error=RuntimeError(f"Tool '{name}' has no callback"))

        try:
            raw = tool.callback(context)
            if inspect.isawaitable(raw):
                raw = await raw
        except Exception as e:
            return ToolOutcome(error=e)

        result = ToolResult(content=raw) if isinstance(raw, str) else raw
        if result is not None and not isinstance(result, ToolResult):
            return ToolOutcome(
                error=TypeError(
                    f"Tool callback for '{name}' returned {type(raw).__name__}, "
                    "expected ToolResult or str"
                )
            )
        if result is None or not result.content:
            return ToolOutcome(
                error=ValueError(f"Tool callback for '{name}' returned no content")
            )
        return ToolOutcome(result=result)
