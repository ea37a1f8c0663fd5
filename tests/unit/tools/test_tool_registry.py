"""
Unit tests for tool definitions and the ToolRegistry.
"""

import pytest
from pydantic import ValidationError

from deepchat.tools.base import (
    ToolCallContext,
    ToolDefinition,
    ToolRegistry,
    ToolResult,
)
from deepchat.tools.schema import JsonSchema


def _context(**arguments) -> ToolCallContext:
    return ToolCallContext(arguments=arguments, tool_name="get_weather", tool_call_id="call_1")


class TestToolDefinition:

    def test_name_required(self):
        with pytest.raises(ValidationError):
            ToolDefinition(name="")

    def test_default_parameters(self):
        assert ToolDefinition(name="ping").parameters == {"type": "object"}

    def test_builder(self):
        tool = (
            ToolDefinition.build("get_weather")
            .description("Fetch the weather for a city.")
            .parameter("location", JsonSchema.string("City name"), required=True)
            .parameter("unit", JsonSchema.enum("Temperature unit", "celsius", "fahrenheit"))
            .build()
        )

        assert tool.name == "get_weather"
        assert tool.parameters == {
            "type": "object",
            "properties": {
                "location": {"type": "string", "description": "City name"},
                "unit": {
                    "type": "string",
                    "description": "Temperature unit",
                    "enum": ["celsius", "fahrenheit"],
                },
            },
            "required": ["location"],
            "additionalProperties": False,
        }

    def test_builder_allow_additional_properties(self):
        tool = ToolDefinition.build("echo").allow_additional_properties().build()
        assert tool.parameters["additionalProperties"] is True

    def test_wire_shape(self):
        tool = ToolDefinition(name="ping", description="Health check")
        assert tool.to_wire() == {
            "type": "function",
            "function": {"name": "ping", "description": "Health check", "parameters": {"type": "object"}},
        }


class TestToolRegistry:

    def test_duplicate_names_rejected(self):
        with pytest.raises(ValueError, match="Duplicate"):
            ToolRegistry([ToolDefinition(name="a"), ToolDefinition(name="a")])

    def test_lookup(self):
        tool = ToolDefinition(name="a")
        registry = ToolRegistry([tool, ToolDefinition(name="b")])

        assert "a" in registry
        assert "c" not in registry
        assert registry.get("a") is tool
        assert registry.get("c") is None
        assert registry.names() == ["a", "b"]
        assert len(registry) == 2
        assert [t.name for t in registry] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_invoke_unknown_raises_key_error(self):
        with pytest.raises(KeyError):
            await ToolRegistry().invoke("missing", _context())

    @pytest.mark.asyncio
    async def test_invoke_wraps_string_result(self):
        registry = ToolRegistry([ToolDefinition(name="get_weather", callback=lambda ctx: "sunny")])

        outcome = await registry.invoke("get_weather", _context())

        assert outcome.ok
        assert outcome.result == ToolResult.of("sunny")

    @pytest.mark.asyncio
    async def test_invoke_passes_context(self):
        registry = ToolRegistry([
            ToolDefinition(name="get_weather", callback=lambda ctx: f"weather in {ctx.get('location')}")
        ])

        outcome = await registry.invoke("get_weather", _context(location="Berlin"))

        assert outcome.result.content == "weather in Berlin"

    @pytest.mark.asyncio
    async def test_invoke_awaits_coroutine(self):
        async def callback(ctx):
            return ToolResult.of("async ok")

        registry = ToolRegistry([ToolDefinition(name="get_weather", callback=callback)])

        outcome = await registry.invoke("get_weather", _context())

        assert outcome.result.content == "async ok"

    @pytest.mark.asyncio
    async def test_exception_becomes_outcome_error(self):
        def callback(ctx):
            raise TimeoutError("upstream timeout")

        registry = ToolRegistry([ToolDefinition(name="get_weather", callback=callback)])

        outcome = await registry.invoke("get_weather", _context())

        assert not outcome.ok
        assert isinstance(outcome.error, TimeoutError)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("returned", [None, "", ToolResult(content=None), ToolResult.of("")])
    async def test_empty_result_is_an_error(self, returned):
        registry = ToolRegistry([ToolDefinition(name="get_weather", callback=lambda ctx: returned)])

        outcome = await registry.invoke("get_weather", _context())

        assert isinstance(outcome.error, ValueError)

    @pytest.mark.asyncio
    async def test_wrong_result_type_is_an_error(self):
        registry = ToolRegistry([ToolDefinition(name="get_weather", callback=lambda ctx: {"a": 1})])

        outcome = await registry.invoke("get_weather", _context())

        assert isinstance(outcome.error, TypeError)
        assert "dict" in str(outcome.error)

    @pytest.mark.asyncio
    async def test_missing_callback_is_an_error(self):
        registry = ToolRegistry([ToolDefinition(name="get_weather")])

        outcome = await registry.invoke("get_weather", _context())

        assert isinstance(outcome.error, RuntimeError)
