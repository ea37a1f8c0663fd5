"""
Integration tests for the orchestration stack.

These tests wire the REAL components together (DeepSeekClient, Orchestrator,
TurnExecutor, LiteLLMTransport, ToolRegistry) and only patch the
litellm.acompletion call. We never burn real API tokens in tests.

The value of these tests vs. unit tests:
- Unit tests use a scripted Transport and verify loop logic in isolation.
- These tests go through the LiteLLM call construction, the backoff loop
  and response parsing, catching wiring bugs between layers: wrong kwarg
  names, payload shape, litellm response objects vs. plain dicts.
"""

import json
from unittest.mock import AsyncMock, patch

import litellm
import pytest

from deepchat.client import DeepSeekClient
from deepchat.config.settings import ClientSettings, RetrySettings, Settings
from deepchat.llm.errors import TransientError, UnsupportedFeature
from deepchat.llm.models import Role
from deepchat.tools.base import ToolDefinition, ToolResult
from deepchat.tools.schema import JsonSchema


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class _RateLimited(Exception):
    status_code = 429


def _tool_call_body() -> dict:
    return {
        "id": "resp-1",
        "object": "chat.completion",
        "created": 1700000000,
        "model": "deepseek-chat",
        "choices": [{
            "index": 0,
            "finish_reason": "tool_calls",
            "message": {
                "role": "assistant",
                "content": None,
                "tool_calls": [{
                    "id": "call_0",
                    "type": "function",
                    "function": {"name": "get_weather", "arguments": json.dumps({"location": "Berlin"})},
                }],
            },
        }],
        "usage": {"prompt_tokens": 60, "completion_tokens": 18, "total_tokens": 78},
    }


def _final_body(content: str = "It's sunny in Berlin.") -> dict:
    return {
        "id": "resp-2",
        "object": "chat.completion",
        "created": 1700000001,
        "model": "deepseek-chat",
        "choices": [{
            "index": 0,
            "finish_reason": "stop",
            "message": {"role": "assistant", "content": content},
        }],
        "usage": {"prompt_tokens": 90, "completion_tokens": 9, "total_tokens": 99},
    }


def _weather_tool(calls: list) -> ToolDefinition:
    def get_weather(ctx):
        calls.append(ctx.arguments)
        return ToolResult.of(json.dumps({"city": ctx.get("location"), "forecast": "Sunny"}))

    return (
        ToolDefinition.build("get_weather")
        .description("Fetch the weather for a city.")
        .parameter("location", JsonSchema.string("City name"), required=True)
        .callback(get_weather)
        .build()
    )


@pytest.fixture
def client():
    settings = Settings(
        _env_file=None,
        client=ClientSettings(api_key="test-api-key", model="deepseek-chat"),
        retry=RetrySettings(max_attempts=2, backoff_base_ms=0, backoff_max_ms=0),
    )
    return DeepSeekClient(settings)


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestWeatherRoundTrip:

    @pytest.mark.asyncio
    async def test_full_stack_tool_round_trip(self, client):
        calls = []
        request = (
            client.new_request()
            .add_system_message("You can call get_weather if needed.")
            .add_user_message("What's the weather in Berlin?")
            .add_tool(_weather_tool(calls))
        )

        with patch(
            "deepchat.llm.transport.acompletion",
            new_callable=AsyncMock,
            side_effect=[_tool_call_body(), _final_body()],
        ) as mock_call:
            result = await client.chat_with_history(request)

        assert result.response.assistant_message() == "It's sunny in Berlin."
        assert calls == [{"location": "Berlin"}]
        assert [m.role for m in result.messages] == [
            Role.SYSTEM, Role.USER, Role.ASSISTANT, Role.TOOL, Role.ASSISTANT,
        ]

        first, second = (c.kwargs for c in mock_call.call_args_list)
        assert first["model"] == "deepseek/deepseek-chat"
        assert first["tools"][0]["function"]["name"] == "get_weather"
        assert first["tools"][0]["function"]["parameters"]["required"] == ["location"]
        assert [m["role"] for m in second["messages"]] == ["system", "user", "assistant", "tool"]
        assert second["messages"][2]["tool_calls"][0]["id"] == "call_0"
        assert json.loads(second["messages"][3]["content"]) == {"city": "Berlin", "forecast": "Sunny"}

    @pytest.mark.asyncio
    async def test_litellm_response_objects_are_parsed(self, client):
        response = litellm.ModelResponse(**_final_body("Plain answer."))

        with patch("deepchat.llm.transport.acompletion", new_callable=AsyncMock, return_value=response):
            document = await client.chat(client.new_request().add_user_message("Hi"))

        assert document.assistant_message() == "Plain answer."
        assert document.finish_reason() == "stop"


class TestFailureWiring:

    @pytest.mark.asyncio
    async def test_rate_limit_retried_then_surfaced(self, client):
        with patch(
            "deepchat.llm.transport.acompletion",
            new_callable=AsyncMock,
            side_effect=_RateLimited("slow down"),
        ) as mock_call:
            with pytest.raises(TransientError):
                await client.chat(client.new_request().add_user_message("Hi"))

        assert mock_call.call_count == 2

    @pytest.mark.asyncio
    async def test_reasoner_with_tools_never_reaches_litellm(self, client):
        request = client.new_request("deepseek-reasoner").add_user_message("Hi").add_tool(_weather_tool([]))

        with patch("deepchat.llm.transport.acompletion", new_callable=AsyncMock) as mock_call:
            with pytest.raises(UnsupportedFeature):
                await client.chat(request)

        mock_call.assert_not_called()
