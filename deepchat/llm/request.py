"""
Immutable request snapshot for one turn.

A RequestSnapshot holds everything needed to issue one chat-completion call:
model, message history, sampling and formatting options, tool definitions,
tool-choice directive, and the caller's cancellation, timeout and capture
hooks. It is never mutated. The builder helpers and with_messages() each
return a new snapshot, which is how the orchestrator rebuilds the request for
the next turn: static parameters come from the initial request, only the
message list changes.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from deepchat.llm.models import Message, ToolCallRequest
from deepchat.tools.base import ToolDefinition


class ResponseFormat(BaseModel):
    """response_format object: plain text or a JSON object."""

    type: Literal["text", "json_object"] = "text"

    model_config = ConfigDict(frozen=True)

    @classmethod
    def text(cls) -> ResponseFormat:
        return cls(type="text")

    @classmethod
    def json_object(cls) -> ResponseFormat:
        return cls(type="json_object")

    def to_wire(self) -> dict[str, Any]:
        return {"type": self.type}


class StreamOptions(BaseModel):
    """stream_options object. Only include_usage is defined."""

    include_usage: bool | None = None

    model_config = ConfigDict(frozen=True)

    def to_wire(self) -> dict[str, Any]:
        if self.include_usage is None:
            return {}
        return {"include_usage": self.include_usage}


ToolChoice = str | dict[str, Any]


class RequestSnapshot(BaseModel):
    """
    Immutable chat-completion request.

    Example:
        >>> request = (
        ...     RequestSnapshot(model="deepseek-chat", temperature=0.2)
        ...     .add_system_message("You are a helpful assistant.")
        ...     .add_user_message("What's the weather in Berlin?")
        ...     .add_tool(weather_tool)
        ... )
        >>> request.to_payload()["messages"][1]
        {'role': 'user', 'content': "What's the weather in Berlin?"}
    """

    model: str = Field(description="Model id, e.g. 'deepseek-chat' or 'deepseek-reasoner'")
    messages: tuple[Message, ...] = Field(default_factory=tuple)

    # Sampling / formatting
    frequency_penalty: float | None = None
    max_tokens: int | None = None
    presence_penalty: float | None = None
    response_format: ResponseFormat | None = None
    stop: str | list[str] | None = None
    stream: bool | None = None
    stream_options: StreamOptions | None = None
    temperature: float | None = None
    top_p: float | None = None
    logprobs: bool | None = None
    top_logprobs: int | None = None

    # Tools
    tools: tuple[ToolDefinition, ...] = Field(default_factory=tuple)
    tool_choice: ToolChoice | None = Field(
        None,
        description='"auto", "none", "required", or {"type": "function", "function": {"name": ...}}',
    )

    # Caller controls, never serialized
    timeout_seconds: float | None = Field(
        None, description="Upper bound for one transport execution, retries included"
    )
    cancel_check: Callable[[], bool] | None = Field(
        None, description="Polled by the transport before each attempt; True cancels"
    )
    on_success: Callable[..., Any] | None = Field(None, description="Called with each parsed ResponseDocument")
    on_error: Callable[..., Any] | None = Field(None, description="Called with each turn-level error")

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    # ------------------------------------------------------------------
    # Builder helpers (each returns a new snapshot)
    # ------------------------------------------------------------------

    def add_message(self, message: Message) -> RequestSnapshot:
        return self.model_copy(update={"messages": self.messages + (message,)})

    def add_system_message(self, content: str, name: str | None = None) -> RequestSnapshot:
        return self.add_message(Message.system(content, name=name))

    def add_user_message(self, content: str, name: str | None = None) -> RequestSnapshot:
        return self.add_message(Message.user(content, name=name))

    def add_assistant_message(
        self,
        content: str | None,
        name: str | None = None,
        tool_calls: Iterable[ToolCallRequest] | None = None,
    ) -> RequestSnapshot:
        """Append an assistant turn, optionally one that requested tool calls."""
        calls = list(tool_calls) if tool_calls is not None else None
        return self.add_message(Message.assistant(content, name=name, tool_calls=calls))

    def add_tool_message(self, content: str, tool_call_id: str, name: str | None = None) -> RequestSnapshot:
        return self.add_message(Message.tool(content, tool_call_id, name=name))

    def add_tool(self, tool: ToolDefinition) -> RequestSnapshot:
        return self.model_copy(update={"tools": self.tools + (tool,)})

    def with_options(self, **options: Any) -> RequestSnapshot:
        """Return a copy with the given fields replaced (validated)."""
        data = {name: getattr(self, name) for name in type(self).model_fields}
        data.update(options)
        return type(self).model_validate(data)

    def with_messages(self, messages: Iterable[Message]) -> RequestSnapshot:
        """
        Rebuild the request around a new message history.

        Every other field (model, sampling options, tools, tool choice,
        timeout, cancellation and capture hooks) is carried over unchanged,
        so per-turn parameters stay stable across a whole run.
        """
        return self.model_copy(update={"messages": tuple(messages)})

    # ------------------------------------------------------------------
    # Wire format
    # ------------------------------------------------------------------

    def to_payload(self) -> dict[str, Any]:
        """
        Build the JSON request body.

        Unset optional fields are omitted, except stream, which is always
        sent. stream_options is only sent when it carries a value and tools
        only when at least one is defined.
        """
        body: dict[str, Any] = {
            "model": self.model,
            "messages": [message.to_wire() for message in self.messages],
        }
        if self.frequency_penalty is not None:
            body["frequency_penalty"] = self.frequency_penalty
        if self.max_tokens is not None:
            body["max_tokens"] = self.max_tokens
        if self.presence_penalty is not None:
            body["presence_penalty"] = self.presence_penalty
        if self.response_format is not None:
            body["response_format"] = self.response_format.to_wire()
        if self.stop is not None:
            body["stop"] = self.stop
        # Always present; turns are never incremental
        body["stream"] = bool(self.stream)
        if self.stream_options is not None and self.stream_options.to_wire():
            body["stream_options"] = self.stream_options.to_wire()
        if self.temperature is not None:
            body["temperature"] = self.temperature
        if self.top_p is not None:
            body["top_p"] = self.top_p
        if self.tools:
            body["tools"] = [tool.to_wire() for tool in self.tools]
        if self.tool_choice is not None:
            body["tool_choice"] = self.tool_choice
        if self.logprobs is not None:
            body["logprobs"] = self.logprobs
        if self.top_logprobs is not None:
            body["top_logprobs"] = self.top_logprobs
        return body
