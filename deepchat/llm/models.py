"""
Typed wire models for the chat-completion API.

This module defines the data structures exchanged with the service:
- Role / Message: one entry of the conversation, request or response side
- FunctionCall / ToolCallRequest: a tool invocation issued by the model
- Choice, Logprobs, TokenLogprob: per-choice response data
- Usage, CompletionTokensDetails: token accounting
- ResponseDocument: the parsed result of one turn

Responses are parsed once per turn with ResponseDocument.model_validate().
Missing optional fields stay None so that "absent" can be told apart from
"present but malformed" by the orchestrator and the tool dispatcher.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Role(str, Enum):
    """Conversation roles understood by the service."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class FunctionCall(BaseModel):
    """Function part of a tool call: the tool name and its raw JSON arguments."""

    name: str | None = Field(None, description="Name of the tool the model wants to call")
    arguments: str | None = Field(
        None,
        description="Arguments as a JSON-encoded string, exactly as the model produced them. "
                    "None when the model omitted the field.",
    )

    model_config = ConfigDict(frozen=True, extra="ignore")


class ToolCallRequest(BaseModel):
    """A tool invocation issued by the model in an assistant message."""

    id: str | None = Field(None, description="Call id, echoed back as tool_call_id")
    type: str = Field(default="function", description='Always "function" for now')
    function: FunctionCall | None = Field(None, description="Called function")

    model_config = ConfigDict(frozen=True, extra="ignore")

    def to_wire(self) -> dict[str, Any]:
        """Replay form of the call. Fields the model left out stay out."""
        function = self.function or FunctionCall()
        wire_function: dict[str, Any] = {}
        if function.name is not None:
            wire_function["name"] = function.name
        if function.arguments is not None:
            wire_function["arguments"] = function.arguments
        return {"id": self.id, "type": self.type, "function": wire_function}


class Message(BaseModel):
    """
    One conversation entry.

    Assistant messages may carry tool_calls instead of content, and the
    reasoning tier adds a reasoning_content side channel. That side channel
    is display-only: to_wire() never emits it.

    Example:
        >>> Message.user("What's the weather in Berlin?").to_wire()
        {'role': 'user', 'content': "What's the weather in Berlin?"}
    """

    role: Role = Field(description="Author of the message")
    content: str | None = Field(None, description="Text content, None for tool-call-only turns")
    name: str | None = Field(None, description="Optional participant name")
    tool_call_id: str | None = Field(None, description="Id of the call a tool message answers")
    tool_calls: list[ToolCallRequest] | None = Field(
        None, description="Tool invocations requested by the model (assistant only)"
    )
    reasoning_content: str | None = Field(
        None, description="Reasoning-model side channel; never sent back to the model"
    )

    model_config = ConfigDict(frozen=True, extra="ignore")

    @model_validator(mode="after")
    def _tool_message_needs_call_id(self) -> Message:
        if self.role is Role.TOOL and not self.tool_call_id:
            raise ValueError("tool messages require a tool_call_id")
        return self

    @classmethod
    def system(cls, content: str, name: str | None = None) -> Message:
        return cls(role=Role.SYSTEM, content=content, name=name or None)

    @classmethod
    def user(cls, content: str, name: str | None = None) -> Message:
        return cls(role=Role.USER, content=content, name=name or None)

    @classmethod
    def assistant(
        cls,
        content: str | None,
        name: str | None = None,
        tool_calls: list[ToolCallRequest] | None = None,
    ) -> Message:
        return cls(role=Role.ASSISTANT, content=content, name=name or None, tool_calls=tool_calls or None)

    @classmethod
    def tool(cls, content: str, tool_call_id: str, name: str | None = None) -> Message:
        return cls(role=Role.TOOL, content=content, tool_call_id=tool_call_id, name=name or None)

    def without_reasoning(self) -> Message:
        """Return a copy with the reasoning side channel removed."""
        if self.reasoning_content is None:
            return self
        return self.model_copy(update={"reasoning_content": None})

    def to_wire(self) -> dict[str, Any]:
        """Serialize for the request body. Optional fields are omitted when unset."""
        wire: dict[str, Any] = {"role": self.role.value, "content": self.content}
        if self.name:
            wire["name"] = self.name
        if self.tool_call_id:
            wire["tool_call_id"] = self.tool_call_id
        if self.tool_calls:
            wire["tool_calls"] = [call.to_wire() for call in self.tool_calls]
        return wire


# ---------------------------------------------------------------------------
# Log probabilities
# ---------------------------------------------------------------------------

class TopLogprob(BaseModel):
    """One of the most likely alternative tokens at a position."""

    token: str | None = None
    logprob: float | None = None
    bytes: list[int] | None = None

    model_config = ConfigDict(frozen=True, extra="ignore")


class TokenLogprob(BaseModel):
    """Log probability of one generated token."""

    token: str | None = None
    logprob: float | None = None
    bytes: list[int] | None = None
    top_logprobs: list[TopLogprob] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, extra="ignore")


class Logprobs(BaseModel):
    """Per-choice log probability information."""

    content: list[TokenLogprob] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, extra="ignore")


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------

class Choice(BaseModel):
    """One completion choice."""

    index: int = 0
    finish_reason: str | None = Field(
        None,
        description='Why generation stopped: "stop", "length", "content_filter", '
                    '"tool_calls" or "insufficient_system_resource"',
    )
    message: Message | None = None
    logprobs: Logprobs | None = None

    model_config = ConfigDict(frozen=True, extra="ignore")


class CompletionTokensDetails(BaseModel):
    """Breakdown of completion tokens."""

    reasoning_tokens: int | None = Field(None, description="Tokens spent on reasoning")

    model_config = ConfigDict(frozen=True, extra="ignore")


class Usage(BaseModel):
    """Token accounting for one turn."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    prompt_cache_hit_tokens: int | None = Field(None, description="Prompt tokens served from cache")
    prompt_cache_miss_tokens: int | None = Field(None, description="Prompt tokens not served from cache")
    completion_tokens_details: CompletionTokensDetails | None = None

    model_config = ConfigDict(frozen=True, extra="ignore")

    @property
    def reasoning_tokens(self) -> int:
        if self.completion_tokens_details is None:
            return 0
        return self.completion_tokens_details.reasoning_tokens or 0


class ResponseDocument(BaseModel):
    """
    Parsed result of one turn.

    Read-only once parsed. The orchestrator inspects error, choices and the
    first choice's message; everything else is passed through to the caller.
    """

    id: str | None = None
    object: str | None = Field(None, description='Object type, "chat.completion"')
    created: int | None = Field(None, description="Unix timestamp (seconds)")
    model: str | None = None
    system_fingerprint: str | None = None
    choices: list[Choice] = Field(default_factory=list)
    usage: Usage | None = None
    error: Any = Field(None, description="Application-level error payload, if the service sent one")

    model_config = ConfigDict(frozen=True, extra="ignore")

    def first_choice(self) -> Choice | None:
        return self.choices[0] if self.choices else None

    def assistant_message(self) -> str | None:
        """Content of the first choice's message, or None."""
        choice = self.first_choice()
        if choice is None or choice.message is None:
            return None
        return choice.message.content

    def reasoning_content(self) -> str | None:
        choice = self.first_choice()
        if choice is None or choice.message is None:
            return None
        return choice.message.reasoning_content

    def finish_reason(self) -> str | None:
        choice = self.first_choice()
        return choice.finish_reason if choice is not None else None
