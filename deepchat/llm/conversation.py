"""
Conversation history owned by one orchestration run.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from deepchat.llm.models import Message, Role


class ConversationState:
    """
    Ordered, append-only message history.

    Insertion order is the turn history sent back to the model, so messages
    are never reordered or removed. Tool messages must answer a call id that
    an earlier assistant message emitted.

    Args:
        messages: Seed messages, usually the initial request's messages
    """

    def __init__(self, messages: Iterable[Message] = ()):
        self._messages: list[Message] = []
        self._tool_call_ids: set[str] = set()
        for message in messages:
            self.append(message)

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    def known_tool_call_ids(self) -> frozenset[str]:
        return frozenset(self._tool_call_ids)

    def append(self, message: Message) -> None:
        """
        Append a message.

        Raises:
            ValueError: If a tool message references a call id no earlier
                        assistant message emitted
        """
        if message.role is Role.TOOL and message.tool_call_id not in self._tool_call_ids:
            raise ValueError(
                f"Tool message references unknown tool_call_id {message.tool_call_id!r}"
            )
        if message.role is Role.ASSISTANT and message.tool_calls:
            self._tool_call_ids.update(call.id for call in message.tool_calls if call.id)
        self._messages.append(message)

    def append_assistant(self, message: Message) -> Message:
        """Append an assistant reply stripped of its reasoning side channel."""
        replay = message.without_reasoning()
        self.append(replay)
        return replay

    def append_tool_result(self, tool_call_id: str, content: str) -> Message:
        message = Message.tool(content, tool_call_id)
        self.append(message)
        return message

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(self._messages)
