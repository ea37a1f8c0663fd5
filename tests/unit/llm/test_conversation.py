"""
Unit tests for ConversationState.
"""

import pytest

from deepchat.llm.conversation import ConversationState
from deepchat.llm.models import FunctionCall, Message, Role, ToolCallRequest


def _assistant_with_calls(*call_ids: str) -> Message:
    return Message(
        role=Role.ASSISTANT,
        content=None,
        tool_calls=[
            ToolCallRequest(id=call_id, function=FunctionCall(name="get_weather", arguments="{}"))
            for call_id in call_ids
        ],
    )


class TestConversationState:

    def test_seeded_in_order(self):
        state = ConversationState([Message.system("sys"), Message.user("hi")])
        assert [m.content for m in state] == ["sys", "hi"]
        assert len(state) == 2

    def test_messages_is_a_snapshot(self):
        state = ConversationState([Message.user("hi")])
        snapshot = state.messages
        state.append(Message.assistant("hello"))
        assert len(snapshot) == 1
        assert len(state.messages) == 2

    def test_tool_message_needs_known_call_id(self):
        state = ConversationState([Message.user("hi")])
        with pytest.raises(ValueError, match="call_9"):
            state.append(Message.tool("{}", "call_9"))

    def test_tool_message_after_matching_call(self):
        state = ConversationState([Message.user("hi"), _assistant_with_calls("call_1", "call_2")])
        state.append_tool_result("call_2", '{"ok":true}')
        state.append_tool_result("call_1", '{"ok":true}')

        assert state.known_tool_call_ids() == {"call_1", "call_2"}
        assert [m.tool_call_id for m in state.messages[2:]] == ["call_2", "call_1"]

    def test_seed_with_orphan_tool_message_rejected(self):
        with pytest.raises(ValueError):
            ConversationState([Message.user("hi"), Message.tool("{}", "call_1")])

    def test_append_assistant_strips_reasoning(self):
        state = ConversationState()
        replay = state.append_assistant(
            Message(role=Role.ASSISTANT, content="42", reasoning_content="thinking")
        )
        assert replay.reasoning_content is None
        assert state.messages[-1] is replay
