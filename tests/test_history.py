"""
Tests for messages and conversation history
"""

import pytest

from agentcore import media
from agentcore.memory import ConversationHistory, Message, Role, ToolCall, with_system_prompt


class TestMessage:
    """Test Message"""

    def test_from_text(self):
        message = Message.from_text("user", "Hello")
        assert message.role is Role.USER
        assert message.text == "Hello"
        assert message.media == []

    def test_text_joins_text_parts(self):
        image = media.image_uri("https://x/a.png", "image/png")
        message = Message(role=Role.USER, parts=[media.text("Look"), image, media.text("at this")])
        assert message.text == "Look\nat this"
        assert message.media == [image]
        assert isinstance(message.parts, tuple)

    def test_messages_are_immutable(self):
        message = Message.from_text(Role.ASSISTANT, "fixed")
        with pytest.raises(AttributeError):
            message.parts = ()

    def test_to_dict(self):
        call = ToolCall(id="call_1", name="echo", arguments={"text": "hi"})
        message = Message(role=Role.ASSISTANT, tool_calls=[call])
        assert message.to_dict() == {
            "role": "assistant",
            "parts": [],
            "tool_calls": [{"id": "call_1", "name": "echo", "arguments": {"text": "hi"}}],
        }

        tool_message = Message.from_text(Role.TOOL, "ok", name="echo", tool_call_id="call_1")
        assert tool_message.to_dict() == {
            "role": "tool",
            "parts": [{"type": "text", "text": "ok"}],
            "name": "echo",
            "tool_call_id": "call_1",
        }

    def test_messages_are_hashable(self):
        call = ToolCall(id="call_1", name="echo", arguments={"text": "hi"})
        first = Message(role=Role.ASSISTANT, parts=[media.text("ok")], tool_calls=[call])
        second = Message(role=Role.ASSISTANT, parts=[media.text("ok")], tool_calls=[call])

        assert first == second
        assert hash(first) == hash(second)
        assert hash(call) == hash(ToolCall(id="call_1", name="echo", arguments={"text": "hi"}))

    def test_unknown_role(self):
        with pytest.raises(ValueError):
            Message.from_text("narrator", "Once upon a time")


class TestConversationHistory:
    """Test ConversationHistory"""

    def test_append_and_order(self):
        history = ConversationHistory()
        history.append(Message.from_text(Role.USER, "one"))
        history.append(Message.from_text(Role.ASSISTANT, "two"))

        assert len(history) == 2
        assert [m.text for m in history] == ["one", "two"]
        assert history.last().text == "two"
        assert history[0].text == "one"

    def test_messages_returns_copy(self):
        history = ConversationHistory([Message.from_text(Role.USER, "one")])
        snapshot = history.messages()
        snapshot.clear()
        assert len(history) == 1

    def test_rejects_non_messages(self):
        with pytest.raises(TypeError):
            ConversationHistory().append({"role": "user", "content": "hi"})

    def test_bounded_history_drops_oldest(self):
        history = ConversationHistory(max_messages=2)
        for word in ["a", "b", "c"]:
            history.append(Message.from_text(Role.USER, word))
        assert [m.text for m in history] == ["b", "c"]

    def test_recent(self):
        history = ConversationHistory([Message.from_text(Role.USER, str(i)) for i in range(5)])
        assert [m.text for m in history.recent(2)] == ["3", "4"]
        assert history.recent(0) == []

    def test_copy_and_clear(self):
        history = ConversationHistory([Message.from_text(Role.USER, "one")])
        clone = history.copy()
        history.clear()
        assert len(history) == 0
        assert history.last() is None
        assert len(clone) == 1

    def test_with_system_prompt(self):
        messages = [Message.from_text(Role.USER, "hi")]
        prefixed = with_system_prompt("Be brief.", messages)
        assert prefixed[0].role is Role.SYSTEM
        assert prefixed[0].text == "Be brief."
        assert prefixed[1:] == messages
        assert with_system_prompt("", messages) == messages
