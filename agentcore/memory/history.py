"""
Conversation History
====================

In-memory, append-only record of a conversation.

- Messages are immutable once created; history only ever appends
- Lives only in RAM (nothing survives a restart)
- Optionally bounded: the oldest messages are dropped past max_messages

A history belongs to exactly one Context and is written by a single
writer. Concurrent writers must synchronize outside this class.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Iterator, Sequence

from agentcore.media import MediaEnvelope, text as text_part


class Role(str, Enum):
    """Who a message comes from."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass(frozen=True)
class ToolCall:
    """
    A tool invocation requested by the model.

    Attributes:
        id: Provider-assigned call ID (matches the Tool message answering it)
        name: The tool name
        arguments: Parsed arguments dict
    """
    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict, hash=False)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "arguments": dict(self.arguments)}


@dataclass(frozen=True)
class Message:
    """
    A single entry in the conversation.

    Attributes:
        role: Who sent the message
        parts: Content as media envelopes, in order
        name: Tool name for Tool messages, optional speaker name otherwise
        tool_call_id: For Tool messages, the call being answered
        tool_calls: For Assistant messages, the tools the model asked for
        timestamp: When the message was created
    """
    role: Role
    parts: tuple[MediaEnvelope, ...] = ()
    name: str | None = None
    tool_call_id: str | None = None
    tool_calls: tuple[ToolCall, ...] = ()
    timestamp: datetime = field(default_factory=datetime.now, compare=False)

    def __post_init__(self):
        # Accept plain strings and lists from callers, store canonical types
        object.__setattr__(self, "role", Role(self.role))
        object.__setattr__(self, "parts", tuple(self.parts))
        object.__setattr__(self, "tool_calls", tuple(self.tool_calls))

    @classmethod
    def from_text(cls, role: Role | str, content: str, **kwargs) -> "Message":
        """Build a message holding a single text part."""
        return cls(role=role, parts=(text_part(content),), **kwargs)

    @property
    def text(self) -> str:
        """All text parts joined by newlines."""
        return "\n".join(part.text for part in self.parts if part.is_text and part.text)

    @property
    def media(self) -> list[MediaEnvelope]:
        """Non-text parts."""
        return [part for part in self.parts if not part.is_text]

    def to_dict(self) -> dict:
        """Convert to a JSON-ready dict using the canonical envelope shape."""
        result: dict[str, Any] = {
            "role": self.role.value,
            "parts": [part.to_dict() for part in self.parts],
        }
        if self.name is not None:
            result["name"] = self.name
        if self.tool_call_id is not None:
            result["tool_call_id"] = self.tool_call_id
        if self.tool_calls:
            result["tool_calls"] = [call.to_dict() for call in self.tool_calls]
        return result


class ConversationHistory:
    """
    Ordered message storage for one conversation.

    Example:
        history = ConversationHistory()
        history.append(Message.from_text(Role.USER, "Hello!"))
        history.append(Message.from_text(Role.ASSISTANT, "Hi there!"))

        history.recent(1)  # [Message(role=Role.ASSISTANT, ...)]
    """

    def __init__(self, messages: Iterable[Message] = (), max_messages: int | None = None):
        """
        Args:
            messages: Initial messages
            max_messages: Keep at most this many messages (None = unbounded)
        """
        self.max_messages = max_messages
        self._messages: list[Message] = []
        self.extend(messages)

    def append(self, message: Message) -> None:
        if not isinstance(message, Message):
            raise TypeError(f"Expected Message, got {type(message).__name__}")
        self._messages.append(message)
        if self.max_messages is not None and len(self._messages) > self.max_messages:
            self._messages = self._messages[-self.max_messages:]

    def extend(self, messages: Iterable[Message]) -> None:
        for message in messages:
            self.append(message)

    def messages(self) -> list[Message]:
        """A copy of every message, oldest first."""
        return list(self._messages)

    def recent(self, limit: int) -> list[Message]:
        if limit <= 0:
            return []
        return self._messages[-limit:]

    def last(self) -> Message | None:
        return self._messages[-1] if self._messages else None

    def clear(self) -> None:
        self._messages.clear()

    def copy(self) -> "ConversationHistory":
        return ConversationHistory(self._messages, self.max_messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(list(self._messages))

    def __getitem__(self, index: int) -> Message:
        return self._messages[index]


def with_system_prompt(system_prompt: str | None, messages: Sequence[Message]) -> list[Message]:
    """Prefix messages with a System message when a prompt is set."""
    if not system_prompt:
        return list(messages)
    return [Message.from_text(Role.SYSTEM, system_prompt), *messages]
