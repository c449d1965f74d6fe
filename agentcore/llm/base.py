"""
Model Endpoint Contract
=======================

The only view the core has of a language model. Provider adapters
implement ModelEndpoint; everything above this line (Context, workflows)
works purely in terms of Messages, ToolDescriptors and LLMResponses.

Sharing:
    One endpoint may back many Contexts. The core never serializes access
    to it, so an endpoint shared across concurrently running contexts must
    be reentrant.

Failures:
    chat() and chat_with_tools() report transport failures as an
    LLMResponse with `error` set instead of raising. stream_chat() raises
    TransportError, since chunks may already have been delivered.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

from agentcore.media import MediaEnvelope, text
from agentcore.memory import Message, Role, ToolCall
from agentcore.tools import ToolDescriptor

# on_chunk(text, done): called once per streamed chunk, then once with done=True
ChunkCallback = Callable[[str, bool], None]


@dataclass
class LLMResponse:
    """
    A model reply.

    Attributes:
        content: Text of the reply
        tool_calls: Tools the model asked to run (empty for a final answer)
        media: Non-text output, as envelopes
        model: Model that produced the reply
        finish_reason: Provider's stop reason
        usage: Token accounting, if reported
        error: Set when the call failed; content is then empty
        status_code: HTTP status of a failed call, if known
    """
    content: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)
    media: list[MediaEnvelope] = field(default_factory=list)
    model: str | None = None
    finish_reason: str | None = None
    usage: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    status_code: int | None = None

    @classmethod
    def failed(cls, error: str, status_code: int | None = None, model: str | None = None) -> "LLMResponse":
        return cls(error=error, status_code=status_code, model=model)

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)

    def to_message(self) -> Message:
        """The Assistant message recording this reply."""
        parts = [text(self.content)] if self.content else []
        parts.extend(self.media)
        return Message(role=Role.ASSISTANT, parts=tuple(parts), tool_calls=tuple(self.tool_calls))


class ModelEndpoint(ABC):
    """
    Abstract language-model endpoint.

    Subclasses implement the three conversation calls; upload_media is
    optional and returns None by default.
    """

    model: str = ""

    @abstractmethod
    async def chat(self, messages: Sequence[Message]) -> LLMResponse:
        """Complete a conversation."""

    @abstractmethod
    async def chat_with_tools(
        self,
        messages: Sequence[Message],
        tools: Sequence[ToolDescriptor]
    ) -> LLMResponse:
        """Complete a conversation, letting the model request tool calls."""

    @abstractmethod
    async def stream_chat(self, messages: Sequence[Message], on_chunk: ChunkCallback) -> None:
        """
        Complete a conversation incrementally.

        Calls on_chunk(text, False) for each chunk and on_chunk("", True)
        when the reply is complete.

        Raises:
            TransportError: If the call fails, possibly after some chunks
        """

    async def upload_media(
        self,
        path: str,
        mime: str,
        data: bytes | None = None
    ) -> MediaEnvelope | None:
        """
        Make a local file available to the model.

        Returns:
            An envelope referencing the uploaded media, or None when the
            endpoint has no upload support
        """
        return None
