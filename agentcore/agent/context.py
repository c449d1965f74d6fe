"""
Conversation Context
====================

A Context ties a model endpoint to a tool registry, a message history and
a system prompt, and offers three ways to talk to the model:

    chat()             one request, one reply
    chat_with_tools()  the model may call tools until it gives a final answer
    stream_chat()      the reply arrives as text chunks

Agent Loop (chat_with_tools):
    User Message
         │
         ▼
    Model Request with Tools ◄─────────┐
         │                             │
    Has Tool Calls? ── Yes ──► Execute Tools,
         │                     record Tool messages
         No                    (fail past the depth cap)
         │
         ▼
    Record Assistant Reply

Ownership:
    The registry and the history belong to this Context alone. The model
    endpoint is shared: several Contexts (see fork()) may use one endpoint,
    which must then be reentrant. A Context has a single writer; running
    two operations on the same Context concurrently interleaves history.
"""

import base64
import mimetypes
import re
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

from agentcore.agent.tools_executor import ToolExecutor
from agentcore.errors import InvalidEnvelope, ToolLoopExceeded
from agentcore.llm.base import LLMResponse, ModelEndpoint
from agentcore.media import (
    MediaEnvelope,
    from_kind,
    kind_from_mime,
    normalize,
    text,
    try_parse_envelope_from_string,
)
from agentcore.memory import ConversationHistory, Message, Role, with_system_prompt
from agentcore.runtime import AsyncStream, Channel, Task, unit_of_work
from agentcore.tools import Tool, ToolRegistry, ToolResult
from agentcore.utils.config import get_config
from agentcore.utils.logger import Logger

logger = Logger("Context")

MediaReference = MediaEnvelope | Mapping[str, Any] | str

_REMOTE_URI = re.compile(r"^(https?|gs|file)://", re.IGNORECASE)
_DEFAULT_MIME = "application/octet-stream"


class Context:
    """
    Conversation state plus the operations that advance it.

    Example:
        context = Context(model=OpenAIEndpoint(), system_prompt="You are helpful.")
        context.register_tool(shell_command_tool)

        reply = await context.chat_with_tools("How much disk space is free?")
        print(reply.content)

        async with context.stream_chat("Now explain it briefly") as stream:
            async for chunk in stream:
                print(chunk, end="")
    """

    def __init__(
        self,
        model: ModelEndpoint | None = None,
        system_prompt: str | None = None,
        max_tool_iterations: int | None = None,
        tools: Iterable[Tool] = (),
        history: Iterable[Message] = ()
    ):
        """
        Initialize a context.

        Args:
            model: Shared model endpoint (can be set later with set_model)
            system_prompt: Prompt sent ahead of the history on every call
            max_tool_iterations: Cap on consecutive tool-requesting replies
            tools: Tools to register
            history: Messages to start from
        """
        config = get_config().agent

        self._model = model
        self.system_prompt = system_prompt if system_prompt is not None else config.system_prompt
        self.max_tool_iterations = (
            max_tool_iterations if max_tool_iterations is not None else config.max_tool_iterations
        )

        self._registry = ToolRegistry(tools)
        self._history = ConversationHistory(history)
        self.tool_executor = ToolExecutor(self._registry)

    # ==========================================================================
    # Model, prompt and tools
    # ==========================================================================

    @property
    def model(self) -> ModelEndpoint | None:
        return self._model

    def set_model(self, model: ModelEndpoint) -> None:
        self._model = model

    def _require_model(self) -> ModelEndpoint:
        if self._model is None:
            raise RuntimeError("Context has no model endpoint; call set_model() first")
        return self._model

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def tools(self) -> list[Tool]:
        return self._registry.get_all()

    def register_tool(self, tool: Tool) -> None:
        """
        Register a tool.

        Raises:
            DuplicateToolError: If a tool with this name already exists
        """
        self._registry.add(tool)

    def register_tools(self, tools: Iterable[Tool] | ToolRegistry) -> None:
        """Register every tool from an iterable or another registry."""
        if isinstance(tools, ToolRegistry):
            tools = tools.get_all()
        for tool in tools:
            self._registry.add(tool)

    def get_tool(self, name: str) -> Tool | None:
        return self._registry.get(name)

    def execute_tool(self, name: str, params: Mapping[str, Any] | None = None) -> Task[ToolResult]:
        """Dispatch a tool directly, outside any model loop."""
        return self._registry.dispatch(name, params)

    # ==========================================================================
    # History
    # ==========================================================================

    def add_message(self, message: Message) -> None:
        self._history.append(message)

    @property
    def messages(self) -> list[Message]:
        """A copy of the history, oldest first."""
        return self._history.messages()

    def clear_history(self) -> None:
        self._history.clear()

    def fork(self, system_prompt: str | None = None, include_history: bool = False) -> "Context":
        """
        Create an independent Context on the same model endpoint.

        The fork gets a copy of the tools and, on request, of the history.
        Nothing done on the fork is visible here.
        """
        return Context(
            model=self._model,
            system_prompt=self.system_prompt if system_prompt is None else system_prompt,
            max_tool_iterations=self.max_tool_iterations,
            tools=self._registry.get_all(),
            history=self._history.messages() if include_history else (),
        )

    def _request_messages(self, pending: Sequence[Message] = ()) -> list[Message]:
        return with_system_prompt(self.system_prompt, [*self._history.messages(), *pending])

    # ==========================================================================
    # Building user messages
    # ==========================================================================

    async def _resolve_media(self, item: MediaReference) -> MediaEnvelope:
        """Turn one media reference into an envelope."""
        if isinstance(item, (MediaEnvelope, Mapping)):
            return normalize(item)
        if not isinstance(item, str):
            raise InvalidEnvelope(f"Unsupported media reference type: {type(item).__name__}")

        envelope = try_parse_envelope_from_string(item)
        if envelope is not None:
            return envelope

        if _REMOTE_URI.match(item):
            mime = mimetypes.guess_type(item)[0] or _DEFAULT_MIME
            return from_kind(kind_from_mime(mime), mime, uri=item)

        path = Path(item).expanduser()
        if path.is_file():
            mime = mimetypes.guess_type(path.name)[0] or _DEFAULT_MIME
            uploaded = await self._require_model().upload_media(str(path), mime)
            if uploaded is not None:
                return normalize(uploaded)
            data = path.read_bytes()
            return from_kind(
                kind_from_mime(mime),
                mime,
                data=base64.b64encode(data).decode("ascii"),
                meta={"size_bytes": len(data)},
            )

        raise InvalidEnvelope(f"Unrecognized media reference: {item[:80]!r}")

    async def build_user_message(
        self,
        user_text: str,
        media: Sequence[MediaReference] | None = None
    ) -> Message:
        """
        Build a User message from text and media references.

        Media may be envelopes, envelope dicts or JSON, data URLs, remote
        URIs or local file paths.

        Raises:
            InvalidEnvelope: If any reference cannot be resolved, or the
                message would be empty
        """
        parts: list[MediaEnvelope] = []
        if user_text:
            parts.append(text(user_text))
        for item in media or ():
            parts.append(await self._resolve_media(item))
        if not parts:
            raise InvalidEnvelope("A user message needs text or media")
        return Message(role=Role.USER, parts=tuple(parts))

    # ==========================================================================
    # Conversation operations
    # ==========================================================================

    @unit_of_work
    async def chat(
        self,
        user_text: str,
        media: Sequence[MediaReference] | None = None
    ) -> LLMResponse:
        """
        Send a user message and record the reply.

        A failed reply is returned to the caller but not recorded.
        """
        model = self._require_model()
        user_message = await self.build_user_message(user_text, media)
        self._history.append(user_message)

        logger.info(f"Chat ({len(self._history)} messages)")
        response = await model.chat(self._request_messages())

        if response.success:
            self._history.append(response.to_message())
        else:
            logger.warning(f"Chat failed: {response.error}")
        return response

    @unit_of_work
    async def chat_with_tools(
        self,
        user_text: str,
        media: Sequence[MediaReference] | None = None
    ) -> LLMResponse:
        """
        Send a user message and let the model use tools until it answers.

        Tool results, including failed ones, are recorded as Tool messages
        and fed back to the model.

        Raises:
            ToolLoopExceeded: If the model requests tools more than
                max_tool_iterations times in a row
        """
        model = self._require_model()
        user_message = await self.build_user_message(user_text, media)
        self._history.append(user_message)

        descriptors = self._registry.descriptors()
        logger.info(f"Chat with tools ({len(self._history)} messages, {len(descriptors)} tools)")

        iterations = 0
        while True:
            response = await model.chat_with_tools(self._request_messages(), descriptors)

            if not response.success:
                logger.warning(f"Chat with tools failed: {response.error}")
                return response

            if not response.has_tool_calls:
                self._history.append(response.to_message())
                return response

            iterations += 1
            if iterations > self.max_tool_iterations:
                logger.error(f"Reached max tool iterations ({self.max_tool_iterations})")
                raise ToolLoopExceeded(self.max_tool_iterations)

            logger.debug(f"Tool iteration {iterations}")
            self._history.append(response.to_message())
            for result in await self.tool_executor.execute_all(response.tool_calls):
                self._history.append(result.to_message())

    def stream_chat(
        self,
        user_text: str,
        media: Sequence[MediaReference] | None = None
    ) -> AsyncStream[str]:
        """
        Stream the reply to a user message as text chunks.

        The user message and the accumulated reply are recorded together,
        and only once the stream has been read to the end (or finalized).
        A stream that is abandoned, closed early or fails leaves the
        history exactly as it was.
        """
        model = self._require_model()
        pending: list[Message] = []

        async def produce(channel: Channel[str]) -> None:
            user_message = await self.build_user_message(user_text, media)
            pending.append(user_message)

            def on_chunk(chunk: str, done: bool) -> None:
                if chunk:
                    channel.send(chunk)

            await model.stream_chat(self._request_messages(pending), on_chunk)

        def commit(chunks: list[str]) -> None:
            reply = "".join(chunks)
            self._history.extend(pending)
            self._history.append(Message.from_text(Role.ASSISTANT, reply))
            logger.debug(f"Committed streamed reply ({len(reply)} chars)")

        return AsyncStream(produce, on_complete=commit, name="stream_chat")
