"""
OpenAI Endpoint
===============

ModelEndpoint implementation on top of the official `openai` SDK.

This adapter is the only place that knows the chat-completions dialect:
it turns Messages into chat messages (envelopes into content parts),
ToolDescriptors into function tools, and completions back into
LLMResponses. The SDK's HTTP traffic goes through the httpx client owned
by an HttpTransport, so timeouts and redirects follow transport config.

Example:
    endpoint = OpenAIEndpoint(model="gpt-4o-mini")
    context = Context(model=endpoint, system_prompt="You are terse.")
    reply = await context.chat("Name three primes")
"""

import base64
import json
import mimetypes
from pathlib import Path
from typing import Any, Sequence

import openai
from openai import AsyncOpenAI

from agentcore.errors import TransportError
from agentcore.llm.base import ChunkCallback, LLMResponse, ModelEndpoint
from agentcore.llm.transport import HttpTransport
from agentcore.media import MediaEnvelope, MediaKind, from_kind, kind_from_mime
from agentcore.memory import Message, Role, ToolCall
from agentcore.tools import ToolDescriptor
from agentcore.utils.config import get_config
from agentcore.utils.logger import Logger

logger = Logger("OpenAI")

# input_audio only accepts these format names
_AUDIO_FORMATS = {"wav": "wav", "x-wav": "wav", "wave": "wav", "mpeg": "mp3", "mp3": "mp3"}


def _data_url(envelope: MediaEnvelope) -> str:
    if envelope.uri is not None:
        return envelope.uri
    return f"data:{envelope.mime};base64,{envelope.data}"


def envelope_to_content_part(envelope: MediaEnvelope) -> dict:
    """Convert one envelope into a chat-completions content part."""
    if envelope.is_text:
        return {"type": "text", "text": envelope.text or ""}

    if envelope.kind is MediaKind.IMAGE:
        return {"type": "image_url", "image_url": {"url": _data_url(envelope)}}

    subtype = (envelope.mime or "").split("/", 1)[-1].lower()
    if envelope.kind is MediaKind.AUDIO and envelope.has_data and subtype in _AUDIO_FORMATS:
        return {
            "type": "input_audio",
            "input_audio": {"data": envelope.data, "format": _AUDIO_FORMATS[subtype]},
        }

    if envelope.kind is MediaKind.DOCUMENT and envelope.has_data:
        extension = mimetypes.guess_extension(envelope.mime or "") or ""
        return {
            "type": "file",
            "file": {"filename": f"document{extension}", "file_data": _data_url(envelope)},
        }

    # No native representation; describe the attachment instead
    reference = envelope.uri if envelope.has_uri and not envelope.uri.startswith("data:") else envelope.mime
    return {"type": "text", "text": f"[{envelope.kind.value} attachment: {reference}]"}


def message_to_openai(message: Message) -> dict:
    """Convert a Message into a chat-completions message dict."""
    if message.role is Role.TOOL:
        content = message.text or json.dumps([part.to_dict() for part in message.parts])
        return {"role": "tool", "tool_call_id": message.tool_call_id or "", "content": content}

    if message.role is Role.ASSISTANT:
        result: dict[str, Any] = {"role": "assistant", "content": message.text or None}
        if message.tool_calls:
            result["tool_calls"] = [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {"name": call.name, "arguments": json.dumps(call.arguments)},
                }
                for call in message.tool_calls
            ]
        return result

    if message.role is Role.SYSTEM or not message.media:
        result = {"role": message.role.value, "content": message.text}
    else:
        result = {
            "role": message.role.value,
            "content": [envelope_to_content_part(part) for part in message.parts],
        }
    if message.name:
        result["name"] = message.name
    return result


def parse_tool_calls(raw_calls: Any) -> list[ToolCall]:
    """
    Parse SDK tool calls.

    Arguments that are not valid JSON become an empty dict; the registry's
    parameter validation then reports the problem back to the model.
    """
    tool_calls = []
    for raw in raw_calls or []:
        try:
            arguments = json.loads(raw.function.arguments or "{}")
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse tool arguments for {raw.function.name}", e)
            arguments = {}
        if not isinstance(arguments, dict):
            arguments = {}
        tool_calls.append(ToolCall(id=raw.id, name=raw.function.name, arguments=arguments))
    return tool_calls


class OpenAIEndpoint(ModelEndpoint):
    """
    Chat-completions endpoint backed by AsyncOpenAI.

    Safe to share between contexts: the SDK client is reentrant.
    """

    def __init__(
        self,
        model: str | None = None,
        api_key: str | None = None,
        base_url: str | None = None,
        transport: HttpTransport | None = None,
        client: AsyncOpenAI | None = None
    ):
        """
        Initialize the endpoint.

        Args:
            model: Chat model (defaults to OPENAI_MODEL)
            api_key: API key (defaults to OPENAI_API_KEY)
            base_url: Alternative compatible endpoint
            transport: HTTP transport whose client the SDK should use
            client: Pre-built SDK client (takes precedence over the above)

        Raises:
            ValueError: If no API key is available and no client was given
        """
        config = get_config().openai
        self.model = model or config.model

        if client is None:
            api_key = api_key or config.api_key
            if not api_key:
                raise ValueError(
                    "Missing required environment variable: OPENAI_API_KEY\n"
                    "Please ensure OPENAI_API_KEY is set in your .env file."
                )
            self.transport = transport or HttpTransport()
            client = AsyncOpenAI(
                api_key=api_key,
                base_url=base_url or config.base_url,
                http_client=self.transport.client,
            )
        else:
            self.transport = transport

        self.client = client
        logger.info(f"OpenAI endpoint initialized with model: {self.model}")

    def _to_response(self, completion: Any) -> LLMResponse:
        if not completion.choices:
            return LLMResponse.failed("Completion contained no choices", model=self.model)

        choice = completion.choices[0]
        usage = completion.usage.model_dump() if getattr(completion, "usage", None) else {}
        return LLMResponse(
            content=choice.message.content or "",
            tool_calls=parse_tool_calls(choice.message.tool_calls),
            model=getattr(completion, "model", None) or self.model,
            finish_reason=choice.finish_reason,
            usage=usage,
        )

    async def _complete(self, messages: Sequence[Message], **kwargs) -> LLMResponse:
        try:
            completion = await self.client.chat.completions.create(
                model=self.model,
                messages=[message_to_openai(message) for message in messages],
                **kwargs
            )
        except openai.APIStatusError as e:
            logger.error(f"OpenAI returned HTTP {e.status_code}", e)
            return LLMResponse.failed(str(e), status_code=e.status_code, model=self.model)
        except openai.APIError as e:
            logger.error("OpenAI request failed", e)
            return LLMResponse.failed(str(e), model=self.model)

        return self._to_response(completion)

    async def chat(self, messages: Sequence[Message]) -> LLMResponse:
        logger.debug(f"Chat completion with {len(messages)} messages")
        return await self._complete(messages)

    async def chat_with_tools(
        self,
        messages: Sequence[Message],
        tools: Sequence[ToolDescriptor]
    ) -> LLMResponse:
        logger.debug(f"Chat completion with {len(messages)} messages and {len(tools)} tools")
        if not tools:
            return await self._complete(messages)
        return await self._complete(
            messages,
            tools=[tool.to_openai_function() for tool in tools],
            tool_choice="auto",
        )

    async def stream_chat(self, messages: Sequence[Message], on_chunk: ChunkCallback) -> None:
        try:
            stream = await self.client.chat.completions.create(
                model=self.model,
                messages=[message_to_openai(message) for message in messages],
                stream=True,
            )
            try:
                async for chunk in stream:
                    if not chunk.choices:
                        continue
                    content = chunk.choices[0].delta.content
                    if content:
                        on_chunk(content, False)
            finally:
                # Releases the HTTP connection, also when the consumer stops early
                await stream.close()
        except openai.APIStatusError as e:
            logger.error(f"OpenAI stream returned HTTP {e.status_code}", e)
            raise TransportError(str(e), e.status_code) from e
        except openai.APIError as e:
            logger.error("OpenAI stream failed", e)
            raise TransportError(str(e)) from e

        on_chunk("", True)

    async def upload_media(
        self,
        path: str,
        mime: str,
        data: bytes | None = None
    ) -> MediaEnvelope | None:
        """
        Inline a local file as a base64 envelope.

        Chat completions take media inline, so "uploading" means reading
        the bytes into the envelope.
        """
        if data is None:
            data = Path(path).read_bytes()
        encoded = base64.b64encode(data).decode("ascii")
        logger.debug(f"Inlined {path} ({len(data)} bytes, {mime})")
        return from_kind(kind_from_mime(mime), mime, data=encoded, meta={"size_bytes": len(data)})
