"""
Shared pytest fixtures for agentcore tests
"""

import asyncio
from typing import Sequence

import pytest

from agentcore.agent import Context
from agentcore.llm.base import ChunkCallback, LLMResponse, ModelEndpoint
from agentcore.memory import Message, ToolCall
from agentcore.tools import Tool, ToolDescriptor, ToolResult
from agentcore.utils.config import reset_config


_CONFIG_VARS = [
    "OPENAI_API_KEY",
    "OPENAI_MODEL",
    "OPENAI_BASE_URL",
    "TRANSPORT_TIMEOUT_SECONDS",
    "TRANSPORT_FOLLOW_REDIRECTS",
    "AGENT_MAX_TOOL_ITERATIONS",
    "AGENT_SYSTEM_PROMPT",
    "WORKFLOW_MAX_ITERATIONS",
    "WORKFLOW_IMPROVEMENT_THRESHOLD",
    "SHELL_TIMEOUT_SECONDS",
    "SHELL_MAX_OUTPUT_CHARS",
]


@pytest.fixture(autouse=True)
def clean_config(monkeypatch):
    """Start every test from default configuration."""
    for name in _CONFIG_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


class ScriptedEndpoint(ModelEndpoint):
    """
    Model endpoint that replays queued responses and records every request.

    stream_chat emits `chunks` one by one (yielding to the loop between
    them), then raises `stream_error` if one is set.
    """

    model = "scripted"

    def __init__(
        self,
        responses: Sequence[LLMResponse | str] = (),
        chunks: Sequence[str] = (),
        stream_error: Exception | None = None
    ):
        self.responses = [LLMResponse(content=r) if isinstance(r, str) else r for r in responses]
        self.chunks = list(chunks)
        self.stream_error = stream_error
        self.calls: list[list[Message]] = []
        self.offered_tools: list[list[ToolDescriptor]] = []

    def _next(self) -> LLMResponse:
        if not self.responses:
            return LLMResponse(content="(no more responses)")
        return self.responses.pop(0)

    async def chat(self, messages: Sequence[Message]) -> LLMResponse:
        self.calls.append(list(messages))
        return self._next()

    async def chat_with_tools(
        self,
        messages: Sequence[Message],
        tools: Sequence[ToolDescriptor]
    ) -> LLMResponse:
        self.calls.append(list(messages))
        self.offered_tools.append(list(tools))
        return self._next()

    async def stream_chat(self, messages: Sequence[Message], on_chunk: ChunkCallback) -> None:
        self.calls.append(list(messages))
        for chunk in self.chunks:
            await asyncio.sleep(0)
            on_chunk(chunk, False)
        if self.stream_error is not None:
            raise self.stream_error
        on_chunk("", True)


class AlwaysToolEndpoint(ScriptedEndpoint):
    """Endpoint that never stops asking for the echo tool."""

    async def chat_with_tools(self, messages, tools) -> LLMResponse:
        self.calls.append(list(messages))
        self.offered_tools.append(list(tools))
        n = len(self.calls)
        return LLMResponse(tool_calls=[ToolCall(id=f"call_{n}", name="echo", arguments={"text": f"ping {n}"})])


def make_echo_tool(calls: list | None = None) -> Tool:
    """A tool that returns its text parameter, optionally recording calls."""

    def _echo(params: dict) -> ToolResult:
        if calls is not None:
            calls.append(params)
        return ToolResult.ok({"echo": params["text"]})

    return Tool(
        name="echo",
        description="Echo the given text",
        parameters={
            "type": "object",
            "properties": {"text": {"type": "string"}},
            "required": ["text"]
        },
        execute=_echo
    )


@pytest.fixture
def echo_calls():
    return []


@pytest.fixture
def echo_tool(echo_calls):
    return make_echo_tool(echo_calls)


@pytest.fixture
def make_context():
    """Factory building a Context around a given endpoint."""

    def _make(endpoint: ModelEndpoint, **kwargs) -> Context:
        return Context(model=endpoint, **kwargs)

    return _make
