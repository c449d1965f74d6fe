"""
LLM Module
==========

Everything between the core and a language model:
- ModelEndpoint: the abstract endpoint contract
- LLMResponse / ToolCall: what an endpoint returns
- HttpTransport: httpx-based transport contract
- OpenAIEndpoint: ModelEndpoint on the OpenAI SDK
"""

from agentcore.llm.base import ChunkCallback, LLMResponse, ModelEndpoint
from agentcore.llm.transport import HttpTransport, TransportResponse
from agentcore.llm.openai_llm import OpenAIEndpoint
from agentcore.memory import ToolCall

__all__ = [
    "ChunkCallback",
    "LLMResponse",
    "ModelEndpoint",
    "ToolCall",
    "HttpTransport",
    "TransportResponse",
    "OpenAIEndpoint",
]
