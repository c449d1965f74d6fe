"""
Agent Module
============

The conversation layer:
- Context: model endpoint + tools + history + system prompt, with chat,
  tool-augmented chat and streaming chat
- ToolExecutor: runs model-requested tool calls and records the results
"""

from agentcore.agent.context import Context
from agentcore.agent.tools_executor import ToolCallResult, ToolExecutor

__all__ = ["Context", "ToolCallResult", "ToolExecutor"]
