"""
Tool Executor
=============

Runs the tool calls a model asked for and turns each outcome into the
Tool message that goes back into the conversation.

Tool Execution Loop:
    1. Model replies with tool calls
    2. Executor dispatches each call through the registry
    3. Each result becomes a Tool message answering its call ID
    4. The model is called again with the results
    5. Repeat until the model answers without tool calls

Failures (unknown tool, invalid parameters, rejected input) are ordinary
results here: they are recorded like any other so the model can react.
"""

from dataclasses import dataclass
from typing import Sequence

from agentcore.memory import Message, Role, ToolCall
from agentcore.runtime import gather
from agentcore.tools import ToolRegistry, ToolResult
from agentcore.utils.logger import Logger

logger = Logger("ToolExecutor")


@dataclass
class ToolCallResult:
    """
    Result of executing one tool call.

    Attributes:
        tool_call: The call as requested by the model
        result: What the tool returned
    """
    tool_call: ToolCall
    result: ToolResult

    def to_message(self) -> Message:
        """The Tool message answering the call."""
        return Message(
            role=Role.TOOL,
            parts=tuple(self.result.to_parts()),
            name=self.tool_call.name,
            tool_call_id=self.tool_call.id,
        )


class ToolExecutor:
    """
    Dispatches model-requested tool calls against a registry.

    Example:
        executor = ToolExecutor(registry)
        results = await executor.execute_all(response.tool_calls)
        for result in results:
            history.append(result.to_message())
    """

    def __init__(self, registry: ToolRegistry):
        self.registry = registry

    async def execute_one(self, tool_call: ToolCall) -> ToolCallResult:
        """Execute a single tool call."""
        logger.info(f"Executing tool: {tool_call.name}")
        result = await self.registry.dispatch(tool_call.name, tool_call.arguments)
        return ToolCallResult(tool_call=tool_call, result=result)

    async def execute_all(self, tool_calls: Sequence[ToolCall]) -> list[ToolCallResult]:
        """
        Execute tool calls one after another, in order.

        Side effects of earlier calls are visible to later ones.
        """
        results = []
        for tool_call in tool_calls:
            results.append(await self.execute_one(tool_call))
        return results

    async def execute_parallel(self, tool_calls: Sequence[ToolCall]) -> list[ToolCallResult]:
        """
        Execute independent tool calls concurrently.

        Results are returned in input order.
        """
        return await gather(*(self.execute_one(tool_call) for tool_call in tool_calls))

    def get_available_tools(self) -> list[str]:
        return self.registry.list_names()

    def has_tool(self, name: str) -> bool:
        return name in self.registry
