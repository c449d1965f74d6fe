"""
Respond Tool
============

Lets a model hand back its final answer through a tool call. Useful with
models that are more reliable at calling tools than at switching back to
plain text once tools are on offer.
"""

from agentcore.media import text
from agentcore.tools import Tool, ToolResult


def _respond(params: dict) -> ToolResult:
    response = params.get("response", "")
    if not response.strip():
        return ToolResult.failure("response cannot be empty")
    return ToolResult.ok(text(response))


respond_tool = Tool(
    name="respond",
    description="Deliver the final response to the user.",
    parameters={
        "type": "object",
        "properties": {
            "response": {
                "type": "string",
                "description": "The complete response text"
            }
        },
        "required": ["response"]
    },
    execute=_respond
)
