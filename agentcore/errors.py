"""
Error Taxonomy
==============

Every exception raised by agentcore derives from AgentError.

Where each error surfaces:
- InvalidEnvelope: raised to whoever handed in a malformed media payload.
- ToolNotFound / ParamValidation / Rejected: never escape dispatch. The
  registry turns them into a failed ToolResult, which the context records
  as a Tool message so the model can react to it.
- DuplicateToolError / InvalidToolSchema: raised at registration time.
- ToolLoopExceeded: raised out of Context.chat_with_tools.
- TransportError: returned as a failed LLMResponse for single calls,
  raised to the consumer of a stream.
"""


class AgentError(Exception):
    """Base class for all agentcore errors."""


class InvalidEnvelope(AgentError, ValueError):
    """A multimodal payload could not be normalized into a MediaEnvelope."""


class DuplicateToolError(AgentError, ValueError):
    """A tool with the same name is already registered."""

    def __init__(self, name: str):
        super().__init__(f"Tool '{name}' is already registered")
        self.name = name


class InvalidToolSchema(AgentError, ValueError):
    """A tool's parameter schema is not a valid JSON Schema."""

    def __init__(self, name: str, reason: str):
        super().__init__(f"Tool '{name}' has an invalid parameter schema: {reason}")
        self.name = name


class ToolError(AgentError):
    """Base class for dispatch-time tool failures."""

    def __init__(self, message: str, tool_name: str | None = None):
        super().__init__(message)
        self.tool_name = tool_name

    @property
    def kind(self) -> str:
        return type(self).__name__


class ToolNotFound(ToolError):
    """No tool is registered under the requested name."""

    def __init__(self, tool_name: str):
        super().__init__(f"Tool '{tool_name}' not found", tool_name)


class ParamValidation(ToolError):
    """Tool parameters do not satisfy the tool's parameter schema."""

    def __init__(self, tool_name: str, errors: list[str]):
        summary = "; ".join(errors) if errors else "invalid parameters"
        super().__init__(f"Invalid parameters for '{tool_name}': {summary}", tool_name)
        self.errors = list(errors)


class Rejected(ToolError):
    """A capability refused to run its input (e.g. a denylisted shell command)."""


class ToolLoopExceeded(AgentError, RuntimeError):
    """The model kept requesting tools past the configured call-depth cap."""

    def __init__(self, max_iterations: int):
        super().__init__(
            f"Model requested tools more than {max_iterations} times in a row"
        )
        self.max_iterations = max_iterations


class TransportError(AgentError):
    """The model endpoint or its transport failed."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
