"""
Tools System
============

Uniform invocation of heterogeneous capabilities.

A tool is a descriptor (name, description, JSON Schema for its parameters)
plus a capability: a callable taking a parameter dict. Capabilities may be
plain functions or coroutine functions, and may return a ToolResult, a
MediaEnvelope, or any structured data. The registry validates parameters
before invoking anything and normalizes whatever comes back into a
ToolResult.

Dispatch never raises for tool problems. Unknown tools, invalid parameters,
rejected inputs and crashing capabilities all come back as a failed
ToolResult, so a conversation can record the failure and let the model
correct itself.

This module provides:
- ToolDescriptor: what the model is told about a tool
- Tool: a descriptor bundled with its capability
- ToolResult: standardized tool output
- ToolRegistry: registration, lookup, validation and dispatch
"""

import inspect
import json
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping

from jsonschema.exceptions import SchemaError, UnknownType
from jsonschema.validators import validator_for

from agentcore.errors import (
    AgentError,
    DuplicateToolError,
    InvalidEnvelope,
    InvalidToolSchema,
    ParamValidation,
    ToolNotFound,
)
from agentcore.media import (
    MediaEnvelope,
    normalize,
    probe,
    text,
    try_parse_envelope_from_string,
)
from agentcore.runtime import unit_of_work
from agentcore.utils.logger import Logger

logger = Logger("Tools")

Capability = Callable[[dict], Any]


def _json_default(value: Any) -> Any:
    if isinstance(value, MediaEnvelope):
        return value.to_dict()
    return str(value)


@dataclass
class ToolResult:
    """
    Standardized result from tool execution.

    Attributes:
        success: Whether the tool executed successfully
        data: Structured result data or a MediaEnvelope
        error: Error message if success is False
        error_type: Name of the error class (e.g. "ToolNotFound", "Rejected")
    """
    success: bool
    data: Any = None
    error: str | None = None
    error_type: str | None = None

    @classmethod
    def ok(cls, data: Any = None) -> "ToolResult":
        return cls(success=True, data=data)

    @classmethod
    def failure(cls, error: BaseException | str, data: Any = None) -> "ToolResult":
        """Build a failed result from an exception or a plain message."""
        if isinstance(error, BaseException):
            return cls(success=False, data=data, error=str(error), error_type=type(error).__name__)
        return cls(success=False, data=data, error=error)

    def envelopes(self) -> list[MediaEnvelope]:
        """Every media envelope embedded in the payload, in document order."""
        found: list[MediaEnvelope] = []
        _collect_envelopes(self.data, found)
        return found

    def to_dict(self) -> dict:
        """Convert to a JSON-ready dictionary."""
        return json.loads(json.dumps({
            "success": self.success,
            "data": self.data,
            "error": self.error,
            "error_type": self.error_type,
        }, default=_json_default))

    def to_message(self) -> str:
        """Format as text for the model."""
        if not self.success:
            prefix = f"{self.error_type}: " if self.error_type else "Error: "
            return f"{prefix}{self.error}"
        if isinstance(self.data, str):
            return self.data
        if isinstance(self.data, MediaEnvelope) and self.data.is_text:
            return self.data.text
        return json.dumps(self.data, default=_json_default)

    def to_parts(self) -> list[MediaEnvelope]:
        """Message parts for recording this result in conversation history."""
        if self.success and isinstance(self.data, MediaEnvelope):
            return [self.data]
        return [text(self.to_message())]


def _collect_envelopes(value: Any, found: list[MediaEnvelope]) -> None:
    if isinstance(value, MediaEnvelope):
        found.append(value)
    elif isinstance(value, Mapping):
        for item in value.values():
            _collect_envelopes(item, found)
    elif isinstance(value, (list, tuple)):
        for item in value:
            _collect_envelopes(item, found)


def _normalize_payload(value: Any) -> Any:
    """Replace envelope-shaped values (at any depth) with MediaEnvelopes."""
    if isinstance(value, MediaEnvelope):
        return normalize(value)
    if isinstance(value, str):
        envelope = try_parse_envelope_from_string(value)
        return envelope if envelope is not None else value
    if isinstance(value, Mapping):
        if probe(value):
            return normalize(value)
        return {key: _normalize_payload(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize_payload(item) for item in value]
    return value


def normalize_tool_output(value: Any) -> ToolResult:
    """
    Turn whatever a capability returned into a ToolResult.

    Embedded media is normalized; media that cannot be normalized makes
    the whole result a failed InvalidEnvelope result.
    """
    try:
        if isinstance(value, ToolResult):
            return ToolResult(
                success=value.success,
                data=_normalize_payload(value.data),
                error=value.error,
                error_type=value.error_type,
            )
        return ToolResult.ok(_normalize_payload(value))
    except InvalidEnvelope as e:
        logger.warning(f"Tool returned malformed media: {e}")
        return ToolResult.failure(e)


@dataclass(frozen=True)
class ToolDescriptor:
    """
    What the model is told about a tool.

    Attributes:
        name: Unique identifier for the tool
        description: What the tool does (shown to the model)
        parameters: JSON Schema for the parameters
    """
    name: str
    description: str
    parameters: dict = field(default_factory=lambda: {"type": "object", "properties": {}})

    def to_openai_function(self) -> dict:
        """Convert to the OpenAI function-calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            }
        }


@dataclass
class Tool:
    """
    A tool definition: descriptor fields plus the capability that runs it.

    Example:
        def _word_count(params: dict) -> ToolResult:
            return ToolResult.ok({"words": len(params["text"].split())})

        word_count_tool = Tool(
            name="word_count",
            description="Count the words in a piece of text",
            parameters={
                "type": "object",
                "properties": {"text": {"type": "string"}},
                "required": ["text"]
            },
            execute=_word_count
        )
    """
    name: str
    description: str
    parameters: dict
    execute: Capability

    @property
    def descriptor(self) -> ToolDescriptor:
        return ToolDescriptor(self.name, self.description, self.parameters)

    def to_openai_function(self) -> dict:
        return self.descriptor.to_openai_function()


class ToolRegistry:
    """
    Name-keyed registry of tools.

    Registration rejects duplicate names instead of silently replacing a
    tool. The registry keeps no per-call state, so dispatching is free of
    side effects beyond what the invoked capability does.

    Example:
        registry = ToolRegistry()
        registry.add(word_count_tool)

        result = await registry.dispatch("word_count", {"text": "a b c"})
        result.data  # {"words": 3}
    """

    def __init__(self, tools: Iterable[Tool] = ()):
        self._tools: dict[str, Tool] = {}
        for tool in tools:
            self.add(tool)

    def register(self, descriptor: ToolDescriptor, capability: Capability) -> Tool:
        """
        Register a capability under a descriptor.

        Raises:
            DuplicateToolError: If a tool with this name already exists
            InvalidToolSchema: If the parameter schema is not valid JSON Schema
        """
        if descriptor.name in self._tools:
            raise DuplicateToolError(descriptor.name)
        if not callable(capability):
            raise TypeError(f"Capability for '{descriptor.name}' is not callable")

        schema = descriptor.parameters or {}
        try:
            validator_for(schema).check_schema(schema)
        except SchemaError as e:
            raise InvalidToolSchema(descriptor.name, e.message) from e

        tool = Tool(
            name=descriptor.name,
            description=descriptor.description,
            parameters=descriptor.parameters,
            execute=capability,
        )
        self._tools[descriptor.name] = tool
        logger.debug(f"Registered tool: {descriptor.name}")
        return tool

    def add(self, tool: Tool) -> Tool:
        """Register a Tool object."""
        return self.register(tool.descriptor, tool.execute)

    def unregister(self, name: str) -> bool:
        """Remove a tool; returns False if it was not registered."""
        return self._tools.pop(name, None) is not None

    def lookup(self, name: str) -> Capability | None:
        """Capability registered under a name, or None."""
        tool = self._tools.get(name)
        return tool.execute if tool else None

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def get_all(self) -> list[Tool]:
        return list(self._tools.values())

    def descriptors(self) -> list[ToolDescriptor]:
        return [tool.descriptor for tool in self._tools.values()]

    def get_openai_functions(self) -> list[dict]:
        return [tool.to_openai_function() for tool in self._tools.values()]

    def list_names(self) -> list[str]:
        return list(self._tools.keys())

    def copy(self) -> "ToolRegistry":
        """Independent registry holding the same tools."""
        return ToolRegistry(self._tools.values())

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def validate(self, name: str, params: Any) -> Tool:
        """
        Check that a call can be dispatched.

        Returns:
            The tool that would be invoked

        Raises:
            ToolNotFound: If no tool has this name
            ParamValidation: If params do not satisfy the tool's schema
        """
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFound(name)

        if not isinstance(params, Mapping):
            raise ParamValidation(name, [f"parameters must be an object, got {type(params).__name__}"])

        schema = tool.parameters or {}
        validator = validator_for(schema)(schema)
        try:
            found = sorted(validator.iter_errors(dict(params)), key=lambda e: list(e.absolute_path))
        except SchemaError as e:
            raise ParamValidation(name, [f"invalid parameter schema: {e.message}"]) from e
        except UnknownType as e:
            raise ParamValidation(name, [f"invalid parameter schema: unknown type {e.type!r}"]) from e

        errors = []
        for error in found:
            location = ".".join(str(part) for part in error.absolute_path)
            errors.append(f"{location}: {error.message}" if location else error.message)
        if errors:
            raise ParamValidation(name, errors)

        return tool

    @unit_of_work
    async def dispatch(self, name: str, params: Mapping[str, Any] | None = None) -> ToolResult:
        """
        Validate and execute a tool.

        Args:
            name: The tool name
            params: Parameters to pass to the tool

        Returns:
            ToolResult; failures are reported in the result, never raised
        """
        if params is None:
            params = {}

        try:
            tool = self.validate(name, params)
        except AgentError as e:
            logger.warning(f"Dispatch of {name} refused: {e}")
            return ToolResult.failure(e)

        logger.info(f"Dispatching tool: {name}")
        try:
            output = tool.execute(dict(params))
            if inspect.isawaitable(output):
                output = await output
        except AgentError as e:
            logger.warning(f"Tool {name} failed: {e}")
            return ToolResult.failure(e)
        except Exception as e:
            logger.error(f"Tool execution failed: {name}", e)
            return ToolResult.failure(e)

        result = normalize_tool_output(output)
        if result.success:
            logger.debug(f"Tool {name} succeeded")
        else:
            logger.warning(f"Tool {name} failed: {result.error}")
        return result


__all__ = [
    "Capability",
    "Tool",
    "ToolDescriptor",
    "ToolResult",
    "ToolRegistry",
    "normalize_tool_output",
]
