"""
Configuration Management
========================

All tunables of the execution core are read from the environment in one
place and exposed as frozen dataclasses.

Values passed explicitly to a constructor (Context, EvaluatorWorkflow,
HttpTransport, ...) always take precedence; configuration only supplies
the defaults.

Usage:
    from agentcore.utils.config import get_config

    config = get_config()
    print(config.openai.model)
    print(config.agent.max_tool_iterations)
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from agentcore.utils.logger import Logger

logger = Logger("Config")


def _optional(name: str, default: str) -> str:
    """Get an environment variable, falling back to a default."""
    return os.getenv(name, default)


def _optional_int(name: str, default: int) -> int:
    """
    Get an integer environment variable.

    Invalid values are reported and replaced by the default.
    """
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"{name} is not a valid integer, using default: {default}")
        return default


def _optional_float(name: str, default: float) -> float:
    """Get a float environment variable; invalid values use the default."""
    value = os.getenv(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(f"{name} is not a valid number, using default: {default}")
        return default


def _optional_bool(name: str, default: bool) -> bool:
    """Get a boolean environment variable ('true'/'1'/'yes' are true)."""
    value = os.getenv(name)
    if not value:
        return default
    return value.strip().lower() in ("true", "1", "yes")


# ==============================================================================
# Configuration Dataclasses
# ==============================================================================

@dataclass(frozen=True)
class OpenAIConfig:
    """Settings for the OpenAI-backed model endpoint."""
    api_key: str | None   # sk-... API key; only needed by OpenAIEndpoint
    model: str            # Chat completion model
    base_url: str | None  # Proxy or self-hosted compatible endpoint


@dataclass(frozen=True)
class TransportConfig:
    """HTTP transport settings."""
    timeout_seconds: float
    follow_redirects: bool


@dataclass(frozen=True)
class AgentConfig:
    """Conversation context defaults."""
    max_tool_iterations: int  # Cap on consecutive tool-requesting responses
    system_prompt: str


@dataclass(frozen=True)
class WorkflowConfig:
    """Evaluator/optimizer workflow defaults."""
    max_iterations: int
    improvement_threshold: float  # 0.0 - 1.0


@dataclass(frozen=True)
class ShellConfig:
    """Shell command tool limits."""
    timeout_seconds: int
    max_output_chars: int


@dataclass(frozen=True)
class Config:
    """
    Root configuration object.

        config = get_config()
        config.transport.timeout_seconds
        config.workflow.improvement_threshold
    """
    openai: OpenAIConfig
    transport: TransportConfig
    agent: AgentConfig
    workflow: WorkflowConfig
    shell: ShellConfig
    log_level: str


def load_config() -> Config:
    """
    Load configuration from the environment (and a .env file if present).

    Returns:
        Config: The fully populated configuration
    """
    load_dotenv()

    return Config(
        openai=OpenAIConfig(
            api_key=os.getenv("OPENAI_API_KEY"),
            model=_optional("OPENAI_MODEL", "gpt-4o-mini"),
            base_url=os.getenv("OPENAI_BASE_URL"),
        ),
        transport=TransportConfig(
            timeout_seconds=_optional_float("TRANSPORT_TIMEOUT_SECONDS", 30.0),
            follow_redirects=_optional_bool("TRANSPORT_FOLLOW_REDIRECTS", True),
        ),
        agent=AgentConfig(
            max_tool_iterations=_optional_int("AGENT_MAX_TOOL_ITERATIONS", 10),
            system_prompt=_optional("AGENT_SYSTEM_PROMPT", ""),
        ),
        workflow=WorkflowConfig(
            max_iterations=_optional_int("WORKFLOW_MAX_ITERATIONS", 3),
            improvement_threshold=_optional_float("WORKFLOW_IMPROVEMENT_THRESHOLD", 0.8),
        ),
        shell=ShellConfig(
            timeout_seconds=_optional_int("SHELL_TIMEOUT_SECONDS", 30),
            max_output_chars=_optional_int("SHELL_MAX_OUTPUT_CHARS", 20000),
        ),
        log_level=_optional("LOG_LEVEL", "info"),
    )


# ==============================================================================
# Singleton
# ==============================================================================

_config_instance: Config | None = None


def get_config() -> Config:
    """
    Get the shared configuration, loading it on first access.

    Returns:
        Config: The application configuration
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = load_config()
    return _config_instance


def reset_config() -> None:
    """Forget the cached configuration so the next get_config() reloads it."""
    global _config_instance
    _config_instance = None
