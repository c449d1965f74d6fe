"""
Logger Utility
==============

Context-aware terminal logging used by every agentcore component.

Each module owns a logger named after the component it belongs to, so a
single tool-augmented chat reads top to bottom as a trace:

    [2025-01-31T10:30:00] [INFO] [Context] Chat with tools (3 messages)
    [2025-01-31T10:30:01] [INFO] [Tools] Dispatching tool: shell_command
    [2025-01-31T10:30:01] [WARN] [Tools] Tool shell_command failed: Rejected

Environment:
    LOG_LEVEL   DEBUG | INFO | WARNING | ERROR (default INFO)
    NO_COLOR    when set, ANSI colors are disabled

Usage:
    from agentcore.utils.logger import Logger

    logger = Logger("Workflow")
    logger.info("Iteration complete", {"iteration": 2, "score": 0.7})

    step_logger = logger.child("Evaluate")
    step_logger.debug("Parsing evaluator reply")
"""

import json
import os
import sys
from datetime import datetime
from enum import IntEnum
from typing import Any


class LogLevel(IntEnum):
    """Severity levels; a message is shown when its level >= the minimum."""
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40


_LEVEL_NAMES = {
    "DEBUG": LogLevel.DEBUG,
    "INFO": LogLevel.INFO,
    "WARNING": LogLevel.WARNING,
    "WARN": LogLevel.WARNING,
    "ERROR": LogLevel.ERROR,
}


class Colors:
    """ANSI escape codes for colored terminal output."""
    RESET = "\033[0m"
    DEBUG = "\033[36m"    # Cyan
    INFO = "\033[32m"     # Green
    WARNING = "\033[33m"  # Yellow
    ERROR = "\033[31m"    # Red
    DIM = "\033[2m"


def parse_log_level(value: str | None, default: LogLevel = LogLevel.INFO) -> LogLevel:
    """
    Map a level name to a LogLevel.

    Args:
        value: Level name such as "debug" or "WARN" (case-insensitive)
        default: Returned when the name is empty or unknown

    Returns:
        The matching LogLevel
    """
    if not value:
        return default
    return _LEVEL_NAMES.get(value.strip().upper(), default)


def _colors_enabled() -> bool:
    return not os.getenv("NO_COLOR")


class Logger:
    """
    A named logger with level filtering and optional structured data.

    Example:
        logger = Logger("Tools")
        logger.info("Registered tool: shell_command")

        dispatch_logger = logger.child("Dispatch")
        dispatch_logger.warning("Parameter validation failed", {"tool": "shell_command"})
    """

    def __init__(self, context: str = "", level: LogLevel | None = None):
        """
        Initialize a logger.

        Args:
            context: Prefix shown in every line (e.g. "Context", "Workflow")
            level: Minimum level; defaults to the LOG_LEVEL environment variable
        """
        self.context = context
        self._min_level = level if level is not None else parse_log_level(os.getenv("LOG_LEVEL"))

    @property
    def level(self) -> LogLevel:
        return self._min_level

    def set_level(self, level: LogLevel | str) -> None:
        """Change the minimum level of this logger."""
        if isinstance(level, str):
            level = parse_log_level(level, self._min_level)
        self._min_level = level

    def is_enabled_for(self, level: LogLevel) -> bool:
        return level >= self._min_level

    def child(self, child_context: str) -> "Logger":
        """
        Create a logger whose context is nested under this one.

        Logger("Workflow").child("Evaluate") prints as [Workflow:Evaluate].
        """
        new_context = f"{self.context}:{child_context}" if self.context else child_context
        return Logger(new_context, self._min_level)

    def _paint(self, color: str, text: str) -> str:
        if not _colors_enabled():
            return text
        return f"{color}{text}{Colors.RESET}"

    def _format_message(self, level_name: str, message: str, color: str) -> str:
        timestamp = datetime.now().isoformat(timespec="seconds")
        context_str = f"[{self.context}] " if self.context else ""
        return (
            f"{self._paint(Colors.DIM, f'[{timestamp}]')} "
            f"{self._paint(color, f'[{level_name}]')} "
            f"{context_str}{message}"
        )

    def _log(
        self,
        level: LogLevel,
        level_name: str,
        color: str,
        message: str,
        data: dict[str, Any] | None = None
    ) -> None:
        if not self.is_enabled_for(level):
            return

        stream = sys.stderr if level >= LogLevel.ERROR else sys.stdout
        print(self._format_message(level_name, message, color), file=stream)

        if data:
            rendered = json.dumps(data, indent=2, default=str)
            print(self._paint(Colors.DIM, rendered), file=stream)

    def debug(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Log detail useful while developing; shown only at LOG_LEVEL=DEBUG."""
        self._log(LogLevel.DEBUG, "DEBUG", Colors.DEBUG, message, data)

    def info(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Log normal operational progress."""
        self._log(LogLevel.INFO, "INFO", Colors.INFO, message, data)

    def warning(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Log a recoverable problem (failed tool call, unparsable reply)."""
        self._log(LogLevel.WARNING, "WARN", Colors.WARNING, message, data)

    def error(self, message: str, error: BaseException | None = None) -> None:
        """
        Log a failure.

        Args:
            message: What was being attempted
            error: Optional exception whose type and message are included
        """
        data = None
        if error is not None:
            data = {
                "error_type": type(error).__name__,
                "error_message": str(error),
            }
        self._log(LogLevel.ERROR, "ERROR", Colors.ERROR, message, data)


# Package-wide default logger
logger = Logger("agentcore")
