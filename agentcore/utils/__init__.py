"""
Utilities Module
================

Shared infrastructure for the execution core:
- logger: context-aware terminal logging
- config: environment-driven configuration
"""

from agentcore.utils.logger import Logger, LogLevel, logger
from agentcore.utils.config import Config, get_config, reset_config

__all__ = ["Logger", "LogLevel", "logger", "Config", "get_config", "reset_config"]
