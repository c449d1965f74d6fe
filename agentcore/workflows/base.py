"""
Workflow Base
=============

A workflow drives one or more model calls through a Context toward a
result. Subclasses implement run(); run_sync() is the entry point for
synchronous callers.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any

from agentcore.agent.context import Context


class Workflow(ABC):
    """
    Abstract multi-step workflow over a Context.

    Attributes:
        context: The Context whose model endpoint the workflow uses
    """

    def __init__(self, context: Context):
        self.context = context

    @abstractmethod
    async def run(self, input: str) -> Any:
        """Execute the workflow for one input."""

    def run_sync(self, input: str) -> Any:
        """
        Execute the workflow from synchronous code.

        Starts a fresh event loop, so it must not be called from inside one.
        """
        return asyncio.run(self.run(input))
