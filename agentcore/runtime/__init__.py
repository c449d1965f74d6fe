"""
Async Runtime
=============

The two suspendable building blocks everything else is written against:

- Task: a unit of work producing a single result
- AsyncStream: a producer of an ordered sequence of chunks, fed through
  a Channel and cancellable by its consumer

Scheduling is single-threaded and cooperative (asyncio). Nothing here
starts threads, and sibling tasks only run concurrently when the caller
composes them with gather().
"""

from agentcore.runtime.task import Task, gather, unit_of_work
from agentcore.runtime.stream import AsyncStream, Channel

__all__ = ["Task", "gather", "unit_of_work", "AsyncStream", "Channel"]
