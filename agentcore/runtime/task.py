"""
Unit of Work
============

A Task wraps exactly one coroutine and produces one result.

Tasks are lazy: creating one runs nothing. The coroutine is scheduled on
the running event loop when the task is first awaited or explicitly
start()ed, which is how a caller opts into running sibling tasks
concurrently:

    first = context.chat("Summarize A")
    second = context.fork().chat("Summarize B")
    a, b = await gather(first, second)      # explicit concurrent composition

    reply = await context.chat("Hello")      # plain sequential use

Once started a task runs to completion; there is no mid-flight
cancellation. A task that was never started can be discarded.
"""

import asyncio
import functools
from typing import Any, Awaitable, Callable, Coroutine, Generic, TypeVar

T = TypeVar("T")


class Task(Generic[T]):
    """
    A lazily started, awaitable unit of work.

    Attributes:
        name: Label used in logs and error messages
    """

    def __init__(self, coro: Coroutine[Any, Any, T], name: str | None = None):
        if not asyncio.iscoroutine(coro):
            raise TypeError(f"Task expects a coroutine, got {type(coro).__name__}")
        self._coro = coro
        self.name = name or getattr(coro, "__qualname__", "task")
        self._future: asyncio.Future[T] | None = None
        self._discarded = False

    def __repr__(self) -> str:
        if self._discarded:
            state = "discarded"
        elif self._future is None:
            state = "pending"
        elif self._future.done():
            state = "done"
        else:
            state = "running"
        return f"<Task {self.name} {state}>"

    @property
    def started(self) -> bool:
        return self._future is not None

    @property
    def discarded(self) -> bool:
        return self._discarded

    def start(self) -> "Task[T]":
        """
        Schedule the task on the running event loop.

        Starting an already started task is a no-op.

        Raises:
            RuntimeError: If the task was discarded or no loop is running
        """
        if self._discarded:
            raise RuntimeError(f"Task '{self.name}' was discarded")
        if self._future is None:
            self._future = asyncio.ensure_future(self._coro)
        return self

    def discard(self) -> None:
        """
        Drop a task that has not started yet.

        Raises:
            RuntimeError: If the task is already running or finished
        """
        if self._future is not None:
            raise RuntimeError(f"Task '{self.name}' has already started and cannot be discarded")
        if not self._discarded:
            self._coro.close()
            self._discarded = True

    def done(self) -> bool:
        return self._future is not None and self._future.done()

    def result(self) -> T:
        """
        Result of a finished task (re-raises the task's exception).

        Raises:
            RuntimeError: If the task has not finished
        """
        if not self.done():
            raise RuntimeError(f"Task '{self.name}' has not finished")
        return self._future.result()

    def as_future(self) -> "asyncio.Future[T]":
        """Start the task if needed and return the underlying future."""
        self.start()
        return self._future

    def __await__(self):
        return self.as_future().__await__()

    def run_sync(self) -> T:
        """
        Drive the task to completion from synchronous code.

        Runs a fresh event loop, so it must not be called from inside one.
        """
        if self._future is not None:
            raise RuntimeError(f"Task '{self.name}' already started on an event loop")

        async def _drive() -> T:
            return await self

        return asyncio.run(_drive())


def unit_of_work(func: Callable[..., Coroutine[Any, Any, T]]) -> Callable[..., Task[T]]:
    """
    Decorate an async function so that calling it returns a Task.

        @unit_of_work
        async def fetch(...): ...

        task = fetch(...)   # nothing runs yet
        value = await task
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> Task[T]:
        return Task(func(*args, **kwargs), name=func.__qualname__)

    return wrapper


async def gather(*tasks: "Task[Any] | Awaitable[Any]") -> list[Any]:
    """
    Await several tasks concurrently.

    Results come back in argument order. The first failure propagates;
    the remaining tasks still run to completion.
    """
    futures = [
        task.as_future() if isinstance(task, Task) else asyncio.ensure_future(task)
        for task in tasks
    ]
    return list(await asyncio.gather(*futures))
