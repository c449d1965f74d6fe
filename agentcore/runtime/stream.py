"""
Sequence Producer
=================

AsyncStream delivers an ordered sequence of chunks from a producer
coroutine to a consumer, through a Channel.

    async def producer(channel: Channel[str]) -> None:
        await model.stream_chat(messages, lambda chunk, done: channel.send(chunk))

    stream = AsyncStream(producer, on_complete=commit)
    async for chunk in stream:
        print(chunk, end="")

Lifecycle:
    - The producer starts on the first read.
    - Chunks arrive in the order they were sent.
    - A producer failure reaches the consumer after every chunk sent before
      it; those chunks stay valid.
    - on_complete(items) runs once, and only when the consumer reads up to
      the natural end of the stream (or calls finalize()).
    - aclose() stops early: the producer is cancelled, nothing is raised
      into the consumer, and on_complete never runs.
"""

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Generic, TypeVar

from agentcore.utils.logger import Logger

logger = Logger("Stream")

T = TypeVar("T")


class _Closed:
    """End-of-stream marker, optionally carrying the producer's error."""

    def __init__(self, error: BaseException | None = None):
        self.error = error


class Channel(Generic[T]):
    """
    An unbounded FIFO between one producer and one consumer.

    send() never blocks, so it can be called from synchronous callbacks.
    """

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self._end: _Closed | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, item: T) -> None:
        """
        Queue an item for the consumer.

        Raises:
            RuntimeError: If the channel is already closed
        """
        if self._closed:
            raise RuntimeError("Cannot send on a closed channel")
        self._queue.put_nowait(item)

    def close(self, error: BaseException | None = None) -> None:
        """Signal end of stream; with an error, the consumer receives it instead."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_Closed(error))

    async def receive(self) -> T:
        """
        Next item in order.

        Raises:
            StopAsyncIteration: After the channel was closed cleanly
            Exception: The error the channel was closed with
        """
        if self._end is not None:
            return self._raise_end()
        item = await self._queue.get()
        if isinstance(item, _Closed):
            self._end = item
            return self._raise_end()
        return item

    def _raise_end(self):
        if self._end.error is not None:
            raise self._end.error
        raise StopAsyncIteration


class AsyncStream(Generic[T]):
    """
    A lazily started, cancellable stream of chunks.

    Args:
        producer: Coroutine function that fills the channel; the channel is
            closed automatically when it returns or raises
        on_complete: Called with every item once the stream is fully consumed
        name: Label used in logs
    """

    def __init__(
        self,
        producer: Callable[[Channel[T]], Awaitable[None]],
        on_complete: Callable[[list[T]], Any] | None = None,
        name: str = "stream"
    ):
        self._producer = producer
        self._on_complete = on_complete
        self.name = name
        self._channel: Channel[T] | None = None
        self._task: asyncio.Task | None = None
        self._items: list[T] = []
        self._completed = False
        self._closed = False
        self._error: BaseException | None = None

    @property
    def completed(self) -> bool:
        """True once the stream reached its natural end."""
        return self._completed

    @property
    def closed(self) -> bool:
        """True once the stream can yield nothing more (completed, failed or closed)."""
        return self._closed

    @property
    def error(self) -> BaseException | None:
        return self._error

    @property
    def items(self) -> list[T]:
        """Chunks delivered to the consumer so far."""
        return list(self._items)

    def _ensure_started(self) -> None:
        if self._task is None:
            self._channel = Channel()
            self._task = asyncio.ensure_future(self._run_producer(self._channel))

    async def _run_producer(self, channel: Channel[T]) -> None:
        try:
            await self._producer(channel)
        except asyncio.CancelledError:
            channel.close()
            raise
        except Exception as e:
            logger.debug(f"Producer of {self.name} failed: {type(e).__name__}")
            channel.close(e)
            return
        channel.close()

    def __aiter__(self) -> "AsyncStream[T]":
        return self

    async def __anext__(self) -> T:
        if self._closed:
            raise StopAsyncIteration

        self._ensure_started()
        try:
            item = await self._channel.receive()
        except StopAsyncIteration:
            await self._complete()
            raise
        except Exception as e:
            self._closed = True
            self._error = e
            raise

        self._items.append(item)
        return item

    async def _complete(self) -> None:
        self._closed = True
        self._completed = True
        if self._on_complete is not None:
            result = self._on_complete(list(self._items))
            if inspect.isawaitable(result):
                await result

    async def aclose(self) -> None:
        """
        Stop consuming before the end.

        The producer is cancelled and the completion hook is skipped. Safe
        to call at any time, including after completion.
        """
        if self._closed:
            return
        self._closed = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        logger.debug(f"{self.name} closed after {len(self._items)} chunks")

    async def finalize(self) -> list[T]:
        """
        Consume the remainder of the stream and return every chunk.

        Runs the completion hook like a full read would. On a stream that
        was already closed early, returns what was delivered.
        """
        async for _ in self:
            pass
        return list(self._items)

    async def collect(self) -> list[T]:
        """Read the whole stream into a list."""
        return await self.finalize()

    async def __aenter__(self) -> "AsyncStream[T]":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
