import asyncio
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

from loguru import logger

from ..shared.constants import MSG_THROTTLE, OP_THROTTLE
from .operations import Operation, OutboundMessage

__all__ = ("MessageQueue", "OperationQueue", "ThrottledQueue")

_T = TypeVar("_T")

_STOP = object()


class ThrottledQueue(Generic[_T]):
    """Unbounded FIFO drained by a single consumer with a fixed pause between items."""

    name = "queue"

    def __init__(self, handler: Callable[[_T], Awaitable[None]], delay: float):
        self._handler = handler
        self.delay = delay
        self._queue: asyncio.Queue = asyncio.Queue()
        self._task: asyncio.Task | None = None

    def put(self, item: _T) -> None:
        self._queue.put_nowait(item)

    def close(self) -> None:
        self._queue.put_nowait(_STOP)

    def qsize(self) -> int:
        return self._queue.qsize()

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(), name=f"chanbot-{self.name}")
        return self._task

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def run(self) -> None:
        logger.debug(f"{self.name} consumer started")
        while True:
            item = await self._queue.get()
            if item is _STOP:
                logger.debug(f"{self.name} consumer stopped")
                return
            try:
                await self._handler(item)
            except Exception as e:
                if isinstance(e, asyncio.CancelledError):
                    raise
                logger.error(f"{self.name} item failed: {item!r}: {e}")
            await asyncio.sleep(self.delay)


class OperationQueue(ThrottledQueue[Operation]):
    name = "op-queue"

    def __init__(
        self, handler: Callable[[Operation], Awaitable[None]], delay: float = OP_THROTTLE
    ):
        super().__init__(handler, delay)


class MessageQueue(ThrottledQueue[OutboundMessage]):
    name = "msg-queue"

    def __init__(
        self,
        handler: Callable[[OutboundMessage], Awaitable[None]],
        delay: float = MSG_THROTTLE,
    ):
        super().__init__(handler, delay)
