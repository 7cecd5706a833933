# -*- coding: utf-8 -*-
"""
Bounded FIFO channel between two pipeline stages.

An `asyncio.Queue` with a close flag: a producer blocked on a full channel
and a consumer blocked on an empty one both wake with `ChannelClosed` when
the other side goes away. Items already queued are still handed out after
close.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Generic, TypeVar

from loguru import logger

from qbridge.types import ChannelClosed
from qbridge.util import QUEUE_LEN

T = TypeVar("T")


class Channel(Generic[T]):
    def __init__(self, maxsize: int = QUEUE_LEN, name: str = "channel"):
        if maxsize <= 0:
            raise ValueError("Channel must be bounded (maxsize > 0).")
        self.name = name
        self._queue: asyncio.Queue[T] = asyncio.Queue(maxsize)
        self._closed = asyncio.Event()

    @property
    def maxsize(self) -> int:
        return self._queue.maxsize

    def qsize(self) -> int:
        return self._queue.qsize()

    def full(self) -> bool:
        return self._queue.full()

    def is_closed(self) -> bool:
        return self._closed.is_set()

    def close(self):
        if not self._closed.is_set():
            logger.debug("Closing {} ({} items left).", self.name, self.qsize())
            self._closed.set()

    async def put(self, item: T):
        """Put an item, waiting while the channel is full.

        Raises
        ------
        ChannelClosed
            If the channel is, or becomes, closed before the item is queued.
        """
        if self.is_closed():
            raise ChannelClosed(f"{self.name} closed, consumer is gone.")
        if not self._queue.full():
            self._queue.put_nowait(item)
            return
        await self._race(self._queue.put(item), "consumer")

    async def get(self) -> T:
        """Get the next item, waiting while the channel is empty.

        Raises
        ------
        ChannelClosed
            If the channel is closed and drained.
        """
        if not self._queue.empty():
            return self._queue.get_nowait()
        if self.is_closed():
            raise ChannelClosed(f"{self.name} closed, producer is gone.")
        return await self._race(self._queue.get(), "producer")

    async def _race(self, op: Awaitable, peer: str):
        op_task = asyncio.ensure_future(op)
        closed_task = asyncio.ensure_future(self._closed.wait())
        try:
            done, _ = await asyncio.wait(
                {op_task, closed_task}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            closed_task.cancel()
            if not op_task.done():
                op_task.cancel()
        if op_task in done:
            return op_task.result()
        raise ChannelClosed(f"{self.name} closed, {peer} is gone.")
