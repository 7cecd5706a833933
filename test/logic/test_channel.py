"""Tests for the bounded inter-stage channel."""

import asyncio

import pytest

from qbridge.server.channel import Channel
from qbridge.types import ChannelClosed


@pytest.mark.asyncio
async def test_fifo_order():
    chan = Channel(10)
    for i in range(5):
        await chan.put(i)
    assert [await chan.get() for _ in range(5)] == [0, 1, 2, 3, 4]


def test_must_be_bounded():
    with pytest.raises(ValueError):
        Channel(0)


@pytest.mark.asyncio
async def test_put_blocks_when_full():
    """A full channel suspends the producer; nothing is dropped."""
    chan = Channel(2)
    await chan.put(1)
    await chan.put(2)
    put_task = asyncio.create_task(chan.put(3))
    await asyncio.sleep(0.05)
    assert not put_task.done()
    assert chan.full()
    assert chan.qsize() == 2

    assert await chan.get() == 1
    await asyncio.wait_for(put_task, 1)
    assert [await chan.get(), await chan.get()] == [2, 3]


@pytest.mark.asyncio
async def test_put_on_closed_raises():
    chan = Channel(2)
    chan.close()
    with pytest.raises(ChannelClosed):
        await chan.put(1)


@pytest.mark.asyncio
async def test_blocked_put_wakes_on_close():
    chan = Channel(1)
    await chan.put(1)
    put_task = asyncio.create_task(chan.put(2))
    await asyncio.sleep(0.01)
    chan.close()
    with pytest.raises(ChannelClosed):
        await asyncio.wait_for(put_task, 1)


@pytest.mark.asyncio
async def test_blocked_get_wakes_on_close():
    chan = Channel(1)
    get_task = asyncio.create_task(chan.get())
    await asyncio.sleep(0.01)
    chan.close()
    with pytest.raises(ChannelClosed):
        await asyncio.wait_for(get_task, 1)


@pytest.mark.asyncio
async def test_get_drains_before_reporting_close():
    chan = Channel(5)
    await chan.put("a")
    await chan.put("b")
    chan.close()
    assert chan.is_closed()
    assert await chan.get() == "a"
    assert await chan.get() == "b"
    with pytest.raises(ChannelClosed):
        await chan.get()


@pytest.mark.asyncio
async def test_cancelled_get_does_not_lose_items():
    chan = Channel(5)
    get_task = asyncio.create_task(chan.get())
    await asyncio.sleep(0.01)
    get_task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await get_task
    await chan.put("x")
    assert await chan.get() == "x"
