import asyncio

import pytest

from kvstore.locks import ReadWriteLock


async def acquire_read(lock):
    async with lock.read():
        pass


async def acquire_write(lock):
    async with lock.write():
        pass


@pytest.mark.asyncio
async def test_readers_share_the_lock():
    lock = ReadWriteLock()
    both_inside = asyncio.Event()
    inside = 0

    async def reader():
        nonlocal inside
        async with lock.read():
            inside += 1
            if inside == 2:
                both_inside.set()
            await asyncio.wait_for(both_inside.wait(), timeout=1)

    await asyncio.gather(reader(), reader())
    await asyncio.wait_for(acquire_write(lock), timeout=1)


@pytest.mark.asyncio
async def test_writer_excludes_readers_and_writers():
    lock = ReadWriteLock()
    events = []

    async def writer(name):
        async with lock.write():
            events.append(f"{name}-in")
            await asyncio.sleep(0.01)
            events.append(f"{name}-out")

    async def reader():
        async with lock.read():
            events.append("reader")

    await asyncio.gather(writer("w1"), reader(), writer("w2"))
    for name in ("w1", "w2"):
        start = events.index(f"{name}-in")
        assert events[start + 1] == f"{name}-out"
    await asyncio.wait_for(acquire_read(lock), timeout=1)


@pytest.mark.asyncio
async def test_waiting_writer_blocks_new_readers():
    lock = ReadWriteLock()
    order = []
    release_first = asyncio.Event()

    async def first_reader():
        async with lock.read():
            await release_first.wait()
        order.append("first-reader-out")

    async def writer():
        async with lock.write():
            order.append("writer")

    async def late_reader():
        async with lock.read():
            order.append("late-reader")

    first = asyncio.create_task(first_reader())
    await asyncio.sleep(0)
    pending_writer = asyncio.create_task(writer())
    await asyncio.sleep(0)
    late = asyncio.create_task(late_reader())
    await asyncio.sleep(0.01)
    assert order == []

    release_first.set()
    await asyncio.gather(first, pending_writer, late)
    assert order.index("writer") < order.index("late-reader")


@pytest.mark.asyncio
async def test_cancelled_writer_releases_waiting_readers():
    lock = ReadWriteLock()
    release = asyncio.Event()

    async def holder():
        async with lock.read():
            await release.wait()

    async def writer():
        async with lock.write():
            pass

    held = asyncio.create_task(holder())
    await asyncio.sleep(0)
    pending_writer = asyncio.create_task(writer())
    await asyncio.sleep(0)
    pending_writer.cancel()
    with pytest.raises(asyncio.CancelledError):
        await pending_writer

    await asyncio.wait_for(acquire_read(lock), timeout=1)
    release.set()
    await held
