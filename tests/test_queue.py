"""
Tests for the bounded task queue.
"""

import asyncio

import pytest

from monopack.pipelines.queue import BoundedTaskQueue


def test_never_exceeds_concurrency():
    state = {"active": 0, "max": 0}

    async def work(i):
        state["active"] += 1
        state["max"] = max(state["max"], state["active"])
        await asyncio.sleep(0.01)
        state["active"] -= 1
        return i

    async def main():
        queue = BoundedTaskQueue(3)
        for i in range(10):
            queue.add(lambda i=i: work(i))
        return await queue.join()

    results = asyncio.run(main())
    assert results == list(range(10))
    assert state["max"] == 3


def test_first_failure_is_raised_after_running_tasks_settle():
    finished = []

    async def slow():
        await asyncio.sleep(0.05)
        finished.append("slow")

    async def fail():
        await asyncio.sleep(0.01)
        raise RuntimeError("first")

    async def fail_later():
        await asyncio.sleep(0.03)
        raise RuntimeError("second")

    async def main():
        queue = BoundedTaskQueue(4)
        queue.add(slow)
        queue.add(fail)
        queue.add(fail_later)
        await queue.join()

    with pytest.raises(RuntimeError, match="first"):
        asyncio.run(main())
    # The running sibling was not cancelled
    assert finished == ["slow"]


def test_pending_tasks_are_skipped_after_failure():
    started = []

    async def fail():
        started.append("fail")
        raise ValueError("boom")

    async def ok(i):
        started.append(i)

    async def main():
        queue = BoundedTaskQueue(1)
        queue.add(fail)
        for i in range(3):
            queue.add(lambda i=i: ok(i))
        try:
            await queue.join()
        finally:
            assert not queue.failed

    with pytest.raises(ValueError):
        asyncio.run(main())
    assert started == ["fail"]


def test_queue_is_reusable_between_phases():
    async def main():
        queue = BoundedTaskQueue(2)
        queue.add(lambda: asyncio.sleep(0, result="a"))
        first = await queue.join()
        queue.add(lambda: asyncio.sleep(0, result="b"))
        second = await queue.join()
        return first, second

    assert asyncio.run(main()) == (["a"], ["b"])


def test_concurrency_must_be_positive():
    with pytest.raises(ValueError):
        BoundedTaskQueue(0)
