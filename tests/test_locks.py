"""
Tests for the per-username lock table and operation deadlines.
"""

import asyncio

import pytest

from globalauth.errors import DeadlineExceeded
from globalauth.modules.session import Deadline, KeyedLock


@pytest.mark.asyncio
async def test_same_key_is_serialized():
    locks = KeyedLock()
    order = []

    async def worker(name):
        async with locks.hold("alice"):
            order.append(f"{name}-in")
            await asyncio.sleep(0.01)
            order.append(f"{name}-out")

    await asyncio.gather(worker("a"), worker("b"))

    assert order in (["a-in", "a-out", "b-in", "b-out"], ["b-in", "b-out", "a-in", "a-out"])


@pytest.mark.asyncio
async def test_different_keys_run_concurrently():
    locks = KeyedLock()

    async with locks.hold("alice"):
        assert locks.locked("alice")
        async with locks.hold("bob"):
            assert locks.locked("bob")


@pytest.mark.asyncio
async def test_table_is_cleaned_up():
    """Test unused keys don't accumulate."""
    locks = KeyedLock()

    async with locks.hold("alice"):
        assert len(locks) == 1

    assert len(locks) == 0
    assert not locks.locked("alice")


@pytest.mark.asyncio
async def test_cleanup_after_exception():
    locks = KeyedLock()

    with pytest.raises(RuntimeError):
        async with locks.hold("alice"):
            raise RuntimeError("boom")

    assert len(locks) == 0


@pytest.mark.asyncio
async def test_acquire_timeout():
    locks = KeyedLock()

    async with locks.hold("alice"):
        with pytest.raises(asyncio.TimeoutError):
            async with locks.hold("alice", timeout=0.01):
                pass

    assert len(locks) == 0


@pytest.mark.asyncio
async def test_deadline_without_budget():
    deadline = Deadline(None)

    assert deadline.remaining() is None
    deadline.check()
    assert await deadline.run(asyncio.sleep(0, result="done")) == "done"


@pytest.mark.asyncio
async def test_deadline_run_times_out():
    deadline = Deadline(0.01)

    with pytest.raises(DeadlineExceeded):
        await deadline.run(asyncio.sleep(1))


@pytest.mark.asyncio
async def test_deadline_check_after_expiry():
    deadline = Deadline(0.01)
    await asyncio.sleep(0.02)

    assert deadline.remaining() == 0.0
    with pytest.raises(DeadlineExceeded):
        deadline.check()
