"""Tests for WriteLock: FIFO order, mutual exclusion, failure isolation."""

import asyncio

import pytest

from backoffice.infrastructure.storage.write_lock import WriteLock


@pytest.mark.asyncio
async def test_operations_run_in_submission_order():
    lock = WriteLock()
    order: list[int] = []

    def _op(i: int):
        async def _run():
            await asyncio.sleep(0.01 if i == 0 else 0)
            order.append(i)
            return i

        return _run

    results = await asyncio.gather(*(lock.run(_op(i)) for i in range(5)))
    assert results == [0, 1, 2, 3, 4]
    assert order == [0, 1, 2, 3, 4]


@pytest.mark.asyncio
async def test_operations_never_overlap():
    lock = WriteLock()
    active = 0
    peak = 0

    async def _op():
        nonlocal active, peak
        active += 1
        peak = max(peak, active)
        await asyncio.sleep(0)
        active -= 1

    await asyncio.gather(*(lock.run(_op) for _ in range(10)))
    assert peak == 1


@pytest.mark.asyncio
async def test_failure_is_raised_to_its_caller_only():
    lock = WriteLock()
    ran: list[str] = []

    async def _boom():
        raise RuntimeError("boom")

    async def _after():
        ran.append("after")
        return "ok"

    results = await asyncio.gather(lock.run(_boom), lock.run(_after), return_exceptions=True)
    assert isinstance(results[0], RuntimeError)
    assert results[1] == "ok"
    assert ran == ["after"]
    assert lock.pending == 0
