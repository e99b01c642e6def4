from __future__ import annotations

import asyncio

import pytest

from site_audit.limiter import ConcurrencyLimiter, Outcome


@pytest.mark.asyncio()
@pytest.mark.parametrize("limit", [1, 3, 5])
async def test_never_exceeds_limit_and_keeps_order(limit: int):
    active = 0
    peak = 0

    async def task(i: int) -> int:
        nonlocal active, peak
        active += 1
        peak = max(peak, active)
        # later tasks finish first
        await asyncio.sleep(0.01 * (12 - i))
        active -= 1
        return i * 10

    limiter = ConcurrencyLimiter(limit)
    outcomes = await limiter.map(task, range(12))

    assert [o.value for o in outcomes] == [i * 10 for i in range(12)]
    assert peak <= limit
    assert limiter.peak == peak


@pytest.mark.asyncio()
async def test_factory_starts_only_when_slot_is_free():
    gate = asyncio.Event()
    started: list[int] = []

    def factory(i: int):
        async def run() -> int:
            started.append(i)
            await gate.wait()
            return i

        return run

    limiter = ConcurrencyLimiter(2)
    batch = asyncio.create_task(limiter.run([factory(i) for i in range(4)]))
    for _ in range(5):
        await asyncio.sleep(0)
    assert started == [0, 1]

    gate.set()
    outcomes = await batch
    assert sorted(started) == [0, 1, 2, 3]
    assert [o.value for o in outcomes] == [0, 1, 2, 3]


@pytest.mark.asyncio()
async def test_failure_is_captured_and_siblings_complete():
    async def task(i: int) -> int:
        await asyncio.sleep(0.01)
        if i == 1:
            raise RuntimeError("boom")
        return i

    outcomes = await ConcurrencyLimiter(2).map(task, range(4))

    assert len(outcomes) == 4
    assert [o.ok for o in outcomes] == [True, False, True, True]
    assert isinstance(outcomes[1].error, RuntimeError)
    assert outcomes[3].value == 3
    with pytest.raises(RuntimeError):
        outcomes[1].unwrap()


@pytest.mark.asyncio()
async def test_limit_one_serializes():
    limiter = ConcurrencyLimiter(1)

    async def task(i: int) -> int:
        await asyncio.sleep(0.005)
        return i

    outcomes = await limiter.map(task, range(5))
    assert limiter.peak == 1
    assert [o.unwrap() for o in outcomes] == list(range(5))


@pytest.mark.asyncio()
async def test_empty_batch():
    assert await ConcurrencyLimiter(3).run([]) == []


@pytest.mark.parametrize("limit", [0, -1])
def test_invalid_limit(limit: int):
    with pytest.raises(ValueError):
        ConcurrencyLimiter(limit)


def test_outcome_defaults():
    assert Outcome(value=1).ok
    assert not Outcome(error=ValueError("x")).ok
