"""SingleFlight tests — sharing, failure propagation, leader cancellation and forget."""
import asyncio

import pytest

from app.singleflight import SingleFlight


@pytest.mark.asyncio
async def test_concurrent_calls_share_one_execution():
    flights = SingleFlight()
    calls = 0

    async def compute():
        nonlocal calls
        calls += 1
        await asyncio.sleep(0.05)
        return 42

    results = await asyncio.gather(*(flights.do("k", compute) for _ in range(5)))

    assert calls == 1
    assert [value for value, _ in results] == [42] * 5
    assert sum(1 for _, shared in results if not shared) == 1
    assert not flights.in_flight("k")


@pytest.mark.asyncio
async def test_sequential_calls_run_again():
    flights = SingleFlight()
    calls = 0

    async def compute():
        nonlocal calls
        calls += 1
        return calls

    assert await flights.do("k", compute) == (1, False)
    assert await flights.do("k", compute) == (2, False)


@pytest.mark.asyncio
async def test_failure_reaches_every_waiter():
    flights = SingleFlight()

    async def boom():
        await asyncio.sleep(0.05)
        raise RuntimeError("db down")

    results = await asyncio.gather(
        *(flights.do("k", boom) for _ in range(3)), return_exceptions=True
    )

    assert all(isinstance(r, RuntimeError) for r in results)
    assert not flights.in_flight("k")


@pytest.mark.asyncio
async def test_cancelled_leader_hands_over_to_a_waiter():
    flights = SingleFlight()
    started = asyncio.Event()
    calls = 0

    async def compute():
        nonlocal calls
        calls += 1
        started.set()
        await asyncio.sleep(0.05)
        return "done"

    leader = asyncio.create_task(flights.do("k", compute))
    await started.wait()
    waiter = asyncio.create_task(flights.do("k", compute))
    await asyncio.sleep(0)
    leader.cancel()

    with pytest.raises(asyncio.CancelledError):
        await leader
    assert await waiter == ("done", False)
    assert calls == 2


@pytest.mark.asyncio
async def test_cancelled_waiter_does_not_cancel_leader():
    flights = SingleFlight()
    started = asyncio.Event()

    async def compute():
        started.set()
        await asyncio.sleep(0.05)
        return "done"

    leader = asyncio.create_task(flights.do("k", compute))
    await started.wait()
    waiter = asyncio.create_task(flights.do("k", compute))
    await asyncio.sleep(0)
    waiter.cancel()

    with pytest.raises(asyncio.CancelledError):
        await waiter
    assert await leader == ("done", False)


@pytest.mark.asyncio
async def test_forget_detaches_in_flight_call():
    flights = SingleFlight()
    started = asyncio.Event()
    release = asyncio.Event()

    async def slow():
        started.set()
        await release.wait()
        return "old"

    async def fast():
        return "new"

    leader = asyncio.create_task(flights.do("k", slow))
    await started.wait()
    assert flights.generation("k") == 0

    flights.forget("k")

    assert flights.generation("k") == 1
    assert not flights.in_flight("k")
    assert await flights.do("k", fast) == ("new", False)
    release.set()
    assert await leader == ("old", False)


@pytest.mark.asyncio
async def test_detached_leader_does_not_remove_newer_call():
    flights = SingleFlight()
    old_started, old_release = asyncio.Event(), asyncio.Event()
    new_started, new_release = asyncio.Event(), asyncio.Event()

    async def old():
        old_started.set()
        await old_release.wait()
        return "old"

    async def new():
        new_started.set()
        await new_release.wait()
        return "new"

    first = asyncio.create_task(flights.do("k", old))
    await old_started.wait()
    flights.forget("k")
    second = asyncio.create_task(flights.do("k", new))
    await new_started.wait()

    old_release.set()
    assert await first == ("old", False)
    assert flights.in_flight("k")

    new_release.set()
    assert await second == ("new", False)
