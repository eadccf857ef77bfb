import asyncio

import pytest

from sync.session.locks import RoomLocks


class TestRoomLocks:
    async def test_waiters_run_in_arrival_order(self):
        locks = RoomLocks()
        order: list[int] = []

        async def worker(n: int) -> None:
            async with locks.hold("room"):
                await asyncio.sleep(0)
                order.append(n)

        await asyncio.gather(*(worker(n) for n in range(5)))

        assert order == [0, 1, 2, 3, 4]

    async def test_holders_are_exclusive(self):
        locks = RoomLocks()
        active = 0
        peak = 0

        async def worker() -> None:
            nonlocal active, peak
            async with locks.hold("room"):
                active += 1
                peak = max(peak, active)
                await asyncio.sleep(0.001)
                active -= 1

        await asyncio.gather(*(worker() for _ in range(4)))

        assert peak == 1

    async def test_different_rooms_run_concurrently(self):
        locks = RoomLocks()
        entered = asyncio.Event()

        async def hold_first() -> None:
            async with locks.hold("a"):
                await asyncio.wait_for(entered.wait(), timeout=1)

        async def hold_second() -> None:
            async with locks.hold("b"):
                entered.set()

        await asyncio.gather(hold_first(), hold_second())

    async def test_lock_dropped_when_idle(self):
        locks = RoomLocks()

        async with locks.hold("room"):
            assert not locks.is_idle("room")
            assert len(locks) == 1

        assert locks.is_idle("room")
        assert len(locks) == 0

    async def test_lock_released_on_error(self):
        locks = RoomLocks()

        with pytest.raises(ValueError, match="boom"):
            async with locks.hold("room"):
                raise ValueError("boom")

        assert locks.is_idle("room")
