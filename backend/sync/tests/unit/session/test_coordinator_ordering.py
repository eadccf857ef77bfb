"""Concurrent events on one room apply in arrival order without losing updates."""

import asyncio

import pytest

from shared.exceptions import StoreUnavailableError
from sync.roster import User
from sync.session.coordinator import RoomSessionCoordinator
from sync.session.heartbeat import KeepAliveSender
from sync.tests.helpers.rooms import FIXED_TIME, create_room, fixed_clock, join, updates
from sync.tests.mocks import MockRoomStore


@pytest.fixture
def store():
    # every store call yields to the event loop, so unlocked read-modify-writes would interleave
    return MockRoomStore(delay=0.001)


@pytest.fixture
async def coordinator(store):
    coordinator = RoomSessionCoordinator(store, keepalive=KeepAliveSender(3600), clock=fixed_clock)
    yield coordinator
    await coordinator.shutdown()


class TestNoLostUpdates:
    async def test_concurrent_patches_to_different_keys_all_survive(self, coordinator, store):
        room_id = await create_room(store)
        alice = await join(coordinator, "Alice")
        bob = await join(coordinator, "Bob")

        await asyncio.gather(
            coordinator.update_game_data(alice, {"turn": "N"}),
            coordinator.update_game_data(bob, {"trump": "hearts"}),
            coordinator.update_game_data(alice, {"cards": {"N": ["QS"]}}),
            coordinator.update_game_data(bob, {"cards": {"S": ["JD"]}}),
        )

        record = await store.load(room_id)
        assert record.game_data == {"turn": "N", "trump": "hearts", "cards": {"N": ["QS"], "S": ["JD"]}}

    async def test_concurrent_chat_keeps_every_line_in_arrival_order(self, coordinator, store):
        room_id = await create_room(store)
        alice = await join(coordinator, "Alice")
        bob = await join(coordinator, "Bob")

        await asyncio.gather(*(
            coordinator.chat_message(alice if i % 2 == 0 else bob, f"message {i}") for i in range(6)
        ))

        record = await store.load(room_id)
        chat = [line for line in record.chat_log if ":" in line.removeprefix(FIXED_TIME)]
        assert chat == [f"{FIXED_TIME} {'Alice' if i % 2 == 0 else 'Bob'}: message {i}" for i in range(6)]

    async def test_join_commits_before_a_later_event_for_the_same_room(self, coordinator, store, mock_connection):
        room_id = await create_room(store)
        bob = await join(coordinator, "Bob")
        coordinator.register_connection(mock_connection)

        await asyncio.gather(
            coordinator.join(mock_connection, room_number="4821", user_name="Alice"),
            coordinator.chat_message(bob, "hi"),
        )

        record = await store.load(room_id)
        assert record.chat_log[-2:] == (f"{FIXED_TIME} Alice entered the room", f"{FIXED_TIME} Bob: hi")
        assert updates(bob) == [
            {"chatLog": f"{FIXED_TIME} Alice entered the room"},
            {"chatLog": f"{FIXED_TIME} Bob: hi"},
        ]

    async def test_registration_commits_before_a_later_event_for_the_same_room(self, coordinator, store):
        room_id = await create_room(store)
        alice = await join(coordinator, "Alice")

        await asyncio.gather(
            coordinator.register_user("4821", "Bob", {"seat": "S"}),
            coordinator.update_user(alice, User(name="Bob", seat="E")),
        )

        record = await store.load(room_id)
        assert [(user["name"], user["seat"]) for user in record.users] == [("Bob", "E")]

    async def test_members_see_deltas_in_commit_order(self, coordinator, store):
        await create_room(store)
        alice = await join(coordinator, "Alice")
        bob = await join(coordinator, "Bob")

        await asyncio.gather(
            coordinator.update_game_data(alice, {"round": {"trick": 1}}),
            coordinator.update_game_data(bob, {"round": {"leader": "E"}}),
        )

        expected = [{"gameData": {"round": {"trick": 1}}}, {"gameData": {"round": {"trick": 1, "leader": "E"}}}]
        assert updates(alice) == expected
        assert updates(bob) == expected

    async def test_rooms_do_not_block_each_other(self, coordinator, store):
        first = await create_room(store, "1")
        second = await create_room(store, "2")
        alice = await join(coordinator, "Alice", "1")
        bob = await join(coordinator, "Bob", "2")

        await asyncio.gather(
            coordinator.update_game_data(alice, {"turn": "N"}),
            coordinator.update_game_data(bob, {"turn": "S"}),
        )

        assert (await store.load(first)).game_data == {"turn": "N"}
        assert (await store.load(second)).game_data == {"turn": "S"}
        assert updates(alice) == [{"gameData": {"turn": "N"}}]
        assert updates(bob) == [{"gameData": {"turn": "S"}}]


class TestStoreFailures:
    async def test_failed_save_broadcasts_nothing(self, coordinator, store):
        room_id = await create_room(store, game_data={"turn": "N"})
        alice = await join(coordinator, "Alice")
        bob = await join(coordinator, "Bob")
        store.fail_saves = True

        with pytest.raises(StoreUnavailableError):
            await coordinator.update_game_data(alice, {"turn": "E"})

        assert updates(alice) == []
        assert updates(bob) == []
        assert (await store.load(room_id)).game_data == {"turn": "N"}

    async def test_failed_load_leaves_room_untouched(self, coordinator, store):
        room_id = await create_room(store)
        alice = await join(coordinator, "Alice")
        saves_before = len(store.saves)
        store.failing_loads = 1

        with pytest.raises(StoreUnavailableError):
            await coordinator.chat_message(alice, "hello")

        assert len(store.saves) == saves_before
        assert updates(alice) == []
        # the room is usable again once the store recovers
        await coordinator.chat_message(alice, "hello again")
        assert (await store.load(room_id)).chat_log[-1] == f"{FIXED_TIME} Alice: hello again"

    async def test_failure_releases_room_lock(self, coordinator, store):
        await create_room(store)
        alice = await join(coordinator, "Alice")
        store.fail_saves = True

        with pytest.raises(StoreUnavailableError):
            await coordinator.update_game_data(alice, {"turn": "E"})

        assert coordinator._locks.is_idle("4821")
