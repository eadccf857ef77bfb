from sync.session.broadcast import RoomChannels
from sync.session.models import Session
from sync.tests.mocks import MockConnection


def _session() -> Session:
    return Session(connection=MockConnection())


class TestRoomChannels:
    async def test_broadcast_reaches_only_room_members(self):
        channels = RoomChannels()
        alice, bob, carol = _session(), _session(), _session()
        channels.subscribe("room-1", alice)
        channels.subscribe("room-1", bob)
        channels.subscribe("room-2", carol)

        await channels.broadcast("room-1", {"event": "updateRoom", "data": {"chatLog": "hi"}})

        assert alice.connection.sent_messages == [{"event": "updateRoom", "data": {"chatLog": "hi"}}]
        assert bob.connection.sent_messages == alice.connection.sent_messages
        assert carol.connection.sent_messages == []

    async def test_closed_member_does_not_stop_broadcast(self):
        channels = RoomChannels()
        gone, alice = _session(), _session()
        channels.subscribe("room-1", gone)
        channels.subscribe("room-1", alice)
        await gone.connection.close()

        await channels.broadcast("room-1", {"event": "keepAlive", "data": {}})

        assert alice.connection.sent_messages == [{"event": "keepAlive", "data": {}}]

    def test_unsubscribe_drops_empty_rooms(self):
        channels = RoomChannels()
        alice = _session()
        channels.subscribe("room-1", alice)

        channels.unsubscribe("room-1", alice.connection_id)
        channels.unsubscribe("room-1", alice.connection_id)

        assert channels.members("room-1") == []
        assert channels.room_count() == 0
