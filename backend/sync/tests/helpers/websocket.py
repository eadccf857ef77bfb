"""Shared WebSocket test helpers for sync integration tests."""

from sync.messaging.encoder import decode, encode, encode_event


def send_ws(ws, event: str, data=None) -> None:
    """Send one MessagePack-encoded event frame over a test WebSocket."""
    ws.send_bytes(encode_event(event, data))


def send_raw(ws, data: dict) -> None:
    ws.send_bytes(encode(data))


def recv_ws(ws) -> dict:
    """Receive and decode a MessagePack message from a test WebSocket."""
    return decode(ws.receive_bytes())


def create_room(client, game_number: str = "4821", **extra) -> None:
    """Create a room via POST /newGame."""
    response = client.post("/newGame", json={"gameNumber": game_number, "game": "pinochle", "players": "4", **extra})
    assert response.status_code == 200
    assert response.json() == {"record": game_number}


def join_room(ws, user_name: str, game_number: str = "4821", seat_template: dict | None = None) -> tuple[dict, dict]:
    """Send first-contact and return the (gameRoomState, entered-line updateRoom) pair."""
    send_ws(ws, "first-contact", {"userName": user_name, "gameNumber": game_number, "newUserObject": seat_template})
    state = recv_ws(ws)
    entered = recv_ws(ws)
    return state, entered
