import pytest
from fastapi import WebSocketDisconnect

from models import User
from core.room_manager import RoomManager


def test_unknown_room_is_refused(client):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/ws/rooms/ZZZZZZ") as ws:
            ws.receive_json()
    assert exc_info.value.code == 4404


def test_first_message_is_the_room_snapshot(client, room):
    with client.websocket_connect(f"/ws/rooms/{room['code'].lower()}") as ws:
        message = ws.receive_json()

    assert message["kind"] == "room.snapshot"
    assert message["room_code"] == room["code"]
    assert [u["name"] for u in message["snapshot"]["users"]] == ["Hanna", "Alex", "Bea"]


def test_committed_changes_are_forwarded(client, room):
    with client.websocket_connect(f"/ws/rooms/{room['code']}") as ws:
        ws.receive_json()

        client.post(f"/api/users/{room['alex_id']}/vote", json={"vote": "3"})
        message = ws.receive_json()

        ws.send_text("ping")
        assert ws.receive_text() == "pong"

    assert message["kind"] == "vote.cast"
    assert message["data"] == {"user_id": room["alex_id"]}
    alex = next(u for u in message["snapshot"]["users"] if u["id"] == room["alex_id"])
    assert alex["has_voted"] is True
    assert alex["vote"] is None


def test_connection_tracks_user_presence(client, db, room):
    RoomManager.set_connected(db, room["alex_id"], False)

    with client.websocket_connect(f"/ws/rooms/{room['code']}?user_id={room['alex_id']}") as ws:
        ws.receive_json()
        message = ws.receive_json()
        assert message["kind"] == "user.updated"
        alex = next(u for u in message["snapshot"]["users"] if u["id"] == room["alex_id"])
        assert alex["is_connected"] is True

    db.expire_all()
    user = db.get(User, room["alex_id"])
    assert user is not None
    assert user.is_connected is False


def test_room_deletion_closes_the_stream(client, room):
    with client.websocket_connect(f"/ws/rooms/{room['code']}") as ws:
        ws.receive_json()

        client.delete(f"/api/rooms/{room['code']}", headers={"X-User-Id": str(room["host_id"])})

        message = ws.receive_json()
        assert message["kind"] == "room.deleted"
        assert message["snapshot"] is None

        with pytest.raises(WebSocketDisconnect) as exc_info:
            ws.receive_json()
        assert exc_info.value.code == 4410


def test_user_from_another_room_is_refused(client, db, room):
    RoomManager.create_room(db, "Other", "Olga", code_generator=lambda: "ROOM02")
    RoomManager.set_connected(db, room["alex_id"], False)

    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect(f"/ws/rooms/ROOM02?user_id={room['alex_id']}") as ws:
            ws.receive_json()
    assert exc_info.value.code == 4403

    db.expire_all()
    assert db.get(User, room["alex_id"]).is_connected is False
