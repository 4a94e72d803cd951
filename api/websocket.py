"""
WebSocket event stream

One connection per participant: ws /ws/rooms/{code}?user_id=N

- on connect: the current room snapshot is sent and the user is marked connected
  (a user_id that is not a member of the room is refused with 4403)
- every committed change of the room is forwarded as {room_code, kind, snapshot, ...}
- on disconnect: the user is marked disconnected (not removed)

Client messages are not commands; "ping" is answered with "pong".
"""
import asyncio
from typing import Optional, Tuple
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from database import get_db
from core.events import EventKind, RoomEvent, event_bus
from core.room_manager import RoomManager
from core.exceptions import PlanningPokerException
from services.snapshot_service import room_snapshot

router = APIRouter(tags=["websocket"])
logger = logging.getLogger(__name__)

# close codes in the application range
CLOSE_NOT_A_MEMBER = 4403
CLOSE_ROOM_NOT_FOUND = 4404
CLOSE_ROOM_DELETED = 4410


def _initial_snapshot(db: Session, code: str, user_id: Optional[int]) -> Tuple[Optional[dict], Optional[int]]:
    """Snapshot for a new connection, or the close code refusing it"""
    try:
        room = RoomManager.get_room_by_code(db, code)
    except PlanningPokerException:
        return None, CLOSE_ROOM_NOT_FOUND

    # presence is tracked per room; a user id from another room is refused
    if user_id is not None and not any(u.id == user_id for u in room.users):
        logger.warning(f"User {user_id} tried to stream room {code} without being in it")
        return None, CLOSE_NOT_A_MEMBER

    return room_snapshot(room, viewer_user_id=user_id).model_dump(mode="json"), None


def _set_connected(db: Session, user_id: int, connected: bool) -> None:
    try:
        RoomManager.set_connected(db, user_id, connected)
    except PlanningPokerException as e:
        # the user may have left or been removed while connected
        logger.info(f"Could not mark user {user_id} connected={connected}: {e}")


@router.websocket("/ws/rooms/{code}")
async def room_events(
    websocket: WebSocket,
    code: str,
    user_id: Optional[int] = None,
    db: Session = Depends(get_db)
):
    code = code.strip().upper()
    snapshot, close_code = await run_in_threadpool(_initial_snapshot, db, code, user_id)
    if snapshot is None:
        await websocket.close(code=close_code)
        return

    await websocket.accept()

    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[RoomEvent] = asyncio.Queue()

    def forward(room_event: RoomEvent) -> None:
        # publishers run in worker threads
        loop.call_soon_threadsafe(queue.put_nowait, room_event)

    unsubscribe = event_bus.subscribe(code, forward)
    logger.info(f"WebSocket connected to room {code} (user={user_id})")

    async def pump() -> None:
        while True:
            room_event = await queue.get()
            await websocket.send_json(room_event.to_message())
            if room_event.kind == EventKind.ROOM_DELETED:
                await websocket.close(code=CLOSE_ROOM_DELETED)
                return

    async def listen() -> None:
        while True:
            message = await websocket.receive_text()
            if message == "ping":
                await websocket.send_text("pong")

    try:
        await websocket.send_json({"room_code": code, "kind": "room.snapshot", "snapshot": snapshot, "data": {}})
        if user_id is not None:
            await run_in_threadpool(_set_connected, db, user_id, True)

        tasks = {asyncio.create_task(pump()), asyncio.create_task(listen())}
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        for task in done:
            exc = task.exception()
            if exc and not isinstance(exc, WebSocketDisconnect):
                logger.error(f"WebSocket for room {code} failed: {exc}", exc_info=exc)
    except WebSocketDisconnect:
        pass
    finally:
        unsubscribe()
        if user_id is not None:
            await run_in_threadpool(_set_connected, db, user_id, False)
        logger.info(f"WebSocket disconnected from room {code} (user={user_id})")
