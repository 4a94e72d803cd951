"""
Concurrency control

Two layers keep one writer per room:
- an in-process re-entrant lock per room code (threads of one worker)
- SELECT ... FOR UPDATE on the room row (several workers sharing a database;
  a no-op on SQLite, which serializes writers on its own)

Rooms are independent; nothing ever takes two room locks at once.
"""
import threading
from contextlib import contextmanager, nullcontext
from functools import wraps
from typing import Callable, Optional

from sqlalchemy.orm import Session, Query

from models import Room, User, Story
from services.naming_service import is_valid_room_code


def with_room_lock(room_code: str, db: Session) -> Query:
    """
    Row-lock a Room for the rest of the transaction

    Example:
        room = with_room_lock(code, db).first()
        if not room:
            raise RoomNotFound(code)
        room.votes_revealed = True

    Args:
        room_code: normalized 6 character code
        db: SQLAlchemy Session

    Returns:
        Query object (call .first())

    Notes:
        - nowait=False waits for a held lock instead of failing
        - must run inside a transaction that is committed or rolled back
    """
    return db.query(Room).filter(
        Room.code == room_code
    ).with_for_update(nowait=False).populate_existing()


class _RoomLock:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.RLock()
        self.users = 0


class RoomLockRegistry:
    """
    One RLock per room code, alive only while someone holds or waits on it

    Entries are reference counted, so codes of missing, deleted or purged
    rooms do not accumulate.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, _RoomLock] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, room_code: str):
        with self._guard:
            entry = self._locks.get(room_code)
            if entry is None:
                entry = self._locks[room_code] = _RoomLock()
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._locks[room_code]


room_locks = RoomLockRegistry()


# ============ Room code resolvers ============
# Each takes the decorated function's (db, first_arg, ...) and returns the
# code of the room the call will mutate, or None when it cannot be found
# (the function itself then raises the matching NotFound).

def by_room_code(db: Session, room_code, *args, **kwargs) -> Optional[str]:
    code = (room_code or "").strip().upper()
    return code if is_valid_room_code(code) else None


def by_user(db: Session, user_id, *args, **kwargs) -> Optional[str]:
    row = db.query(Room.code).join(User, User.room_id == Room.id).filter(User.id == user_id).first()
    return row[0] if row else None


def by_story(db: Session, story_id, *args, **kwargs) -> Optional[str]:
    row = db.query(Room.code).join(Story, Story.room_id == Room.id).filter(Story.id == story_id).first()
    return row[0] if row else None


def room_serialized(resolve: Callable[..., Optional[str]]):
    """
    Run the decorated manager method while holding its room's lock

    Place it above @transactional so the commit (and the events published
    on commit) happen before the lock is released.

        @staticmethod
        @room_serialized(by_user)
        @transactional
        def cast_vote(db: Session, user_id: int, vote: str): ...
    """
    def decorator(func):
        @wraps(func)
        def wrapper(db: Session, *args, **kwargs):
            room_code = resolve(db, *args, **kwargs)
            guard = room_locks.hold(room_code) if room_code else nullcontext()
            with guard:
                return func(db, *args, **kwargs)
        return wrapper
    return decorator
