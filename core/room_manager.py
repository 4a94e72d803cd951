"""
Room Manager: the full lifecycle of a Room and its participants

Responsibilities:
1. Create a room together with its host
2. Join / rejoin / leave / remove participants
3. Track connection state reported by the transport layer
4. Rename and delete rooms, purge idle ones
5. Look rooms and users up

Rules:
- exactly one host per room, chosen at creation, never transferred
- a joining user is never a host
- every mutation commits atomically and queues one change event
"""
from datetime import datetime, timedelta
from typing import Callable, Optional, Tuple
import logging

from sqlalchemy.orm import Session

from models import Room, User, RoomStatus, utcnow
from core import repository
from core.events import EventKind, queue_event
from core.locks import with_room_lock, room_serialized, by_room_code, by_user
from core.exceptions import (
    CodeGenerationExhausted,
    RoomNotFound,
    UserNotFound,
    ValidationError,
)
from services.naming_service import (
    generate_room_code,
    normalize_room_code,
    require_text,
    same_name,
)
from services.snapshot_service import room_payload
from services.voting_system_service import resolve_voting_system
from database import transactional

logger = logging.getLogger(__name__)

MAX_CODE_ATTEMPTS = 10


def _locked_room(db: Session, room_code: str) -> Room:
    room = with_room_lock(room_code, db).first()
    if not room:
        raise RoomNotFound(room_code)
    return room


def _user_or_raise(db: Session, user_id: int) -> User:
    user = repository.find_user(db, user_id)
    if not user:
        raise UserNotFound(user_id)
    return user


class RoomManager:
    """Room lifecycle manager"""

    @staticmethod
    def generate_unique_code(
        db: Session,
        code_generator: Callable[[], str] = generate_room_code
    ) -> str:
        """
        Draw room codes until one is unused

        Raises:
            CodeGenerationExhausted: every one of MAX_CODE_ATTEMPTS codes was taken
        """
        for attempt in range(1, MAX_CODE_ATTEMPTS + 1):
            code = code_generator()
            if not repository.room_code_exists(db, code):
                return code
            logger.warning(f"Room code collision on attempt {attempt}: {code}")

        raise CodeGenerationExhausted(MAX_CODE_ATTEMPTS)

    @staticmethod
    @transactional
    def create_room(
        db: Session,
        name: str,
        host_name: str,
        voting_system_name: Optional[str] = None,
        code_generator: Callable[[], str] = generate_room_code
    ) -> Tuple[Room, User]:
        """
        Create a new room together with its host

        Flow:
        1. Validate names
        2. Generate a unique room code (at most 10 attempts)
        3. Resolve the voting system (unknown names fall back to Fibonacci)
        4. Create the Room, then the host User, then link them

        Returns:
            (Room, host User)

        Raises:
            ValidationError: empty room or host name
            CodeGenerationExhausted: no unique code found
        """
        name = require_text("name", name)
        host_name = require_text("host_name", host_name)

        code = RoomManager.generate_unique_code(db, code_generator)
        voting_system = resolve_voting_system(voting_system_name)

        room = repository.create_room(
            db,
            code=code,
            name=name,
            voting_system_name=voting_system.name,
            votes_revealed=False,
            status=RoomStatus.WAITING,
        )
        host = repository.create_user(
            db,
            room,
            name=host_name,
            is_host=True,
            is_connected=True,
            has_voted=False,
        )
        repository.update_room(db, room, host_user_id=host.id)

        logger.info(f"Created room {code} ({voting_system.name}) hosted by user {host.id}")
        queue_event(db, code, EventKind.ROOM_CREATED, room_payload(room), user_id=host.id)
        return room, host

    @staticmethod
    @room_serialized(by_room_code)
    @transactional
    def join_room(db: Session, room_code: str, user_name: str) -> Tuple[Room, User]:
        """
        Join a room by code

        A name already present in the room (case-insensitive) is a rejoin:
        the existing user is marked connected and returned as is, so the
        room never holds two entries for one participant.

        Raises:
            ValidationError: malformed code or empty name
            RoomNotFound: no room with that code
        """
        code = normalize_room_code(room_code)
        user_name = require_text("user_name", user_name)
        room = _locked_room(db, code)

        existing = next((u for u in room.users if same_name(u.name, user_name)), None)
        if existing:
            repository.update_user(db, existing, is_connected=True)
            repository.touch_room(db, room)
            logger.info(f"User {existing.id} rejoined room {code}")
            queue_event(db, code, EventKind.USER_UPDATED, room_payload(room), user_id=existing.id)
            return room, existing

        user = repository.create_user(
            db,
            room,
            name=user_name,
            is_host=False,
            is_connected=True,
            has_voted=False,
        )
        repository.touch_room(db, room)

        logger.info(f"User {user.id} ({user.name}) joined room {code}")
        queue_event(db, code, EventKind.USER_JOINED, room_payload(room), user_id=user.id)
        return room, user

    @staticmethod
    @room_serialized(by_user)
    @transactional
    def leave_room(db: Session, user_id: int) -> Optional[Room]:
        """
        Explicit leave: the user is removed from the room

        The host leaving closes the room, since host status is never handed
        to someone else.

        Returns:
            the room, or None when it was closed
        """
        user = _user_or_raise(db, user_id)
        room = _locked_room(db, user.room.code)

        if user.is_host:
            code = room.code
            repository.delete_room(db, room)
            logger.info(f"Host {user_id} left, room {code} closed")
            queue_event(db, code, EventKind.ROOM_DELETED, None, reason="host_left", user_id=user_id)
            return None

        repository.delete_user(db, user)
        repository.touch_room(db, room)

        logger.info(f"User {user_id} left room {room.code}")
        queue_event(db, room.code, EventKind.USER_LEFT, room_payload(room), user_id=user_id)
        return room

    @staticmethod
    @room_serialized(by_room_code)
    @transactional
    def remove_user(db: Session, room_code: str, user_id: int) -> Room:
        """
        Host removes a participant from the room

        Raises:
            UserNotFound: the user is not in this room
            ValidationError: the target is the host
        """
        room = _locked_room(db, normalize_room_code(room_code))
        user = next((u for u in room.users if u.id == user_id), None)
        if not user:
            raise UserNotFound(user_id)
        if user.is_host:
            raise ValidationError("user_id", "The host cannot be removed")

        repository.delete_user(db, user)
        repository.touch_room(db, room)

        logger.info(f"User {user_id} removed from room {room.code}")
        queue_event(db, room.code, EventKind.USER_LEFT, room_payload(room), user_id=user_id, removed=True)
        return room

    @staticmethod
    @room_serialized(by_user)
    @transactional
    def set_connected(db: Session, user_id: int, connected: bool) -> User:
        """
        Liveness flag maintained by the transport layer

        A transient disconnect only flips is_connected; the user, and their
        vote, stay in the room.
        """
        user = _user_or_raise(db, user_id)
        room = _locked_room(db, user.room.code)

        if user.is_connected != connected:
            repository.update_user(db, user, is_connected=connected)
            logger.info(f"User {user_id} {'connected' if connected else 'disconnected'} in room {room.code}")
            queue_event(db, room.code, EventKind.USER_UPDATED, room_payload(room), user_id=user_id)
        return user

    @staticmethod
    @room_serialized(by_user)
    @transactional
    def update_user(db: Session, user_id: int, name: Optional[str] = None) -> User:
        user = _user_or_raise(db, user_id)
        room = _locked_room(db, user.room.code)

        if name is not None:
            repository.update_user(db, user, name=require_text("name", name))
            repository.touch_room(db, room)
            queue_event(db, room.code, EventKind.USER_UPDATED, room_payload(room), user_id=user_id)
        return user

    @staticmethod
    @room_serialized(by_room_code)
    @transactional
    def update_room(db: Session, room_code: str, name: Optional[str] = None) -> Room:
        room = _locked_room(db, normalize_room_code(room_code))

        if name is not None:
            repository.update_room(db, room, name=require_text("name", name))
            logger.info(f"Room {room.code} renamed")
            queue_event(db, room.code, EventKind.ROOM_UPDATED, room_payload(room))
        return room

    @staticmethod
    @room_serialized(by_room_code)
    @transactional
    def delete_room(db: Session, room_code: str) -> None:
        """Delete a room with all of its users and stories"""
        room = _locked_room(db, normalize_room_code(room_code))
        code = room.code
        repository.delete_room(db, room)

        logger.info(f"Room {code} deleted")
        queue_event(db, code, EventKind.ROOM_DELETED, None, reason="deleted")

    @staticmethod
    def purge_idle_rooms(db: Session, max_idle: timedelta) -> list[str]:
        """
        Delete every room untouched for longer than max_idle

        Each room is expired in its own transaction under its room lock, so a
        room written to after the scan survives.

        Returns:
            codes of the deleted rooms
        """
        cutoff = utcnow() - max_idle
        candidates = [room.code for room in repository.find_idle_rooms(db, cutoff)]

        purged = [code for code in candidates if RoomManager.expire_room(db, code, cutoff)]
        if purged:
            logger.info(f"Purged {len(purged)} idle rooms: {', '.join(purged)}")
        return purged

    @staticmethod
    @room_serialized(by_room_code)
    @transactional
    def expire_room(db: Session, room_code: str, updated_before: datetime) -> bool:
        """Delete the room if it is still untouched since updated_before"""
        room = with_room_lock(room_code, db).filter(Room.updated_at < updated_before).first()
        if not room:
            return False

        repository.delete_room(db, room)
        queue_event(db, room_code, EventKind.ROOM_DELETED, None, reason="idle")
        return True

    @staticmethod
    def get_room_by_code(db: Session, room_code: str) -> Room:
        """
        Look a room up by code (case-insensitive)

        Raises:
            ValidationError: malformed code
            RoomNotFound: no such room
        """
        code = normalize_room_code(room_code)
        room = repository.find_room_by_code(db, code)
        if not room:
            raise RoomNotFound(code)
        return room

    @staticmethod
    def get_user(db: Session, user_id: int) -> User:
        return _user_or_raise(db, user_id)

    @staticmethod
    def is_host(room: Room, user_id: Optional[int]) -> bool:
        return user_id is not None and room.host_user_id == user_id
