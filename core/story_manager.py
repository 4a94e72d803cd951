"""
Story Manager: the story queue of a room

At most one story is active at a time and Room.active_story_id always
points at it. Selecting an active story starts a fresh voting round.
"""
from typing import Optional
import logging

from sqlalchemy.orm import Session

from models import Room, Story, RoomStatus
from core import repository
from core.events import EventKind, queue_event
from core.locks import with_room_lock, room_serialized, by_room_code, by_story
from core.state_machine import RoomStateMachine
from core.exceptions import RoomNotFound, StoryNotFound
from services.naming_service import normalize_room_code, optional_text, require_text
from services.snapshot_service import room_payload
from database import transactional

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 500

_MISSING = object()


def _locked_room(db: Session, room_code: str) -> Room:
    room = with_room_lock(room_code, db).first()
    if not room:
        raise RoomNotFound(room_code)
    return room


def _story_or_raise(db: Session, story_id: int) -> Story:
    story = repository.find_story(db, story_id)
    if not story:
        raise StoryNotFound(story_id)
    return story


def reset_votes(room: Room) -> None:
    """Clear every vote in the room and hide them again"""
    for user in room.users:
        user.clear_vote()
    room.votes_revealed = False


class StoryManager:
    """Story queue manager"""

    @staticmethod
    @room_serialized(by_room_code)
    @transactional
    def add_story(
        db: Session,
        room_code: str,
        title: str,
        description: Optional[str] = None
    ) -> Story:
        """
        Append a story to the room's queue (inactive)

        Raises:
            ValidationError: title is blank after trimming
            RoomNotFound: no such room
        """
        title = require_text("title", title, max_length=TITLE_MAX_LENGTH)
        room = _locked_room(db, normalize_room_code(room_code))

        story = repository.create_story(
            db,
            room,
            title=title,
            description=optional_text(description),
            is_active=False,
        )
        repository.touch_room(db, room)

        logger.info(f"Story {story.id} added to room {room.code}")
        queue_event(db, room.code, EventKind.STORY_CREATED, room_payload(room), story_id=story.id)
        return story

    @staticmethod
    @room_serialized(by_room_code)
    @transactional
    def set_active_story(db: Session, room_code: str, story_id: int) -> Room:
        """
        Make one story the one being estimated

        Flow (one transaction):
        1. Deactivate every other story, activate the target
        2. Point Room.active_story_id at it
        3. Clear all votes and hide them (a new story is a new round)
        4. Move the room to VOTING

        Raises:
            StoryNotFound: the story does not belong to this room
        """
        room = _locked_room(db, normalize_room_code(room_code))
        target = next((s for s in room.stories if s.id == story_id), None)
        if not target:
            raise StoryNotFound(story_id)

        for story in room.stories:
            story.is_active = story.id == target.id
        room.active_story_id = target.id
        reset_votes(room)
        RoomStateMachine.transition(room, RoomStatus.VOTING)
        repository.touch_room(db, room)

        logger.info(f"Story {target.id} is now active in room {room.code}")
        queue_event(db, room.code, EventKind.STORY_UPDATED, room_payload(room), story_id=target.id, activated=True)
        return room

    @staticmethod
    @room_serialized(by_story)
    @transactional
    def update_story(
        db: Session,
        story_id: int,
        title=_MISSING,
        description=_MISSING,
        estimate=_MISSING
    ) -> Story:
        """
        Edit a story; only the given fields change

        `estimate` is free text set by the host after discussion and is not
        checked against the voting system. Passing None clears
        description or estimate.
        """
        story = _story_or_raise(db, story_id)
        room = _locked_room(db, story.room.code)

        changes = {}
        if title is not _MISSING:
            changes["title"] = require_text("title", title, max_length=TITLE_MAX_LENGTH)
        if description is not _MISSING:
            changes["description"] = optional_text(description)
        if estimate is not _MISSING:
            changes["estimate"] = optional_text(estimate)

        if changes:
            repository.update_story(db, story, **changes)
            repository.touch_room(db, room)
            queue_event(db, room.code, EventKind.STORY_UPDATED, room_payload(room), story_id=story.id)
        return story

    @staticmethod
    @room_serialized(by_story)
    @transactional
    def delete_story(db: Session, story_id: int) -> Room:
        """
        Delete a story

        Deleting the active story clears the round and sends the room back
        to WAITING.
        """
        story = _story_or_raise(db, story_id)
        room = _locked_room(db, story.room.code)

        was_active = room.active_story_id == story.id or story.is_active
        repository.delete_story(db, story)

        if was_active:
            room.active_story_id = None
            reset_votes(room)
            RoomStateMachine.transition(room, RoomStatus.WAITING)
        repository.touch_room(db, room)

        logger.info(f"Story {story_id} deleted from room {room.code}")
        queue_event(db, room.code, EventKind.STORY_DELETED, room_payload(room), story_id=story_id)
        return room

    @staticmethod
    def get_story(db: Session, story_id: int) -> Story:
        return _story_or_raise(db, story_id)

    @staticmethod
    def list_stories(db: Session, room_code: str) -> list[Story]:
        code = normalize_room_code(room_code)
        room = repository.find_room_by_code(db, code)
        if not room:
            raise RoomNotFound(code)
        return list(room.stories)
