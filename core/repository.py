"""
Persistence layer for the Room aggregate

The managers read and write Rooms, Users and Stories only through these
functions. The backend is whatever SQLAlchemy dialect `database_url`
points at. Lookups return None when nothing matches; they never raise.
Writes only flush: committing belongs to the caller's @transactional.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from models import Room, User, Story, utcnow


# ============ Room ============

def find_room_by_code(db: Session, room_code: str) -> Optional[Room]:
    return db.query(Room).filter(Room.code == room_code.upper()).first()


def room_code_exists(db: Session, room_code: str) -> bool:
    return db.query(Room.id).filter(Room.code == room_code).first() is not None


def create_room(db: Session, **fields) -> Room:
    room = Room(**fields)
    db.add(room)
    db.flush()
    return room


def update_room(db: Session, room: Room, **changes) -> Room:
    for key, value in changes.items():
        setattr(room, key, value)
    db.flush()
    return room


def delete_room(db: Session, room: Room) -> None:
    db.delete(room)
    db.flush()


def find_idle_rooms(db: Session, updated_before: datetime) -> list[Room]:
    return db.query(Room).filter(Room.updated_at < updated_before).all()


# ============ User ============

def find_user(db: Session, user_id: int) -> Optional[User]:
    return db.get(User, user_id)


def create_user(db: Session, room: Room, **fields) -> User:
    user = User(**fields)
    room.users.append(user)
    db.flush()
    return user


def update_user(db: Session, user: User, **changes) -> User:
    for key, value in changes.items():
        setattr(user, key, value)
    db.flush()
    return user


def delete_user(db: Session, user: User) -> None:
    room = user.room
    room.users.remove(user)
    db.flush()


# ============ Story ============

def find_story(db: Session, story_id: int) -> Optional[Story]:
    return db.get(Story, story_id)


def create_story(db: Session, room: Room, **fields) -> Story:
    story = Story(**fields)
    room.stories.append(story)
    db.flush()
    return story


def update_story(db: Session, story: Story, **changes) -> Story:
    for key, value in changes.items():
        setattr(story, key, value)
    db.flush()
    return story


def delete_story(db: Session, story: Story) -> None:
    room = story.room
    room.stories.remove(story)
    db.flush()


def touch_room(db: Session, room: Room) -> None:
    """Mark the room as modified so its idle timer restarts"""
    room.updated_at = utcnow()
    db.flush()
