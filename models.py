"""
SQLAlchemy models: Room, User, Story

A Room aggregate owns its users and stories; deleting a room deletes both.
"""
import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RoomStatus(str, enum.Enum):
    WAITING = "waiting"
    VOTING = "voting"
    REVEALED = "revealed"
    DISCUSSION = "discussion"


class Room(Base):
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String(6), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    # host and active story point into the child tables; kept as plain ids
    # so the rooms table does not form a foreign key cycle with users/stories
    host_user_id = Column(Integer, nullable=True)
    voting_system_name = Column(String(100), nullable=False)
    active_story_id = Column(Integer, nullable=True)
    votes_revealed = Column(Boolean, nullable=False, default=False)
    status = Column(
        Enum(RoomStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=RoomStatus.WAITING
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    users = relationship(
        "User",
        back_populates="room",
        order_by="User.id",
        cascade="all, delete-orphan"
    )
    stories = relationship(
        "Story",
        back_populates="room",
        order_by="Story.id",
        cascade="all, delete-orphan"
    )

    @property
    def host(self):
        return next((u for u in self.users if u.id == self.host_user_id), None)

    @property
    def active_story(self):
        if self.active_story_id is None:
            return None
        return next((s for s in self.stories if s.id == self.active_story_id), None)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    room_id = Column(Integer, ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    is_host = Column(Boolean, nullable=False, default=False)
    is_connected = Column(Boolean, nullable=False, default=True)
    vote = Column(String(50), nullable=True)
    has_voted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    room = relationship("Room", back_populates="users")

    def cast_vote(self, value: str) -> None:
        self.vote = value
        self.has_voted = True

    def clear_vote(self) -> None:
        self.vote = None
        self.has_voted = False


class Story(Base):
    __tablename__ = "stories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    room_id = Column(Integer, ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    estimate = Column(String(50), nullable=True)
    is_active = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    room = relationship("Room", back_populates="stories")
