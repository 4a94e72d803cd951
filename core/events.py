"""
Room change notifications

Managers queue one event per mutation on the Session; the events are
published to subscribers only after that Session's transaction commits,
and dropped if it rolls back. Subscribers are keyed by room code.

Payloads are full room snapshots (not diffs), so a client that receives an
event twice or out of order just re-renders from the newest snapshot.
"""
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from sqlalchemy import event
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

_PENDING_KEY = "pending_room_events"


class EventKind:
    ROOM_CREATED = "room.created"
    ROOM_UPDATED = "room.updated"
    ROOM_DELETED = "room.deleted"
    USER_JOINED = "user.joined"
    USER_LEFT = "user.left"
    USER_UPDATED = "user.updated"
    STORY_CREATED = "story.created"
    STORY_UPDATED = "story.updated"
    STORY_DELETED = "story.deleted"
    VOTE_CAST = "vote.cast"
    VOTE_CLEARED = "vote.cleared"
    VOTES_REVEALED = "votes.revealed"
    VOTES_CLEARED = "votes.cleared"


@dataclass(frozen=True)
class RoomEvent:
    room_code: str
    kind: str
    snapshot: Optional[dict]
    data: dict = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_message(self) -> dict:
        return {
            "room_code": self.room_code,
            "kind": self.kind,
            "snapshot": self.snapshot,
            "data": self.data,
            "occurred_at": self.occurred_at.isoformat(),
        }


Subscriber = Callable[[RoomEvent], Any]


class RoomEventBus:
    """In-process publish/subscribe, one subscriber list per room code"""

    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: dict[str, list[Subscriber]] = {}

    def subscribe(self, room_code: str, callback: Subscriber) -> Callable[[], None]:
        """Register a callback for one room; returns the matching unsubscribe function"""
        with self._lock:
            self._subscribers.setdefault(room_code, []).append(callback)

        def unsubscribe() -> None:
            with self._lock:
                callbacks = self._subscribers.get(room_code)
                if callbacks and callback in callbacks:
                    callbacks.remove(callback)
                    if not callbacks:
                        del self._subscribers[room_code]

        return unsubscribe

    def subscriber_count(self, room_code: str) -> int:
        with self._lock:
            return len(self._subscribers.get(room_code, []))

    def publish(self, room_event: RoomEvent) -> None:
        with self._lock:
            callbacks = list(self._subscribers.get(room_event.room_code, []))

        # the mutation is already committed; a failing subscriber must not affect the others
        for callback in callbacks:
            try:
                callback(room_event)
            except Exception as e:
                logger.error(
                    f"Subscriber failed on {room_event.kind} for room {room_event.room_code}: {e}",
                    exc_info=True
                )


event_bus = RoomEventBus()


def queue_event(db: Session, room_code: str, kind: str, snapshot: Optional[dict], **data) -> RoomEvent:
    """Attach an event to the Session; it is published after commit"""
    room_event = RoomEvent(room_code=room_code, kind=kind, snapshot=snapshot, data=data)
    db.info.setdefault(_PENDING_KEY, []).append(room_event)
    return room_event


def pending_events(db: Session) -> list[RoomEvent]:
    return list(db.info.get(_PENDING_KEY, []))


@event.listens_for(Session, "after_commit")
def _publish_pending(session: Session) -> None:
    for room_event in session.info.pop(_PENDING_KEY, []):
        logger.debug(f"Publishing {room_event.kind} for room {room_event.room_code}")
        event_bus.publish(room_event)


@event.listens_for(Session, "after_soft_rollback")
def _discard_pending(session: Session, previous_transaction) -> None:
    dropped = session.info.pop(_PENDING_KEY, [])
    if dropped:
        logger.debug(f"Discarded {len(dropped)} room events after rollback")
