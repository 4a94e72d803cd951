"""
Room status state machine

All status changes go through RoomStateMachine.transition so the allowed
edges are listed in exactly one place:

    waiting    -> voting     (active story selected, or votes cleared)
    voting     -> revealed   (host reveals)
    revealed   -> voting     (votes cleared, or a new active story)
    revealed   -> discussion (host opens discussion)
    discussion -> voting | revealed
    any        -> waiting    (active story deleted)

Self-transitions are accepted so that repeated commands stay idempotent.
"""
import logging

from models import Room, RoomStatus
from core.exceptions import InvalidStateTransition

logger = logging.getLogger(__name__)


class RoomStateMachine:
    TRANSITIONS: dict[RoomStatus, set[RoomStatus]] = {
        RoomStatus.WAITING: {RoomStatus.VOTING, RoomStatus.REVEALED},
        RoomStatus.VOTING: {RoomStatus.REVEALED, RoomStatus.WAITING},
        RoomStatus.REVEALED: {RoomStatus.VOTING, RoomStatus.DISCUSSION, RoomStatus.WAITING},
        RoomStatus.DISCUSSION: {RoomStatus.VOTING, RoomStatus.REVEALED, RoomStatus.WAITING},
    }

    @classmethod
    def can_transition(cls, current: RoomStatus, target: RoomStatus) -> bool:
        return current == target or target in cls.TRANSITIONS.get(current, set())

    @classmethod
    def transition(cls, room: Room, target: RoomStatus) -> Room:
        """
        Move a room to a new status

        Raises:
            InvalidStateTransition: the edge is not in TRANSITIONS
        """
        current = room.status
        if not cls.can_transition(current, target):
            raise InvalidStateTransition(
                f"Room {room.code} cannot go from {current.value} to {target.value}"
            )

        if current != target:
            logger.info(f"Room {room.code}: {current.value} -> {target.value}")
        room.status = target
        return room
