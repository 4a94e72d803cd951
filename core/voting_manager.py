"""
Voting Manager: hidden votes, reveal and new rounds

Votes can change only while they are hidden. Once revealed, the host has
to clear them (start a new round) before anyone can vote again.
"""
from typing import Tuple
import logging

from sqlalchemy.orm import Session

from models import Room, User, RoomStatus
from core import repository
from core.events import EventKind, queue_event
from core.locks import with_room_lock, room_serialized, by_room_code, by_user
from core.state_machine import RoomStateMachine
from core.story_manager import reset_votes
from core.exceptions import (
    RoomNotFound,
    UserNotFound,
    ValidationError,
    VotingClosed,
)
from services.consensus_service import ConsensusResult, compute_consensus
from services.naming_service import normalize_room_code
from services.snapshot_service import revealed_votes, room_payload
from services.voting_system_service import resolve_voting_system
from database import transactional

logger = logging.getLogger(__name__)


def _locked_room(db: Session, room_code: str) -> Room:
    room = with_room_lock(room_code, db).first()
    if not room:
        raise RoomNotFound(room_code)
    return room


def _voter_and_room(db: Session, user_id: int) -> Tuple[User, Room]:
    user = repository.find_user(db, user_id)
    if not user:
        raise UserNotFound(user_id)
    room = _locked_room(db, user.room.code)
    if room.votes_revealed:
        raise VotingClosed(room.code)
    return user, room


class VotingManager:
    """Voting round manager"""

    @staticmethod
    @room_serialized(by_user)
    @transactional
    def cast_vote(db: Session, user_id: int, vote: str) -> User:
        """
        Cast or replace a hidden vote

        Re-voting before the reveal overwrites the previous vote.

        Raises:
            UserNotFound: no such user
            VotingClosed: votes are already revealed
            ValidationError: empty vote, or a value outside the room's deck
        """
        user, room = _voter_and_room(db, user_id)

        value = (vote or "").strip()
        if not value:
            raise ValidationError("vote", "vote is required")

        voting_system = resolve_voting_system(room.voting_system_name)
        if not voting_system.allows(value):
            raise ValidationError(
                "vote",
                f"{value!r} is not a {voting_system.name} value"
            )

        user.cast_vote(value)
        repository.touch_room(db, room)

        logger.info(f"User {user_id} voted in room {room.code}")
        queue_event(db, room.code, EventKind.VOTE_CAST, room_payload(room), user_id=user_id)
        return user

    @staticmethod
    @room_serialized(by_user)
    @transactional
    def clear_vote(db: Session, user_id: int) -> User:
        """
        Withdraw a hidden vote

        Raises:
            VotingClosed: votes are already revealed
        """
        user, room = _voter_and_room(db, user_id)

        user.clear_vote()
        repository.touch_room(db, room)

        queue_event(db, room.code, EventKind.VOTE_CLEARED, room_payload(room), user_id=user_id)
        return user

    @staticmethod
    @room_serialized(by_room_code)
    @transactional
    def reveal_votes(db: Session, room_code: str) -> Tuple[Room, ConsensusResult]:
        """
        Reveal every vote and compute the consensus

        Host only, but the check belongs to the caller (API layer).
        Allowed even when not everyone voted, and idempotent.

        Returns:
            (Room, ConsensusResult over the cast votes)
        """
        room = _locked_room(db, normalize_room_code(room_code))

        room.votes_revealed = True
        RoomStateMachine.transition(room, RoomStatus.REVEALED)
        repository.touch_room(db, room)

        result = compute_consensus(revealed_votes(room))
        logger.info(
            f"Votes revealed in room {room.code}: {result.vote_counts} "
            f"(consensus={result.consensus}, unanimous={result.has_consensus})"
        )
        queue_event(db, room.code, EventKind.VOTES_REVEALED, room_payload(room), **result.to_dict())
        return room, result

    @staticmethod
    @room_serialized(by_room_code)
    @transactional
    def clear_votes(db: Session, room_code: str) -> Room:
        """
        Start a new round on the same story

        Every vote is cleared, votes are hidden again and the room goes
        back to VOTING. The active story does not change.
        """
        room = _locked_room(db, normalize_room_code(room_code))

        reset_votes(room)
        RoomStateMachine.transition(room, RoomStatus.VOTING)
        repository.touch_room(db, room)

        logger.info(f"Votes cleared in room {room.code}")
        queue_event(db, room.code, EventKind.VOTES_CLEARED, room_payload(room))
        return room

    @staticmethod
    @room_serialized(by_room_code)
    @transactional
    def begin_discussion(db: Session, room_code: str) -> Room:
        """
        Move a revealed room into discussion

        Raises:
            InvalidStateTransition: votes are not revealed
        """
        room = _locked_room(db, normalize_room_code(room_code))

        RoomStateMachine.transition(room, RoomStatus.DISCUSSION)
        repository.touch_room(db, room)

        queue_event(db, room.code, EventKind.ROOM_UPDATED, room_payload(room))
        return room

    @staticmethod
    def current_consensus(room: Room) -> ConsensusResult:
        """Consensus over the room's votes; empty while votes are hidden"""
        if not room.votes_revealed:
            return ConsensusResult()
        return compute_consensus(revealed_votes(room))
