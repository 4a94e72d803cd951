"""
User API Endpoints

Responsibilities:
1. Read and rename a participant
2. Cast / withdraw a hidden vote
3. Leave a room
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
import logging

from database import get_db
from schemas import StatusResponse, UserResponse, UserUpdate, VoteSubmit
from core.room_manager import RoomManager
from core.voting_manager import VotingManager
from core.exceptions import PlanningPokerException
from services.snapshot_service import user_snapshot
from api.errors import to_http_exception

router = APIRouter(prefix="/api/users", tags=["users"])
logger = logging.getLogger(__name__)


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: int, db: Session = Depends(get_db)):
    """A user's vote is only visible once the room's votes are revealed"""
    try:
        user = RoomManager.get_user(db, user_id)
        return user_snapshot(user, show_vote=bool(user.room.votes_revealed))

    except PlanningPokerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to get user: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.patch("/{user_id}", response_model=UserResponse)
def update_user(user_id: int, data: UserUpdate, db: Session = Depends(get_db)):
    try:
        user = RoomManager.update_user(db, user_id, name=data.name)
        return user_snapshot(user, show_vote=True)

    except PlanningPokerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to update user: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{user_id}/vote", response_model=UserResponse)
def cast_vote(user_id: int, data: VoteSubmit, db: Session = Depends(get_db)):
    """
    Cast a vote (idempotent: voting again replaces the previous vote)

    Errors:
        - 409: votes already revealed
        - 400: empty vote or value outside the room's voting system
    """
    try:
        user = VotingManager.cast_vote(db, user_id, data.vote)
        logger.info(f"Vote accepted for user {user_id}")
        return user_snapshot(user, show_vote=True)

    except PlanningPokerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to cast vote: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.delete("/{user_id}/vote", response_model=UserResponse)
def clear_vote(user_id: int, db: Session = Depends(get_db)):
    try:
        user = VotingManager.clear_vote(db, user_id)
        return user_snapshot(user, show_vote=True)

    except PlanningPokerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to clear vote: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{user_id}/leave", response_model=StatusResponse)
def leave_room(user_id: int, db: Session = Depends(get_db)):
    """
    Leave the room

    Returns:
        - status: "left", or "closed" when the host left and the room was closed
    """
    try:
        room = RoomManager.leave_room(db, user_id)
        return StatusResponse(status="left" if room is not None else "closed")

    except PlanningPokerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to leave room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
