"""
Room API Endpoints

Responsibilities:
1. Create / read / rename / delete rooms
2. Join a room by code
3. Host controls: reveal, new round, discussion, remove participant
4. Consensus of the revealed votes
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
import logging

from database import get_db
from models import Room
from schemas import (
    ConsensusResponse,
    RoomCreate,
    RoomJoin,
    RoomResponse,
    RoomSession,
    RoomUpdate,
    StatusResponse,
    UserResponse,
)
from core.room_manager import RoomManager
from core.voting_manager import VotingManager
from core.exceptions import PlanningPokerException
from services.snapshot_service import room_snapshot, user_snapshot
from api.dependencies import get_current_user_id, require_host
from api.errors import to_http_exception

router = APIRouter(prefix="/api/rooms", tags=["rooms"])
logger = logging.getLogger(__name__)


@router.post("", response_model=RoomSession, status_code=201)
def create_room(data: RoomCreate, db: Session = Depends(get_db)):
    """
    Create a room (the caller becomes its host)

    Returns:
        - room: room snapshot
        - user: the host; its id goes into X-User-Id on later calls
    """
    try:
        room, host = RoomManager.create_room(
            db,
            name=data.name,
            host_name=data.host_name,
            voting_system_name=data.voting_system
        )
        return RoomSession(
            room=room_snapshot(room, viewer_user_id=host.id),
            user=user_snapshot(host, show_vote=True)
        )

    except PlanningPokerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to create room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{code}", response_model=RoomResponse)
def get_room(
    code: str,
    user_id: Optional[int] = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Room snapshot; other users' votes stay hidden until reveal"""
    try:
        room = RoomManager.get_room_by_code(db, code)
        return room_snapshot(room, viewer_user_id=user_id)

    except PlanningPokerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to get room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.patch("/{code}", response_model=RoomResponse)
def update_room(
    data: RoomUpdate,
    room: Room = Depends(require_host),
    db: Session = Depends(get_db)
):
    try:
        room = RoomManager.update_room(db, room.code, name=data.name)
        return room_snapshot(room, viewer_user_id=room.host_user_id)

    except PlanningPokerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to update room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.delete("/{code}", response_model=StatusResponse)
def delete_room(room: Room = Depends(require_host), db: Session = Depends(get_db)):
    try:
        RoomManager.delete_room(db, room.code)
        return StatusResponse(status="ok")

    except PlanningPokerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to delete room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{code}/join", response_model=RoomSession)
def join_room(code: str, data: RoomJoin, db: Session = Depends(get_db)):
    """
    Join a room (participant endpoint)

    Joining again with a name already in the room reconnects that user
    instead of adding a second one.
    """
    try:
        room, user = RoomManager.join_room(db, code, data.user_name)
        return RoomSession(
            room=room_snapshot(room, viewer_user_id=user.id),
            user=user_snapshot(user, show_vote=True)
        )

    except PlanningPokerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to join room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{code}/reveal-votes", response_model=RoomResponse)
def reveal_votes(room: Room = Depends(require_host), db: Session = Depends(get_db)):
    """
    Reveal all votes (host endpoint)

    Allowed before everyone has voted; the response carries the consensus.
    """
    try:
        room, _ = VotingManager.reveal_votes(db, room.code)
        return room_snapshot(room)

    except PlanningPokerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to reveal votes: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{code}/clear-votes", response_model=RoomResponse)
def clear_votes(room: Room = Depends(require_host), db: Session = Depends(get_db)):
    """Start a new round on the current story (host endpoint)"""
    try:
        room = VotingManager.clear_votes(db, room.code)
        return room_snapshot(room)

    except PlanningPokerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to clear votes: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{code}/discussion", response_model=RoomResponse)
def begin_discussion(room: Room = Depends(require_host), db: Session = Depends(get_db)):
    try:
        room = VotingManager.begin_discussion(db, room.code)
        return room_snapshot(room)

    except PlanningPokerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to begin discussion: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{code}/consensus", response_model=ConsensusResponse)
def get_consensus(code: str, db: Session = Depends(get_db)):
    """Consensus of the revealed votes; empty while votes are hidden"""
    try:
        room = RoomManager.get_room_by_code(db, code)
        return ConsensusResponse(**VotingManager.current_consensus(room).to_dict())

    except PlanningPokerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to compute consensus: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.delete("/{code}/users/{user_id}", response_model=RoomResponse)
def remove_user(
    user_id: int,
    room: Room = Depends(require_host),
    db: Session = Depends(get_db)
):
    """Remove a participant (host endpoint); the host cannot be removed"""
    try:
        room = RoomManager.remove_user(db, room.code, user_id)
        return room_snapshot(room, viewer_user_id=room.host_user_id)

    except PlanningPokerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to remove user: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{code}/users", response_model=list[UserResponse])
def list_users(
    code: str,
    user_id: Optional[int] = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    try:
        room = RoomManager.get_room_by_code(db, code)
        return room_snapshot(room, viewer_user_id=user_id).users

    except PlanningPokerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to list users: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
