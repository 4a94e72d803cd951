"""
Shared FastAPI dependencies: caller identity and host authorization

The caller names itself with the X-User-Id header. Host-only routes
check it here, before any manager is called; the managers never
re-check identity.
"""
from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from database import get_db
from models import Room
from core.room_manager import RoomManager
from core.story_manager import StoryManager
from core.exceptions import PlanningPokerException
from api.errors import to_http_exception


def get_current_user_id(x_user_id: Optional[int] = Header(None)) -> Optional[int]:
    return x_user_id


def _ensure_host(room: Room, user_id: Optional[int]) -> Room:
    if not RoomManager.is_host(room, user_id):
        raise HTTPException(status_code=403, detail="Only the host can do this")
    return room


def require_host(
    code: str,
    user_id: Optional[int] = Depends(get_current_user_id),
    db: Session = Depends(get_db)
) -> Room:
    """Room addressed by the {code} path parameter, if the caller hosts it"""
    try:
        room = RoomManager.get_room_by_code(db, code)
    except PlanningPokerException as e:
        raise to_http_exception(e)
    return _ensure_host(room, user_id)


def require_story_host(
    story_id: int,
    user_id: Optional[int] = Depends(get_current_user_id),
    db: Session = Depends(get_db)
) -> Room:
    """Room owning the {story_id} story, if the caller hosts it"""
    try:
        story = StoryManager.get_story(db, story_id)
    except PlanningPokerException as e:
        raise to_http_exception(e)
    return _ensure_host(story.room, user_id)
