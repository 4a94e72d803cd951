"""
Story API Endpoints

Responsibilities:
1. List and add stories of a room
2. Select the active story (starts a new voting round)
3. Edit (title, description, estimate) and delete stories
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
import logging

from database import get_db
from models import Room
from schemas import RoomResponse, StatusResponse, StoryCreate, StoryResponse, StoryUpdate
from core.story_manager import StoryManager
from core.exceptions import PlanningPokerException
from services.snapshot_service import room_snapshot
from api.dependencies import require_host, require_story_host
from api.errors import to_http_exception

router = APIRouter(prefix="/api", tags=["stories"])
logger = logging.getLogger(__name__)


@router.get("/rooms/{code}/stories", response_model=list[StoryResponse])
def list_stories(code: str, db: Session = Depends(get_db)):
    try:
        return StoryManager.list_stories(db, code)

    except PlanningPokerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to list stories: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/rooms/{code}/stories", response_model=StoryResponse, status_code=201)
def add_story(
    data: StoryCreate,
    room: Room = Depends(require_host),
    db: Session = Depends(get_db)
):
    """Queue a new story (host endpoint); it starts inactive"""
    try:
        return StoryManager.add_story(db, room.code, data.title, data.description)

    except PlanningPokerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to add story: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/rooms/{code}/stories/{story_id}/activate", response_model=RoomResponse)
def set_active_story(
    story_id: int,
    room: Room = Depends(require_host),
    db: Session = Depends(get_db)
):
    """
    Make a story the active one (host endpoint)

    Effects:
    - every other story becomes inactive
    - votes are cleared and hidden
    - room status becomes voting
    """
    try:
        room = StoryManager.set_active_story(db, room.code, story_id)
        return room_snapshot(room)

    except PlanningPokerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to set active story: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/stories/{story_id}", response_model=StoryResponse)
def get_story(story_id: int, db: Session = Depends(get_db)):
    try:
        return StoryManager.get_story(db, story_id)

    except PlanningPokerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to get story: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.patch("/stories/{story_id}", response_model=StoryResponse)
def update_story(
    story_id: int,
    data: StoryUpdate,
    room: Room = Depends(require_story_host),
    db: Session = Depends(get_db)
):
    """Edit a story (host endpoint); only the fields sent are changed"""
    try:
        return StoryManager.update_story(db, story_id, **data.model_dump(exclude_unset=True))

    except PlanningPokerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to update story: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.delete("/stories/{story_id}", response_model=StatusResponse)
def delete_story(
    story_id: int,
    room: Room = Depends(require_story_host),
    db: Session = Depends(get_db)
):
    try:
        StoryManager.delete_story(db, story_id)
        return StatusResponse(status="ok")

    except PlanningPokerException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to delete story: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
