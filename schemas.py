"""
Pydantic schemas for API requests and responses
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from models import RoomStatus


# ============ Requests ============

class RoomCreate(BaseModel):
    name: str = Field(..., max_length=255)
    host_name: str = Field(..., max_length=255)
    voting_system: Optional[str] = Field(None, max_length=100)


class RoomUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)


class RoomJoin(BaseModel):
    user_name: str = Field(..., max_length=255)


class StoryCreate(BaseModel):
    title: str = Field(..., max_length=500)
    description: Optional[str] = None


class StoryUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = None
    estimate: Optional[str] = Field(None, max_length=50)


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)


class VoteSubmit(BaseModel):
    vote: str = Field(..., max_length=50)


# ============ Responses ============

class VotingSystemResponse(BaseModel):
    name: str
    values: list[str]


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    is_host: bool
    is_connected: bool
    has_voted: bool
    vote: Optional[str] = None


class StoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: Optional[str] = None
    estimate: Optional[str] = None
    is_active: bool
    created_at: datetime


class ConsensusResponse(BaseModel):
    vote_counts: dict[str, int]
    consensus: Optional[str] = None
    has_consensus: bool


class RoomResponse(BaseModel):
    code: str
    name: str
    host_user_id: Optional[int] = None
    status: RoomStatus
    votes_revealed: bool
    active_story_id: Optional[int] = None
    voting_system: VotingSystemResponse
    users: list[UserResponse]
    stories: list[StoryResponse]
    consensus: Optional[ConsensusResponse] = None
    created_at: datetime


class RoomSession(BaseModel):
    """Returned by create/join: the room plus the caller's own user"""
    room: RoomResponse
    user: UserResponse


class StatusResponse(BaseModel):
    status: str
