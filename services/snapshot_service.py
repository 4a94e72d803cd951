"""
Snapshot service: serializable read-only projection of a Room aggregate

Clients never mutate shared state; they re-render from these snapshots,
which are sent both as HTTP responses and as event payloads.
"""
from typing import Optional

from models import Room, User
from schemas import (
    ConsensusResponse,
    RoomResponse,
    StoryResponse,
    UserResponse,
    VotingSystemResponse,
)
from services.consensus_service import compute_consensus
from services.voting_system_service import resolve_voting_system


def revealed_votes(room: Room) -> list[str]:
    return [u.vote for u in room.users if u.vote is not None]


def user_snapshot(user: User, show_vote: bool) -> UserResponse:
    snapshot = UserResponse.model_validate(user)
    if not show_vote:
        snapshot.vote = None
    return snapshot


def room_snapshot(room: Room, viewer_user_id: Optional[int] = None) -> RoomResponse:
    """
    Build the room projection

    Vote values stay hidden until reveal; before that only `has_voted` is
    visible, except the viewer's own vote.
    """
    system = resolve_voting_system(room.voting_system_name)

    consensus = None
    if room.votes_revealed:
        consensus = ConsensusResponse(**compute_consensus(revealed_votes(room)).to_dict())

    return RoomResponse(
        code=room.code,
        name=room.name,
        host_user_id=room.host_user_id,
        status=room.status,
        votes_revealed=bool(room.votes_revealed),
        active_story_id=room.active_story_id,
        voting_system=VotingSystemResponse(name=system.name, values=list(system.values)),
        users=[
            user_snapshot(u, show_vote=room.votes_revealed or u.id == viewer_user_id)
            for u in room.users
        ],
        stories=[StoryResponse.model_validate(s) for s in room.stories],
        consensus=consensus,
        created_at=room.created_at,
    )


def room_payload(room: Room) -> dict:
    """JSON-ready snapshot as broadcast to every subscriber"""
    return room_snapshot(room).model_dump(mode="json")
