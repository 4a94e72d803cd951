from fastapi import APIRouter

from schemas import VotingSystemResponse
from services.voting_system_service import list_voting_systems

router = APIRouter(prefix="/api/voting-systems", tags=["voting-systems"])


@router.get("", response_model=list[VotingSystemResponse])
def get_voting_systems():
    return [
        VotingSystemResponse(name=system.name, values=list(system.values))
        for system in list_voting_systems()
    ]
