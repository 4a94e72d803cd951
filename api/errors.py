"""
Mapping from business exceptions to HTTP errors
"""
from fastapi import HTTPException

from core.exceptions import (
    CodeGenerationExhausted,
    InvalidStateTransition,
    NotFound,
    PlanningPokerException,
    ValidationError,
    VotingClosed,
)


def to_http_exception(exc: PlanningPokerException) -> HTTPException:
    """
    ValidationError          -> 400 (with the offending field)
    NotFound                 -> 404
    VotingClosed             -> 409 (clear the votes first)
    InvalidStateTransition   -> 409
    CodeGenerationExhausted  -> 503 (safe to retry)
    """
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=400, detail={"field": exc.field, "message": exc.message})
    if isinstance(exc, NotFound):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, (VotingClosed, InvalidStateTransition)):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, CodeGenerationExhausted):
        return HTTPException(status_code=503, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))
