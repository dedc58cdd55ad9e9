"""
API routes for casting votes.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from arena.config import Settings, get_settings
from arena.database import get_db
from arena.identity import resolve_identity, resolve_user_agent
from arena.models import CompanyBrief, ErrorResponse, VoteRequest, VoteResponse
from arena.vote_service import VoteService


router = APIRouter(tags=["Votes"])


@router.post(
    "/vote",
    response_model=VoteResponse,
    responses={
        400: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    }
)
def cast_vote(
    body: VoteRequest,
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings)
) -> VoteResponse:
    """
    Vote for one company over another.

    Both companies' scores move by an Elo-like update committed together
    with the vote record. Votes are rate limited per device token, or per
    IP when no device token is sent; over the limit the API returns 429.

    The response suggests a next opponent for the winner so clients can
    keep the battle going. It is null when no other company exists.
    """
    identity = resolve_identity(
        request.headers,
        request.client.host if request.client else None
    )

    outcome = VoteService(db, settings=settings).cast_vote(
        body.winner_id,
        body.loser_id,
        identity,
        user_agent=resolve_user_agent(request.headers),
    )

    next_opponent = None
    if outcome.next_opponent is not None:
        next_opponent = CompanyBrief.model_validate(outcome.next_opponent)

    return VoteResponse(
        score_change=outcome.score_change,
        winner_score=outcome.winner_score,
        loser_score=outcome.loser_score,
        next_opponent=next_opponent,
    )
