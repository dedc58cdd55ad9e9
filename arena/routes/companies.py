"""
API routes for browsing companies: leaderboard, battles and stats.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from arena.config import Settings, get_settings
from arena.database import get_db
from arena.leaderboard import LeaderboardReader
from arena.matchmaking import pick_two
from arena.models import CompanyBrief, CompanyResponse, ErrorResponse, StatsResponse


router = APIRouter(tags=["Companies"])


# =============================================================================
# Leaderboard
# =============================================================================


@router.get("/companies", response_model=List[CompanyResponse])
def get_leaderboard(
    limit: Optional[int] = Query(default=None, ge=1),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings)
) -> List[CompanyResponse]:
    """
    Get companies ordered by score, highest first.

    The page is capped at the configured leaderboard size no matter
    what `limit` asks for.
    """
    reader = LeaderboardReader(db, page_size=settings.leaderboard_page_size)
    return [CompanyResponse.model_validate(c) for c in reader.leaderboard(limit)]


# =============================================================================
# Battle
# =============================================================================


@router.get(
    "/battle",
    response_model=List[CompanyBrief],
    responses={400: {"model": ErrorResponse}}
)
def get_battle(db: Session = Depends(get_db)) -> List[CompanyBrief]:
    """
    Get two distinct, randomly chosen companies to vote on.

    Returns 400 if fewer than two companies exist.
    """
    roster = LeaderboardReader(db).roster()
    first, second = pick_two(roster)
    return [CompanyBrief.model_validate(first), CompanyBrief.model_validate(second)]


# =============================================================================
# Stats
# =============================================================================


@router.get("/stats", response_model=StatsResponse)
def get_stats(db: Session = Depends(get_db)) -> StatsResponse:
    """Get the total number of votes cast and companies listed."""
    return StatsResponse(**LeaderboardReader(db).stats())
