"""
Pydantic models for Company Arena API requests and responses.

Wire format is camelCase; Python attributes stay snake_case.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Request Models
# =============================================================================


class VoteRequest(BaseModel):
    """Request to vote for one company over another."""

    model_config = ConfigDict(populate_by_name=True)

    winner_id: Optional[str] = Field(
        default=None,
        alias="winnerId",
        max_length=128,
        description="ID of the company the user picked"
    )
    loser_id: Optional[str] = Field(
        default=None,
        alias="loserId",
        max_length=128,
        description="ID of the company the user passed over"
    )


# =============================================================================
# Response Models
# =============================================================================


class CompanyBrief(BaseModel):
    """A company as shown in a battle."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    logo: str
    score: int


class CompanyResponse(CompanyBrief):
    """A company as listed on the leaderboard."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    created_at: datetime = Field(alias="createdAt")


class VoteResponse(BaseModel):
    """Response to an accepted vote."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    score_change: int = Field(alias="scoreChange")
    winner_score: int = Field(alias="winnerScore")
    loser_score: int = Field(alias="loserScore")
    next_opponent: Optional[CompanyBrief] = Field(
        default=None, alias="nextOpponent"
    )


class StatsResponse(BaseModel):
    """Overall arena statistics."""

    model_config = ConfigDict(populate_by_name=True)

    total_votes: int = Field(alias="totalVotes")
    total_companies: int = Field(alias="totalCompanies")


class ErrorResponse(BaseModel):
    """Error body shared by every failing endpoint."""

    error: str
    details: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str
