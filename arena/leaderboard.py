"""
Read-only projections over companies and votes.
"""

import functools
import logging
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from arena.database import Company, Counter, VOTES_COUNTER
from arena.exceptions import TransientStoreFailure


logger = logging.getLogger(__name__)


def store_read(method):
    """Turn a store timeout during a read into a TransientStoreFailure."""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except OperationalError as e:
            self.db.rollback()
            logger.warning(f"Store unavailable in {method.__name__}: {e}")
            raise TransientStoreFailure("Store unavailable", details=str(e)) from e
    return wrapper


class LeaderboardReader:
    """Leaderboard, roster and statistics queries."""

    def __init__(self, db: Session, page_size: int = 200):
        self.db = db
        self.page_size = page_size

    @store_read
    def leaderboard(self, limit: Optional[int] = None) -> List[Company]:
        """Companies by score, highest first, capped at the page size."""
        limit = min(limit or self.page_size, self.page_size)
        query = (
            select(Company)
            .order_by(Company.score.desc(), Company.name)
            .limit(limit)
        )
        return list(self.db.scalars(query))

    @store_read
    def roster(self) -> List[Company]:
        """Every company, independent of score."""
        return list(self.db.scalars(select(Company).order_by(Company.id)))

    @store_read
    def total_companies(self) -> int:
        return self.db.execute(select(func.count(Company.id))).scalar_one()

    @store_read
    def total_votes(self) -> int:
        """Votes accepted and not since removed with their company."""
        value = self.db.execute(
            select(Counter.value).where(Counter.name == VOTES_COUNTER)
        ).scalar_one_or_none()
        return value or 0

    def stats(self) -> dict:
        return {
            "total_votes": self.total_votes(),
            "total_companies": self.total_companies(),
        }
