"""
Sliding window rate limiting backed by the stored votes.

There is no separate limiter state: the votes table is keyed by identity
and timestamp, so counting an identity's recent votes is one range query.
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from arena.database import Vote
from arena.exceptions import RateLimited


logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Rejects an identity once it has `max_votes` live votes in the window.

    The check is read only and reserves nothing. Two votes from the same
    identity racing each other can both pass before either commits, so the
    limit may be overshot by a few votes. It is a soft limit.
    """

    def __init__(self, db: Session, window_ms: int, max_votes: int):
        self.db = db
        self.window_ms = window_ms
        self.max_votes = max_votes

    def count_recent(self, identity_key: str, now_ms: int) -> int:
        """Count non-expired votes by `identity_key` inside the window."""
        since = now_ms - self.window_ms
        query = select(func.count()).select_from(Vote).where(
            Vote.identity_key == identity_key,
            Vote.timestamp >= since,
            Vote.expires_at > now_ms,
        )
        return self.db.execute(query).scalar_one()

    def check(self, identity_key: str, now_ms: int) -> int:
        """
        Raise RateLimited if the identity is over its threshold.

        Returns:
            The number of votes counted in the window
        """
        count = self.count_recent(identity_key, now_ms)
        if count >= self.max_votes:
            logger.warning(
                f"Rate limit hit for {identity_key}: {count} votes, limit {self.max_votes}"
            )
            raise RateLimited(identity_key, count, self.max_votes)
        return count
