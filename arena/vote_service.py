"""
Vote transaction coordinator.

This module owns the one sequence in the service that must be atomic:
reading the two current scores, computing the new ones and persisting
{vote, winner score, loser score} as a single all-or-nothing unit.

Lost updates are prevented with optimistic concurrency. Every company row
carries a version that SQLAlchemy checks in the UPDATE's WHERE clause; if
another vote moved either company between our read and our commit, the
flush fails, the whole transaction is rolled back and the caller gets a
TransientStoreFailure. Votes are never retried here, since a blind retry
could count a vote the client is also resubmitting.
"""

import logging
import random
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from arena.config import Settings, get_settings
from arena.database import Company, Counter, Vote, VOTES_COUNTER
from arena.exceptions import ClientInputError, TransientStoreFailure
from arena.identity import Identity
from arena.leaderboard import LeaderboardReader
from arena.matchmaking import pick_one
from arena.rate_limiter import RateLimiter
from arena.rating import compute_elo


logger = logging.getLogger(__name__)


def current_millis() -> int:
    """Current wall clock time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass
class VoteOutcome:
    """Result of a committed vote."""

    winner_id: str
    loser_id: str
    score_change: int
    winner_score: int
    loser_score: int
    next_opponent: Optional[Company] = None


class VoteService:
    """
    Runs a vote through validate, rate check, fetch, compute and commit.

    Settings decide the K-factor, the rate limit and whether a next
    opponent is suggested, so every deployment variant runs this same code.
    """

    def __init__(
        self,
        db: Session,
        settings: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.rng = rng
        self.rate_limiter = RateLimiter(
            db,
            window_ms=self.settings.rate_limit_window_seconds * 1000,
            max_votes=self.settings.rate_limit_max,
        )

    def cast_vote(
        self,
        winner_id: Optional[str],
        loser_id: Optional[str],
        identity: Identity,
        user_agent: str = "",
        now_ms: Optional[int] = None,
    ) -> VoteOutcome:
        """
        Record a vote for `winner_id` over `loser_id`.

        Raises:
            ClientInputError: ids missing, equal, or unknown
            RateLimited: the identity is over its vote threshold
            TransientStoreFailure: the store timed out or the commit lost a
                race; nothing was applied and the vote may be resubmitted
        """
        winner_id, loser_id = self._validate(winner_id, loser_id)
        now_ms = current_millis() if now_ms is None else now_ms

        try:
            self.rate_limiter.check(identity.key, now_ms)
            winner, loser = self._fetch_pair(winner_id, loser_id)
        except OperationalError as e:
            self.db.rollback()
            logger.warning(f"Store unavailable while preparing vote: {e}")
            raise TransientStoreFailure("Could not process vote", details=str(e)) from e

        result = compute_elo(
            winner.score if winner.score is not None else self.settings.default_score,
            loser.score if loser.score is not None else self.settings.default_score,
            k=self.settings.elo_k_factor,
            floor=self.settings.min_score,
        )

        self._commit(winner, loser, result.winner_score, result.loser_score,
                     identity, user_agent, now_ms)

        logger.info(
            f"Vote {winner_id} > {loser_id} by {identity.key}: "
            f"+{result.delta} ({result.winner_score}/{result.loser_score})"
        )

        return VoteOutcome(
            winner_id=winner_id,
            loser_id=loser_id,
            score_change=result.delta,
            winner_score=result.winner_score,
            loser_score=result.loser_score,
            next_opponent=self._next_opponent(winner_id, loser_id),
        )

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def _validate(self, winner_id: Optional[str], loser_id: Optional[str]):
        winner_id = (winner_id or "").strip()
        loser_id = (loser_id or "").strip()
        if not winner_id or not loser_id:
            raise ClientInputError("Missing winnerId or loserId")
        if winner_id == loser_id:
            raise ClientInputError("winnerId and loserId must differ")
        return winner_id, loser_id

    def _fetch_pair(self, winner_id: str, loser_id: str):
        companies = {
            c.id: c
            for c in self.db.scalars(
                select(Company).where(Company.id.in_([winner_id, loser_id]))
            )
        }
        winner = companies.get(winner_id)
        loser = companies.get(loser_id)
        if winner is None or loser is None:
            logger.error(f"Invalid IDs: winner={winner_id!r} loser={loser_id!r}")
            raise ClientInputError("Invalid IDs")
        return winner, loser

    def _commit(
        self,
        winner: Company,
        loser: Company,
        new_winner_score: int,
        new_loser_score: int,
        identity: Identity,
        user_agent: str,
        now_ms: int,
    ):
        """Persist the vote and both scores in one transaction, or nothing."""
        winner_id, loser_id = winner.id, loser.id
        retention = timedelta(days=self.settings.vote_retention_days)
        try:
            self._increment_vote_counter()
            self.db.add(Vote(
                identity_key=identity.key,
                timestamp=now_ms,
                winner_id=winner_id,
                loser_id=loser_id,
                user_agent=user_agent,
                expires_at=now_ms + int(retention.total_seconds() * 1000),
            ))
            winner.score = new_winner_score
            loser.score = new_loser_score
            self.db.commit()
        except StaleDataError as e:
            self.db.rollback()
            logger.warning(f"Concurrent update on {winner_id}/{loser_id}, vote aborted")
            raise TransientStoreFailure("Could not process vote", details=str(e)) from e
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Duplicate vote key {identity.key}@{now_ms}, vote aborted")
            raise TransientStoreFailure("Could not process vote", details=str(e)) from e
        except OperationalError as e:
            self.db.rollback()
            logger.warning(f"Store rejected vote transaction: {e}")
            raise TransientStoreFailure("Could not process vote", details=str(e)) from e
        except Exception:
            self.db.rollback()
            raise

    def _increment_vote_counter(self):
        result = self.db.execute(
            update(Counter)
            .where(Counter.name == VOTES_COUNTER)
            .values(value=Counter.value + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.db.add(Counter(name=VOTES_COUNTER, value=1))

    def _next_opponent(self, winner_id: str, loser_id: str) -> Optional[Company]:
        """The vote is already committed here, so a failed lookup only drops the suggestion."""
        if not self.settings.return_next_opponent:
            return None
        try:
            roster = LeaderboardReader(self.db).roster()
        except (SQLAlchemyError, TransientStoreFailure) as e:
            self.db.rollback()
            logger.warning(f"No next opponent after {winner_id} > {loser_id}: {e}")
            return None
        return pick_one(roster, exclude_ids=[winner_id, loser_id], rng=self.rng)
