"""
Scheduler for periodic pruning of expired votes.

Every vote carries an `expires_at` timestamp. Expired votes are already
ignored by the rate limiter; this scheduler deletes them so the votes
table only holds the retention window.
"""

import asyncio
import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy import delete
from sqlalchemy.orm import Session

from arena.config import get_settings
from arena.database import SessionLocal, Vote
from arena.vote_service import current_millis


logger = logging.getLogger(__name__)

JOB_ID = "arena_vote_pruning"


def prune_expired_votes(db: Session, now_ms: Optional[int] = None) -> int:
    """
    Delete votes whose retention has run out.

    The vote counter is left alone: stats keep counting pruned votes.

    Returns:
        Number of votes deleted
    """
    now_ms = current_millis() if now_ms is None else now_ms
    result = db.execute(delete(Vote).where(Vote.expires_at <= now_ms))
    db.commit()
    return result.rowcount or 0


class PruneScheduler:
    """
    Scheduler for periodic vote pruning runs.
    """

    def __init__(self, interval_minutes: Optional[int] = None):
        """
        Initialize the scheduler.

        Args:
            interval_minutes: Pruning interval (default from settings)
        """
        self.interval_minutes = interval_minutes or get_settings().prune_interval_minutes
        self.scheduler = AsyncIOScheduler()
        self._is_running = False

    async def run_pruning(self):
        """
        Run a pruning iteration.

        This is called by the scheduler at each interval.
        """
        if self._is_running:
            logger.warning("Pruning already in progress, skipping this iteration")
            return

        self._is_running = True

        try:
            deleted = await asyncio.to_thread(self._prune)
            logger.info(f"Scheduled pruning complete: {deleted} expired votes deleted")
        except Exception as e:
            logger.exception(f"Error in scheduled pruning: {e}")
        finally:
            self._is_running = False

    def _prune(self) -> int:
        with SessionLocal() as db:
            return prune_expired_votes(db)

    def start(self):
        """Start the scheduler."""
        if self.scheduler.running:
            logger.warning("Scheduler already running")
            return

        self.scheduler.add_job(
            self.run_pruning,
            trigger=IntervalTrigger(minutes=self.interval_minutes),
            id=JOB_ID,
            name="Expired Vote Pruning",
            replace_existing=True,
            max_instances=1,
        )

        self.scheduler.start()
        logger.info(
            f"Pruning scheduler started - running every {self.interval_minutes} minutes"
        )

    def stop(self):
        """Stop the scheduler."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Pruning scheduler stopped")


# Global scheduler instance
_scheduler: Optional[PruneScheduler] = None


def get_scheduler() -> PruneScheduler:
    """Get or create the global scheduler instance."""
    global _scheduler
    if _scheduler is None:
        _scheduler = PruneScheduler()
    return _scheduler


def start_scheduler():
    """Start the global scheduler."""
    get_scheduler().start()


def stop_scheduler():
    """Stop the global scheduler."""
    global _scheduler
    if _scheduler is not None:
        _scheduler.stop()
        _scheduler = None


# CLI entry point for running the pruner standalone
if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Company Arena Vote Pruner")
    parser.add_argument(
        "--interval",
        type=int,
        default=None,
        help="Pruning interval in minutes (default from settings)"
    )
    parser.add_argument(
        "--run-once",
        action="store_true",
        help="Prune once and exit"
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    if args.run_once:
        with SessionLocal() as db:
            deleted = prune_expired_votes(db)
            print(f"Pruning complete: {deleted} expired votes deleted")
    else:
        async def main():
            scheduler = PruneScheduler(interval_minutes=args.interval)
            scheduler.start()
            try:
                await asyncio.Event().wait()
            finally:
                scheduler.stop()

        try:
            asyncio.run(main())
        except KeyboardInterrupt:
            print("\nScheduler stopped")
