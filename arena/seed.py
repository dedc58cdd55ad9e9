"""
Seeding and maintenance commands for the arena database.

Usage:
    python -m arena.seed --file data/companies.json
    python -m arena.seed --file data/companies.json --wipe
    python -m arena.seed --reset-scores
    python -m arena.seed --delete "Some Company"
"""

import json
import logging
from pathlib import Path
from typing import Iterable, List

from sqlalchemy import delete, or_, update
from sqlalchemy.orm import Session

from arena.config import get_settings
from arena.database import Company, Counter, SessionLocal, Vote, VOTES_COUNTER, init_db


logger = logging.getLogger(__name__)


def company_id(name: str) -> str:
    """Stable company id derived from its display name."""
    return name.strip()


def load_companies(path: Path) -> List[dict]:
    """Read a JSON array of {name, logo} entries."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a JSON array of companies")
    return data


def seed_companies(db: Session, companies: Iterable[dict]) -> dict:
    """
    Insert companies at the default score.

    Companies whose id already exists are skipped, never overwritten,
    so re-running a seed keeps earned scores.
    """
    settings = get_settings()
    inserted, skipped = [], []

    for entry in companies:
        name = (entry.get("name") or "").strip()
        if not name:
            logger.warning(f"Skipping entry without a name: {entry!r}")
            continue

        cid = company_id(name)
        if cid in inserted or db.get(Company, cid) is not None:
            logger.info(f"Skipped (exists): {cid}")
            skipped.append(cid)
            continue

        db.add(Company(
            id=cid,
            name=name,
            logo=entry.get("logo") or "",
            score=settings.default_score,
        ))
        inserted.append(cid)
        logger.info(f"Inserted: {cid}")

    db.commit()
    return {"inserted": inserted, "skipped": skipped}


def wipe_all(db: Session) -> int:
    """Delete every vote and company, zero the counters. Returns companies removed."""
    db.execute(delete(Vote))
    removed = db.execute(delete(Company)).rowcount or 0
    db.execute(update(Counter).values(value=0))
    db.commit()
    logger.info(f"Wipe complete: {removed} companies removed")
    return removed


def reset_scores(db: Session) -> int:
    """Put every company back at the default score."""
    settings = get_settings()
    updated = db.execute(
        update(Company)
        .values(score=settings.default_score, version=Company.version + 1)
        .execution_options(synchronize_session=False)
    ).rowcount or 0
    db.commit()
    return updated


def delete_company(db: Session, cid: str) -> bool:
    """
    Remove a company and the votes that reference it.

    The removed votes are taken off the vote counter in the same
    transaction. Offline maintenance only; running votes touching this
    company fail.
    """
    company = db.get(Company, cid)
    if company is None:
        logger.info(f"No company with id {cid!r}")
        return False

    removed = db.execute(
        delete(Vote).where(or_(Vote.winner_id == cid, Vote.loser_id == cid))
    ).rowcount or 0
    db.execute(
        update(Counter)
        .where(Counter.name == VOTES_COUNTER)
        .values(value=Counter.value - removed)
        .execution_options(synchronize_session=False)
    )
    db.delete(company)
    db.commit()
    logger.info(f"Deleted company {cid!r} and {removed} votes")
    return True


# CLI entry point
if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Company Arena seeding and maintenance")
    parser.add_argument("--file", type=Path, default=None, help="JSON array of {name, logo}")
    parser.add_argument("--wipe", action="store_true", help="Delete all data before seeding")
    parser.add_argument("--reset-scores", action="store_true", help="Reset every score to the default")
    parser.add_argument("--delete", metavar="ID", default=None, help="Delete one company by id")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    init_db()
    with SessionLocal() as db:
        if args.wipe:
            wipe_all(db)
        if args.file:
            result = seed_companies(db, load_companies(args.file))
            print(f"Seeding complete: {len(result['inserted'])} inserted, "
                  f"{len(result['skipped'])} skipped")
        if args.reset_scores:
            print(f"Reset {reset_scores(db)} scores")
        if args.delete:
            delete_company(db, args.delete)
