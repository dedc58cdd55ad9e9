"""
Database models and session management for Company Arena API.

Uses SQLAlchemy with SQLite for the standalone service.
Can be configured for PostgreSQL in production.
"""

from datetime import datetime, UTC

from sqlalchemy import (
    BigInteger, DateTime, ForeignKey, Index, Integer, String, Text, create_engine
)
from sqlalchemy.engine import make_url
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

from arena.config import get_settings


# =============================================================================
# Database Setup
# =============================================================================


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


def store_connect_args(database_url: str, timeout_seconds: float) -> dict:
    """DBAPI connect arguments that bound how long one statement may wait."""
    backend = make_url(database_url).get_backend_name()
    if backend == "sqlite":
        # SQLite waits on locks for at most `timeout` seconds
        return {"check_same_thread": False, "timeout": timeout_seconds}
    if backend == "postgresql":
        ms = int(timeout_seconds * 1000)
        return {"options": f"-c statement_timeout={ms} -c lock_timeout={ms}"}
    return {}


def get_engine():
    """Create database engine with bounded store timeouts."""
    settings = get_settings()
    connect_args = store_connect_args(
        settings.database_url, settings.store_timeout_seconds
    )
    if make_url(settings.database_url).get_backend_name() == "sqlite":
        return create_engine(
            settings.database_url,
            connect_args=connect_args,
            echo=settings.debug
        )
    return create_engine(
        settings.database_url,
        connect_args=connect_args,
        pool_timeout=settings.store_timeout_seconds,
        pool_pre_ping=True,
        echo=settings.debug
    )


engine = get_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Dependency to get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Initialize database tables and the vote counter."""
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as db:
        if db.get(Counter, VOTES_COUNTER) is None:
            db.add(Counter(name=VOTES_COUNTER, value=0))
            db.commit()


# =============================================================================
# Database Models
# =============================================================================


VOTES_COUNTER = "votes"


class Company(Base):
    """
    A company competing in the arena.

    The score index doubles as the leaderboard ordering. Since it lives
    on the same row as the score, a committed score write and its
    leaderboard position can never disagree.
    """

    __tablename__ = "companies"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    logo: Mapped[str] = mapped_column(Text, nullable=False, default="")

    score: Mapped[int] = mapped_column(Integer, default=500, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(UTC), nullable=False
    )

    # Bumped on every UPDATE; a stale version aborts the whole flush
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        Index('ix_companies_score', 'score'),
    )

    __mapper_args__ = {"version_id_col": version}


class Vote(Base):
    """
    An accepted vote. Written once, never updated.

    Keyed by the rate-limit identity and the vote time in epoch
    milliseconds, so the rate limiter reads a single key range.
    """

    __tablename__ = "votes"

    identity_key: Mapped[str] = mapped_column(String(160), primary_key=True)
    timestamp: Mapped[int] = mapped_column(BigInteger, primary_key=True)

    winner_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False
    )
    loser_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False
    )
    user_agent: Mapped[str] = mapped_column(Text, default="")

    # Votes past this instant are ignored and pruned
    expires_at: Mapped[int] = mapped_column(BigInteger, index=True, nullable=False)


class Counter(Base):
    """Named counters maintained inside the transactions that change them."""

    __tablename__ = "counters"

    name: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
