"""Shared fixtures: a throwaway SQLite file and a fresh schema per test."""

import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="arena-tests-")
os.environ["ARENA_DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'arena.db')}"
os.environ["ARENA_PRUNE_SCHEDULER_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient

from arena.app import app
from arena.config import Settings, get_settings
from arena.database import Base, Company, SessionLocal, engine, init_db


@pytest.fixture(autouse=True)
def fresh_schema():
    """Recreate all tables so every test starts from an empty arena."""
    Base.metadata.drop_all(bind=engine)
    init_db()
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def add_company(db):
    """Insert a company and return it."""
    def _add(name: str, score: int = 500, logo: str = "https://logo.test/x.png") -> Company:
        company = Company(id=name, name=name, logo=logo, score=score)
        db.add(company)
        db.commit()
        return company
    return _add


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def override_settings():
    """Swap the settings the routes see for the duration of a test."""
    def _override(**values) -> Settings:
        settings = Settings(**values)
        app.dependency_overrides[get_settings] = lambda: settings
        return settings
    return _override


@pytest.fixture
def anyio_backend():
    """The scheduler runs on asyncio (asyncio.to_thread); pin anyio tests to it."""
    return "asyncio"
