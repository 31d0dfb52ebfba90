"""
Test configuration and shared fixtures for the clinic booking test suite.

The schema is built once per session by running the Alembic migrations
against a throw-away SQLite database (override with TEST_DATABASE_URL).
Services commit their own transactions, so every table is emptied after
each test instead of rolling back.
"""

import os
from pathlib import Path
from typing import Generator

import pytest
from alembic import command
from alembic.config import Config
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool

from core.database import Base, get_db
import models  # noqa: F401  Registers every table on Base.metadata

BACKEND_DIR = Path(__file__).resolve().parent.parent


@pytest.fixture(scope="session")
def test_database_url(tmp_path_factory) -> str:
    """TEST_DATABASE_URL if set, else a fresh SQLite file for the session."""
    url = os.getenv("TEST_DATABASE_URL")
    if url:
        return url
    db_file = tmp_path_factory.mktemp("db") / "clinic_booking_test.db"
    return f"sqlite:///{db_file}"


@pytest.fixture(scope="session")
def db_engine(test_database_url):
    """
    Create a database engine for the test session.

    Uses NullPool so every session gets a fresh connection.
    """
    connect_args = {"check_same_thread": False} if test_database_url.startswith("sqlite") else {}
    engine = create_engine(test_database_url, poolclass=NullPool, connect_args=connect_args)

    yield engine

    engine.dispose()


@pytest.fixture(scope="session", autouse=True)
def setup_test_database(db_engine, test_database_url):
    """
    Build the test schema with Alembic (base -> head).

    Running the real migrations keeps the baseline revision and the models
    honest with each other.
    """
    alembic_cfg = Config(str(BACKEND_DIR / "alembic.ini"))
    alembic_cfg.set_main_option("sqlalchemy.url", test_database_url)

    with db_engine.begin() as connection:
        alembic_cfg.attributes["connection"] = connection
        command.downgrade(alembic_cfg, "base")
        command.upgrade(alembic_cfg, "head")

    yield

    with db_engine.begin() as connection:
        alembic_cfg.attributes["connection"] = connection
        command.downgrade(alembic_cfg, "base")


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """
    Provide a database session for a test.

    Configured like the application's SessionLocal. All rows are deleted
    after the test.
    """
    TestingSessionLocal = sessionmaker(
        bind=db_engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = TestingSessionLocal()

    yield session

    session.rollback()
    session.close()

    with db_engine.begin() as connection:
        for table in reversed(Base.metadata.sorted_tables):
            connection.execute(table.delete())


@pytest.fixture
def client(db_session) -> Generator[TestClient, None, None]:
    """
    TestClient bound to the test session.

    The background outbox drain is replaced by a no-op so tests can inspect
    the queued notifications; the lifespan (and its scheduler) is not run.
    """
    from main import app
    from services.notification_service import get_notification_dispatcher

    app.dependency_overrides[get_db] = lambda: db_session
    app.dependency_overrides[get_notification_dispatcher] = lambda: (lambda: None)

    yield TestClient(app)

    app.dependency_overrides.pop(get_db, None)
    app.dependency_overrides.pop(get_notification_dispatcher, None)
