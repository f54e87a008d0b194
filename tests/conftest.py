"""Pytest fixtures and configuration for adios tests."""

import pytest
from datetime import datetime, timedelta, timezone
from cryptography.fernet import Fernet
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from adios.database.database import Base
from adios.database import models  # noqa: F401  (registers tables)
from adios.database.user_repository import UserRepository
from adios.database.meeting_repository import MeetingRepository


# Use in-memory SQLite database for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_conn, connection_record):
    # Referential integrity tests depend on this for every test engine.
    if type(dbapi_conn).__module__.startswith("sqlite3"):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


@pytest.fixture(autouse=True)
def token_encryption_key(monkeypatch):
    """Give every test its own Fernet key."""
    key = Fernet.generate_key().decode("utf-8")
    monkeypatch.setenv("TOKEN_ENCRYPTION_KEY", key)
    return key


@pytest.fixture(scope="function")
def db_session():
    """Create a database session for testing.

    Uses an in-memory SQLite database that is created fresh for each test.
    """
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    # Create all tables
    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def user_repository(db_session: Session):
    """Create a UserRepository instance for testing."""
    return UserRepository(db_session)


@pytest.fixture
def meeting_repository(db_session: Session):
    """Create a MeetingRepository instance for testing."""
    return MeetingRepository(db_session)


@pytest.fixture
def token_expiry():
    return datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_user_base(token_expiry):
    """Base user data for creating test users.

    Returns a dict of create_user arguments that can be overridden.
    """
    return {
        "external_identity_id": "z123",
        "display_name": "Alice",
        "access_token": "access-token-1",
        "refresh_token": "refresh-token-1",
        "expires_at": token_expiry,
    }


@pytest.fixture
def test_user(user_repository, sample_user_base):
    """A stored user."""
    return user_repository.create_user(**sample_user_base)


@pytest.fixture
def meeting_start():
    return datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_meeting_base(test_user, meeting_start):
    """Base meeting data for creating test meetings (owned by test_user)."""
    return {
        "user_id": test_user.id,
        "external_meeting_id": "85746065432",
        "external_occurrence_id": "occ-1",
        "start_time": meeting_start,
    }


@pytest.fixture
def later():
    """Factory for timestamps strictly after real time, for ordering updated_at."""
    def _later(minutes: int = 5) -> datetime:
        return datetime.now(timezone.utc) + timedelta(minutes=minutes)
    return _later
