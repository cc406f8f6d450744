"""Shared test fixtures and configuration."""
import os

# The application engine is built at import time; keep it on SQLite for tests
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from unittest.mock import MagicMock

from app.main import app
from app.db.base import Base
from app.api.deps import get_db, get_notification_dispatcher
from app.core.cache import global_cache
from app.core.notification_limiter import notification_limiter
from app.services.notifications import NotificationDispatcher
from app.services.poll import create_poll
from app.services.quiz import create_quiz
from tests.factories import CREATOR_WALLET, QUESTIONS, WALLET_A, WALLET_B, bearer


# Test database setup
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(autouse=True)
def disable_rate_limiting_for_tests(request):
    """Disable rate limiting for all tests except rate limiting tests."""
    from app.core.rate_limit import limiter

    if "rate_limit" in request.keywords:
        limiter.reset()
        yield
        limiter.reset()
    else:
        limiter.enabled = False
        yield
        limiter.enabled = True


@pytest.fixture(autouse=True)
def reset_process_state():
    """Read cache and notification throttle are process-wide; start each test clean."""
    global_cache.clear()
    notification_limiter.reset()
    yield
    global_cache.clear()
    notification_limiter.reset()


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh database for each test."""
    engine = create_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db_session(session_factory):
    """Create a new database session for a test."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def file_session_factory(tmp_path):
    """
    Sessions on a database file shared by several threads.

    Unlike the in-memory StaticPool engine, every thread gets its own
    connection, so concurrent writers really contend for the database.
    """
    engine = create_engine(
        f"sqlite:///{tmp_path / 'race.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def dispatcher_mock():
    """Stands in for push delivery so API tests never reach the network."""
    return MagicMock(spec=NotificationDispatcher)


@pytest.fixture(scope="function")
def client(db_session, dispatcher_mock):
    """Create a test client with a test database."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_dispatcher] = lambda: dispatcher_mock
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return bearer(1001, WALLET_A)


@pytest.fixture
def other_auth_headers():
    return bearer(1002, WALLET_B)


@pytest.fixture
def creator_headers():
    return bearer(1000, CREATOR_WALLET)


@pytest.fixture
def poll_factory(db_session):
    """Create polls with sensible defaults."""
    def _make(**overrides):
        params = {
            "creator_key": "1000",
            "title": "Favourite chain",
            "options": ["Base", "Optimism", "Arbitrum"],
        }
        params.update(overrides)
        return create_poll(db_session, **params)
    return _make


@pytest.fixture
def quiz_factory(db_session):
    """Create quizzes with sensible defaults: 3 winners sharing 1000 units."""
    def _make(**overrides):
        params = {
            "creator_wallet": CREATOR_WALLET,
            "title": "Trivia night",
            "questions": QUESTIONS,
            "reward_amount": "1000",
            "winner_limit": 3,
        }
        params.update(overrides)
        return create_quiz(db_session, **params)
    return _make
