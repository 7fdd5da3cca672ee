# tests/conftest.py

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from hallpass.main import app
from hallpass.api import deps
from hallpass.core.locks import LocalLockRegistry, set_lock_registry
from hallpass.db.base_class import Base
import hallpass.models  # noqa: F401  registers every table on Base.metadata


# --- Test Database Setup ---
# A fresh in-memory database per test; StaticPool keeps the single
# connection alive so every session sees the same data.
@pytest.fixture(scope="function")
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def lock_registry():
    """Fresh in-process locks for every test."""
    registry = LocalLockRegistry()
    set_lock_registry(registry)
    yield registry
    set_lock_registry(None)


# --- Mock Dependencies Setup ---
class MockTokenPayload:
    def __init__(self, sub="teacher_123"):
        self.sub = sub


def override_get_current_user():
    return MockTokenPayload()


# --- Test Client Fixtures ---
@pytest.fixture(scope="function")
def client(db_session):
    """
    Provides a TestClient backed by the per-test SQLite database, with auth
    mocked to teacher_123.
    """

    def override_get_db():
        yield db_session

    app.dependency_overrides[deps.get_db] = override_get_db
    app.dependency_overrides[deps.get_current_user] = override_get_current_user

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
