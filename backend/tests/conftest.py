"""Shared fixtures: every test runs against a fresh in-memory SQLite database."""
import os

os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def db():
    """Create test database session."""
    from hippo.database import SessionLocal, engine, Base
    import hippo.models  # noqa: F401

    # Create tables
    Base.metadata.create_all(bind=engine)

    # Create session
    session = SessionLocal()

    yield session

    # Cleanup
    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    """HTTP client against the app, sharing the test database."""
    from hippo.main import app

    return TestClient(app)
