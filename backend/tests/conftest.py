"""Shared fixtures: an in-memory SQLite database wired into the FastAPI app."""
import os

# Must be set before complaint_tracker.database creates its engine
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool


@pytest.fixture
def db_session():
    from complaint_tracker.database import Base
    from complaint_tracker.models import db_models  # noqa: F401

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def attachment_store(tmp_path):
    from complaint_tracker.services.tracking.attachments import AttachmentStore

    return AttachmentStore(tmp_path / "attachments")


@pytest.fixture
def client(db_session, attachment_store):
    from fastapi.testclient import TestClient
    from complaint_tracker.database import get_db
    from complaint_tracker.main import app
    from complaint_tracker.routers.complaints import get_attachment_store

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_attachment_store] = lambda: attachment_store

    # Not used as a context manager: lifespan (init_db) stays out of the tests
    yield TestClient(app)

    app.dependency_overrides.clear()
