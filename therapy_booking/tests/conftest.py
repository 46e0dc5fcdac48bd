import os
import tempfile

# Settings are read at import time, so they must be in place before the app is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["SMTP_HOST"] = ""
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="therapy-uploads-")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from therapy_booking.app import create_app
from therapy_booking.app.dependencies import UserRole, dump_json, get_db
from therapy_booking.app.realtime import manager
from therapy_booking.app.models import Base

from .helpers import create_admin, create_verified_user


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        json_serializer=dump_json,
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def app(session_factory):
    app = create_app()

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield app
    manager.groups.clear()


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def doctor(client, session_factory):
    return create_verified_user(client, session_factory, UserRole.DOCTOR.value)


@pytest.fixture
def patient(client, session_factory):
    return create_verified_user(client, session_factory, UserRole.CLIENT.value)


@pytest.fixture
def other_patient(client, session_factory):
    return create_verified_user(client, session_factory, UserRole.CLIENT.value)


@pytest.fixture
def admin(client, session_factory):
    return create_admin(client, session_factory)
