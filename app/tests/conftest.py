"""
Shared fixtures: an in-memory SQLite database and a TestClient wired to it.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-access-secret")
os.environ.setdefault("JWT_REFRESH_SECRET", "test-refresh-secret")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import uuid
from datetime import datetime, timedelta
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.exceptions import InvalidCredential
from app.db.base import Base
from app.db.session import get_db
from app.main import app
from app.services.apple_auth import AppleIdentity, get_apple_verifier
from app import models  # noqa: F401

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine, "connect")
def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeAppleVerifier:
    """Accepts tokens of the form "apple:<sub>[:<email>]"."""

    def verify(self, identity_token):
        parts = identity_token.split(":")
        if len(parts) < 2 or parts[0] != "apple" or not parts[1]:
            raise InvalidCredential("Invalid Apple identity token")
        email = parts[2] if len(parts) > 2 else None
        return AppleIdentity(sub=parts[1], email=email)


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(db):
    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_apple_verifier] = lambda: FakeAppleVerifier()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def register(client):
    """Register a user and return (session payload, auth headers)."""
    def _register(email="alice@example.com", password="password123", display_name=None):
        body = {"email": email, "password": password}
        if display_name:
            body["displayName"] = display_name
        response = client.post("/v1/auth/register", json=body)
        assert response.status_code == 201, response.json()
        payload = response.json()
        return payload, {"Authorization": f"Bearer {payload['accessToken']}"}
    return _register


def iso(minutes_ago=0):
    """UTC ISO-8601 timestamp some minutes in the past."""
    moment = datetime.utcnow().replace(microsecond=0) - timedelta(minutes=minutes_ago)
    return moment.isoformat() + "Z"


def make_run(client_id=None, **overrides):
    """A valid run upload payload."""
    run = {
        "clientId": client_id or str(uuid.uuid4()),
        "startTime": iso(minutes_ago=10),
        "endTime": iso(minutes_ago=5),
        "runName": "Paradise",
        "resortName": "Mammoth",
        "distance": 5.2,
        "maxSpeed": 62.5,
        "averageSpeed": 31.0,
        "elevationDrop": 420.0,
        "startElevation": 3000.0,
        "endElevation": 2580.0,
        "duration": 300.0,
        "points": 120,
        "difficulty": "Black",
        "routeData": {"points": [[37.63, -119.03], [37.62, -119.02]]},
    }
    run.update(overrides)
    return run
