"""
Integration test fixtures. Overrides get_db and the payment gateway for API tests;
the API and the seed factories share one in-memory DB.
"""
from datetime import datetime, timedelta, timezone

import pytest
from jose.jwt import encode

from lms.config import settings


def issue_token(email: str, expires_in: timedelta = timedelta(minutes=30)) -> str:
    """Stand-in for the external auth service: an HS256 token the app accepts."""
    claims = {"sub": email, "exp": datetime.now(timezone.utc) + expires_in}
    return encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


@pytest.fixture
def override_get_db(session_factory):
    """Session dependency bound to the shared in-memory engine."""

    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    return _get_db


@pytest.fixture
def api_client(override_get_db, gateway):
    """FastAPI TestClient with in-memory DB and sandbox gateway overrides."""
    from fastapi.testclient import TestClient
    from lms.api import app
    from lms.bootstrap import get_payment_gateway
    from lms.config import get_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def login(api_client):
    """Authenticate the client as `user` by setting the access_token cookie."""
    def _login(user):
        token = issue_token(user.email)
        api_client.cookies.set("access_token", token)
        return api_client

    return _login


@pytest.fixture
def admin(make_user):
    return make_user(email="admin@example.com", full_name="Ada Admin", is_admin=True)
