import os

# must be in place before contest_tracker.main builds its module-level app
os.environ["ENV"] = "test"
os.environ["JWT_SECRET"] = "test-secret-0123456789-abcdefghijklmnop"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CORS_ALLOWED_ORIGINS"] = "http://localhost:3000"
os.environ["USER_SESSION_LENGTH"] = "1h"
os.environ.pop("ERROR_REPORTER_DSN", None)

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from contest_tracker import models
from contest_tracker.config import Settings
from contest_tracker.database import SQLHandler
from contest_tracker.main import create_app


@pytest.fixture
def handler():
    """A fresh in-memory database with every table created."""
    h = SQLHandler("sqlite://")
    h.create_tables()
    yield h
    h.dispose()


@pytest.fixture
def app():
    return create_app(Settings())


@pytest.fixture
def container(app):
    return app.state.container


@pytest.fixture
def client(app):
    return TestClient(app)


def register(client, email="foo@bar.com", password="foobar", display_name="Foo"):
    r = client.post("/register", json={"email": email, "password": password, "display_name": display_name})
    assert r.status_code == 201, r.text
    return r


def login(client, email="foo@bar.com", password="foobar"):
    r = client.post("/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return r.json()


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def set_role(container, email: str, role: models.Role):
    repo = container.repositories().user
    user = repo.find_by_email(email)
    user.role = int(role)
    repo.store(user)


@pytest.fixture
def user_token(client):
    register(client)
    return login(client)["token"]


@pytest.fixture
def admin_token(client, container):
    register(client, email="admin@bar.com", password="adminpass", display_name="Admin")
    set_role(container, "admin@bar.com", models.Role.ADMIN)
    return login(client, email="admin@bar.com", password="adminpass")["token"]


@pytest.fixture
def running_contest(container):
    """An open contest that started yesterday and ends in a week."""
    now = models.utcnow()
    contest = models.Contest(
        description="Round 2019-05",
        start=now - timedelta(days=1),
        end=now + timedelta(days=7),
        open=True,
    )
    return container.repositories().contest.store(contest)
