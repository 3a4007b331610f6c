"""
Pytest configuration and fixtures
"""

import os

# taskapi.main builds a module-level app from the environment on import
os.environ.setdefault("JWT_SECRET", "test-secret")

from datetime import datetime, timezone
from uuid import uuid4

import bcrypt
import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from taskapi.config import Settings
from taskapi.main import create_app
from taskapi.models import Task, TaskStatus, User, UserRole
from taskapi.routers.auth import issue_token

TEST_PASSWORD = "correct-horse"
FUTURE = datetime(2099, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def settings():
    return Settings(jwt_secret="unit-test-secret", database_url="sqlite://")


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    """Test client; entering it runs startup, which creates the tables."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def engine(app, client):
    return app.state.engine


@pytest.fixture
def make_user(engine):
    """Insert a user and return it detached with attributes loaded."""
    hashed = bcrypt.hashpw(TEST_PASSWORD.encode("utf-8"), bcrypt.gensalt(rounds=4)).decode("utf-8")

    def _make(name="Sam", email=None, role=UserRole.USER):
        user = User(
            name=name,
            email=email or f"{uuid4().hex[:8]}@example.com",
            hashed_password=hashed,
            role=role,
        )
        with Session(engine) as db:
            db.add(user)
            db.commit()
            db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_task(engine):
    def _make(assignee, creator=None, **fields):
        values = dict(
            title="Write report",
            description="Quarterly numbers",
            status=TaskStatus.TODO,
            priority=3,
            due_date=FUTURE,
        )
        values.update(fields)
        task = Task(
            assigned_to=assignee.id,
            created_by=(creator or assignee).id,
            **values,
        )
        with Session(engine) as db:
            db.add(task)
            db.commit()
            db.refresh(task)
        return task

    return _make


@pytest.fixture
def fetch_task(engine):
    def _fetch(task_id):
        with Session(engine) as db:
            return db.get(Task, task_id)

    return _fetch


@pytest.fixture
def auth_headers(settings):
    def _headers(user):
        return {"Authorization": f"Bearer {issue_token(user, settings)}"}

    return _headers


@pytest.fixture
def user_password():
    """Plain password of every user made by make_user."""
    return TEST_PASSWORD
