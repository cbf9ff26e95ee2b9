"""
Pytest configuration and fixtures for all tests.

Every test gets a fresh in-memory MongoDB (mongomock) and an app built
around it, with the chatbot disabled unless a test injects one.
"""

import itertools
import os
from datetime import datetime, timedelta, timezone

# Must be set before campus_portal reads its settings
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

import mongomock
import pytest
from fastapi.testclient import TestClient
from pydantic import TypeAdapter

from campus_portal.core.config import Settings
from campus_portal.core.security import create_access_token
from campus_portal.main import create_app
from campus_portal.schemas.schemas import RegisterRequest
from campus_portal.services.chatbot_client import Unavailable
from campus_portal.services.user_service import UserService

PASSWORD = "password123"


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


def iso(value: datetime) -> str:
    return value.isoformat()


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        jwt_secret_key="test-secret",
        bcrypt_rounds=4,
        openai_api_key="",
        environment="development",
        log_level="WARNING",
    )


@pytest.fixture
def db():
    return mongomock.MongoClient()["campus_portal_test"]


@pytest.fixture
def app(settings, db):
    return create_app(settings=settings, database=db, chatbot=Unavailable("disabled in tests"))


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def make_user(db, settings):
    """Create an identity of any role directly in the store and return (user, auth headers)."""
    counter = itertools.count(1)
    adapter = TypeAdapter(RegisterRequest)

    def _make(role: str = "student", **overrides):
        n = next(counter)
        data = {
            "first_name": "Test",
            "last_name": f"User{n}",
            "email": f"{role}{n}@college.edu",
            "password": PASSWORD,
            "role": role,
        }
        if role == "student":
            data.update(student_id=f"STU{n:04d}", department="Computer Engineering", year=3)
        elif role == "faculty":
            data.update(department="Computer Engineering")
        data.update(overrides)

        service = UserService(db, settings.bcrypt_rounds)
        user = service.register(adapter.validate_python(data), allow_privileged=True)
        token = create_access_token({"sub": user["id"], "role": user["role"]}, settings)
        return user, {"Authorization": f"Bearer {token}"}

    return _make


@pytest.fixture
def placement_payload():
    def _payload(**overrides):
        data = {
            "company": {"name": "Acme Systems", "industry": "Technology", "size": "Large"},
            "position": {"title": "Software Engineer", "type": "Full-time", "level": "Entry"},
            "package": {"ctc": 850000, "base": 700000, "benefits": ["Health Insurance"]},
            "location": {"city": "Pune", "state": "Maharashtra"},
            "process": {"rounds": [
                {"name": "Aptitude", "type": "Online Test", "status": "Passed"},
                {"name": "Tech 1", "type": "Technical Interview", "status": "Scheduled"},
            ]},
            "status": "Interview Scheduled",
            "skills": ["Python", "SQL"],
        }
        data.update(overrides)
        return data

    return _payload


@pytest.fixture
def training_payload():
    def _payload(**overrides):
        now = utcnow()
        data = {
            "title": "Data Structures Bootcamp",
            "description": "Two weeks of problem solving for placement season.",
            "category": "Coding",
            "type": "Bootcamp",
            "level": "Intermediate",
            "instructor": {"name": "Dr. Rao", "designation": "Professor"},
            "schedule": {
                "start_date": iso(now + timedelta(days=10)),
                "end_date": iso(now + timedelta(days=24)),
                "duration": 30,
            },
            "capacity": {"max_students": 30},
            "status": "Enrollment Open",
            "enrollment": {
                "start_date": iso(now - timedelta(days=1)),
                "end_date": iso(now + timedelta(days=7)),
            },
            "tags": ["dsa"],
        }
        data.update(overrides)
        return data

    return _payload
