"""
Pytest configuration and fixtures for all tests.

The application is configured for an in-memory SQLite database and the
in-process session cache before any cemse_backend module is imported.
"""

import os
import sys

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SESSION_BACKEND"] = "memory"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["DEBUG_MODE"] = "test"
os.environ.pop("SEED_SUPER_ADMIN_PASSWORD", None)

# Ensure cemse_backend is importable
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(__file__))))

import pytest
from unittest.mock import MagicMock
from fastapi.testclient import TestClient

from cemse_backend.database import SessionLocal, get_engine
from cemse_backend.model import Base
from cemse_backend.model.school import School
from cemse_backend.permissions.roles import Role
from cemse_backend.server import app
from cemse_backend.services.accounts import create_account
from cemse_backend.services.storage_service import StorageService, get_storage_service

DEFAULT_PASSWORD = "Secret123"
STORAGE_URL = "http://storage.test"


@pytest.fixture(autouse=True)
def setup_database():
    """Fresh schema for every test."""
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def minio_client():
    client = MagicMock()
    client.bucket_exists.return_value = True
    return client


@pytest.fixture(autouse=True)
def storage_service(minio_client):
    """StorageService on top of a mocked MinIO client."""
    service = StorageService(client=minio_client, public_url=STORAGE_URL)
    app.dependency_overrides[get_storage_service] = lambda: service
    yield service
    app.dependency_overrides.pop(get_storage_service, None)


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def make_school(db):

    def factory(name="Colegio Central", code="CC-001", type="PUBLIC", **kwargs):
        school = School(name=name, code=code, type=type, **kwargs)
        db.add(school)
        db.commit()
        db.refresh(school)
        return school

    return factory


@pytest.fixture
def make_user(db):

    counter = {"value": 0}

    def factory(role=Role.USER, email=None, password=DEFAULT_PASSWORD, name=None, school_id=None, **kwargs):
        counter["value"] += 1
        role = Role(role)
        email = email or f"{role.value.lower()}{counter['value']}@example.com"
        return create_account(
            db,
            email=email,
            password=password,
            name=name or f"{role.value.title()} User",
            role=role,
            school_id=school_id,
            **kwargs
        )

    return factory


def sign_in(client: TestClient, email: str, password: str = DEFAULT_PASSWORD):
    response = client.post("/api/auth/sign-in", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response


@pytest.fixture
def signed_in(make_user):
    """Create a user and return a client holding its session cookie plus its profile."""

    def factory(role=Role.USER, **kwargs):
        profile = make_user(role=role, **kwargs)
        client = TestClient(app)
        sign_in(client, profile.email, kwargs.get("password", DEFAULT_PASSWORD))
        return client, profile

    return factory
