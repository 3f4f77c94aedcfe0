"""Shared fixtures: in-memory SQLite, in-memory object storage and an API client."""

import os

# Must be set before app.core.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_TO_FILE"] = "false"
os.environ["AUTO_CREATE_TABLES"] = "false"

from typing import Dict, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app import models  # noqa: F401
from app.core.database import Base, get_db
from app.main import app
from app.services.storage import StorageBackend, StorageService, get_storage_service


class InMemoryBackend(StorageBackend):
    """Object storage double keeping blobs in a dict."""

    def __init__(self, bucket: str = "test-bucket"):
        self.bucket = bucket
        self.objects: Dict[str, bytes] = {}
        self.content_types: Dict[str, str] = {}
        self.fail_uploads = False
        self.fail_deletes = False
        self.upload_calls = 0

    def upload_file(
        self,
        file_data: bytes,
        object_name: str,
        content_type: str = "application/octet-stream",
        metadata: Optional[dict] = None,
    ) -> str:
        self.upload_calls += 1
        if self.fail_uploads:
            raise ConnectionError("storage unreachable")
        self.objects[object_name] = file_data
        self.content_types[object_name] = content_type
        return object_name

    def delete_file(self, object_name: str) -> bool:
        if self.fail_deletes:
            raise ConnectionError("storage unreachable")
        self.objects.pop(object_name, None)
        return True

    def file_exists(self, object_name: str) -> bool:
        return object_name in self.objects

    def get_public_url(self, object_name: str) -> str:
        return f"http://storage.test/{self.bucket}/{object_name}"


@pytest.fixture
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


@pytest.fixture
def db_session(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture
def storage_backend():
    return InMemoryBackend()


@pytest.fixture
def storage(storage_backend):
    return StorageService(backend=storage_backend)


@pytest.fixture
def client(db_session, storage):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage_service] = lambda: storage
    yield TestClient(app)
    app.dependency_overrides.clear()


def register(client, email="jan@example.com", password="secret123", **extra):
    """Register a user through the API and return the response JSON."""
    payload = {
        "firstName": "Jan",
        "lastName": "Kowalski",
        "email": email,
        "password": password,
        "rodo": True,
    }
    payload.update(extra)
    response = client.post("/api/auth/register", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_token(client):
    return register(client)["token"]


@pytest.fixture
def headers(user_token):
    return auth_headers(user_token)


@pytest.fixture
def register_user(client):
    """Callable registering an extra user; returns ``(token, headers, user)``."""

    def _register(email, password="secret123", **extra):
        body = register(client, email=email, password=password, **extra)
        return body["token"], auth_headers(body["token"]), body["user"]

    return _register
