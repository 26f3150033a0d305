"""Shared fixtures.

The environment is configured before the application is imported so the
cached settings pick up a throwaway RSA key and dummy service URLs.
Firebase and the remote image service are replaced with in-memory fakes
through ``app.dependency_overrides``.
"""
from __future__ import annotations

import base64
import itertools
import os
from datetime import datetime, timedelta, timezone

import jwt
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi.testclient import TestClient
from pydantic import ValidationError

_PRIVATE_KEY = rsa.generate_private_key(public_exponent=65537, key_size=2048)
PRIVATE_PEM = _PRIVATE_KEY.private_bytes(
    serialization.Encoding.PEM,
    serialization.PrivateFormat.PKCS8,
    serialization.NoEncryption(),
).decode("ascii")
PUBLIC_PEM = _PRIVATE_KEY.public_key().public_bytes(
    serialization.Encoding.PEM,
    serialization.PublicFormat.SubjectPublicKeyInfo,
).decode("ascii")

os.environ["ACCESS_TOKEN_PUBLIC_KEY"] = base64.b64encode(PUBLIC_PEM.encode("ascii")).decode("ascii")
os.environ["IMAGE_SERVICE_URL"] = "https://images.example.test/api/v1"
os.environ["IMAGE_SERVICE_TOKEN"] = "test-private-token"
os.environ["ENVIRONMENT"] = "production"
os.environ.pop("FIREBASE_DATABASE_URL", None)

from image_proxy.config import get_settings  # noqa: E402
from image_proxy.main import app  # noqa: E402
from image_proxy.models import ImageRecord  # noqa: E402
from image_proxy.models.image import utcnow  # noqa: E402
from image_proxy.services.firebase_db import get_image_store  # noqa: E402
from image_proxy.services.image_service import ImageServiceError, RemoteImage, get_image_service  # noqa: E402
from image_proxy.services.image_store import ImageStore, ImageStoreError, StoreValidationError  # noqa: E402


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class InMemoryImageStore(ImageStore):
    """Dict backed store with the same validation rules as the Firebase one."""

    def __init__(self) -> None:
        self.records: dict[str, ImageRecord] = {}
        self._ids = itertools.count(1)
        self.fail_delete = False

    async def create(self, *, owner, image_url, image_id, description):
        now = utcnow()
        try:
            record = ImageRecord(
                id=f"rec{next(self._ids)}",
                owner=owner,
                image_url=image_url,
                image_id=image_id,
                description=description,
                created_at=now,
                updated_at=now,
            )
        except ValidationError as exc:
            raise StoreValidationError(str(exc)) from exc
        self.records[record.id] = record.model_copy()
        return record

    async def find_by_id(self, record_id):
        record = self.records.get(record_id)
        return record.model_copy() if record else None

    async def find_by_owner(self, owner):
        return [r.model_copy() for r in self.records.values() if r.owner == owner]

    async def save(self, record):
        stored = self.records.get(record.id)
        if stored is None:
            raise ImageStoreError(f"Image record {record.id} does not exist")
        if stored.owner != record.owner:
            raise StoreValidationError("The owner of an image record cannot be changed")
        updated = record.model_copy(update={"updated_at": utcnow()})
        self.records[record.id] = updated
        return updated.model_copy()

    async def delete(self, record_id):
        if self.fail_delete:
            raise ImageStoreError("database unavailable")
        self.records.pop(record_id, None)

    def add(self, *, owner, description="A picture", image_id=None) -> ImageRecord:
        """Insert a record directly, bypassing the API."""
        record_id = f"rec{next(self._ids)}"
        record = ImageRecord(
            id=record_id,
            owner=owner,
            image_url=f"https://cdn.example.test/{record_id}.png",
            image_id=image_id or f"remote-{record_id}",
            description=description,
        )
        self.records[record_id] = record
        return record.model_copy()


class FakeImageService:
    """Records every call made to the remote image service."""

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.error: ImageServiceError | None = None
        self._ids = itertools.count(1)

    def _call(self, *call):
        self.calls.append(call)
        if self.error is not None:
            raise self.error

    async def create_image(self, data, content_type):
        self._call("create", data, content_type)
        remote_id = f"remote{next(self._ids)}"
        return RemoteImage(id=remote_id, imageUrl=f"https://cdn.example.test/{remote_id}.png")

    async def replace_image(self, image_id, data, content_type):
        self._call("replace", image_id, data, content_type)

    async def patch_image(self, image_id, fields):
        self._call("patch", image_id, fields)

    async def delete_image(self, image_id):
        self._call("delete", image_id)

    async def close(self):
        pass


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def make_token(sub: str | None = "alice", *, key: str = PRIVATE_PEM, expires_in: int = 300, **claims) -> str:
    payload = {"exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in), **claims}
    if sub is not None:
        payload["sub"] = sub
    return jwt.encode(payload, key, algorithm="RS256")


def auth_header(sub: str = "alice") -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(sub)}"}


@pytest.fixture
def store() -> InMemoryImageStore:
    return InMemoryImageStore()


@pytest.fixture
def image_service() -> FakeImageService:
    return FakeImageService()


@pytest.fixture
def client(store, image_service):
    app.dependency_overrides[get_image_store] = lambda: store
    app.dependency_overrides[get_image_service] = lambda: image_service
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def development(monkeypatch):
    """Switch error responses to development mode for one test."""
    monkeypatch.setenv("ENVIRONMENT", "development")
    get_settings.cache_clear()
    yield
    monkeypatch.undo()
    get_settings.cache_clear()
