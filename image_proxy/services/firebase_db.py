"""Firebase Realtime Database implementation of the image store.

Records live under the following path structure:

/images/{record_id}

All data is validated with Pydantic models before being written or
returned. The Admin SDK is blocking, so every call is pushed onto the
threadpool to keep request handling asynchronous.
"""
from __future__ import annotations

import json
import logging
import re
from functools import lru_cache
from typing import Any

import firebase_admin
from fastapi.concurrency import run_in_threadpool
from firebase_admin import credentials, db
from firebase_admin.exceptions import FirebaseError
from pydantic import ValidationError

from image_proxy.config import Settings, get_settings
from image_proxy.models import ImageRecord
from image_proxy.models.image import utcnow
from image_proxy.services.image_store import ImageStore, ImageStoreError, StoreValidationError

logger = logging.getLogger(__name__)

# push() keys and anything else Firebase accepts as a single path segment
_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,768}$")


def _validate_record_dict(data: dict[str, Any]) -> ImageRecord:
    try:
        return ImageRecord.model_validate(data)
    except ValidationError as exc:
        raise StoreValidationError(str(exc)) from exc


class FirebaseImageStore(ImageStore):
    """Wrapper around Firebase Realtime Database operations."""

    def __init__(self, root: db.Reference) -> None:
        self._images = root.child("images")

    # -------------------------------------------------------------------
    # ImageStore
    # -------------------------------------------------------------------

    async def create(self, *, owner: str, image_url: str, image_id: str, description: str) -> ImageRecord:
        return await run_in_threadpool(
            self._create,
            {"owner": owner, "image_url": image_url, "image_id": image_id, "description": description},
        )

    async def find_by_id(self, record_id: str) -> ImageRecord | None:
        if not _KEY_PATTERN.match(record_id):
            return None
        return await run_in_threadpool(self._find_by_id, record_id)

    async def find_by_owner(self, owner: str) -> list[ImageRecord]:
        return await run_in_threadpool(self._find_by_owner, owner)

    async def save(self, record: ImageRecord) -> ImageRecord:
        return await run_in_threadpool(self._save, record)

    async def delete(self, record_id: str) -> None:
        if not _KEY_PATTERN.match(record_id):
            return
        await run_in_threadpool(self._delete, record_id)

    # -------------------------------------------------------------------
    # Blocking helpers
    # -------------------------------------------------------------------

    def _create(self, fields: dict[str, Any]) -> ImageRecord:
        now = utcnow()
        # Validate before allocating a key so invalid input never hits the database.
        record = _validate_record_dict({**fields, "id": "pending", "created_at": now, "updated_at": now})
        try:
            # push() returns a reference with a generated key
            push_ref = self._images.push()
            record = record.model_copy(update={"id": push_ref.key})
            push_ref.set(record.model_dump(mode="json"))
        except FirebaseError as exc:
            raise ImageStoreError(f"Failed to create image record: {exc}") from exc
        logger.debug("Created image record id=%s owner=%s", record.id, record.owner)
        return record

    def _find_by_id(self, record_id: str) -> ImageRecord | None:
        try:
            data = self._images.child(record_id).get()
        except FirebaseError as exc:
            raise ImageStoreError(f"Failed to load image record {record_id}: {exc}") from exc
        if data is None:
            return None
        return _validate_record_dict(data)

    def _find_by_owner(self, owner: str) -> list[ImageRecord]:
        try:
            raw_items = self._images.order_by_child("owner").equal_to(owner).get() or {}
        except FirebaseError as exc:
            raise ImageStoreError(f"Failed to list image records: {exc}") from exc
        # raw_items is a dict keyed by record_id -> data
        return [_validate_record_dict(item) for item in raw_items.values()]

    def _save(self, record: ImageRecord) -> ImageRecord:
        stored = self._find_by_id(record.id)
        if stored is None:
            raise ImageStoreError(f"Image record {record.id} does not exist")
        if stored.owner != record.owner:
            raise StoreValidationError("The owner of an image record cannot be changed")

        updated = _validate_record_dict({**record.model_dump(), "updated_at": utcnow()})
        try:
            self._images.child(record.id).set(updated.model_dump(mode="json"))
        except FirebaseError as exc:
            raise ImageStoreError(f"Failed to save image record {record.id}: {exc}") from exc
        logger.debug("Saved image record id=%s", record.id)
        return updated

    def _delete(self, record_id: str) -> None:
        try:
            self._images.child(record_id).delete()
        except FirebaseError as exc:
            raise ImageStoreError(f"Failed to delete image record {record_id}: {exc}") from exc
        logger.debug("Deleted image record id=%s", record_id)


# ---------------------------------------------------------------------------
# Initialise the Firebase Admin SDK exactly once.
# ---------------------------------------------------------------------------


def _initialise_app(settings: Settings) -> None:
    if firebase_admin._apps:  # type: ignore[attr-defined]
        return
    try:
        if settings.firebase_credentials_json:
            # Accept path or JSON string
            cred_obj: credentials.Base = (
                credentials.Certificate(settings.firebase_credentials_json)
                if settings.firebase_credentials_json.endswith(".json")
                else credentials.Certificate(json.loads(settings.firebase_credentials_json))
            )
        else:
            # Attempt default credentials (useful on Cloud Run with workload identity)
            cred_obj = credentials.ApplicationDefault()

        firebase_admin.initialize_app(cred_obj, {"databaseURL": settings.firebase_database_url})
        logger.info("Firebase Admin SDK initialised.")
    except Exception as exc:  # pragma: no cover
        logger.exception("Failed to initialise Firebase Admin SDK: %s", exc)
        raise


@lru_cache()
def get_image_store() -> ImageStore:
    settings = get_settings()
    if not settings.firebase_database_url:
        raise RuntimeError("FIREBASE_DATABASE_URL is not configured.")
    _initialise_app(settings)
    return FirebaseImageStore(db.reference("/"))
