"""Image resource operations.

Each write is a two-phase operation: the remote image service is called
first and the local record is written second. The two are not
transactional. When the local phase fails after the remote phase
succeeded, the error is logged together with the compensating action an
operator has to carry out, and then re-raised; nothing is rolled back
automatically.
"""
from __future__ import annotations

import logging

from image_proxy.errors import BadRequestError, ForbiddenError, NotFoundError
from image_proxy.models import Caller, ImageCreate, ImagePatch, ImageRecord, ImageReplace
from image_proxy.services.image_service import ImageServiceClient
from image_proxy.services.image_store import ImageStore, StoreValidationError

logger = logging.getLogger(__name__)


class ImageResourceHandler:
    """Orchestrates the image service and the metadata store for one request."""

    def __init__(self, store: ImageStore, image_service: ImageServiceClient) -> None:
        self._store = store
        self._image_service = image_service

    # ------------------------------------------------------------------
    # Loading and authorization
    # ------------------------------------------------------------------

    async def load(self, record_id: str) -> ImageRecord:
        record = await self._store.find_by_id(record_id)
        if record is None:
            raise NotFoundError(f"Image {record_id} was not found.")
        return record

    @staticmethod
    def authorize(caller: Caller, record: ImageRecord) -> ImageRecord:
        if record.owner != caller.id:
            logger.info("Caller %s denied access to image %s", caller.id, record.id)
            raise ForbiddenError("You do not have permission to access this image.")
        return record

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def find_all(self, caller: Caller) -> list[ImageRecord]:
        return await self._store.find_by_owner(caller.id)

    async def create(self, caller: Caller, payload: ImageCreate) -> ImageRecord:
        remote = await self._image_service.create_image(payload.data, payload.contentType)
        try:
            record = await self._store.create(
                owner=caller.id,
                image_url=remote.imageUrl,
                image_id=remote.id,
                description=payload.description,
            )
        except Exception as exc:
            logger.error(
                "Remote image %s has no local record; delete it from the image service", remote.id
            )
            if isinstance(exc, StoreValidationError):
                raise BadRequestError(f"Image could not be stored: {exc}") from exc
            raise
        logger.info("Caller %s created image %s (remote %s)", caller.id, record.id, remote.id)
        return record

    async def replace(self, record: ImageRecord, payload: ImageReplace) -> ImageRecord:
        await self._image_service.replace_image(record.image_id, payload.data, payload.contentType)
        record.description = payload.description
        return await self._save_after_remote_write(record)

    async def patch(self, record: ImageRecord, payload: ImagePatch) -> ImageRecord:
        remote_fields = payload.remote_fields()
        if remote_fields:
            await self._image_service.patch_image(record.image_id, remote_fields)

        if payload.description is None:
            return record
        record.description = payload.description
        return await self._save_after_remote_write(record, remote_written=bool(remote_fields))

    async def delete(self, record: ImageRecord) -> None:
        await self._image_service.delete_image(record.image_id)
        try:
            await self._store.delete(record.id)
        except Exception:
            logger.error(
                "Remote image %s was deleted but record %s remains; delete the record manually",
                record.image_id,
                record.id,
            )
            raise
        logger.info("Deleted image %s (remote %s)", record.id, record.image_id)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _save_after_remote_write(self, record: ImageRecord, *, remote_written: bool = True) -> ImageRecord:
        try:
            return await self._store.save(record)
        except Exception as exc:
            if remote_written:
                logger.error(
                    "Remote image %s changed but record %s was not updated", record.image_id, record.id
                )
            if isinstance(exc, StoreValidationError):
                raise BadRequestError(f"Image could not be stored: {exc}") from exc
            raise
