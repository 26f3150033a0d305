"""Abstract contract for image metadata persistence."""
from __future__ import annotations

from abc import ABC, abstractmethod

from image_proxy.models import ImageRecord


class ImageStoreError(Exception):
    """Raised when the backing store fails for reasons other than validation."""


class StoreValidationError(ImageStoreError):
    """Raised when a record is missing required fields or breaks an invariant."""


class ImageStore(ABC):
    """Contract for storing and retrieving image records.

    Handlers depend on this interface, not the implementation.
    """

    @abstractmethod
    async def create(self, *, owner: str, image_url: str, image_id: str, description: str) -> ImageRecord:
        """Persist a new record and return it with its generated id.

        Raises:
            StoreValidationError: If a required field is missing or empty
            ImageStoreError: If the write fails
        """

    @abstractmethod
    async def find_by_id(self, record_id: str) -> ImageRecord | None:
        """Return the record or None if there is no such id."""

    @abstractmethod
    async def find_by_owner(self, owner: str) -> list[ImageRecord]:
        """Return every record whose owner is *owner*."""

    @abstractmethod
    async def save(self, record: ImageRecord) -> ImageRecord:
        """Overwrite an existing record, refreshing ``updated_at``.

        Raises:
            StoreValidationError: If the record is invalid or its owner
                differs from the stored one
            ImageStoreError: If the write fails
        """

    @abstractmethod
    async def delete(self, record_id: str) -> None:
        """Remove the record; deleting a missing id is not an error."""
