from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ImageRecord(BaseModel):
    """Image metadata as persisted in the document store.

    Never serialized to clients directly; see :class:`ImagePublic`.
    """

    model_config = ConfigDict(validate_assignment=True)

    id: str
    owner: str = Field(..., min_length=1, frozen=True)
    image_url: str = Field(..., min_length=1)
    image_id: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class ImagePublic(BaseModel):
    """Client-facing projection of an image record."""

    id: str
    imageUrl: str
    description: str
    createdAt: datetime
    updatedAt: datetime

    @classmethod
    def from_record(cls, record: ImageRecord) -> "ImagePublic":
        return cls(
            id=record.id,
            imageUrl=record.image_url,
            description=record.description,
            createdAt=record.created_at,
            updatedAt=record.updated_at,
        )
