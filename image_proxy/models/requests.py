from __future__ import annotations

from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, Field

from image_proxy.utils.sanitize import escape_markup

Description = Annotated[str, Field(min_length=1), AfterValidator(escape_markup)]
ImageData = Annotated[str, Field(min_length=1, description="Base64 encoded image bytes")]
ContentType = Annotated[str, Field(min_length=1, examples=["image/png"])]


class ImageCreate(BaseModel):
    data: ImageData
    contentType: ContentType
    description: Description


class ImageReplace(BaseModel):
    data: ImageData
    contentType: ContentType
    description: Description


class ImagePatch(BaseModel):
    data: Optional[ImageData] = None
    contentType: Optional[ContentType] = None
    description: Optional[Description] = None

    def remote_fields(self) -> dict[str, str]:
        """Return only the fields the remote image service cares about."""

        return self.model_dump(include={"data", "contentType"}, exclude_none=True)
