"""Image resource endpoints.

Every route resolves the same ordered chain of dependencies before the
endpoint body runs:

    authenticate -> (read body) -> load_image -> authorize

Each step either hands its result to the next one or raises an
``ApiError`` which ends the request with the matching error response.
"""
from __future__ import annotations

import json
from typing import Callable, Type, TypeVar

from fastapi import APIRouter, Depends, Header, Request, Response, status
from pydantic import BaseModel, ValidationError

from image_proxy.config import Settings, get_settings
from image_proxy.errors import BadRequestError, PayloadTooLargeError
from image_proxy.models import Caller, ImageCreate, ImagePatch, ImagePublic, ImageRecord, ImageReplace
from image_proxy.services.auth import TokenVerifier, get_token_verifier
from image_proxy.services.firebase_db import get_image_store
from image_proxy.services.image_service import ImageServiceClient, get_image_service
from image_proxy.services.image_store import ImageStore
from image_proxy.services.images import ImageResourceHandler

router = APIRouter(prefix="/images", tags=["images"])

BodyT = TypeVar("BodyT", bound=BaseModel)


# ---------------------------------------------------------------------------
# Request-processing steps
# ---------------------------------------------------------------------------


def authenticate(
    authorization: str | None = Header(None),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> Caller:
    return verifier.verify(authorization)


def get_images_handler(
    store: ImageStore = Depends(get_image_store),
    image_service: ImageServiceClient = Depends(get_image_service),
) -> ImageResourceHandler:
    return ImageResourceHandler(store, image_service)


async def read_body(request: Request, limit: int) -> bytes:
    """Read the request body, giving up as soon as it grows past *limit* bytes."""

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            raise PayloadTooLargeError()
    return bytes(body)


def json_body(model: Type[BodyT]) -> Callable:
    """Parse the request body as *model*, only once the caller is authenticated."""

    async def parse(
        request: Request,
        _caller: Caller = Depends(authenticate),
        settings: Settings = Depends(get_settings),
    ) -> BodyT:
        body = await read_body(request, settings.max_request_bytes)
        try:
            payload = json.loads(body)
        except ValueError as exc:
            raise BadRequestError("The request body must be valid JSON.") from exc
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise BadRequestError(f"Invalid request body: {exc}") from exc

    return parse


async def load_image(
    image_id: str,
    _caller: Caller = Depends(authenticate),
    handler: ImageResourceHandler = Depends(get_images_handler),
) -> ImageRecord:
    return await handler.load(image_id)


def authorize(
    caller: Caller = Depends(authenticate),
    image: ImageRecord = Depends(load_image),
) -> ImageRecord:
    return ImageResourceHandler.authorize(caller, image)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.get("", response_model=list[ImagePublic])
async def find_all(
    caller: Caller = Depends(authenticate),
    handler: ImageResourceHandler = Depends(get_images_handler),
):
    """Gets a list of all images owned by the authenticated user."""
    records = await handler.find_all(caller)
    return [ImagePublic.from_record(r) for r in records]


@router.get("/{image_id}", response_model=ImagePublic)
async def find(image: ImageRecord = Depends(authorize)):
    return ImagePublic.from_record(image)


@router.post("", response_model=ImagePublic, status_code=status.HTTP_201_CREATED)
async def create(
    request: Request,
    response: Response,
    caller: Caller = Depends(authenticate),
    payload: ImageCreate = Depends(json_body(ImageCreate)),
    handler: ImageResourceHandler = Depends(get_images_handler),
):
    """Creates an image."""
    record = await handler.create(caller, payload)
    response.headers["Location"] = str(request.url_for("find", image_id=record.id).path)
    return ImagePublic.from_record(record)


@router.put("/{image_id}", status_code=status.HTTP_204_NO_CONTENT)
async def replace(
    image: ImageRecord = Depends(authorize),
    payload: ImageReplace = Depends(json_body(ImageReplace)),
    handler: ImageResourceHandler = Depends(get_images_handler),
) -> Response:
    """Edits an image."""
    await handler.replace(image, payload)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{image_id}", status_code=status.HTTP_204_NO_CONTENT)
async def partial_edit(
    image: ImageRecord = Depends(authorize),
    payload: ImagePatch = Depends(json_body(ImagePatch)),
    handler: ImageResourceHandler = Depends(get_images_handler),
) -> Response:
    """Partially edits an image."""
    await handler.patch(image, payload)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{image_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete(
    image: ImageRecord = Depends(authorize),
    handler: ImageResourceHandler = Depends(get_images_handler),
) -> Response:
    """Deletes an image."""
    await handler.delete(image)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
