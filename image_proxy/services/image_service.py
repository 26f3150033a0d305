"""Client for the remote image hosting service.

The remote service stores the actual image bytes; this application only
keeps metadata. Requests authenticate with a private access token sent in
the ``X-API-Private-Token`` header. Failures are never retried.
"""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Optional

import httpx
from pydantic import BaseModel, ConfigDict

from image_proxy.config import get_settings
from image_proxy.errors import ApiError

logger = logging.getLogger(__name__)


class ImageServiceError(ApiError):
    """Raised when the image service returns an error status or is unreachable."""

    def __init__(self, status: int, message: str, response_json: Optional[dict[str, Any]] = None):
        super().__init__(f"Image service error {status}: {message}")
        self.status = status
        self.response_json = response_json or {}


class RemoteImage(BaseModel):
    """The part of the image service's response this application keeps."""

    model_config = ConfigDict(extra="ignore")

    id: str
    imageUrl: str


class ImageServiceClient:
    """Minimal async client for the image hosting API."""

    _TOKEN_HEADER = "X-API-Private-Token"

    def __init__(
        self,
        *,
        base_url: str,
        token: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._headers = {self._TOKEN_HEADER: token}
        self._client = httpx.AsyncClient(timeout=timeout, headers=self._headers, transport=transport)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def create_image(self, data: str, content_type: str) -> RemoteImage:
        """Upload base64 *data* and return the remote id and URL."""

        resp = await self._request("POST", "/images", {"data": data, "contentType": content_type})
        try:
            return RemoteImage.model_validate(resp.json())
        except ValueError as exc:
            raise ImageServiceError(500, "Unexpected response to image upload") from exc

    async def replace_image(self, image_id: str, data: str, content_type: str) -> None:
        await self._request("PUT", f"/images/{image_id}", {"data": data, "contentType": content_type})

    async def patch_image(self, image_id: str, fields: dict[str, Any]) -> None:
        await self._request("PATCH", f"/images/{image_id}", fields)

    async def delete_image(self, image_id: str) -> None:
        await self._request("DELETE", f"/images/{image_id}")

    async def close(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _request(self, method: str, path: str, payload: dict[str, Any] | None = None) -> httpx.Response:
        url = f"{self._base_url}{path}"
        logger.debug("%s %s", method, url)
        try:
            resp = await self._client.request(method, url, json=payload)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise ImageServiceError(500, "The image service could not be reached") from exc

        if not resp.is_success:
            try:
                err_json = resp.json()
            except ValueError:
                err_json = None
            logger.warning("%s %s returned %s: %s", method, url, resp.status_code, resp.text)
            # Redirects and other non-error replies are not forwarded to the caller
            status = resp.status_code if resp.status_code >= 400 else 500
            raise ImageServiceError(status, f"Remote request failed with status {resp.status_code}", err_json)
        return resp


@lru_cache()
def get_image_service() -> ImageServiceClient:
    settings = get_settings()
    return ImageServiceClient(
        base_url=settings.image_service_url,
        token=settings.image_service_token,
        timeout=settings.image_service_timeout,
    )
