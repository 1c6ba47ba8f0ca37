"""Image hosting for blog post artwork.

Production uses Cloudinary's unsigned upload endpoint with an upload
preset, so no API secret lives in this service.  Tests and local runs use
the in-memory host.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import httpx

from lms.core.errors import UpstreamError, ValidationFailed

logger = logging.getLogger(__name__)

CLOUDINARY_API = "https://api.cloudinary.com/v1_1"
MAX_IMAGE_BYTES = 10 * 1024 * 1024


@dataclass(frozen=True, slots=True)
class UploadedImage:
    public_id: str
    url: str


def _check_image(filename: str, content: bytes, content_type: str) -> None:
    if not content_type.startswith("image/"):
        raise ValidationFailed(f"Not an image: {filename} ({content_type})")
    if not content:
        raise ValidationFailed(f"Empty upload: {filename}")
    if len(content) > MAX_IMAGE_BYTES:
        raise ValidationFailed(f"Image larger than {MAX_IMAGE_BYTES // (1024 * 1024)} MB")


@runtime_checkable
class ImageHost(Protocol):
    async def upload(
        self, filename: str, content: bytes, content_type: str
    ) -> UploadedImage: ...


class InMemoryImageHost:
    def __init__(self) -> None:
        self._images: dict[str, tuple[str, bytes]] = {}

    async def upload(
        self, filename: str, content: bytes, content_type: str
    ) -> UploadedImage:
        _check_image(filename, content, content_type)
        public_id = f"blog/{uuid.uuid4().hex[:12]}"
        self._images[public_id] = (content_type, content)
        return UploadedImage(public_id=public_id, url=f"memory://{public_id}")

    def get(self, public_id: str) -> tuple[str, bytes] | None:
        return self._images.get(public_id)


class CloudinaryImageHost:
    def __init__(
        self,
        http: httpx.AsyncClient,
        cloud_name: str,
        upload_preset: str,
        folder: str = "blog",
    ) -> None:
        self._http = http
        self._url = f"{CLOUDINARY_API}/{cloud_name}/image/upload"
        self._preset = upload_preset
        self._folder = folder

    async def upload(
        self, filename: str, content: bytes, content_type: str
    ) -> UploadedImage:
        _check_image(filename, content, content_type)
        try:
            response = await self._http.post(
                self._url,
                data={"upload_preset": self._preset, "folder": self._folder},
                files={"file": (filename, content, content_type)},
            )
        except httpx.HTTPError as e:
            raise UpstreamError(f"Image upload failed: {e}") from e

        if response.status_code >= 400:
            try:
                message = response.json()["error"]["message"]
            except (ValueError, KeyError, TypeError):
                message = f"HTTP {response.status_code}"
            logger.error("Cloudinary rejected upload file=%s: %s", filename, message)
            raise UpstreamError(f"Image upload failed: {message}")

        body = response.json()
        logger.info("Uploaded image public_id=%s", body.get("public_id"))
        return UploadedImage(public_id=body["public_id"], url=body["secure_url"])
