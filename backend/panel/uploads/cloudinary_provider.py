"""Cloudinary storage provider.

Wraps the official ``cloudinary`` SDK. The SDK is synchronous, so each call
runs in a worker thread via ``asyncio.to_thread`` to keep the event loop free
while a batch of uploads is in flight.

Upload options sent per file
----------------------------
::

    {
        "folder":            "uploads",
        "public_id":         "1700000000000-avatar-3f9c2a1b",
        "resource_type":     "auto",          # image / video / raw detected
        "filename_override": "avatar.png"
    }
"""
import asyncio
import logging
from typing import Any, Dict, Optional

import cloudinary
import cloudinary.uploader

from panel.config import CloudinarySecrets

from .provider import StorageProvider

logger = logging.getLogger(__name__)


class CloudinaryProvider(StorageProvider):
    """Storage provider backed by Cloudinary.

    Args:
        cloud_name: Cloudinary cloud name.
        api_key:    API key.
        api_secret: API secret.

    When any credential is ``None`` the SDK falls back to the
    ``CLOUDINARY_URL`` environment variable.
    """

    def __init__(
        self,
        cloud_name: Optional[str] = None,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
    ) -> None:
        options: Dict[str, Any] = {"secure": True}
        if cloud_name and api_key and api_secret:
            options.update(cloud_name=cloud_name, api_key=api_key, api_secret=api_secret)
        cloudinary.config(**options)
        self._cloud_name = cloud_name or cloudinary.config().cloud_name
        logger.info("Cloudinary provider ready: cloud=%s", self._cloud_name)

    @classmethod
    def from_secrets(cls, secrets: CloudinarySecrets) -> "CloudinaryProvider":
        return cls(
            cloud_name=secrets.cloud_name,
            api_key=secrets.api_key,
            api_secret=secrets.api_secret,
        )

    @property
    def cloud_name(self) -> Optional[str]:
        return self._cloud_name

    async def upload(
        self,
        data_uri: str,
        *,
        folder: str,
        public_id: str,
        resource_type: str = "auto",
        filename_override: Optional[str] = None,
    ) -> Dict[str, Any]:
        options: Dict[str, Any] = {
            "folder": folder,
            "public_id": public_id,
            "resource_type": resource_type,
        }
        if filename_override:
            options["filename_override"] = filename_override

        result = await asyncio.to_thread(cloudinary.uploader.upload, data_uri, **options)
        if not result:
            raise RuntimeError("Cloudinary upload returned no result")
        logger.debug(
            "Cloudinary upload ok: public_id=%s bytes=%s",
            result.get("public_id"), result.get("bytes"),
        )
        return result

    async def destroy(self, public_id: str, *, resource_type: Optional[str] = None) -> Dict[str, Any]:
        options: Dict[str, Any] = {}
        if resource_type:
            options["resource_type"] = resource_type
        result = await asyncio.to_thread(cloudinary.uploader.destroy, public_id, **options)
        logger.debug("Cloudinary destroy: public_id=%s result=%s", public_id, result)
        return result or {}
