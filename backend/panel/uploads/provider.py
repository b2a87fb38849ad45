"""Abstract StorageProvider interface.

Every object-storage back-end must implement this interface so the upload
service stays provider-agnostic. Results are returned as the provider's raw
metadata dicts; the service maps them onto ``UploadedFile``.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class StorageProvider(ABC):
    """Abstract base class for storage providers.

    Both calls are coroutines and may be awaited concurrently from a single
    event loop: the upload service fans out one ``upload()`` per file.
    """

    @abstractmethod
    async def upload(
        self,
        data_uri: str,
        *,
        folder: str,
        public_id: str,
        resource_type: str = "auto",
        filename_override: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Persist one file given as a base64 data URI.

        Returns:
            Provider metadata containing at least ``public_id`` and
            ``secure_url``; ``format``, ``width``, ``height`` and
            ``resource_type`` when the provider reports them.

        Raises:
            Exception: On provider error (network, auth, quota, rejected file).
        """

    @abstractmethod
    async def destroy(self, public_id: str, *, resource_type: Optional[str] = None) -> Dict[str, Any]:
        """Delete one stored file.

        Returns:
            A dict whose ``result`` key is ``"ok"`` on success and any other
            discriminator (``"not found"``, ...) otherwise.
        """
