"""Upload service: batch ingestion into and removal from the storage provider.

A module-level singleton is installed in ``panel/main.py`` from config;
``get_upload_service()`` builds a Cloudinary-backed one lazily otherwise.
"""
import asyncio
import base64
import logging
import re
import time
import uuid
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import List, Optional, Sequence

from .errors import MalformedInputError, ProviderError
from .provider import StorageProvider
from .schemas import DEFAULT_FOLDER, UploadedFile

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]+")


@dataclass
class IncomingFile:
    """One binary part received by the ingest endpoint."""
    filename: str
    content_type: Optional[str]
    content: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.content)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def sanitize_base_name(filename: str) -> str:
    """Return the part of ``filename`` before its first dot, made key-safe.

    >>> sanitize_base_name("My Photo.final.jpg")
    'My_Photo'
    """
    base = PurePath(filename or "").name.split(".")[0]
    base = _UNSAFE_CHARS.sub("_", base).strip("_")
    return base or "file"


def unique_suffix() -> str:
    return uuid.uuid4().hex[:8]


def build_public_id(filename: str, timestamp_ms: Optional[int] = None) -> str:
    """Storage key: ``{epoch_ms}-{base name}-{unique suffix}``."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{timestamp_ms}-{sanitize_base_name(filename)}-{unique_suffix()}"


def to_data_uri(content: bytes, content_type: Optional[str]) -> str:
    mime = content_type or "application/octet-stream"
    return f"data:{mime};base64,{base64.b64encode(content).decode('ascii')}"


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_service: Optional["UploadService"] = None


def get_upload_service() -> "UploadService":
    """Return the global UploadService, creating a Cloudinary-backed one if unset."""
    global _service
    if _service is None:
        from panel.config import get_config  # local import to avoid circular deps
        from .cloudinary_provider import CloudinaryProvider

        cfg = get_config()
        _service = UploadService(
            CloudinaryProvider.from_secrets(cfg.secrets.cloudinary),
            compensate_on_failure=cfg.uploads.compensate_on_failure,
        )
    return _service


def set_upload_service(service: Optional["UploadService"]) -> None:
    """Set (or clear) the global UploadService."""
    global _service
    _service = service


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class UploadService:
    """Ingests batches into a StorageProvider and destroys stored files.

    Args:
        provider: Concrete storage provider.
        compensate_on_failure: Destroy the already-ingested files of a batch
            when another file of the same batch fails.
    """

    def __init__(self, provider: StorageProvider, compensate_on_failure: bool = True) -> None:
        self._provider = provider
        self._compensate = compensate_on_failure

    @property
    def provider(self) -> StorageProvider:
        return self._provider

    async def ingest(self, files: Sequence[IncomingFile], folder: str = DEFAULT_FOLDER) -> List[UploadedFile]:
        """Upload every file concurrently and return their metadata in input order.

        The batch is all-or-nothing: if any upload fails the whole call raises
        ``ProviderError`` and no metadata is returned.

        Raises:
            MalformedInputError: If ``files`` is empty.
            ProviderError: If any provider upload fails.
        """
        if not files:
            raise MalformedInputError("No files found")
        folder = folder or DEFAULT_FOLDER

        logger.info("Ingesting %d file(s) into folder %s", len(files), folder)
        outcomes = await asyncio.gather(
            *(self._ingest_one(f, folder) for f in files),
            return_exceptions=True,
        )

        failures = [o for o in outcomes if isinstance(o, BaseException)]
        if failures:
            stored = [o for o in outcomes if isinstance(o, UploadedFile)]
            logger.error(
                "Batch ingestion failed: %d of %d file(s) rejected (first: %s)",
                len(failures), len(files), failures[0],
            )
            if stored and self._compensate:
                await self._compensate_batch(stored)
            elif stored:
                logger.warning(
                    "Leaving %d ingested file(s) unreported: %s",
                    len(stored), ", ".join(s.publicId for s in stored),
                )
            first = failures[0]
            if isinstance(first, ProviderError):
                raise first
            raise ProviderError(str(first) or None) from first

        return list(outcomes)

    async def remove(self, public_id: str, resource_type: Optional[str] = None) -> None:
        """Destroy one stored file.

        Raises:
            MalformedInputError: If ``public_id`` is empty.
            ProviderError: If the provider does not report ``"ok"``.
        """
        if not public_id:
            raise MalformedInputError("File identifier is required")
        result = await self._provider.destroy(public_id, resource_type=resource_type)
        outcome = result.get("result")
        if outcome != "ok":
            logger.warning("Provider refused to delete %s: result=%s", public_id, outcome)
            raise ProviderError("An error occurred while deleting the file")
        logger.info("Deleted %s from provider", public_id)

    async def _ingest_one(self, incoming: IncomingFile, folder: str) -> UploadedFile:
        public_id = build_public_id(incoming.filename)
        result = await self._provider.upload(
            to_data_uri(incoming.content, incoming.content_type),
            folder=folder,
            public_id=public_id,
            resource_type="auto",
            filename_override=incoming.filename,
        )
        return UploadedFile(
            publicId=result["public_id"],
            url=result["secure_url"],
            originalName=incoming.filename,
            size=incoming.size,
            format=result.get("format"),
            width=result.get("width"),
            height=result.get("height"),
            resourceType=result.get("resource_type"),
        )

    async def _compensate_batch(self, stored: Sequence[UploadedFile]) -> None:
        """Best-effort destroy of files that made it into a failed batch."""
        outcomes = await asyncio.gather(
            *(self._provider.destroy(s.publicId, resource_type=s.resourceType) for s in stored),
            return_exceptions=True,
        )
        for uploaded, outcome in zip(stored, outcomes):
            if isinstance(outcome, BaseException) or outcome.get("result") != "ok":
                logger.error("Compensation failed for %s: %s", uploaded.publicId, outcome)
            else:
                logger.info("Compensated orphan %s", uploaded.publicId)
