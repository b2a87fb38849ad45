"""httpx adapter for the upload and delete endpoints.

Without an injected client a fresh ``httpx.AsyncClient`` is opened per call,
so one transport can be driven from successive event loops (as a Streamlit
script does with ``asyncio.run``).
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional, Sequence

import httpx

from panel.uploads.errors import (
    AuthorizationError,
    MalformedInputError,
    NetworkError,
    ProviderError,
    UploadError,
)
from panel.uploads.schemas import DEFAULT_FOLDER, FILE_FIELD, FOLDER_FIELD, UploadedFile

from .models import LocalFile

logger = logging.getLogger(__name__)

UPLOAD_PATH = "/api/upload"
DELETE_PATH = "/api/cloudinary/delete"

_STATUS_ERRORS = {
    400: MalformedInputError,
    401: AuthorizationError,
}


def _error_for(response: httpx.Response, body: Dict, fallback: str) -> UploadError:
    message = body.get("message") if isinstance(body, dict) else None
    error_cls = _STATUS_ERRORS.get(response.status_code, ProviderError)
    return error_cls(message or fallback, status_code=response.status_code)


class UploadTransport:
    """Client for POST /api/upload and DELETE /api/cloudinary/delete.

    Args:
        base_url: Root URL of the media service.
        session_token: Session JWT sent as a Bearer token.
        client: Optional long-lived AsyncClient (tests pass one with an
            ``httpx.ASGITransport``).
    """

    def __init__(
        self,
        base_url: str,
        session_token: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {session_token}"} if session_token else {}
        self._client = client

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(base_url=self.base_url) as client:
            yield client

    async def upload(self, files: Sequence[LocalFile], folder: str = DEFAULT_FOLDER) -> List[UploadedFile]:
        """Send ``files`` as one multipart batch and return the committed metadata.

        Raises:
            AuthorizationError, MalformedInputError, ProviderError: Per response status.
            NetworkError: No response was received.
        """
        parts = [(FILE_FIELD, (f.name, f.content, f.mime_type)) for f in files]
        try:
            async with self._session() as client:
                response = await client.post(
                    UPLOAD_PATH,
                    data={FOLDER_FIELD: folder},
                    files=parts,
                    headers=self._headers,
                )
        except httpx.HTTPError as e:
            logger.error(f"Upload request failed: {e}")
            raise NetworkError(str(e) or None) from e

        body = self._json(response)
        if not response.is_success or not body.get("success"):
            raise _error_for(response, body, "File upload failed")

        uploaded = [UploadedFile.model_validate(item) for item in body.get("files") or []]
        logger.info("Uploaded %d file(s) to folder %s", len(uploaded), folder)
        return uploaded

    async def delete(self, public_id: str, resource_type: Optional[str] = None) -> str:
        """Delete one stored file and return the server's acknowledgement."""
        payload = {"publicId": public_id}
        if resource_type:
            payload["resourceType"] = resource_type
        try:
            async with self._session() as client:
                response = await client.request(
                    "DELETE", DELETE_PATH, json=payload, headers=self._headers,
                )
        except httpx.HTTPError as e:
            logger.error(f"Delete request failed: {e}")
            raise NetworkError(str(e) or None) from e

        body = self._json(response)
        if not response.is_success or not body.get("success"):
            raise _error_for(response, body, "File deletion failed")
        return body.get("message", "")

    @staticmethod
    def _json(response: httpx.Response) -> Dict:
        try:
            body = response.json()
        except ValueError:
            raise ProviderError(
                f"Unexpected response from upload service (HTTP {response.status_code})",
                status_code=response.status_code,
            )
        return body if isinstance(body, dict) else {}

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()

    async def __aenter__(self) -> "UploadTransport":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
