"""FastAPI router for media upload endpoints.

Endpoints:
    POST   /api/upload             - Upload a batch of files to the provider
    DELETE /api/cloudinary/delete  - Delete one stored file by public id

Both endpoints answer failures with ``{"success": false, "message": ...}``
(see ``upload_error_handler``) and never let an exception escape as an
unstructured 500.
"""
import json
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.datastructures import UploadFile

from panel.auth.session import SessionIdentity, get_session_identity

from .errors import AuthorizationError, MalformedInputError, ProviderError, UploadError
from .schemas import (
    DEFAULT_FOLDER,
    FILE_FIELD,
    FOLDER_FIELD,
    DeleteRequest,
    DeleteResponse,
    ErrorResponse,
    UploadResponse,
)
from .service import IncomingFile, get_upload_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["uploads"])

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


async def upload_error_handler(request: Request, exc: UploadError) -> JSONResponse:
    """Render any UploadError as the ``{success: false, message}`` envelope."""
    return JSONResponse(
        ErrorResponse(message=exc.message).model_dump(),
        status_code=exc.status_code,
    )


def _default_folder() -> str:
    from panel.config import get_config  # local import to avoid circular deps

    return get_config().uploads.folder or DEFAULT_FOLDER


async def _read_parts(parts: List[object]) -> List[IncomingFile]:
    files = []
    for part in parts:
        if not isinstance(part, UploadFile):
            raise ProviderError("Invalid file format")
        files.append(
            IncomingFile(
                filename=part.filename or "unnamed",
                content_type=part.content_type,
                content=await part.read(),
            )
        )
    return files


@router.post("/upload", response_model=UploadResponse, responses=_ERROR_RESPONSES)
async def upload_files(
    request: Request,
    identity: Optional[SessionIdentity] = Depends(get_session_identity),
) -> UploadResponse:
    """Upload one or more files to the storage provider.

    Multipart body:
        file:   one or more binary parts (repeat the field)
        folder: optional target folder, defaults to ``uploads``

    Returns:
        UploadResponse with one entry per file, in submission order.

    Raises:
        401: No authenticated session.
        400: No file parts.
        500: A part is not a file, or the provider rejected any file.
    """
    if identity is None:
        raise AuthorizationError()

    try:
        form = await request.form()
        parts = form.getlist(FILE_FIELD)
        folder = form.get(FOLDER_FIELD)
        if not isinstance(folder, str) or not folder.strip():
            folder = _default_folder()

        if not parts:
            raise MalformedInputError("No files found")

        files = await _read_parts(parts)
        uploaded = await get_upload_service().ingest(files, folder=folder.strip())
    except UploadError:
        raise
    except Exception as exc:
        logger.exception("[upload] Upload failed: %s", exc)
        raise ProviderError(str(exc) or None) from exc

    logger.info(
        "[upload] user=%s folder=%s files=%d bytes=%d",
        identity.user_id, folder, len(uploaded), sum(f.size for f in uploaded),
    )
    return UploadResponse(files=uploaded, count=len(uploaded))


@router.delete("/cloudinary/delete", response_model=DeleteResponse, responses=_ERROR_RESPONSES)
async def delete_file(
    request: Request,
    identity: Optional[SessionIdentity] = Depends(get_session_identity),
) -> DeleteResponse:
    """Delete one stored file.

    JSON body: ``{"publicId": "..."}`` plus an optional ``resourceType``
    (``image`` when omitted, as the provider assumes).

    Raises:
        401: No authenticated session.
        400: Missing ``publicId``.
        500: Provider did not confirm the deletion.
    """
    if identity is None:
        raise AuthorizationError()

    try:
        raw = await request.body()
        try:
            payload = json.loads(raw) if raw else {}
        except ValueError:
            payload = {}
        body = DeleteRequest.model_validate(payload if isinstance(payload, dict) else {})
        if not body.publicId:
            raise MalformedInputError("File identifier is required")

        await get_upload_service().remove(body.publicId, resource_type=body.resourceType)
    except UploadError:
        raise
    except Exception as exc:
        logger.exception("[delete] Delete failed: %s", exc)
        raise ProviderError("An error occurred while deleting the file") from exc

    logger.info("[delete] user=%s publicId=%s", identity.user_id, body.publicId)
    return DeleteResponse()
