"""Error taxonomy shared by the upload endpoints and the upload client.

Each error carries the HTTP status it maps to and a human-readable message.
The API renders them as ``{"success": false, "message": ...}``; the client
transport raises them back from non-success responses.
"""
from typing import Optional


class UploadError(Exception):
    """Base class for upload pipeline failures."""

    status_code: int = 500
    default_message: str = "An error occurred while uploading files"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(UploadError):
    """A candidate file was rejected locally. Never reaches the network."""
    status_code = 422
    default_message = "File rejected"


class AuthorizationError(UploadError):
    status_code = 401
    default_message = "Authorization error"


class MalformedInputError(UploadError):
    status_code = 400
    default_message = "Malformed request"


class ProviderError(UploadError):
    """The storage provider rejected an ingestion or removal call."""
    status_code = 500


class NetworkError(UploadError):
    """Transport-level failure seen by the client (no HTTP response)."""
    status_code = 503
    default_message = "Could not reach the upload service"
