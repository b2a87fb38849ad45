"""Pydantic schemas for the media upload endpoints.

This module defines the wire models of the upload pipeline:
- UploadedFile: provider metadata for one committed file
- UploadResponse: body of a successful POST /api/upload
- DeleteRequest / DeleteResponse: DELETE /api/cloudinary/delete
- ErrorResponse: failure envelope shared by both endpoints
- ResourceType: provider resource category (image, video, raw)

Field names are camelCase because the panel front end consumes them as-is.
"""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ResourceType(str, Enum):
    """Provider resource categories.

    Cloudinary auto-detects the category on upload:
    - IMAGE: raster and vector images (and PDFs)
    - VIDEO: video and audio
    - RAW: everything else, stored untransformed
    """
    IMAGE = "image"
    VIDEO = "video"
    RAW = "raw"


class UploadedFile(BaseModel):
    """Metadata for a file persisted by the storage provider.

    ``publicId`` is assigned at ingestion time and is the only handle needed
    to destroy the file later. ``size`` is the byte count received by the
    ingest endpoint, not the provider's (possibly re-encoded) size.
    ``resourceType`` is checked against ResourceType but kept as its plain
    string value.
    """
    model_config = ConfigDict(use_enum_values=True)

    publicId: str = Field(..., description="Provider public identifier")
    url: str = Field(..., description="HTTPS delivery URL")
    originalName: str = Field(..., description="Original client filename")
    size: int = Field(..., description="File size in bytes")
    format: Optional[str] = Field(None, description="Provider-detected format (jpg, pdf, ...)")
    width: Optional[int] = Field(None, description="Pixel width, images and videos only")
    height: Optional[int] = Field(None, description="Pixel height, images and videos only")
    resourceType: Optional[ResourceType] = Field(None, description="Provider resource category")


class UploadResponse(BaseModel):
    """Response after a successful batch upload."""
    success: bool = True
    files: List[UploadedFile] = Field(default_factory=list)
    count: int = Field(..., description="Number of files uploaded")


class DeleteRequest(BaseModel):
    publicId: Optional[str] = None
    resourceType: Optional[str] = None


class DeleteResponse(BaseModel):
    success: bool = True
    message: str = "File deleted successfully"


class ErrorResponse(BaseModel):
    success: bool = False
    message: str


# Defaults mirrored by UploadSettings; kept here for callers without config.
DEFAULT_FOLDER = "uploads"
DEFAULT_MAX_SIZE_BYTES = 10 * 1024 * 1024
DEFAULT_MAX_FILES = 5

# Multipart field names
FILE_FIELD = "file"
FOLDER_FIELD = "folder"
