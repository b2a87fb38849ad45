"""Media helpers shared by the upload endpoints and the upload surface.

Covers human-readable sizes, MIME guessing from extensions and Cloudinary
delivery URLs (building them from a public id, injecting transformations,
reading the format back out).
"""
import logging
from typing import Optional
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

MIME_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "svg": "image/svg+xml",
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "xls": "application/vnd.ms-excel",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "ppt": "application/vnd.ms-powerpoint",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "txt": "text/plain",
    "mp3": "audio/mpeg",
    "mp4": "video/mp4",
    "mov": "video/quicktime",
    "zip": "application/zip",
    "rar": "application/x-rar-compressed",
}

IMAGE_FORMATS = frozenset({"jpg", "jpeg", "png", "gif", "webp", "svg"})


def format_file_size(size_bytes: int) -> str:
    """Format a byte count as ``B``, ``KB`` or ``MB`` with one decimal."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    if size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    return f"{size_bytes / (1024 * 1024):.1f} MB"


def is_image_mime(mime_type: Optional[str]) -> bool:
    return bool(mime_type) and mime_type.startswith("image/")


def is_image_format(fmt: Optional[str]) -> bool:
    return bool(fmt) and fmt.lower() in IMAGE_FORMATS


def mime_from_extension(extension: str) -> str:
    """Guess a MIME type from a file extension (``".PNG"``, ``"png"``)."""
    ext = extension.lower().lstrip(".")
    return MIME_TYPES.get(ext, "application/octet-stream")


def delivery_url(
    cloud_name: str,
    public_id: str,
    width: Optional[int] = None,
    height: Optional[int] = None,
    crop: str = "fill",
    quality: int = 90,
) -> str:
    """Build an image delivery URL, resized when width or height is given."""
    transformation = ""
    if width or height:
        parts = [f"c_{crop}", f"q_{quality}"]
        if width:
            parts.append(f"w_{width}")
        if height:
            parts.append(f"h_{height}")
        transformation = ",".join(parts) + "/"
    return f"https://res.cloudinary.com/{cloud_name}/image/upload/{transformation}{public_id}"


def transform_url(
    url: str,
    width: Optional[int] = None,
    height: Optional[int] = None,
    quality: Optional[int] = None,
    crop: Optional[str] = None,
    gravity: Optional[str] = None,
) -> str:
    """Insert a transformation segment after ``/upload/`` in a delivery URL.

    URLs without an ``/upload/`` segment, or calls without any option, are
    returned unchanged.
    """
    path = urlsplit(url).path
    if "/upload/" not in path:
        return url

    transformations = []
    if width:
        transformations.append(f"w_{width}")
    if height:
        transformations.append(f"h_{height}")
    if quality:
        transformations.append(f"q_{quality}")
    if crop:
        transformations.append(f"c_{crop}")
    if gravity:
        transformations.append(f"g_{gravity}")
    if not transformations:
        return url

    new_path = path.replace("/upload/", f"/upload/{','.join(transformations)}/", 1)
    return url.replace(path, new_path, 1)


def format_from_url(url: str) -> Optional[str]:
    """Return the lower-cased extension of a delivery URL's path, if any."""
    try:
        path = urlsplit(url).path
    except ValueError as e:
        logger.warning(f"Could not parse URL {url!r}: {e}")
        return None
    last = path.rsplit("/", 1)[-1]
    if "." not in last:
        return None
    return last.rsplit(".", 1)[-1].lower() or None
