"""Admission checks for candidate files."""
import logging
from pathlib import PurePath
from typing import Iterable, List, Optional, Sequence, Tuple

from panel.uploads.errors import ValidationError
from panel.uploads.schemas import DEFAULT_MAX_SIZE_BYTES

from .models import LocalFile

logger = logging.getLogger(__name__)

MIB = 1024 * 1024


class FileValidator:
    """Rejects files larger than ``max_size`` bytes."""

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE_BYTES) -> None:
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self.max_size = max_size

    def limit_message(self) -> str:
        return f"File is too large. Maximum {self.max_size / MIB:.2f}MB allowed."

    def validate(self, candidate: LocalFile) -> None:
        """Raise ValidationError if ``candidate`` may not be uploaded."""
        if candidate.size > self.max_size:
            raise ValidationError(self.limit_message())

    def partition(
        self, candidates: Iterable[LocalFile]
    ) -> Tuple[List[LocalFile], List[Tuple[LocalFile, ValidationError]]]:
        """Split candidates into (accepted, [(rejected, error), ...]), order kept."""
        accepted: List[LocalFile] = []
        rejected: List[Tuple[LocalFile, ValidationError]] = []
        for candidate in candidates:
            try:
                self.validate(candidate)
            except ValidationError as e:
                logger.info("Rejected %s (%d bytes): %s", candidate.name, candidate.size, e.message)
                rejected.append((candidate, e))
            else:
                accepted.append(candidate)
        return accepted, rejected


def limit_selection(candidates: Sequence[LocalFile], multiple: bool, max_files: int) -> List[LocalFile]:
    """Truncate a selection to ``max_files`` (multiple) or to a single file."""
    limit = min(len(candidates), max_files) if multiple else 1
    return list(candidates[:limit])


def matches_accept(accept: Optional[str], name: str, mime_type: Optional[str]) -> bool:
    """Dropzone-style accept filter.

    ``accept`` is a comma-separated list of MIME types (``image/png``), MIME
    families (``image/*``) and extensions (``.pdf``). An empty filter admits
    everything.
    """
    if not accept or not accept.strip():
        return True

    mime = (mime_type or "").lower()
    suffix = PurePath(name).suffix.lower()
    for token in accept.split(","):
        token = token.strip().lower()
        if not token:
            continue
        if token.startswith("."):
            if suffix == token:
                return True
        elif token.endswith("/*"):
            if mime.startswith(token[:-1]):
                return True
        elif mime == token:
            return True
    return False
