"""Client-side data models for the upload pipeline."""
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple, Union

from panel.uploads.media import mime_from_extension
from panel.uploads.schemas import UploadedFile

# Committed files are exactly what the ingest endpoint reports.
CommittedFile = UploadedFile


@dataclass(frozen=True)
class LocalFile:
    """A file selected on the client, before upload."""
    name: str
    size: int
    mime_type: str
    content: bytes = field(repr=False, compare=False)

    @classmethod
    def from_bytes(cls, name: str, content: bytes, mime_type: Optional[str] = None) -> "LocalFile":
        return cls(
            name=name,
            size=len(content),
            mime_type=mime_type or mime_from_extension(Path(name).suffix),
            content=content,
        )

    @classmethod
    def from_path(cls, path: Union[str, Path], mime_type: Optional[str] = None) -> "LocalFile":
        path = Path(path)
        return cls.from_bytes(path.name, path.read_bytes(), mime_type)


@dataclass(frozen=True)
class PendingFile:
    """A selected file awaiting or undergoing ingestion."""
    local: LocalFile
    preview_url: Optional[str] = None
    uploading: bool = False
    id: str = field(default_factory=lambda: uuid.uuid4().hex)


class UploadPhase(str, Enum):
    """Lifecycle of an upload session.

    Attributes:
        IDLE: Nothing submitted yet, or the session was cleared.
        VALIDATING: Candidates are being checked.
        UPLOADING: At least one batch is in flight.
        SETTLED: The last batch finished (successfully or not).
    """
    IDLE = "idle"
    VALIDATING = "validating"
    UPLOADING = "uploading"
    SETTLED = "settled"


@dataclass(frozen=True)
class UploadSnapshot:
    """Immutable view of an orchestrator's session state."""
    phase: UploadPhase
    uploading: bool
    error: Optional[str]
    pending: Tuple[PendingFile, ...]
    committed: Tuple[CommittedFile, ...]


@dataclass(frozen=True)
class SubmitResult:
    """Outcome of one ``UploadOrchestrator.submit`` call."""
    success: bool
    files: Tuple[CommittedFile, ...] = ()
    error: Optional[str] = None
    rejected: Tuple[LocalFile, ...] = ()
