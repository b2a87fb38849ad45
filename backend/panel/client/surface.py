"""Upload surface: the interactive boundary of the upload pipeline.

The surface turns user gestures (dropping files, picking paths, clicking
remove/clear/dismiss) into orchestrator intents and turns orchestrator
snapshots into a ``SurfaceView`` a UI can draw. It never touches session
state itself.
"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from panel.config import UploadSettings
from panel.uploads.media import format_file_size, is_image_format, is_image_mime, transform_url
from panel.uploads.schemas import DEFAULT_MAX_FILES

from .models import LocalFile, SubmitResult, UploadSnapshot
from .orchestrator import UploadOrchestrator
from .validator import limit_selection, matches_accept

logger = logging.getLogger(__name__)

MIB = 1024 * 1024
THUMBNAIL_SIZE = 96

PENDING_PREFIX = "pending:"
COMMITTED_PREFIX = "committed:"


@dataclass(frozen=True)
class SurfaceItem:
    """One row in the rendered file list."""
    key: str
    name: str
    size_label: str
    status: str  # "uploading", "pending" or "committed"
    is_image: bool
    thumbnail_url: Optional[str]
    removable: bool
    public_id: Optional[str] = None


@dataclass(frozen=True)
class SurfaceView:
    """Everything a UI needs to draw the surface."""
    uploading: bool
    disabled: bool
    drag_active: bool
    error: Optional[str]
    dropzone_text: str
    limit_hint: str
    button_text: str
    placeholder: str
    heading: str
    show_clear_all: bool
    items: Tuple[SurfaceItem, ...]


class UploadSurface:
    """Drag-and-drop / manual-pick surface bound to one orchestrator.

    Args:
        orchestrator: The session owner; the surface closes it on teardown.
        multiple: Allow more than one file per selection.
        accept: Dropzone-style filter (``"image/*"``, ``".pdf,.docx"``).
        max_files: Per-selection cap when ``multiple`` is set.
        delete_remote: Removing a committed item also deletes it from the
            provider instead of only dropping it from the session.
    """

    def __init__(
        self,
        orchestrator: UploadOrchestrator,
        *,
        multiple: bool = False,
        accept: Optional[str] = None,
        max_files: int = DEFAULT_MAX_FILES,
        disabled: bool = False,
        show_preview: bool = True,
        delete_remote: bool = False,
        dropzone_text: str = "Drag files here or click to choose",
        placeholder: str = "No file selected",
        button_text: str = "Choose file",
    ) -> None:
        self._orchestrator = orchestrator
        self.multiple = multiple
        self.accept = accept
        self.max_files = max_files
        self.disabled = disabled
        self.show_preview = show_preview
        self.delete_remote = delete_remote
        self.dropzone_text = dropzone_text
        self.placeholder = placeholder
        self.button_text = button_text
        self._drag_active = False
        self._closed = False

    @classmethod
    def from_settings(
        cls, orchestrator: UploadOrchestrator, settings: UploadSettings, **kwargs,
    ) -> "UploadSurface":
        return cls(
            orchestrator,
            multiple=settings.multiple,
            accept=settings.accept,
            max_files=settings.max_files,
            show_preview=settings.show_preview,
            **kwargs,
        )

    @property
    def orchestrator(self) -> UploadOrchestrator:
        return self._orchestrator

    @property
    def accepting(self) -> bool:
        """Whether new files may be admitted right now."""
        return not (self.disabled or self._closed or self._orchestrator.uploading)

    # -----------------------------------------------------------------------
    # Gestures
    # -----------------------------------------------------------------------

    def drag_enter(self) -> None:
        if self.accepting:
            self._drag_active = True

    def drag_leave(self) -> None:
        self._drag_active = False

    async def drop(self, candidates: Iterable[LocalFile]) -> Optional[SubmitResult]:
        """Admit dropped files and hand them to the orchestrator.

        Returns ``None`` when the surface is not accepting files or nothing
        survived the accept filter.
        """
        self._drag_active = False
        if not self.accepting:
            logger.debug("Drop ignored: surface not accepting files")
            return None

        admitted = [c for c in candidates if matches_accept(self.accept, c.name, c.mime_type)]
        admitted = limit_selection(admitted, self.multiple, self.max_files)
        if not admitted:
            return None
        return await self._orchestrator.submit(admitted)

    async def pick(self, paths: Sequence[Union[str, Path]]) -> Optional[SubmitResult]:
        """Manual pick: read the chosen paths and admit them like a drop."""
        if not self.accepting:
            return None
        return await self.drop(LocalFile.from_path(p) for p in paths)

    async def remove(self, key: str) -> bool:
        """Remove the item rendered under ``key``."""
        if self._closed or self._orchestrator.uploading:
            return False
        if key.startswith(PENDING_PREFIX):
            return self._orchestrator.remove_pending(key[len(PENDING_PREFIX):])
        if key.startswith(COMMITTED_PREFIX):
            public_id = key[len(COMMITTED_PREFIX):]
            if self.delete_remote:
                return await self._orchestrator.delete_committed(public_id)
            return self._orchestrator.remove_committed(public_id)
        raise KeyError(key)

    def clear_all(self) -> None:
        if self._closed or self._orchestrator.uploading:
            return
        self._orchestrator.clear_all()

    def dismiss_error(self) -> None:
        if not self._closed:
            self._orchestrator.dismiss_error()

    # -----------------------------------------------------------------------
    # Rendering
    # -----------------------------------------------------------------------

    def limit_hint(self) -> str:
        size_mb = f"{self._orchestrator.max_size / MIB:.0f}MB"
        if self.multiple:
            return f"Up to {self.max_files} files, {size_mb} each"
        return f"Maximum {size_mb}"

    def render(self) -> SurfaceView:
        snapshot = self._orchestrator.snapshot()
        items = self._committed_items(snapshot) + self._pending_items(snapshot)
        return SurfaceView(
            uploading=snapshot.uploading,
            disabled=self.disabled or self._closed,
            drag_active=self._drag_active,
            error=snapshot.error,
            dropzone_text=self.dropzone_text,
            limit_hint=self.limit_hint(),
            button_text=self.button_text,
            placeholder=self.placeholder,
            heading="Uploaded files" if self.multiple else "Uploaded file",
            show_clear_all=self.multiple and len(snapshot.committed) > 1,
            items=tuple(items),
        )

    def _committed_items(self, snapshot: UploadSnapshot) -> List[SurfaceItem]:
        items = []
        for committed in snapshot.committed:
            is_image = is_image_format(committed.format)
            thumbnail = None
            if is_image and self.show_preview:
                thumbnail = transform_url(
                    committed.url, width=THUMBNAIL_SIZE, height=THUMBNAIL_SIZE, crop="fill",
                )
            items.append(SurfaceItem(
                key=f"{COMMITTED_PREFIX}{committed.publicId}",
                name=committed.originalName,
                size_label=format_file_size(committed.size),
                status="committed",
                is_image=is_image,
                thumbnail_url=thumbnail,
                removable=not snapshot.uploading,
                public_id=committed.publicId,
            ))
        return items

    def _pending_items(self, snapshot: UploadSnapshot) -> List[SurfaceItem]:
        items = []
        for pending in snapshot.pending:
            is_image = is_image_mime(pending.local.mime_type)
            items.append(SurfaceItem(
                key=f"{PENDING_PREFIX}{pending.id}",
                name=pending.local.name,
                size_label=format_file_size(pending.local.size),
                status="uploading" if pending.uploading else "pending",
                is_image=is_image,
                thumbnail_url=pending.preview_url if (is_image and self.show_preview) else None,
                removable=not snapshot.uploading,
            ))
        return items

    # -----------------------------------------------------------------------
    # Teardown
    # -----------------------------------------------------------------------

    def close(self) -> None:
        """Unmount: the orchestrator releases every outstanding preview."""
        if self._closed:
            return
        self._closed = True
        self._drag_active = False
        self._orchestrator.close()

    def __enter__(self) -> "UploadSurface":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
