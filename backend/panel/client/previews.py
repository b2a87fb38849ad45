"""Transient local previews for files that are not uploaded yet.

Each pending file gets one spool copy of its bytes under a private temp
directory; the preview reference is that copy's ``file://`` URI, so a UI can
show it before the upload round trip completes. The manager is an explicit
arena: every reference must be released exactly once.
"""
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import unquote, urlsplit

from .models import LocalFile

logger = logging.getLogger(__name__)


class PreviewError(RuntimeError):
    """A preview reference was allocated twice or released when not held."""


class PreviewManager:
    """Owns the mapping from pending-file id to preview reference.

    Args:
        spool_dir: Directory for spool copies. A private temp directory is
            created on first allocation when omitted.
    """

    def __init__(self, spool_dir: Optional[Path] = None) -> None:
        self._spool_dir = Path(spool_dir) if spool_dir else None
        self._owns_dir = spool_dir is None
        self._refs: Dict[str, Path] = {}
        self.allocated_total = 0
        self.released_total = 0

    @property
    def outstanding(self) -> int:
        return len(self._refs)

    def __contains__(self, pending_id: str) -> bool:
        return pending_id in self._refs

    def _ensure_dir(self) -> Path:
        if self._spool_dir is None:
            self._spool_dir = Path(tempfile.mkdtemp(prefix="panel-previews-"))
        self._spool_dir.mkdir(parents=True, exist_ok=True)
        return self._spool_dir

    def allocate(self, pending_id: str, local: LocalFile) -> str:
        """Spool ``local`` and return its preview URL."""
        if pending_id in self._refs:
            raise PreviewError(f"Preview already allocated for {pending_id}")

        path = self._ensure_dir() / f"{pending_id}{Path(local.name).suffix.lower()}"
        path.write_bytes(local.content)
        self._refs[pending_id] = path
        self.allocated_total += 1
        return path.as_uri()

    def release(self, pending_id: str) -> None:
        """Revoke the preview of ``pending_id``; it must be outstanding."""
        path = self._refs.pop(pending_id, None)
        if path is None:
            raise PreviewError(f"No outstanding preview for {pending_id}")
        path.unlink(missing_ok=True)
        self.released_total += 1

    def release_all(self) -> int:
        """Release every outstanding preview and return how many there were."""
        pending_ids = list(self._refs)
        for pending_id in pending_ids:
            self.release(pending_id)
        return len(pending_ids)

    def resolve(self, url: str) -> Optional[Path]:
        """Map an outstanding preview URL back to its spool file."""
        parts = urlsplit(url)
        if parts.scheme != "file":
            return None
        path = Path(unquote(parts.path))
        return path if path in self._refs.values() else None

    def close(self) -> None:
        """Release everything and remove the spool directory if we created it."""
        released = self.release_all()
        if released:
            logger.debug("Released %d preview(s) on close", released)
        if self._owns_dir and self._spool_dir is not None:
            shutil.rmtree(self._spool_dir, ignore_errors=True)
            self._spool_dir = None
