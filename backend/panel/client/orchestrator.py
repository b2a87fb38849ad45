"""Upload orchestrator: owns one upload session and drives batched submission.

State (phase, error, pending and committed lists) lives here and nowhere
else. Callers observe it through immutable ``UploadSnapshot`` objects, either
by calling ``snapshot()`` or by subscribing to changes.

Notifications:
    - every phase transition and list mutation calls ``on_status_change``
      with the current uploading flag and every subscriber with a snapshot
    - ``on_success`` / ``on_error`` fire after a batch has settled, never
      while it is in flight

Concurrency:
    ``submit`` may be called again before a previous call settles; each call
    sends its own batch and committed files accumulate in arrival order.
    There is no cancellation. Results of a batch that was in flight when
    ``clear_all()`` or ``close()`` ran are ignored.
"""
import logging
from dataclasses import replace
from typing import Callable, Iterable, List, Optional, Protocol, Sequence

from panel.config import UploadSettings
from panel.uploads.errors import UploadError
from panel.uploads.schemas import DEFAULT_FOLDER, DEFAULT_MAX_SIZE_BYTES

from .models import CommittedFile, LocalFile, PendingFile, SubmitResult, UploadPhase, UploadSnapshot
from .previews import PreviewManager
from .validator import FileValidator

logger = logging.getLogger(__name__)

Listener = Callable[[UploadSnapshot], None]


class Transport(Protocol):
    async def upload(self, files: Sequence[LocalFile], folder: str) -> List[CommittedFile]: ...

    async def delete(self, public_id: str, resource_type: Optional[str] = None) -> str: ...


class UploadOrchestrator:
    """Coordinates validation, previews and batched upload for one session.

    Args:
        transport: Object with async ``upload(files, folder)`` and
            ``delete(public_id)``, usually an ``UploadTransport``.
        folder: Provider folder the batches go to.
        max_size: Per-file size limit in bytes.
        previews: Preview arena; no previews are made when ``None``.
        initial_files: Already-committed files to start the session with.
        on_success: Called with the files of each successful batch.
        on_error: Called with the message of each failure.
        on_status_change: Called with the uploading flag on every change.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        folder: str = DEFAULT_FOLDER,
        max_size: int = DEFAULT_MAX_SIZE_BYTES,
        previews: Optional[PreviewManager] = None,
        initial_files: Iterable[CommittedFile] = (),
        on_success: Optional[Callable[[List[CommittedFile]], None]] = None,
        on_error: Optional[Callable[[str], None]] = None,
        on_status_change: Optional[Callable[[bool], None]] = None,
    ) -> None:
        self._transport = transport
        self._folder = folder
        self._validator = FileValidator(max_size)
        self._previews = previews
        self._on_success = on_success
        self._on_error = on_error
        self._on_status_change = on_status_change
        self._listeners: List[Listener] = []

        self._phase = UploadPhase.IDLE
        self._error: Optional[str] = None
        self._pending: List[PendingFile] = []
        self._committed: List[CommittedFile] = []
        self._in_flight = 0
        self._closed = False
        # Bumped by clear_all(); batches from an older generation are dropped.
        self._generation = 0

        for committed in initial_files:
            self._append_committed(committed)

    @classmethod
    def from_settings(
        cls,
        transport: Transport,
        settings: UploadSettings,
        **kwargs,
    ) -> "UploadOrchestrator":
        if settings.show_preview:
            kwargs.setdefault("previews", PreviewManager())
        return cls(
            transport,
            folder=settings.folder,
            max_size=settings.max_size_bytes,
            **kwargs,
        )

    # -----------------------------------------------------------------------
    # Observation
    # -----------------------------------------------------------------------

    @property
    def uploading(self) -> bool:
        return self._in_flight > 0

    @property
    def max_size(self) -> int:
        return self._validator.max_size

    @property
    def closed(self) -> bool:
        return self._closed

    def snapshot(self) -> UploadSnapshot:
        return UploadSnapshot(
            phase=self._phase,
            uploading=self.uploading,
            error=self._error,
            pending=tuple(self._pending),
            committed=tuple(self._committed),
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for snapshots; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        if self._on_status_change:
            self._on_status_change(self.uploading)
        if self._listeners:
            snapshot = self.snapshot()
            for listener in list(self._listeners):
                listener(snapshot)

    def _set_phase(self, phase: UploadPhase) -> None:
        if phase != self._phase:
            self._phase = phase
            self._notify()

    def _settle_phase(self) -> None:
        if self.uploading:
            self._set_phase(UploadPhase.UPLOADING)
        elif self._pending or self._committed or self._error:
            self._set_phase(UploadPhase.SETTLED)
        else:
            self._set_phase(UploadPhase.IDLE)

    # -----------------------------------------------------------------------
    # Submission
    # -----------------------------------------------------------------------

    async def submit(self, candidates: Iterable[LocalFile]) -> SubmitResult:
        """Validate ``candidates`` and upload the survivors as one batch."""
        if self._closed:
            raise RuntimeError("UploadOrchestrator is closed")

        candidates = list(candidates)
        if not candidates:
            return SubmitResult(success=True)

        self._set_phase(UploadPhase.VALIDATING)
        accepted, rejected = self._validator.partition(candidates)
        rejected_files = tuple(f for f, _ in rejected)
        for _, error in rejected:
            self._fail(error.message)

        if not accepted:
            self._settle_phase()
            return SubmitResult(success=False, error=self._error, rejected=rejected_files)

        if not rejected:
            self._error = None
        batch = [self._make_pending(f) for f in accepted]
        self._pending.extend(batch)
        self._in_flight += 1
        generation = self._generation
        self._phase = UploadPhase.UPLOADING
        self._notify()

        error: Optional[str] = None
        files: List[CommittedFile] = []
        try:
            files = await self._transport.upload(accepted, folder=self._folder)
        except UploadError as e:
            error = e.message
        except Exception as e:
            logger.exception("Unexpected upload failure: %s", e)
            error = str(e) or "An unknown error occurred"
        finally:
            self._in_flight -= 1

        if self._closed:
            logger.info("Orchestrator closed while a batch was in flight; result disregarded")
            return self._disregarded(files, error, rejected_files)

        if generation != self._generation:
            logger.info("Session cleared while a batch was in flight; result disregarded")
            self._settle_phase()
            self._notify()
            return self._disregarded(files, error, rejected_files)

        if error is not None:
            return self._settle_failure(batch, error, rejected_files)
        return self._settle_success(batch, files, rejected_files)

    @staticmethod
    def _disregarded(files: Sequence[CommittedFile], error: Optional[str], rejected: tuple) -> SubmitResult:
        """Report a batch outcome that was not merged into the session."""
        if error is not None:
            return SubmitResult(success=False, error=error, rejected=rejected)
        return SubmitResult(success=True, files=tuple(files), rejected=rejected)

    def _make_pending(self, local: LocalFile) -> PendingFile:
        pending = PendingFile(local=local, uploading=True)
        if self._previews is not None:
            pending = replace(pending, preview_url=self._previews.allocate(pending.id, local))
        return pending

    def _settle_success(
        self, batch: Sequence[PendingFile], files: Sequence[CommittedFile], rejected: tuple,
    ) -> SubmitResult:
        batch_ids = {p.id for p in batch}
        for pending in batch:
            self._release_preview(pending)
        self._pending = [p for p in self._pending if p.id not in batch_ids]

        committed = [f for f in files if self._append_committed(f)]
        self._settle_phase()
        self._notify()

        logger.info("Batch committed: %d file(s)", len(committed))
        if self._on_success:
            self._on_success(list(committed))
        return SubmitResult(success=True, files=tuple(committed), rejected=rejected)

    def _settle_failure(self, batch: Sequence[PendingFile], error: str, rejected: tuple) -> SubmitResult:
        batch_ids = {p.id for p in batch}
        self._pending = [
            replace(p, uploading=False) if p.id in batch_ids else p for p in self._pending
        ]
        self._error = error
        self._settle_phase()
        self._notify()

        logger.warning("Batch failed: %s", error)
        if self._on_error:
            self._on_error(error)
        return SubmitResult(success=False, error=error, rejected=rejected)

    def _fail(self, message: str) -> None:
        self._error = message
        self._notify()
        if self._on_error:
            self._on_error(message)

    def _append_committed(self, committed: CommittedFile) -> bool:
        if any(c.publicId == committed.publicId for c in self._committed):
            logger.warning("Ignoring duplicate committed file %s", committed.publicId)
            return False
        self._committed.append(committed)
        return True

    def _release_preview(self, pending: PendingFile) -> None:
        # Only entries still in the pending list own a live preview.
        if self._previews is not None and pending.preview_url is not None and pending.id in self._previews:
            self._previews.release(pending.id)

    # -----------------------------------------------------------------------
    # Removal
    # -----------------------------------------------------------------------

    def remove_pending(self, pending_id: str) -> bool:
        """Discard a pending file and release its preview.

        Entries of a batch still in flight cannot be removed one by one;
        ``clear_all()`` drops them together with the batch result.
        """
        for pending in self._pending:
            if pending.id == pending_id:
                if pending.uploading:
                    return False
                self._release_preview(pending)
                self._pending.remove(pending)
                self._settle_phase()
                self._notify()
                return True
        return False

    def remove_committed(self, public_id: str) -> bool:
        """Drop one committed file from the session. No network call."""
        for committed in self._committed:
            if committed.publicId == public_id:
                self._committed.remove(committed)
                self._settle_phase()
                self._notify()
                return True
        return False

    async def delete_committed(self, public_id: str) -> bool:
        """Delete a committed file from the provider, then drop it locally.

        On failure the entry is kept and the error is recorded.
        """
        target = next((c for c in self._committed if c.publicId == public_id), None)
        if target is None:
            return False
        try:
            await self._transport.delete(public_id, resource_type=target.resourceType)
        except UploadError as e:
            self._fail(e.message)
            return False
        return self.remove_committed(public_id)

    def clear_all(self) -> None:
        """Empty both lists, release every preview and clear the error.

        Batches still in flight are orphaned: their results are not merged.
        """
        self._generation += 1
        for pending in self._pending:
            self._release_preview(pending)
        self._pending = []
        self._committed = []
        self._error = None
        self._settle_phase()
        self._notify()

    def dismiss_error(self) -> None:
        if self._error is not None:
            self._error = None
            self._settle_phase()
            self._notify()

    def close(self) -> None:
        """Teardown: release outstanding previews; later results are ignored."""
        if self._closed:
            return
        self._closed = True
        for pending in self._pending:
            self._release_preview(pending)
        if self._previews is not None:
            self._previews.close()
        self._listeners.clear()
