"""Client-side upload pipeline for panel front ends.

- FileValidator: size check before anything leaves the machine
- PreviewManager: owns transient local previews of not-yet-uploaded files
- UploadTransport: httpx adapter for the upload/delete endpoints
- UploadOrchestrator: session state, batched submission, notifications
- UploadSurface: drag-and-drop / manual-pick boundary rendered by a UI

Typical wiring::

    async with UploadTransport(base_url, session_token=token) as transport:
        orchestrator = UploadOrchestrator(transport, previews=PreviewManager())
        with UploadSurface(orchestrator, multiple=True) as surface:
            await surface.pick(["avatar.png", "cover.jpg"])
            view = surface.render()
"""
from .models import LocalFile, PendingFile, SubmitResult, UploadPhase, UploadSnapshot
from .orchestrator import UploadOrchestrator
from .previews import PreviewManager
from .surface import SurfaceItem, SurfaceView, UploadSurface
from .transport import UploadTransport
from .validator import FileValidator

__all__ = [
    "FileValidator",
    "LocalFile",
    "PendingFile",
    "PreviewManager",
    "SubmitResult",
    "SurfaceItem",
    "SurfaceView",
    "UploadOrchestrator",
    "UploadPhase",
    "UploadSnapshot",
    "UploadSurface",
    "UploadTransport",
]
