"""Tests for UploadSurface gestures and rendering."""
import asyncio

import pytest

from fakes import FakeTransport, committed_for
from panel.client.models import LocalFile
from panel.client.orchestrator import UploadOrchestrator
from panel.client.previews import PreviewManager
from panel.client.surface import UploadSurface
from panel.config import UploadSettings
from panel.uploads.errors import ProviderError

MIB = 1024 * 1024


def _file(name: str, size: int = 2048, mime: str = "image/png") -> LocalFile:
    return LocalFile.from_bytes(name, b"x" * size, mime)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def previews(tmp_path) -> PreviewManager:
    return PreviewManager(spool_dir=tmp_path / "spool")


@pytest.fixture
def orchestrator(transport, previews) -> UploadOrchestrator:
    return UploadOrchestrator(transport, max_size=10 * MIB, previews=previews)


@pytest.fixture
def surface(orchestrator) -> UploadSurface:
    return UploadSurface(orchestrator, multiple=True, max_files=3)


class TestDrop:
    @pytest.mark.asyncio
    async def test_drop_uploads_files(self, surface, transport):
        result = await surface.drop([_file("a.png"), _file("b.png")])
        assert result.success is True
        assert transport.upload_calls == [["a.png", "b.png"]]

    @pytest.mark.asyncio
    async def test_accept_filter_skips_other_types(self, orchestrator, transport):
        surface = UploadSurface(orchestrator, multiple=True, accept="image/*")
        await surface.drop([_file("a.png"), _file("doc.pdf", mime="application/pdf")])
        assert transport.upload_calls == [["a.png"]]

    @pytest.mark.asyncio
    async def test_nothing_admitted_returns_none(self, orchestrator, transport):
        surface = UploadSurface(orchestrator, accept=".pdf")
        assert await surface.drop([_file("a.png")]) is None
        assert transport.upload_calls == []

    @pytest.mark.asyncio
    async def test_single_mode_keeps_first_file(self, orchestrator, transport):
        surface = UploadSurface(orchestrator, multiple=False)
        await surface.drop([_file("a.png"), _file("b.png")])
        assert transport.upload_calls == [["a.png"]]

    @pytest.mark.asyncio
    async def test_multiple_mode_caps_selection(self, surface, transport):
        await surface.drop([_file(f"{i}.png") for i in range(5)])
        assert transport.upload_calls == [["0.png", "1.png", "2.png"]]

    @pytest.mark.asyncio
    async def test_drop_ignored_while_uploading(self, surface, transport):
        transport.gate = asyncio.Event()
        task = asyncio.create_task(surface.drop([_file("a.png")]))
        await asyncio.sleep(0)

        assert surface.accepting is False
        assert await surface.drop([_file("b.png")]) is None

        transport.gate.set()
        await task
        assert transport.upload_calls == [["a.png"]]
        assert surface.accepting is True

    @pytest.mark.asyncio
    async def test_disabled_surface_ignores_drop(self, orchestrator, transport):
        surface = UploadSurface(orchestrator, disabled=True)
        surface.drag_enter()
        assert await surface.drop([_file("a.png")]) is None
        assert surface.render().drag_active is False
        assert transport.upload_calls == []

    @pytest.mark.asyncio
    async def test_pick_reads_paths(self, surface, transport, tmp_path):
        path = tmp_path / "photo.jpg"
        path.write_bytes(b"jpeg-bytes")

        result = await surface.pick([path])

        assert transport.upload_calls == [["photo.jpg"]]
        assert result.files[0].size == len(b"jpeg-bytes")

    def test_drag_state(self, surface):
        surface.drag_enter()
        assert surface.render().drag_active is True
        surface.drag_leave()
        assert surface.render().drag_active is False


class TestRender:
    def test_empty_view(self, orchestrator):
        view = UploadSurface(orchestrator).render()
        assert view.items == ()
        assert view.placeholder == "No file selected"
        assert view.limit_hint == "Maximum 10MB"
        assert view.heading == "Uploaded file"
        assert view.show_clear_all is False
        assert view.uploading is False

    def test_multiple_limit_hint(self, surface):
        assert surface.render().limit_hint == "Up to 3 files, 10MB each"
        assert surface.render().heading == "Uploaded files"

    @pytest.mark.asyncio
    async def test_committed_items_have_thumbnails(self, surface):
        await surface.drop([_file("a.png"), _file("doc.pdf", mime="application/pdf")])

        view = surface.render()

        image, document = view.items
        assert image.status == "committed"
        assert image.key == "committed:uploads/a.png"
        assert image.size_label == "2.0 KB"
        assert image.is_image is True
        assert "/upload/w_96,h_96,c_fill/" in image.thumbnail_url
        assert document.is_image is False
        assert document.thumbnail_url is None
        assert view.show_clear_all is True

    @pytest.mark.asyncio
    async def test_pending_items_show_local_preview(self, surface, transport):
        transport.gate = asyncio.Event()
        task = asyncio.create_task(surface.drop([_file("a.png")]))
        await asyncio.sleep(0)

        view = surface.render()
        (item,) = view.items
        assert view.uploading is True
        assert item.status == "uploading"
        assert item.thumbnail_url.startswith("file://")
        assert item.removable is False

        transport.gate.set()
        await task

    @pytest.mark.asyncio
    async def test_failed_items_render_as_pending(self, surface, transport):
        transport.error = ProviderError("boom")
        await surface.drop([_file("a.png")])

        view = surface.render()
        assert view.error == "boom"
        assert [i.status for i in view.items] == ["pending"]
        assert view.items[0].removable is True

    def test_committed_before_pending(self, transport, previews):
        orchestrator = UploadOrchestrator(
            transport, previews=previews, initial_files=[committed_for(_file("old.png"))],
        )
        surface = UploadSurface(orchestrator, show_preview=False)
        (item,) = surface.render().items
        assert item.name == "old.png"
        assert item.thumbnail_url is None


class TestRemoval:
    @pytest.mark.asyncio
    async def test_remove_committed_locally(self, surface, transport):
        await surface.drop([_file("a.png"), _file("b.png")])

        assert await surface.remove("committed:uploads/a.png") is True
        assert [i.name for i in surface.render().items] == ["b.png"]
        assert transport.delete_calls == []

    @pytest.mark.asyncio
    async def test_remove_committed_remotely(self, orchestrator, transport):
        surface = UploadSurface(orchestrator, delete_remote=True)
        await surface.drop([_file("a.png")])

        assert await surface.remove("committed:uploads/a.png") is True
        assert transport.delete_calls == [("uploads/a.png", "image")]
        assert surface.render().items == ()

    @pytest.mark.asyncio
    async def test_remove_pending(self, surface, transport, previews):
        transport.error = ProviderError("boom")
        await surface.drop([_file("a.png")])
        (item,) = surface.render().items

        assert await surface.remove(item.key) is True
        assert surface.render().items == ()
        assert previews.outstanding == 0

    @pytest.mark.asyncio
    async def test_unknown_key_raises(self, surface):
        with pytest.raises(KeyError):
            await surface.remove("other:1")

    @pytest.mark.asyncio
    async def test_clear_all_and_dismiss(self, surface, transport):
        await surface.drop([_file("a.png"), _file("b.png")])
        transport.error = ProviderError("boom")
        await surface.drop([_file("c.png")])

        surface.dismiss_error()
        assert surface.render().error is None

        surface.clear_all()
        assert surface.render().items == ()


class TestTeardown:
    @pytest.mark.asyncio
    async def test_close_releases_previews_and_disables(self, surface, transport, previews):
        transport.error = ProviderError("boom")
        await surface.drop([_file("a.png")])

        with surface:
            pass

        assert previews.outstanding == 0
        assert surface.render().disabled is True
        assert await surface.drop([_file("b.png")]) is None
        assert await surface.remove("committed:x") is False


def test_from_settings(orchestrator):
    settings = UploadSettings(multiple=True, max_files=4, accept="image/*", show_preview=False)
    surface = UploadSurface.from_settings(orchestrator, settings, delete_remote=True)
    assert surface.multiple is True
    assert surface.max_files == 4
    assert surface.accept == "image/*"
    assert surface.show_preview is False
    assert surface.delete_remote is True
