"""Unit tests for UploadService and its key/URI helpers."""
import base64

import pytest
from pydantic import ValidationError as PydanticValidationError

from fakes import FakeProvider
from panel.uploads.errors import MalformedInputError, ProviderError
from panel.uploads.schemas import UploadedFile
from panel.uploads.service import (
    IncomingFile,
    UploadService,
    build_public_id,
    sanitize_base_name,
    to_data_uri,
)


def _incoming(name: str, content: bytes = b"data", content_type: str = "image/png") -> IncomingFile:
    return IncomingFile(filename=name, content_type=content_type, content=content)


class TestHelpers:
    @pytest.mark.parametrize("filename,expected", [
        ("avatar.png", "avatar"),
        ("My Photo.final.jpg", "My_Photo"),
        ("../../etc/passwd", "passwd"),
        ("çiçek.png", "i_ek"),
        (".hidden", "file"),
        ("", "file"),
    ])
    def test_sanitize_base_name(self, filename, expected):
        assert sanitize_base_name(filename) == expected

    def test_build_public_id_uses_timestamp_and_base_name(self):
        public_id = build_public_id("avatar.png", timestamp_ms=1700000000000)
        prefix, _, suffix = public_id.rpartition("-")
        assert prefix == "1700000000000-avatar"
        assert len(suffix) == 8

    def test_build_public_id_is_unique(self):
        assert build_public_id("a.png", 1) != build_public_id("a.png", 1)

    def test_to_data_uri(self):
        uri = to_data_uri(b"hello", "text/plain")
        assert uri == "data:text/plain;base64," + base64.b64encode(b"hello").decode()

    def test_to_data_uri_defaults_mime(self):
        assert to_data_uri(b"x", None).startswith("data:application/octet-stream;base64,")


class TestUploadedFileSchema:
    def _payload(self, **overrides):
        payload = {"publicId": "uploads/a", "url": "https://x/a.png", "originalName": "a.png", "size": 1}
        payload.update(overrides)
        return payload

    @pytest.mark.parametrize("value", ["image", "video", "raw"])
    def test_resource_type_kept_as_plain_string(self, value):
        uploaded = UploadedFile(**self._payload(resourceType=value))
        assert uploaded.resourceType == value
        assert type(uploaded.resourceType) is str
        assert uploaded.model_dump()["resourceType"] == value

    def test_unknown_resource_type_rejected(self):
        with pytest.raises(PydanticValidationError):
            UploadedFile(**self._payload(resourceType="hologram"))

    def test_resource_type_optional(self):
        assert UploadedFile(**self._payload()).resourceType is None


class TestIngest:
    @pytest.mark.asyncio
    async def test_rejects_empty_batch(self):
        service = UploadService(FakeProvider())
        with pytest.raises(MalformedInputError):
            await service.ingest([])

    @pytest.mark.asyncio
    async def test_returns_metadata_in_input_order(self):
        provider = FakeProvider(delays={"first.png": 0.03})
        service = UploadService(provider)

        uploaded = await service.ingest(
            [_incoming("first.png", b"12345"), _incoming("second.png", b"1")],
            folder="avatars",
        )

        assert [u.originalName for u in uploaded] == ["first.png", "second.png"]
        assert [u.size for u in uploaded] == [5, 1]
        assert provider.completion_order == ["second.png", "first.png"]
        assert all(u.publicId.startswith("avatars/") for u in uploaded)

    @pytest.mark.asyncio
    async def test_empty_folder_falls_back_to_default(self):
        provider = FakeProvider()
        await UploadService(provider).ingest([_incoming("a.png")], folder="")
        assert provider.uploads[0]["folder"] == "uploads"

    @pytest.mark.asyncio
    async def test_failure_raises_provider_error_and_compensates(self):
        provider = FakeProvider(fail_on={"bad.png"})
        service = UploadService(provider)

        with pytest.raises(ProviderError, match="bad.png"):
            await service.ingest([_incoming("good.png"), _incoming("bad.png")])

        assert len(provider.destroyed) == 1
        assert provider.destroyed[0][0].startswith("uploads/")

    @pytest.mark.asyncio
    async def test_compensation_failure_does_not_mask_original_error(self):
        provider = FakeProvider(fail_on={"bad.png"})

        async def broken_destroy(public_id, *, resource_type=None):
            raise RuntimeError("destroy unavailable")

        provider.destroy = broken_destroy
        service = UploadService(provider)

        with pytest.raises(ProviderError, match="bad.png"):
            await service.ingest([_incoming("good.png"), _incoming("bad.png")])

    @pytest.mark.asyncio
    async def test_no_compensation_when_disabled(self):
        provider = FakeProvider(fail_on={"bad.png"})
        service = UploadService(provider, compensate_on_failure=False)

        with pytest.raises(ProviderError):
            await service.ingest([_incoming("good.png"), _incoming("bad.png")])

        assert provider.destroyed == []


class TestRemove:
    @pytest.mark.asyncio
    async def test_remove_ok(self):
        provider = FakeProvider()
        await UploadService(provider).remove("uploads/x", resource_type="video")
        assert provider.destroyed == [("uploads/x", "video")]

    @pytest.mark.asyncio
    async def test_remove_not_ok_raises(self):
        provider = FakeProvider(destroy_result="not found")
        with pytest.raises(ProviderError):
            await UploadService(provider).remove("uploads/x")

    @pytest.mark.asyncio
    async def test_remove_requires_id(self):
        with pytest.raises(MalformedInputError):
            await UploadService(FakeProvider()).remove("")
